"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional
from uuid import uuid4


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def _require(value: str, message: str) -> None:
    if not value or not value.strip():
        raise ValueError(message)


class AlertStatus(str, Enum):
    """Condition reported by an alert."""

    normal = "Normal"
    drought_alert = "DroughtAlert"
    pest_risk = "PestRisk"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single sensor measurement for a field."""

    field_id: str
    sensor_type: str
    value: float
    unit: str
    reading_timestamp: datetime
    location: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        _require(self.field_id, "Field ID cannot be empty")
        _require(self.sensor_type, "Sensor type cannot be empty")
        _require(self.unit, "Unit cannot be empty")
        object.__setattr__(self, "reading_timestamp", ensure_utc(self.reading_timestamp))


@dataclass(slots=True)
class Field:
    """A cultivated field; only its owning farm matters to alerting."""

    farm_id: str
    name: str
    crop_type: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _require(self.farm_id, "Farm ID cannot be empty")
        _require(self.crop_type, "Crop type cannot be empty")


@dataclass(slots=True)
class Alert:
    """Condition detected for a field at evaluation time."""

    field_id: str
    farm_id: str
    status: AlertStatus
    message: str
    is_active: bool = True
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _require(self.field_id, "Field ID cannot be empty")
        _require(self.farm_id, "Farm ID cannot be empty")
        _require(self.message, "Message cannot be empty")
