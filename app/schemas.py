"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import AlertStatus


class SensorReadingPayload(BaseModel):
    """Incoming sensor reading; entity rules are enforced at ingestion time."""

    field_id: str
    sensor_type: str
    value: float
    unit: str
    reading_timestamp: datetime
    location: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None


class BatchSensorReadingPayload(BaseModel):
    """A batch of readings ingested together."""

    readings: List[SensorReadingPayload] = Field(default_factory=list)


class SensorReadingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    field_id: str
    sensor_type: str
    value: float
    unit: str
    reading_timestamp: datetime
    location: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None


class IngestionResponse(BaseModel):
    """Outcome of a batch ingestion request."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    processed_count: int = Field(..., ge=0)
    failed_count: int = Field(..., ge=0)
    errors: List[str] = Field(default_factory=list)
    processing_ms: int = Field(
        ..., ge=0, description="Duration in milliseconds from start to finish."
    )


class FieldCreate(BaseModel):
    farm_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    crop_type: str = Field(..., min_length=1, max_length=100)


class FieldResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    farm_id: str
    name: str
    crop_type: str
    created_at: datetime


class AlertResponse(BaseModel):
    """A persisted alert as exposed to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    field_id: str
    farm_id: str
    status: AlertStatus
    message: str
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class AlertEvaluationResponse(BaseModel):
    """Summary returned after an alert evaluation run."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    alerts_created: int = Field(..., ge=0)
    fields_processed: int = Field(..., ge=0)
    errors: List[str] = Field(default_factory=list)
    elapsed_ms: int = Field(..., ge=0)
