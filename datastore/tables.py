from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Optional

from datastore.json_table import JsonTable
from models.records import Alert, Field, SensorReading, ensure_utc
from settings import get_settings


class SensorReadingTable(JsonTable[SensorReading]):

    def __init__(self, name: str = "sensor_readings", persistence_path: Optional[Path] = None) -> None:
        super().__init__(name=name, record_type=SensorReading, persistence_path=persistence_path)

    def get_by_timestamp_range(self, start: datetime, end: datetime) -> list[SensorReading]:
        """Readings with ``start <= reading_timestamp <= end``, oldest first."""
        lower = ensure_utc(start)
        upper = ensure_utc(end)
        readings = self._select(lambda reading: lower <= reading.reading_timestamp <= upper)
        return sorted(readings, key=lambda reading: reading.reading_timestamp)

    def get_by_field_and_sensor_type(self, field_id: str, sensor_type: str) -> list[SensorReading]:
        wanted = sensor_type.casefold()
        readings = self._select(
            lambda reading: reading.field_id == field_id
            and reading.sensor_type.casefold() == wanted
        )
        return sorted(readings, key=lambda reading: reading.reading_timestamp)


class FieldTable(JsonTable[Field]):

    def __init__(self, name: str = "fields", persistence_path: Optional[Path] = None) -> None:
        super().__init__(name=name, record_type=Field, persistence_path=persistence_path)


class AlertTable(JsonTable[Alert]):

    def __init__(self, name: str = "alerts", persistence_path: Optional[Path] = None) -> None:
        super().__init__(name=name, record_type=Alert, persistence_path=persistence_path)

    def get_by_farm_id(self, farm_id: str, active_only: bool = False) -> list[Alert]:
        """Alerts raised for any field of ``farm_id``, newest first."""
        alerts = self._select(
            lambda alert: alert.farm_id == farm_id and (alert.is_active or not active_only)
        )
        return sorted(alerts, key=lambda alert: alert.created_at, reverse=True)


def _as_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


@lru_cache
def build_default_reading_table(path: Optional[str] = None) -> SensorReadingTable:
    table_path = get_settings().readings_table_path if path is None else path
    return SensorReadingTable(persistence_path=_as_path(table_path))


@lru_cache
def build_default_field_table(path: Optional[str] = None) -> FieldTable:
    table_path = get_settings().fields_table_path if path is None else path
    return FieldTable(persistence_path=_as_path(table_path))


@lru_cache
def build_default_alert_table(path: Optional[str] = None) -> AlertTable:
    table_path = get_settings().alerts_table_path if path is None else path
    return AlertTable(persistence_path=_as_path(table_path))
