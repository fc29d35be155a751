"""Store interfaces the services depend on."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, TypeVar

from models.records import Alert, Field, SensorReading

T = TypeVar("T")


class Batch(Protocol[T]):
    def add_range(self, items: Iterable[T]) -> None: ...

    def save_changes(self) -> int: ...


class ReadingStore(Protocol):
    def get_by_timestamp_range(self, start: datetime, end: datetime) -> list[SensorReading]: ...

    def get_by_field_and_sensor_type(self, field_id: str, sensor_type: str) -> list[SensorReading]: ...

    def batch(self) -> Batch[SensorReading]: ...


class FieldStore(Protocol):
    def get_item(self, key: str) -> Optional[Field]: ...


class AlertStore(Protocol):
    def batch(self) -> Batch[Alert]: ...
