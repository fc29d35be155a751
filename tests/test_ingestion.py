from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Iterator

import pytest

from app.schemas import BatchSensorReadingPayload, SensorReadingPayload
from datastore.tables import SensorReadingTable
from services.ingestion import IngestionService, ReadingSaveError

TIMESTAMP = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _payload(field_id: str = "field-1", **overrides) -> SensorReadingPayload:
    data = {
        "field_id": field_id,
        "sensor_type": "Temperature",
        "value": 25.5,
        "unit": "Celsius",
        "reading_timestamp": TIMESTAMP,
    }
    data.update(overrides)
    return SensorReadingPayload(**data)


@pytest.fixture()
def table() -> SensorReadingTable:
    return SensorReadingTable()


@pytest.fixture()
def service(table: SensorReadingTable) -> Iterator[IngestionService]:
    ingestion = IngestionService(readings=table, workers=2)
    yield ingestion
    ingestion.shutdown()


def test_ingest_single_stores_reading(service: IngestionService, table: SensorReadingTable) -> None:
    reading = service.ingest_single(_payload(metadata={"humidity": "71"}))

    assert reading.id
    assert reading.field_id == "field-1"
    assert reading.value == 25.5
    assert table.get_item(reading.id) == reading


def test_ingest_single_treats_naive_timestamp_as_utc(service: IngestionService) -> None:
    reading = service.ingest_single(_payload(reading_timestamp=datetime(2024, 1, 1, 12, 0)))

    assert reading.reading_timestamp == TIMESTAMP


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"field_id": ""}, "Field ID cannot be empty"),
        ({"unit": "   "}, "Unit cannot be empty"),
        ({"sensor_type": "x" * 51}, "Sensor type must not exceed 50 characters"),
        ({"location": "y" * 201}, "Location must not exceed 200 characters"),
    ],
)
def test_ingest_single_rejects_invalid_reading(
    service: IngestionService, table: SensorReadingTable, overrides, reason
) -> None:
    with pytest.raises(ValueError, match=reason):
        service.ingest_single(_payload(**overrides))

    assert table.count() == 0


def test_ingest_batch_processes_all_readings(service: IngestionService, table: SensorReadingTable) -> None:
    batch = BatchSensorReadingPayload(
        readings=[
            _payload("field-1"),
            _payload("field-2", sensor_type="Humidity", value=60.0, unit="Percent"),
            _payload("field-3", sensor_type="SoilMoisture", value=45.0, unit="Percent"),
        ]
    )

    result = service.ingest_batch(batch)

    assert result.success is True
    assert result.processed_count == 3
    assert result.failed_count == 0
    assert result.errors == []
    assert result.processing_ms >= 0
    assert table.count() == 3


def test_ingest_batch_counts_failures_and_keeps_valid_readings(
    service: IngestionService, table: SensorReadingTable
) -> None:
    batch = BatchSensorReadingPayload(
        readings=[_payload("field-1"), _payload(""), _payload("field-3")]
    )

    result = service.ingest_batch(batch)

    assert result.success is False
    assert result.processed_count == 2
    assert result.failed_count == 1
    assert result.errors == ["Field : Field ID cannot be empty"]
    assert table.count() == 2


def test_ingest_batch_rejects_empty_batch(service: IngestionService) -> None:
    result = service.ingest_batch(BatchSensorReadingPayload(readings=[]))

    assert result.success is False
    assert result.errors == ["No readings provided in batch"]


def test_ingest_batch_stops_when_cancelled(service: IngestionService, table: SensorReadingTable) -> None:
    cancel = threading.Event()
    cancel.set()

    result = service.ingest_batch(BatchSensorReadingPayload(readings=[_payload()]), cancel_event=cancel)

    assert result.processed_count == 0
    assert table.count() == 0


def test_ingest_single_reports_save_failure() -> None:
    class FailingTable(SensorReadingTable):
        def _persist(self, items) -> None:
            raise OSError("read-only file system")

    table = FailingTable()
    service = IngestionService(readings=table, workers=1)
    try:
        with pytest.raises(ReadingSaveError, match="Reading save failed: read-only file system"):
            service.ingest_single(_payload())
    finally:
        service.shutdown()

    assert table.count() == 0


def test_ingest_batch_reports_save_failure() -> None:
    class FailingTable(SensorReadingTable):
        def _persist(self, items) -> None:
            raise OSError("read-only file system")

    table = FailingTable()
    service = IngestionService(readings=table, workers=1)
    try:
        result = service.ingest_batch(BatchSensorReadingPayload(readings=[_payload()]))
    finally:
        service.shutdown()

    assert result.success is False
    assert result.processed_count == 0
    assert result.errors == ["Batch save failed: read-only file system"]
    assert table.count() == 0


def test_ingest_batch_parallel_processes_all_readings(
    service: IngestionService, table: SensorReadingTable
) -> None:
    batch = BatchSensorReadingPayload(
        readings=[_payload(f"field-{i}", value=20.0 + i) for i in range(10)]
    )

    result = service.ingest_batch_parallel(batch)

    assert result.success is True
    assert result.processed_count == 10
    assert result.failed_count == 0
    assert sorted(reading.value for reading in table.scan()) == [20.0 + i for i in range(10)]


def test_ingest_batch_parallel_isolates_failures(service: IngestionService, table: SensorReadingTable) -> None:
    batch = BatchSensorReadingPayload(
        readings=[_payload("field-1"), _payload("field-2", unit="u" * 21), _payload("field-3")]
    )

    result = service.ingest_batch_parallel(batch)

    assert result.success is False
    assert result.processed_count == 2
    assert result.failed_count == 1
    assert result.errors == ["Field field-2: Unit must not exceed 20 characters"]
    assert table.count() == 2
