"""Sensor reading ingestion, single and batched."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import lru_cache
from threading import Event
from typing import List, Optional, Tuple

from app.schemas import BatchSensorReadingPayload, SensorReadingPayload
from datastore.protocols import ReadingStore
from datastore.tables import build_default_reading_table
from models.records import SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingSaveError(RuntimeError):
    """Raised when a validated reading could not be committed to the store."""


MAX_SENSOR_TYPE_LENGTH = 50
MAX_UNIT_LENGTH = 20
MAX_LOCATION_LENGTH = 200


@dataclass
class IngestionResult:
    success: bool = True
    processed_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)
    processing_ms: int = 0


def build_reading(payload: SensorReadingPayload) -> SensorReading:
    """Validate a payload and turn it into a reading, raising ``ValueError``."""
    if len(payload.sensor_type) > MAX_SENSOR_TYPE_LENGTH:
        raise ValueError(f"Sensor type must not exceed {MAX_SENSOR_TYPE_LENGTH} characters")
    if len(payload.unit) > MAX_UNIT_LENGTH:
        raise ValueError(f"Unit must not exceed {MAX_UNIT_LENGTH} characters")
    if payload.location and len(payload.location) > MAX_LOCATION_LENGTH:
        raise ValueError(f"Location must not exceed {MAX_LOCATION_LENGTH} characters")
    return SensorReading(
        field_id=payload.field_id,
        sensor_type=payload.sensor_type,
        value=payload.value,
        unit=payload.unit,
        reading_timestamp=payload.reading_timestamp,
        location=payload.location,
        metadata=dict(payload.metadata) if payload.metadata is not None else None,
    )


class IngestionService:
    """Validates incoming readings and commits them to the reading store."""

    def __init__(self, readings: ReadingStore, workers: int = 4) -> None:
        self.readings = readings
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest")

    def ingest_single(self, payload: SensorReadingPayload) -> SensorReading:
        reading = build_reading(payload)
        batch = self.readings.batch()
        batch.add_range([reading])
        try:
            batch.save_changes()
        except Exception as exc:
            logger.exception(
                "Failed to save reading",
                extra={"field_id": reading.field_id, "reason": str(exc)},
            )
            raise ReadingSaveError(f"Reading save failed: {exc}") from exc
        logger.info(
            "Ingested single reading",
            extra={"field_id": reading.field_id, "sensor_type": reading.sensor_type},
        )
        return reading

    def ingest_batch(
        self, payload: BatchSensorReadingPayload, cancel_event: Optional[Event] = None
    ) -> IngestionResult:
        start_time = time.perf_counter()
        result = IngestionResult()
        if not payload.readings:
            return self._reject_empty(result, start_time)

        built: List[SensorReading] = []
        for item in payload.readings:
            if cancel_event is not None and cancel_event.is_set():
                break
            reading, error = self._try_build(item)
            self._tally(result, built, reading, error)

        return self._commit(result, built, start_time)

    def ingest_batch_parallel(
        self, payload: BatchSensorReadingPayload, cancel_event: Optional[Event] = None
    ) -> IngestionResult:
        start_time = time.perf_counter()
        result = IngestionResult()
        if not payload.readings:
            return self._reject_empty(result, start_time)

        futures: List[Future[Tuple[Optional[SensorReading], Optional[str]]]] = []
        for item in payload.readings:
            if cancel_event is not None and cancel_event.is_set():
                break
            futures.append(self.executor.submit(self._try_build, item))

        built: List[SensorReading] = []
        for future in futures:
            reading, error = future.result()
            self._tally(result, built, reading, error)

        return self._commit(result, built, start_time)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _try_build(item: SensorReadingPayload) -> Tuple[Optional[SensorReading], Optional[str]]:
        try:
            return build_reading(item), None
        except ValueError as exc:
            logger.warning(
                "Failed to build reading",
                extra={"field_id": item.field_id, "reason": str(exc)},
            )
            return None, f"Field {item.field_id}: {exc}"

    @staticmethod
    def _tally(
        result: IngestionResult,
        built: List[SensorReading],
        reading: Optional[SensorReading],
        error: Optional[str],
    ) -> None:
        if reading is None:
            result.failed_count += 1
            if error:
                result.errors.append(error)
            return
        built.append(reading)
        result.processed_count += 1

    def _commit(
        self, result: IngestionResult, built: List[SensorReading], start_time: float
    ) -> IngestionResult:
        if built:
            try:
                batch = self.readings.batch()
                batch.add_range(built)
                batch.save_changes()
            except Exception as exc:
                logger.exception("Error saving batch of readings")
                result.errors.append(f"Batch save failed: {exc}")
                result.processed_count = 0
                result.success = False

        result.success = result.success and result.failed_count == 0
        result.processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Batch ingestion completed",
            extra={
                "processed_count": result.processed_count,
                "failed_count": result.failed_count,
                "elapsed_ms": result.processing_ms,
            },
        )
        return result

    @staticmethod
    def _reject_empty(result: IngestionResult, start_time: float) -> IngestionResult:
        result.success = False
        result.errors.append("No readings provided in batch")
        result.processing_ms = int((time.perf_counter() - start_time) * 1000)
        return result


@lru_cache
def build_default_ingestion_service(workers: Optional[int] = None) -> IngestionService:
    worker_count = workers or get_settings().ingestion_workers
    return IngestionService(readings=build_default_reading_table(), workers=worker_count)
