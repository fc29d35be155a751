"""Alert evaluation over the most recent hour of sensor readings."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import lru_cache
from threading import Event
from typing import Callable, Dict, List, Optional

from datastore.protocols import AlertStore, FieldStore, ReadingStore
from datastore.tables import (
    build_default_alert_table,
    build_default_field_table,
    build_default_reading_table,
)
from models.records import Alert, AlertStatus, SensorReading, utcnow
from services.detectors import SOIL_MOISTURE_SENSOR_TYPE, DroughtDetector, PestRiskDetector
from settings import get_settings

logger = logging.getLogger(__name__)

EVALUATION_WINDOW = timedelta(hours=1)


@dataclass
class AlertEvaluationResult:
    """Summary of one alert evaluation run."""

    success: bool = True
    alerts_created: int = 0
    fields_processed: int = 0
    errors: List[str] = field(default_factory=list)
    elapsed_ms: int = 0


@dataclass
class _FieldOutcome:
    alerts: List[Alert] = field(default_factory=list)
    error: Optional[str] = None
    skipped: bool = False


class AlertEvaluator:
    """Runs the drought and pest-risk checks for every recently active field."""

    def __init__(
        self,
        readings: ReadingStore,
        fields: FieldStore,
        alerts: AlertStore,
        drought_detector: Optional[DroughtDetector] = None,
        pest_detector: Optional[PestRiskDetector] = None,
        workers: int = 4,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.readings = readings
        self.fields = fields
        self.alerts = alerts
        self.drought_detector = drought_detector or DroughtDetector()
        self.pest_detector = pest_detector or PestRiskDetector()
        self.clock = clock
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="alert-eval"
        )

    def run_alert_evaluation(self, cancel_event: Optional[Event] = None) -> AlertEvaluationResult:
        start_time = time.perf_counter()
        result = AlertEvaluationResult()
        now = self.clock()

        try:
            recent = self.readings.get_by_timestamp_range(now - EVALUATION_WINDOW, now)
        except Exception as exc:
            logger.exception("Failed to fetch recent sensor readings")
            result.success = False
            result.errors.append(f"Failed to fetch sensor readings: {exc}")
            return self._finish(result, start_time)

        if not recent:
            logger.info("No sensor readings found from the last hour")
            return self._finish(result, start_time)

        groups = self._group_by_field(recent)
        futures: List[Future[_FieldOutcome]] = []
        cancelled = False
        for field_id, window in groups.items():
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break
            futures.append(
                self.executor.submit(self._evaluate_field, field_id, window, now, cancel_event)
            )

        pending: List[Alert] = []
        for future in futures:
            outcome = future.result()
            if outcome.skipped:
                continue
            result.fields_processed += 1
            if outcome.error is not None:
                result.errors.append(outcome.error)
            pending.extend(outcome.alerts)

        if cancelled or (cancel_event is not None and cancel_event.is_set()):
            logger.warning(
                "Alert evaluation cancelled; discarding pending alerts",
                extra={"fields_processed": result.fields_processed},
            )
            result.success = False
            result.errors.append("Alert evaluation cancelled")
            return self._finish(result, start_time)

        if pending:
            try:
                batch = self.alerts.batch()
                batch.add_range(pending)
                batch.save_changes()
            except Exception as exc:
                logger.exception(
                    "Failed to persist alerts", extra={"error_count": len(result.errors)}
                )
                result.success = False
                result.errors.append(f"Failed to save alerts: {exc}")
                return self._finish(result, start_time)
            result.alerts_created = len(pending)

        logger.info(
            "Created %d alerts for %d fields",
            result.alerts_created,
            result.fields_processed,
            extra={
                "alerts_created": result.alerts_created,
                "fields_processed": result.fields_processed,
                "error_count": len(result.errors),
            },
        )
        return self._finish(result, start_time)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _group_by_field(readings: List[SensorReading]) -> Dict[str, List[SensorReading]]:
        groups: Dict[str, List[SensorReading]] = {}
        for reading in readings:
            groups.setdefault(reading.field_id, []).append(reading)
        return groups

    @staticmethod
    def _finish(result: AlertEvaluationResult, start_time: float) -> AlertEvaluationResult:
        result.elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        return result

    def _evaluate_field(
        self,
        field_id: str,
        window: List[SensorReading],
        now: datetime,
        cancel_event: Optional[Event] = None,
    ) -> _FieldOutcome:
        # Queued fields that start after cancellation do no work.
        if cancel_event is not None and cancel_event.is_set():
            return _FieldOutcome(skipped=True)
        outcome = _FieldOutcome()
        try:
            record = self.fields.get_item(field_id)
            if record is None:
                logger.warning(
                    "Field not found, skipping alert generation",
                    extra={"field_id": field_id},
                )
                outcome.error = f"Field {field_id} not found"
                return outcome

            history = self.readings.get_by_field_and_sensor_type(
                field_id, SOIL_MOISTURE_SENSOR_TYPE
            )
            checks = (
                (AlertStatus.drought_alert, self.drought_detector.check(history, now)),
                (AlertStatus.pest_risk, self.pest_detector.check(window)),
            )
            for status, message in checks:
                if message is None:
                    continue
                outcome.alerts.append(
                    Alert(
                        field_id=field_id,
                        farm_id=record.farm_id,
                        status=status,
                        message=message,
                        created_at=now,
                    )
                )
                logger.info(
                    "Condition detected: %s",
                    message,
                    extra={"field_id": field_id, "farm_id": record.farm_id, "status": status},
                )
        except Exception as exc:
            logger.exception("Error processing alerts for field", extra={"field_id": field_id})
            return _FieldOutcome(error=f"Error processing field {field_id}: {exc}")
        return outcome


@lru_cache
def build_default_evaluator(workers: Optional[int] = None) -> AlertEvaluator:
    """Factory that wires the evaluator with the default tables."""
    worker_count = workers or get_settings().evaluation_workers
    return AlertEvaluator(
        readings=build_default_reading_table(),
        fields=build_default_field_table(),
        alerts=build_default_alert_table(),
        workers=worker_count,
    )
