from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_READINGS_PATH_ENV = "READINGS_TABLE_PATH"
_FIELDS_PATH_ENV = "FIELDS_TABLE_PATH"
_ALERTS_PATH_ENV = "ALERTS_TABLE_PATH"
_EVALUATION_WORKERS_ENV = "ALERT_EVALUATION_WORKERS"
_INGESTION_WORKERS_ENV = "INGESTION_WORKERS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    readings_table_path: Optional[str]
    fields_table_path: Optional[str]
    alerts_table_path: Optional[str]
    evaluation_workers: int
    ingestion_workers: int
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _default_ingestion_workers() -> int:
    return (os.cpu_count() or 1) * 2


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_table_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        fields_table_path=_read_optional_env(_FIELDS_PATH_ENV, "./tmp/fields.json"),
        alerts_table_path=_read_optional_env(_ALERTS_PATH_ENV, "./tmp/alerts.json"),
        evaluation_workers=_read_positive_int(_EVALUATION_WORKERS_ENV, 4),
        ingestion_workers=_read_positive_int(
            _INGESTION_WORKERS_ENV, _default_ingestion_workers()
        ),
        log_level=_read_log_level("INFO"),
    )
