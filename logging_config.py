from __future__ import annotations

import logging
import time
from enum import Enum
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

from settings import get_settings

# Order here is the order pairs appear in the rendered line.
CONTEXT_KEYS = (
    "table",
    "field_id",
    "farm_id",
    "sensor_type",
    "status",
    "alerts_created",
    "fields_processed",
    "processed_count",
    "failed_count",
    "error_count",
    "elapsed_ms",
    "reason",
)

_LINE_FORMAT = "%(asctime)sZ | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


def _render(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class ContextualFormatter(logging.Formatter):
    """UTC formatter that appends selected ``extra`` fields as ``key=value`` pairs.

    Evaluation and ingestion log from worker threads, so the field or batch a
    line belongs to travels in ``extra`` rather than in the message text.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(extra_keys or CONTEXT_KEYS)

    def context_pairs(self, record: logging.LogRecord) -> list[str]:
        pairs = []
        for key in self._context_keys:
            value = record.__dict__.get(key)
            if value is not None:
                pairs.append(f"{key}={_render(value)}")
        return pairs

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = self.context_pairs(record)
        return f"{line} | {' '.join(pairs)}" if pairs else line


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual formatter on the root logger, once per process."""
    global _configured
    if _configured:
        return

    log_level = get_settings().log_level if level is None else level
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": ContextualFormatter,
                    "fmt": _LINE_FORMAT,
                    "datefmt": _DATE_FORMAT,
                    "extra_keys": list(CONTEXT_KEYS),
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "root": {"handlers": ["console"], "level": log_level},
        }
    )
    _configured = True
