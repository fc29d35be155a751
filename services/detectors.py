"""Drought and pest-risk condition checks over sensor readings."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from models.records import SensorReading, ensure_utc

SOIL_MOISTURE_SENSOR_TYPE = "SoilMoisture"
DROUGHT_THRESHOLD_PERCENT = 30.0
DROUGHT_DURATION = timedelta(hours=24)

HUMIDITY_SENSOR_TYPES = frozenset({"humidity", "airhumidity"})
TEMPERATURE_METADATA_KEYS = ("Temperature", "temperature")
HUMIDITY_METADATA_KEYS = ("Humidity", "humidity")

PEST_AVERAGE_HUMIDITY_THRESHOLD = 80.0
PEST_TEMPERATURE_THRESHOLD = 30.0
PEST_SUPPORTING_HUMIDITY_THRESHOLD = 70.0
PEST_METADATA_HUMIDITY_THRESHOLD = 80.0


def is_humidity_reading(reading: SensorReading) -> bool:
    return reading.sensor_type.casefold() in HUMIDITY_SENSOR_TYPES


def _metadata_number(metadata: Optional[Mapping[str, str]], keys: Sequence[str]) -> Optional[float]:
    """First alias present in ``metadata``, parsed as a finite number."""
    if not metadata:
        return None
    for key in keys:
        raw = metadata.get(key)
        if raw is None:
            continue
        try:
            value = float(raw.strip())
        except (AttributeError, ValueError):
            return None
        return value if math.isfinite(value) else None
    return None


class DroughtDetector:
    """Flags a field whose soil moisture stayed under the threshold for a full day."""

    def check(self, readings: Iterable[SensorReading], now: datetime) -> Optional[str]:
        ordered = sorted(readings, key=lambda reading: reading.reading_timestamp, reverse=True)
        if not ordered:
            return None

        span = ordered[0].reading_timestamp - ordered[-1].reading_timestamp
        if span < DROUGHT_DURATION:
            return None

        cutoff = ensure_utc(now) - DROUGHT_DURATION
        recent = [reading for reading in ordered if reading.reading_timestamp >= cutoff]
        if not recent:
            return None

        if all(reading.value < DROUGHT_THRESHOLD_PERCENT for reading in recent):
            lowest = min(reading.value for reading in recent)
            hours = int(DROUGHT_DURATION.total_seconds() // 3600)
            return (
                f"Soil moisture below {DROUGHT_THRESHOLD_PERCENT}% for more than "
                f"{hours} hours. Current value: {lowest:.2f}%"
            )
        return None


class PestRiskDetector:
    """Flags humidity and temperature combinations that favour pests.

    Checks run in a fixed order and the first match wins: average humidity
    from humidity sensors, then a hot reading in metadata backed by a humid
    sensor reading, then humidity carried in metadata.
    """

    def check(self, readings: Iterable[SensorReading]) -> Optional[str]:
        window = list(readings)
        humidity = [reading for reading in window if is_humidity_reading(reading)]

        if humidity:
            average = sum(reading.value for reading in humidity) / len(humidity)
            if average > PEST_AVERAGE_HUMIDITY_THRESHOLD:
                return (
                    f"High air humidity detected ({average:.2f}%). "
                    "Conditions favorable for pest development."
                )

        humid_enough = any(
            reading.value > PEST_SUPPORTING_HUMIDITY_THRESHOLD for reading in humidity
        )
        if humid_enough:
            for reading in window:
                temperature = _metadata_number(reading.metadata, TEMPERATURE_METADATA_KEYS)
                if temperature is not None and temperature > PEST_TEMPERATURE_THRESHOLD:
                    return (
                        f"High temperature ({temperature:.2f}°C) and humidity detected. "
                        "Pest risk conditions present."
                    )

        for reading in window:
            embedded = _metadata_number(reading.metadata, HUMIDITY_METADATA_KEYS)
            if embedded is not None and embedded > PEST_METADATA_HUMIDITY_THRESHOLD:
                return (
                    f"High humidity detected in metadata ({embedded:.2f}%). "
                    "Pest risk conditions present."
                )

        return None
