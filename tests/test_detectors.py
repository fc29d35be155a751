"""Unit tests for the drought and pest-risk detectors."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from models.records import SensorReading
from services.detectors import DroughtDetector, PestRiskDetector

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _reading(
    sensor_type: str,
    value: float,
    at: datetime = NOW,
    metadata: Optional[Dict[str, str]] = None,
) -> SensorReading:
    """Helper to build deterministic sensor readings."""

    return SensorReading(
        field_id="field-1",
        sensor_type=sensor_type,
        value=value,
        unit="Percent",
        reading_timestamp=at,
        metadata=metadata,
    )


def _soil(value: float, hours_ago: float) -> SensorReading:
    return _reading("SoilMoisture", value, at=NOW - timedelta(hours=hours_ago))


def test_drought_without_readings_reports_nothing() -> None:
    assert DroughtDetector().check([], NOW) is None


def test_drought_fires_for_day_long_series_below_threshold() -> None:
    step = timedelta(minutes=160)
    readings = [
        _reading("SoilMoisture", 20.0 + i, at=NOW - timedelta(hours=24) + step * i)
        for i in range(10)
    ]

    message = DroughtDetector().check(readings, NOW)

    assert message is not None
    assert "below 30.0%" in message
    assert "24 hours" in message
    assert message.endswith("Current value: 20.00%")


def test_drought_needs_a_full_day_of_history() -> None:
    readings = [_soil(5.0, hours) for hours in (0, 6, 12, 23.5)]

    assert DroughtDetector().check(readings, NOW) is None


def test_drought_threshold_is_strict() -> None:
    readings = [_soil(10.0, 30), _soil(12.0, 20), _soil(30.0, 10), _soil(15.0, 1)]

    assert DroughtDetector().check(readings, NOW) is None


def test_drought_ignores_low_readings_older_than_the_window() -> None:
    readings = [_soil(5.0, 60), _soil(8.0, 30), _soil(45.0, 2)]

    assert DroughtDetector().check(readings, NOW) is None


def test_drought_without_recent_readings_reports_nothing() -> None:
    readings = [_soil(5.0, 72), _soil(6.0, 48)]

    assert DroughtDetector().check(readings, NOW) is None


def test_drought_accepts_unsorted_input() -> None:
    readings = [_soil(25.0, 3), _soil(10.0, 40), _soil(22.5, 12)]

    message = DroughtDetector().check(readings, NOW)

    assert message is not None
    assert "22.50%" in message


def test_pest_risk_single_humid_reading() -> None:
    message = PestRiskDetector().check([_reading("Humidity", 85.0)])

    assert message == (
        "High air humidity detected (85.00%). Conditions favorable for pest development."
    )


def test_pest_risk_uses_mean_of_humidity_aliases() -> None:
    readings = [
        _reading("humidity", 70.0),
        _reading("AIRHUMIDITY", 95.0),
        _reading("Temperature", 40.0),
    ]

    message = PestRiskDetector().check(readings)

    assert message is not None
    assert "82.50%" in message


def test_pest_risk_mean_at_threshold_does_not_fire_on_humidity_alone() -> None:
    assert PestRiskDetector().check([_reading("Humidity", 80.0)]) is None


def test_pest_risk_hot_metadata_with_humid_reading() -> None:
    readings = [
        _reading("Humidity", 75.0),
        _reading("SoilMoisture", 40.0, metadata={"temperature": "31.5"}),
    ]

    message = PestRiskDetector().check(readings)

    assert message == (
        "High temperature (31.50°C) and humidity detected. Pest risk conditions present."
    )


def test_pest_risk_hot_metadata_needs_humid_reading() -> None:
    readings = [
        _reading("Humidity", 65.0),
        _reading("SoilMoisture", 40.0, metadata={"Temperature": "35"}),
    ]

    assert PestRiskDetector().check(readings) is None


def test_pest_risk_metadata_humidity() -> None:
    readings = [_reading("SoilMoisture", 40.0, metadata={"Humidity": " 88.25 "})]

    message = PestRiskDetector().check(readings)

    assert message == (
        "High humidity detected in metadata (88.25%). Pest risk conditions present."
    )


def test_pest_risk_temperature_check_precedes_metadata_humidity() -> None:
    readings = [
        _reading("Humidity", 72.0),
        _reading("SoilMoisture", 40.0, metadata={"humidity": "95"}),
        _reading("SoilMoisture", 41.0, metadata={"Temperature": "33"}),
    ]

    message = PestRiskDetector().check(readings)

    assert message is not None
    assert message.startswith("High temperature (33.00°C)")


def test_pest_risk_skips_unparseable_metadata() -> None:
    readings = [
        _reading("Humidity", 75.0, metadata={"Temperature": "hot", "humidity": "nan"}),
        _reading("SoilMoisture", 40.0, metadata={"Humidity": "n/a"}),
    ]

    assert PestRiskDetector().check(readings) is None


def test_pest_risk_empty_window() -> None:
    assert PestRiskDetector().check([]) is None
