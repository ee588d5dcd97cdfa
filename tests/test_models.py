import dataclasses
from datetime import datetime

import pytest

from leafscan.models import DetectionResult


def test_round_trip_through_transport_record():
    result = DetectionResult("Late Blight", 0.82, 67.0, "2026-10-17T10:00:00", "model")

    record = result.to_dict()

    assert record == {
        "disease": "Late Blight",
        "confidence": 0.82,
        "severity": 67.0,
        "timestamp": "2026-10-17T10:00:00",
        "source": "model",
    }
    assert DetectionResult.from_dict(record) == result


def test_missing_keys_take_defaults():
    result = DetectionResult.from_dict({})

    assert result.disease == "Unknown"
    assert result.confidence == 0.0
    assert result.severity == 0.0
    assert result.source == "unknown"
    datetime.fromisoformat(result.timestamp)


def test_integer_values_are_coerced_to_float():
    result = DetectionResult.from_dict({"disease": "Healthy", "confidence": 1, "severity": 2})

    assert isinstance(result.confidence, float)
    assert result.is_healthy


def test_results_are_immutable():
    result = DetectionResult("Healthy", 0.9, 1.0)

    with pytest.raises(dataclasses.FrozenInstanceError):
        result.severity = 50.0


def test_synthetic_flag():
    assert not DetectionResult("Healthy", 0.9, 1.0, source="model").is_synthetic
    assert DetectionResult("Healthy", 0.9, 1.0, source="fallback").is_synthetic
