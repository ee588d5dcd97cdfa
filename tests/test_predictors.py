import hashlib
import random

import numpy as np
import pytest

from leafscan.constants import DISEASE_LABELS, FALLBACK_WEIGHTS
from leafscan.exceptions import NotReady
from leafscan.services.predictors import (
    DebugPredictor, DeterministicFallbackPredictor, ModelBackedPredictor, stable_seed,
)
from leafscan.services.preprocessing import ImagePreprocessor


def _fingerprints(n):
    return [hashlib.md5(str(i).encode()).hexdigest()[:12] for i in range(n)]


@pytest.fixture()
def fallback():
    return DeterministicFallbackPredictor()


def test_fallback_is_pure(fallback):
    first = fallback.predict("a1b2c3d4e5f6")
    second = fallback.predict("a1b2c3d4e5f6")

    assert (first.disease, first.confidence, first.severity) == \
        (second.disease, second.confidence, second.severity)
    assert first.source == "fallback"


def test_fallback_draw_order(fallback):
    key = "default_plant_leaf"
    rng = random.Random(stable_seed(key))
    label = DeterministicFallbackPredictor.choose_label(rng.random())
    confidence_jitter = (rng.random() - 0.5) * 0.08
    severity_jitter = (rng.random() - 0.5) * 10

    base = {
        "Healthy": (0.88, 2), "Bacterial Spot": (0.78, 42), "Early Blight": (0.75, 38),
        "Late Blight": (0.82, 67), "Leaf Mold": (0.70, 29),
    }[label]
    result = fallback.predict(key)

    assert result.disease == label
    assert result.confidence == pytest.approx(min(0.95, max(0.65, base[0] + confidence_jitter)))
    assert result.severity == pytest.approx(min(85.0, max(0.0, base[1] + severity_jitter)))


def test_stable_seed_does_not_use_builtin_hash():
    assert stable_seed("abc") == int(hashlib.sha256(b"abc").hexdigest()[:16], 16)


@pytest.mark.parametrize("sample, label", [
    (0.0, "Healthy"),
    (0.35, "Healthy"),
    (0.36, "Bacterial Spot"),
    (0.61, "Early Blight"),
    (0.9, "Late Blight"),
    (0.999, "Leaf Mold"),
])
def test_cumulative_label_walk(sample, label):
    assert DeterministicFallbackPredictor.choose_label(sample) == label


def test_fallback_ranges(fallback):
    for key in _fingerprints(2000):
        result = fallback.predict(key)
        assert 0.65 <= result.confidence <= 0.95
        assert 0.0 <= result.severity <= 85.0
        assert result.disease in DISEASE_LABELS


def test_fallback_label_distribution(fallback):
    n = 10_000
    counts = {label: 0 for label, _ in FALLBACK_WEIGHTS}
    for key in _fingerprints(n):
        counts[fallback.predict(key).disease] += 1

    chi2 = sum(
        (counts[label] - n * weight) ** 2 / (n * weight)
        for label, weight in FALLBACK_WEIGHTS
    )
    # chi-square critical value for 4 degrees of freedom at p = 0.0001
    assert chi2 < 23.51


def test_argmax_first_maximum_wins():
    predictor = ModelBackedPredictor(runtime=None, preprocessor=ImagePreprocessor())

    assert predictor.interpret_scores([0.5, 0.5, 0.1, 0.1, 0.1]) == ("Healthy", 0.5)


def test_raw_scores_are_used_as_confidence():
    predictor = ModelBackedPredictor(runtime=None, preprocessor=ImagePreprocessor())

    disease, confidence = predictor.interpret_scores([1.0, 3.5, -2.0, 0.0, 0.2])

    assert disease == "Bacterial Spot"
    assert confidence == pytest.approx(3.5)


def test_index_beyond_labels_is_unknown():
    predictor = ModelBackedPredictor(runtime=None, preprocessor=ImagePreprocessor(), labels=["Healthy"])

    assert predictor.interpret_scores([0.1, 0.9])[0] == "Unknown"


def test_model_backed_prediction(runtime_factory, leaf_png):
    runtime = runtime_factory(
        classify=lambda t: np.array([[0.1, 0.2, 0.1, 0.7, 0.0]], dtype=np.float32),
        segment=lambda t: np.concatenate(
            [np.ones(224 * 112), np.zeros(224 * 112)]
        ).astype(np.float32).reshape(1, -1),
    )
    runtime.load_models()
    predictor = ModelBackedPredictor(runtime, ImagePreprocessor())

    result = predictor.predict(leaf_png)

    assert result.disease == "Late Blight"
    assert result.confidence == pytest.approx(0.7)
    assert result.severity == pytest.approx(50.0)
    assert result.source == "model"


def test_debug_predictor_requires_loaded_models(runtime_factory, leaf_png):
    runtime = runtime_factory()
    predictor = DebugPredictor(runtime)

    with pytest.raises(NotReady):
        predictor.predict_image(leaf_png, "abc")

    runtime.load_models()
    result = predictor.predict_image(leaf_png, "abc")
    assert result.source == "debug"
    assert result.confidence == 0.88
