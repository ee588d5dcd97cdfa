# =============================================================================
# LeafScan-Hybrid
# services/predictors.py - Predictor Strategies
#
# The three ways a DetectionResult can be produced. InferenceService picks
# exactly one of them at load time:
# - ModelBackedPredictor: real classification + segmentation
# - DeterministicFallbackPredictor: synthetic, seeded by the fingerprint
# - DebugPredictor: models loaded, fixed marker result
# =============================================================================

import hashlib
import random
import logging
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from leafscan.constants import (
    CONFIDENCE_JITTER, DEBUG_RESULT, DISEASE_LABELS, FALLBACK_BASELINES,
    FALLBACK_CONFIDENCE_RANGE, FALLBACK_DEFAULT_BASELINE, FALLBACK_SEVERITY_RANGE,
    FALLBACK_WEIGHTS, MESSAGES, SEVERITY_JITTER, SOURCE_DEBUG, SOURCE_FALLBACK,
    SOURCE_MODEL, UNKNOWN_LABEL,
)
from leafscan.exceptions import NotReady
from leafscan.models import DetectionResult, now_iso
from leafscan.services.model_runtime import ModelRuntime
from leafscan.services.preprocessing import ImagePreprocessor, ImageSource
from leafscan.services.severity import severity

logger = logging.getLogger(__name__)


def _clamp(value: float, bounds) -> float:
    low, high = bounds
    return max(low, min(high, value))


def stable_seed(fingerprint: str) -> int:
    """Process-independent integer seed for a fingerprint string."""
    return int(hashlib.sha256(fingerprint.encode('utf-8')).hexdigest()[:16], 16)


class Predictor(ABC):
    """Produces a DetectionResult for one image."""

    source = ''

    @abstractmethod
    def predict_image(self, image: ImageSource, fingerprint: str) -> DetectionResult:
        """
        Analyze one image.

        Args:
            image: Encoded bytes, a file path, or a CameraFrame
            fingerprint: Content fingerprint already computed for image
        """


class ModelBackedPredictor(Predictor):
    """Runs the classifier and segmentation models on the image."""

    source = SOURCE_MODEL

    def __init__(
        self,
        runtime: ModelRuntime,
        preprocessor: ImagePreprocessor,
        labels: Sequence[str] = DISEASE_LABELS
    ):
        self.runtime = runtime
        self.preprocessor = preprocessor
        self.labels = tuple(labels)

    def predict_image(self, image: ImageSource, fingerprint: str) -> DetectionResult:
        return self.predict(image)

    def predict(self, image: ImageSource) -> DetectionResult:
        """
        Decode the image and run both models.

        Raises:
            DecodeFailure: Image could not be decoded
            InferenceFailure: A model failed at run time
            NotReady: Models are not loaded
        """
        tensor = self.preprocessor.to_tensor(image)
        scores = self.runtime.classify(tensor)
        mask = self.runtime.segment(tensor)

        disease, confidence = self.interpret_scores(scores)
        return DetectionResult(
            disease=disease,
            confidence=confidence,
            severity=severity(mask),
            timestamp=now_iso(),
            source=self.source,
        )

    def interpret_scores(self, scores) -> tuple:
        """
        Pick the top class from raw classifier output.

        The first maximum wins on ties. The maximum raw score is used as
        confidence without softmax, so it is only a probability if the
        model ends in one.

        Returns:
            Tuple of (disease_name, confidence)
        """
        scores = np.asarray(scores, dtype=np.float32)
        disease_idx = int(np.argmax(scores))
        confidence = float(scores[disease_idx])

        if not 0.0 <= confidence <= 1.0:
            logger.debug(f"Classifier score {confidence:.3f} is outside [0, 1]")

        disease = self.labels[disease_idx] if disease_idx < len(self.labels) else UNKNOWN_LABEL
        return disease, confidence


class DeterministicFallbackPredictor(Predictor):
    """
    Synthetic predictor used when the models cannot run.

    Produces a plausible result seeded purely by the fingerprint, so the
    same fingerprint always gives the same disease, confidence and
    severity. This is not a diagnosis; results carry source='fallback'.
    """

    source = SOURCE_FALLBACK

    def predict_image(self, image: ImageSource, fingerprint: str) -> DetectionResult:
        return self.predict(fingerprint)

    def predict(self, fingerprint: str) -> DetectionResult:
        rng = random.Random(stable_seed(fingerprint))

        # Draw order is label, confidence jitter, severity jitter
        disease = self.choose_label(rng.random())
        base_confidence, base_severity = FALLBACK_BASELINES.get(disease, FALLBACK_DEFAULT_BASELINE)
        confidence = base_confidence + (rng.random() - 0.5) * CONFIDENCE_JITTER
        severity_value = base_severity + (rng.random() - 0.5) * SEVERITY_JITTER

        result = DetectionResult(
            disease=disease,
            confidence=_clamp(confidence, FALLBACK_CONFIDENCE_RANGE),
            severity=_clamp(severity_value, FALLBACK_SEVERITY_RANGE),
            timestamp=now_iso(),
            source=self.source,
        )
        logger.info(
            f"Fallback analysis: {result.disease} ({result.confidence * 100:.1f}%) for key {fingerprint}"
        )
        return result

    @staticmethod
    def choose_label(sample: float) -> str:
        """Walk the cumulative weight table; first label with sample <= cumulative wins."""
        cumulative = 0.0
        for label, weight in FALLBACK_WEIGHTS:
            cumulative += weight
            if sample <= cumulative:
                return label
        return FALLBACK_WEIGHTS[0][0]


class DebugPredictor(Predictor):
    """
    Confirms the models load and answers with a fixed marker result.

    Used to check the asset and runtime setup without trusting the
    model outputs.
    """

    source = SOURCE_DEBUG

    def __init__(self, runtime: ModelRuntime):
        self.runtime = runtime

    def predict_image(self, image: ImageSource, fingerprint: str) -> DetectionResult:
        if not self.runtime.is_loaded:
            raise NotReady(MESSAGES['NOT_READY'])
        logger.info(f"Debug analysis for key {fingerprint}")
        return DetectionResult(
            disease=DEBUG_RESULT['disease'],
            confidence=DEBUG_RESULT['confidence'],
            severity=DEBUG_RESULT['severity'],
            timestamp=now_iso(),
            source=self.source,
        )
