# =============================================================================
# LeafScan-Hybrid
# services/__init__.py - Services Package
#
# Preprocessing, model runtime, fingerprinting, caching and the
# inference service that ties them together.
# =============================================================================

from .cache import ResultCache
from .fingerprint import ContentFingerprinter
from .ml_service import InferenceService, ServiceState
from .model_runtime import ModelHandle, ModelRuntime
from .predictors import (
    DebugPredictor, DeterministicFallbackPredictor, ModelBackedPredictor, Predictor,
)
from .preprocessing import ImagePreprocessor
from .severity import severity, severity_level

__all__ = [
    'ContentFingerprinter',
    'DebugPredictor',
    'DeterministicFallbackPredictor',
    'ImagePreprocessor',
    'InferenceService',
    'ModelBackedPredictor',
    'ModelHandle',
    'ModelRuntime',
    'Predictor',
    'ResultCache',
    'ServiceState',
    'severity',
    'severity_level',
]
