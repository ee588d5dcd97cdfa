"""
LeafScan-Hybrid
Plant leaf disease detection: TFLite classification and segmentation with
a deterministic fallback predictor.
"""

from leafscan.exceptions import (
    DecodeFailure, FingerprintFailure, InferenceFailure, LeafScanError,
    ModelLoadFailure, ModelNotFoundError, NotReady, RuntimeUnavailableError,
    UnsupportedOperatorError,
)
from leafscan.models import CameraFrame, DetectionResult, Plane
from leafscan.services import InferenceService, ServiceState

__version__ = '1.0.0'

__all__ = [
    'CameraFrame',
    'DecodeFailure',
    'DetectionResult',
    'FingerprintFailure',
    'InferenceFailure',
    'InferenceService',
    'LeafScanError',
    'ModelLoadFailure',
    'ModelNotFoundError',
    'NotReady',
    'Plane',
    'RuntimeUnavailableError',
    'ServiceState',
    'UnsupportedOperatorError',
]
