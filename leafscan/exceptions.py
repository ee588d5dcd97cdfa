# =============================================================================
# LeafScan-Hybrid
# exceptions.py - Error Kinds
#
# Every failure the engine surfaces derives from LeafScanError so callers
# can catch the whole family or a single kind.
# =============================================================================


class LeafScanError(Exception):
    """Base class for all engine errors."""


class ModelLoadFailure(LeafScanError):
    """
    A model artifact could not be loaded.

    Attributes:
        model_path: Path of the artifact that failed, if known
    """

    def __init__(self, message: str, model_path=None):
        super().__init__(message)
        self.model_path = model_path


class ModelNotFoundError(ModelLoadFailure):
    """The model file does not exist."""


class UnsupportedOperatorError(ModelLoadFailure):
    """The model uses an operator version newer than the runtime supports."""


class RuntimeUnavailableError(ModelLoadFailure):
    """No TFLite interpreter implementation is installed."""


class DecodeFailure(LeafScanError):
    """Image bytes or camera planes could not be decoded."""


class InferenceFailure(LeafScanError):
    """Shape mismatch or interpreter fault while running a model."""


class FingerprintFailure(LeafScanError):
    """Sampling or hashing failed; recovered inside the fingerprinter."""


class NotReady(LeafScanError):
    """Call made outside the Ready/FallbackReady states."""
