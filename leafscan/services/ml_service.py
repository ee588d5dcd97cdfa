# =============================================================================
# LeafScan-Hybrid
# services/ml_service.py - Inference Service
#
# Single entry point for leaf analysis. Handles model loading, predictor
# selection, content fingerprinting and result caching.
# =============================================================================

import asyncio
import enum
import logging
import time
from typing import Optional

from leafscan.config import get_config
from leafscan.constants import DISEASE_LABELS, MESSAGES
from leafscan.exceptions import ModelLoadFailure, NotReady
from leafscan.models import DetectionResult
from leafscan.services.cache import ResultCache
from leafscan.services.fingerprint import ContentFingerprinter
from leafscan.services.model_runtime import ModelRuntime
from leafscan.services.predictors import (
    DebugPredictor, DeterministicFallbackPredictor, ModelBackedPredictor, Predictor,
)
from leafscan.services.preprocessing import ImagePreprocessor, ImageSource

# Configure logging
logger = logging.getLogger(__name__)


class ServiceState(enum.Enum):
    UNLOADED = 'unloaded'
    LOADING = 'loading'
    READY = 'ready'
    FALLBACK_READY = 'fallback_ready'
    DISPOSED = 'disposed'


class InferenceService:
    """
    Plant disease inference service.

    This service handles:
    - Loading the classifier and segmentation models
    - Choosing the predictor once, at load time (model, debug or fallback)
    - Fingerprinting every image and caching results per fingerprint

    A failed model load is raised to the caller. The caller may then opt
    into the deterministic fallback with use_fallback(), or ask for it up
    front with fallback_on_failure. Inference errors in Ready state are
    never downgraded to the fallback.

    Known limitation: calling dispose() while analyze() is still running
    leaves the outcome of that call undefined. Await outstanding calls
    before disposing.
    """

    def __init__(
        self,
        config=None,
        runtime: Optional[ModelRuntime] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        fingerprinter: Optional[ContentFingerprinter] = None,
        cache: Optional[ResultCache] = None
    ):
        """
        Initialize the service. No model is loaded until load_models().

        Args:
            config: Configuration class (defaults to get_config())
            runtime: Model runtime (built from config when omitted)
            preprocessor: Image preprocessor
            fingerprinter: Content fingerprinter
            cache: Result cache owned by this instance
        """
        self.config = config or get_config()
        self.runtime = runtime or ModelRuntime(
            self.config.MODEL_PATH,
            classifier_file=self.config.CLASSIFIER_MODEL,
            segmentation_file=self.config.SEGMENTATION_MODEL,
            num_threads=self.config.NUM_THREADS,
        )
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.fingerprinter = fingerprinter or ContentFingerprinter()
        self.cache = cache if cache is not None else ResultCache()
        self.labels = DISEASE_LABELS

        self.state = ServiceState.UNLOADED
        self.predictor: Optional[Predictor] = None
        self.load_error: Optional[ModelLoadFailure] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_ready(self) -> bool:
        return self.state in (ServiceState.READY, ServiceState.FALLBACK_READY)

    @property
    def model_used(self) -> Optional[str]:
        """Source tag of the selected predictor, or None before loading."""
        return self.predictor.source if self.predictor else None

    def load_models(
        self,
        fallback_on_failure: Optional[bool] = None,
        debug: Optional[bool] = None
    ) -> ServiceState:
        """
        Load both models and select a predictor.

        Args:
            fallback_on_failure: Continue with the deterministic fallback if
                loading fails (defaults to config FALLBACK_ON_LOAD_FAILURE)
            debug: Answer with the debug predictor once models are loaded
                (defaults to config DEBUG_PREDICTOR)

        Returns:
            The resulting state (READY or FALLBACK_READY)

        Raises:
            ModelLoadFailure: If loading fails and fallback is not enabled
            NotReady: If the service has been disposed
        """
        if self.state == ServiceState.DISPOSED:
            raise NotReady(MESSAGES['DISPOSED'])
        if self.is_ready:
            return self.state

        if fallback_on_failure is None:
            fallback_on_failure = self.config.FALLBACK_ON_LOAD_FAILURE
        if debug is None:
            debug = self.config.DEBUG_PREDICTOR

        self.state = ServiceState.LOADING
        start_time = time.perf_counter()
        try:
            self.runtime.load_models()
        except ModelLoadFailure as e:
            self.load_error = e
            self.state = ServiceState.UNLOADED
            if not fallback_on_failure:
                logger.error(f"Error loading models: {e}")
                raise
            logger.warning(f"Could not load models ({e}) - using deterministic fallback predictions")
            return self.use_fallback()
        except Exception:
            self.state = ServiceState.UNLOADED
            raise

        if debug:
            self.predictor = DebugPredictor(self.runtime)
        else:
            self.predictor = ModelBackedPredictor(self.runtime, self.preprocessor, self.labels)
        self.load_error = None
        self.state = ServiceState.READY

        elapsed = (time.perf_counter() - start_time) * 1000
        logger.info(f"Inference service ready ({self.predictor.source} predictor, {elapsed:.0f}ms)")
        return self.state

    def use_fallback(self) -> ServiceState:
        """
        Enter degraded mode with the deterministic fallback predictor.

        Valid only before a successful load (typically after load_models()
        raised ModelLoadFailure).
        """
        if self.state == ServiceState.DISPOSED:
            raise NotReady(MESSAGES['DISPOSED'])
        if self.state == ServiceState.READY:
            raise NotReady("Models are loaded; fallback is only selectable before a successful load")

        self.predictor = DeterministicFallbackPredictor()
        self.state = ServiceState.FALLBACK_READY
        logger.info("Inference service ready - deterministic fallback mode")
        return self.state

    def dispose(self) -> None:
        """Release model handles and clear cached results."""
        if self.state == ServiceState.DISPOSED:
            return
        self.runtime.dispose()
        self.cache.clear()
        self.predictor = None
        self.state = ServiceState.DISPOSED
        logger.info("Inference service disposed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze(self, image: ImageSource) -> DetectionResult:
        """
        Analyze one leaf image.

        Args:
            image: Encoded image bytes, a file path, or a CameraFrame

        Returns:
            DetectionResult; identical input returns the cached result

        Raises:
            NotReady: Service is not in a ready state
            DecodeFailure: Image could not be decoded (model path)
            InferenceFailure: Model failed at run time (model path)
        """
        if not self.is_ready:
            raise NotReady(
                MESSAGES['DISPOSED'] if self.state == ServiceState.DISPOSED else MESSAGES['NOT_READY']
            )

        fingerprint = self.fingerprinter.fingerprint(image)

        cached = self.cache.get(fingerprint)
        if cached is not None:
            logger.info(f"Returning cached result for visual key {fingerprint}")
            return cached

        start_time = time.perf_counter()
        result = self.predictor.predict_image(image, fingerprint)
        self.cache.put(fingerprint, result)

        elapsed = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Analysis complete: {result.disease} ({result.confidence * 100:.1f}%), "
            f"severity {result.severity:.1f}% [{result.source}, {elapsed:.0f}ms]"
        )
        return result

    # =========================================================================
    # Background execution
    # =========================================================================

    async def aload_models(self, **kwargs) -> ServiceState:
        """Run load_models() on a worker thread."""
        return await asyncio.to_thread(self.load_models, **kwargs)

    async def aanalyze(self, image: ImageSource) -> DetectionResult:
        """Run analyze() on a worker thread. The call cannot be cancelled."""
        return await asyncio.to_thread(self.analyze, image)
