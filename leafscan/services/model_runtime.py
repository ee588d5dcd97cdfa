# =============================================================================
# LeafScan-Hybrid
# services/model_runtime.py - TFLite Model Runtime
#
# Owns the classifier and segmentation interpreters. Loading failures are
# split into missing files, unsupported operator versions and a missing
# runtime, so callers can decide whether to fall back instead of retrying.
# =============================================================================

import os
import re
import time
import logging
from typing import Callable, Optional

import numpy as np

from leafscan.constants import (
    DISEASE_LABELS, INPUT_SHAPE, MESSAGES, MODEL_CONFIG, SEGMENTATION_SIZE,
)
from leafscan.exceptions import (
    InferenceFailure, ModelLoadFailure, ModelNotFoundError, NotReady,
    RuntimeUnavailableError, UnsupportedOperatorError,
)

logger = logging.getLogger(__name__)

# TFLite reports e.g. "Didn't find op for builtin opcode 'FULLY_CONNECTED' version '12'"
_OP_VERSION_PATTERN = re.compile(r"\bop(code|erator)?s?\b.*\bversion", re.IGNORECASE)

InterpreterFactory = Callable[..., object]


def resolve_interpreter_factory() -> InterpreterFactory:
    """
    Locate a TFLite Interpreter class.

    Prefers the lightweight tflite-runtime package and falls back to the
    interpreter bundled with TensorFlow.

    Raises:
        RuntimeUnavailableError: If neither package is installed
    """
    try:
        import tflite_runtime.interpreter as tflite
        logger.debug("Using tflite-runtime")
        return tflite.Interpreter
    except ImportError:
        pass

    try:
        import tensorflow as tf
        logger.debug("Using tensorflow.lite")
        return tf.lite.Interpreter
    except ImportError as e:
        raise RuntimeUnavailableError(
            "No TFLite runtime installed. Run: pip install tflite-runtime"
        ) from e


class ModelHandle:
    """
    A loaded TFLite model with a single input and a single output.

    Immutable once loaded; release() drops the interpreter exactly once.
    """

    def __init__(self, name: str, model_path: str, interpreter):
        self.name = name
        self.model_path = model_path
        self._interpreter = interpreter

        input_details = interpreter.get_input_details()
        output_details = interpreter.get_output_details()
        self.input_index = input_details[0]['index']
        self.input_shape = tuple(int(d) for d in input_details[0]['shape'])
        self.output_index = output_details[0]['index']
        self.output_shape = tuple(int(d) for d in output_details[0]['shape'])

    @property
    def released(self) -> bool:
        return self._interpreter is None

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """
        Run the model on one input tensor.

        Returns:
            Flattened float32 output of the first batch element
        """
        if self._interpreter is None:
            raise NotReady(f"{self.name} model has been released")

        try:
            self._interpreter.set_tensor(self.input_index, tensor)
            self._interpreter.invoke()
            output = self._interpreter.get_tensor(self.output_index)
        except (ValueError, RuntimeError) as e:
            raise InferenceFailure(f"{MESSAGES['MODEL_ERROR']} ({self.name}): {e}") from e

        output = np.asarray(output, dtype=np.float32)
        if output.ndim == 0 or output.shape[0] != 1:
            raise InferenceFailure(
                f"{self.name} produced unexpected output shape {output.shape}"
            )
        return output[0].reshape(-1).copy()

    def release(self) -> None:
        if self._interpreter is not None:
            self._interpreter = None
            logger.debug(f"Released {self.name} model")


class ModelRuntime:
    """
    Runtime for the two plant disease models.

    Both models must be loaded before classify() or segment() may be
    called. Inference is a pure function of the input tensor.
    """

    def __init__(
        self,
        model_dir: str,
        classifier_file: str = MODEL_CONFIG['classifier_model'],
        segmentation_file: str = MODEL_CONFIG['segmentation_model'],
        num_threads: int = MODEL_CONFIG['num_threads'],
        interpreter_factory: Optional[InterpreterFactory] = None,
        num_classes: int = len(DISEASE_LABELS)
    ):
        """
        Initialize the runtime.

        Args:
            model_dir: Directory holding both .tflite files
            classifier_file: Classifier filename within model_dir
            segmentation_file: Segmentation filename within model_dir
            num_threads: Interpreter thread count
            interpreter_factory: Callable returning an Interpreter; resolved
                from tflite-runtime/tensorflow when not given
            num_classes: Expected classifier output length
        """
        self.classifier_path = os.path.join(model_dir, classifier_file)
        self.segmentation_path = os.path.join(model_dir, segmentation_file)
        self.num_threads = num_threads
        self.num_classes = num_classes
        self._interpreter_factory = interpreter_factory

        self.classifier: Optional[ModelHandle] = None
        self.segmentation: Optional[ModelHandle] = None
        self._disposed = False

    @property
    def is_loaded(self) -> bool:
        return self.classifier is not None and self.segmentation is not None

    def load_models(self) -> None:
        """
        Load both models.

        Raises:
            ModelNotFoundError: A model file does not exist
            UnsupportedOperatorError: A model uses operator versions newer
                than the installed runtime supports
            RuntimeUnavailableError: No TFLite runtime is installed
            ModelLoadFailure: Any other load error
        """
        if self._disposed:
            raise NotReady(MESSAGES['DISPOSED'])
        if self.is_loaded:
            return

        factory = self._interpreter_factory or resolve_interpreter_factory()

        classifier = self._load_one('classifier', self.classifier_path, factory)
        try:
            segmentation = self._load_one('segmentation', self.segmentation_path, factory)
        except ModelLoadFailure:
            classifier.release()
            raise

        self.classifier = classifier
        self.segmentation = segmentation
        logger.info("All models loaded successfully")

    def _load_one(self, name: str, model_path: str, factory: InterpreterFactory) -> ModelHandle:
        if not os.path.exists(model_path):
            raise ModelNotFoundError(f"{name} model not found: {model_path}", model_path)

        logger.info(f"Loading {name} model from {model_path}")
        try:
            interpreter = factory(model_path=model_path, num_threads=self.num_threads)
            interpreter.allocate_tensors()
            handle = ModelHandle(name, model_path, interpreter)
        except (ValueError, RuntimeError) as e:
            if _OP_VERSION_PATTERN.search(str(e)):
                raise UnsupportedOperatorError(
                    f"{name} model uses an unsupported op version: {e}", model_path
                ) from e
            raise ModelLoadFailure(f"Could not load {name} model: {e}", model_path) from e

        logger.debug(f"{name} input shape: {handle.input_shape}, output shape: {handle.output_shape}")
        return handle

    def _require_loaded(self) -> None:
        if not self.is_loaded:
            raise NotReady(MESSAGES['DISPOSED'] if self._disposed else MESSAGES['NOT_READY'])

    @staticmethod
    def _check_tensor(tensor: np.ndarray) -> np.ndarray:
        tensor = np.asarray(tensor)
        if tensor.shape != INPUT_SHAPE:
            raise InferenceFailure(
                f"Input tensor has shape {tensor.shape}, expected {INPUT_SHAPE}"
            )
        if tensor.dtype != np.float32:
            raise InferenceFailure(f"Input tensor has dtype {tensor.dtype}, expected float32")
        return tensor

    def classify(self, tensor: np.ndarray) -> np.ndarray:
        """
        Run the disease classifier.

        Returns:
            Raw class scores, one per disease label
        """
        self._require_loaded()
        tensor = self._check_tensor(tensor)

        start_time = time.perf_counter()
        scores = self.classifier.run(tensor)
        logger.debug(f"Classification took {(time.perf_counter() - start_time) * 1000:.1f}ms")

        if scores.size != self.num_classes:
            raise InferenceFailure(
                f"Classifier returned {scores.size} scores, expected {self.num_classes}"
            )
        return scores

    def segment(self, tensor: np.ndarray) -> np.ndarray:
        """
        Run the segmentation model.

        Returns:
            Per-pixel disease probabilities, flattened to 224*224 values
        """
        self._require_loaded()
        tensor = self._check_tensor(tensor)

        start_time = time.perf_counter()
        mask = self.segmentation.run(tensor)
        logger.debug(f"Segmentation took {(time.perf_counter() - start_time) * 1000:.1f}ms")

        if mask.size != SEGMENTATION_SIZE:
            raise InferenceFailure(
                f"Segmentation returned {mask.size} values, expected {SEGMENTATION_SIZE}"
            )
        return mask

    def dispose(self) -> None:
        """Release both model handles. Further inference raises NotReady."""
        for handle in (self.classifier, self.segmentation):
            if handle is not None:
                handle.release()
        self.classifier = None
        self.segmentation = None
        self._disposed = True
