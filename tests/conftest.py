import io
import os

import numpy as np
import pytest
from PIL import Image

os.environ["LEAFSCAN_ENV"] = "testing"
os.environ.setdefault("LOG_DIR", "")

from leafscan.config import TestingConfig
from leafscan.services import InferenceService, ModelRuntime

CLASSIFIER_FILE = "plant_disease_classifier.tflite"
SEGMENTATION_FILE = "plant_disease_segmentation.tflite"


def default_classify(tensor):
    """Scores that depend only on the tensor: class 2 wins for green-ish leaves."""
    mean = tensor.reshape(-1, 3).mean(axis=0)
    return np.array([[0.1, 0.05, 0.6 + 0.1 * mean[1], 0.1, 0.05]], dtype=np.float32)


def default_segment(tensor):
    """Marks every pixel whose red channel exceeds 0.5 as diseased."""
    return (tensor[0, :, :, 0] > 0.5).astype(np.float32).reshape(1, -1)


class FakeInterpreter:
    """Minimal stand-in for tflite Interpreter."""

    def __init__(self, model_path, num_threads=None, fn=None, output_shape=(1, 5),
                 load_error=None, invoke_error=None):
        self.model_path = model_path
        self.num_threads = num_threads
        self.fn = fn
        self.output_shape = output_shape
        self.load_error = load_error
        self.invoke_error = invoke_error
        self._input = None
        self._output = None
        self.invocations = 0

    def allocate_tensors(self):
        if self.load_error is not None:
            raise self.load_error

    def get_input_details(self):
        return [{"index": 0, "shape": np.array([1, 224, 224, 3]), "dtype": np.float32}]

    def get_output_details(self):
        return [{"index": 1, "shape": np.array(self.output_shape), "dtype": np.float32}]

    def set_tensor(self, index, value):
        self._input = np.array(value, copy=True)

    def invoke(self):
        if self.invoke_error is not None:
            raise self.invoke_error
        self.invocations += 1
        self._output = self.fn(self._input)

    def get_tensor(self, index):
        return self._output


def make_factory(classify=default_classify, segment=default_segment,
                 classifier_error=None, segmentation_error=None, invoke_error=None):
    """Build an interpreter factory that picks behaviour from the model file name."""
    created = []

    def factory(model_path, num_threads=None):
        if "classifier" in os.path.basename(model_path):
            interpreter = FakeInterpreter(model_path, num_threads, fn=classify, output_shape=(1, 5),
                                          load_error=classifier_error, invoke_error=invoke_error)
        else:
            interpreter = FakeInterpreter(model_path, num_threads, fn=segment,
                                          output_shape=(1, 224 * 224),
                                          load_error=segmentation_error, invoke_error=invoke_error)
        created.append(interpreter)
        return interpreter

    factory.created = created
    return factory


def image_bytes(color=(60, 140, 50), size=(64, 48), fmt="PNG", mode="RGB", spots=True):
    image = Image.new(mode, size, color if mode == "RGB" else 128)
    if spots and mode == "RGB":
        for x in range(5, 15):
            for y in range(5, 12):
                image.putpixel((x, y), (150, 90, 40))
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def leaf_png():
    return image_bytes()


@pytest.fixture()
def model_dir(tmp_path):
    (tmp_path / CLASSIFIER_FILE).write_bytes(b"TFL3-classifier")
    (tmp_path / SEGMENTATION_FILE).write_bytes(b"TFL3-segmentation")
    return tmp_path


@pytest.fixture()
def runtime_factory(model_dir):
    def build(**factory_kwargs):
        return ModelRuntime(str(model_dir), interpreter_factory=make_factory(**factory_kwargs))
    return build


@pytest.fixture()
def service_factory(runtime_factory):
    services = []

    def build(**factory_kwargs):
        service = InferenceService(config=TestingConfig, runtime=runtime_factory(**factory_kwargs))
        services.append(service)
        return service

    yield build
    for service in services:
        service.dispose()
