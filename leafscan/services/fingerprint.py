# =============================================================================
# LeafScan-Hybrid
# services/fingerprint.py - Visual Content Fingerprinting
#
# Derives a short identifier from an image's content. Byte values are
# quantized and only a coarse set of positions is sampled, so re-encoded
# copies of the same picture usually map to the same fingerprint.
# The fingerprint is the cache key and the fallback predictor's seed.
# =============================================================================

import os
import hashlib
import logging
from typing import List, Tuple, Union

import numpy as np

from leafscan.constants import (
    DEFAULT_FINGERPRINT, FINGERPRINT_GRID, FINGERPRINT_LENGTH, FINGERPRINT_SAMPLES,
    LARGEST_SIZE_BUCKET, QUANTIZATION_STEP, SIZE_BUCKETS,
)
from leafscan.exceptions import FingerprintFailure
from leafscan.models import CameraFrame

logger = logging.getLogger(__name__)


def size_bucket(length: int) -> str:
    """Coarse size class of a byte length: small, medium, large or xlarge."""
    for label, upper in SIZE_BUCKETS:
        if length < upper:
            return label
    return LARGEST_SIZE_BUCKET


def quantize(values: np.ndarray) -> np.ndarray:
    """Round each byte down to the nearest multiple of 32."""
    values = values.astype(np.int64)
    return values - values % QUANTIZATION_STEP


def digest(signature: str) -> str:
    return hashlib.md5(signature.encode('utf-8')).hexdigest()[:FINGERPRINT_LENGTH]


class ContentFingerprinter:
    """
    Computes content fingerprints for encoded images and camera frames.

    Never raises: sampling or read errors degrade to a fixed default
    fingerprint so analysis can still return a generic answer.
    """

    def fingerprint(self, image: Union[bytes, bytearray, memoryview, str, os.PathLike, CameraFrame]) -> str:
        """
        Fingerprint an image.

        Args:
            image: Encoded image bytes, a file path, or a CameraFrame

        Returns:
            12 hex characters, or the default fingerprint on error
        """
        if isinstance(image, CameraFrame):
            return self.fingerprint_frame(image)
        if isinstance(image, (str, os.PathLike)):
            return self.fingerprint_file(image)
        return self.fingerprint_bytes(image)

    def fingerprint_file(self, path: Union[str, os.PathLike]) -> str:
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            logger.warning(f"File visual key generation failed: {e}")
            return DEFAULT_FINGERPRINT
        return self.fingerprint_bytes(data)

    def fingerprint_bytes(self, data) -> str:
        try:
            length, features = self._sample_bytes(data)
        except FingerprintFailure as e:
            logger.warning(f"File visual key generation failed: {e}")
            return DEFAULT_FINGERPRINT

        bucket = size_bucket(length)
        key = digest(f"{bucket}_{','.join(str(v) for v in features)}")
        logger.debug(f"File visual key: {key} (size: {bucket}, features: {features[:4]}..)")
        return key

    def fingerprint_frame(self, frame: CameraFrame) -> str:
        try:
            features = self._sample_grid(frame)
        except FingerprintFailure as e:
            logger.warning(f"Camera visual key generation failed: {e}")
            return digest(f"{frame.width}x{frame.height}_default_plant")

        key = digest(','.join(str(v) for v in features))
        logger.debug(f"Camera visual key: {key} (features: {features[:4]}..)")
        return key

    @staticmethod
    def _sample_bytes(data) -> Tuple[int, List[int]]:
        """Sample up to 32 evenly spaced bytes and quantize them."""
        try:
            buffer = np.frombuffer(bytes(data), dtype=np.uint8)
        except (TypeError, ValueError) as e:
            raise FingerprintFailure(f"Unreadable image buffer: {e}") from e

        stride = max(1, buffer.size // FINGERPRINT_SAMPLES)
        count = min(FINGERPRINT_SAMPLES, buffer.size // stride)
        indices = np.arange(count) * stride
        return buffer.size, [int(v) for v in quantize(buffer[indices])]

    @staticmethod
    def _sample_grid(frame: CameraFrame) -> List[int]:
        """Sample a 4x4 grid from the first (luma) plane and quantize it."""
        try:
            width, height = int(frame.width), int(frame.height)
            buffer = np.frombuffer(bytes(frame.planes[0].bytes), dtype=np.uint8)
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise FingerprintFailure(f"Unreadable camera plane: {e}") from e

        indices = []
        for y in range(FINGERPRINT_GRID):
            for x in range(FINGERPRINT_GRID):
                sample_y = height * y // FINGERPRINT_GRID
                sample_x = width * x // FINGERPRINT_GRID
                index = sample_y * width + sample_x
                if 0 <= index < buffer.size:
                    indices.append(index)

        return [int(v) for v in quantize(buffer[np.array(indices, dtype=np.int64)])]
