# =============================================================================
# LeafScan-Hybrid
# services/preprocessing.py - Image Preprocessing
#
# Turns raw image bytes or a camera frame into the (1, 224, 224, 3) float32
# tensor both models expect.
# =============================================================================

import io
import os
import logging
from typing import Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from leafscan.constants import IMAGE_SIZE, MESSAGES
from leafscan.exceptions import DecodeFailure
from leafscan.models import CameraFrame

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, os.PathLike, CameraFrame]


def load_bytes(path: Union[str, os.PathLike]) -> bytes:
    """
    Read an image file from disk.

    Raises:
        DecodeFailure: If the file cannot be read
    """
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise DecodeFailure(f"Could not read image file {path}: {e}") from e


def _plane_samples(data: bytes, rows: int, cols: int, stride: int, step: int = 1) -> bytes:
    """
    Pull rows x cols samples out of a plane.

    Row padding past each row's last sample is dropped; with step 2 every
    other byte is taken, which de-interleaves a semi-planar chroma plane.
    """
    span = (cols - 1) * step + 1
    if stride < span:
        raise DecodeFailure(f"Row stride {stride} shorter than row span {span}")
    if len(data) < (rows - 1) * stride + span:
        raise DecodeFailure(
            f"Plane holds {len(data)} bytes, too few for {rows} rows of stride {stride}"
        )
    if step == 1 and stride == cols:
        return data[:rows * cols]
    return b''.join(data[r * stride:r * stride + span:step] for r in range(rows))


def _format_name(frame: CameraFrame) -> str:
    return str(frame.image_format or '').lower()


class ImagePreprocessor:
    """
    Decodes images into normalized model input.

    Pixel values are divided by 255.0 only; the models were trained
    without mean/std normalization.
    """

    def __init__(self, image_size: int = IMAGE_SIZE):
        self.image_size = image_size

    def to_tensor(self, image: ImageSource) -> np.ndarray:
        """
        Preprocess an image for model inference.

        Args:
            image: Raw image bytes, a file path, or a CameraFrame

        Returns:
            Float32 array of shape (1, size, size, 3) with values in [0, 1]

        Raises:
            DecodeFailure: If the input cannot be decoded
        """
        if isinstance(image, CameraFrame):
            pil_image = Image.fromarray(self.frame_to_rgb(image))
        else:
            if isinstance(image, (str, os.PathLike)):
                image = load_bytes(image)
            pil_image = self.decode(bytes(image))

        return self._normalize(pil_image)

    def decode(self, image_data: bytes) -> Image.Image:
        """Decode encoded image bytes (JPEG, PNG, ...) into an RGB image."""
        try:
            image = Image.open(io.BytesIO(image_data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError,
                OSError, ValueError, SyntaxError) as e:
            raise DecodeFailure(f"{MESSAGES['INVALID_IMAGE']}: {e}") from e

        if image.mode != 'RGB':
            image = image.convert('RGB')
        return image

    def assemble_planes(self, frame: CameraFrame) -> bytes:
        """
        Concatenate the frame's planes into one contiguous buffer.

        Row padding is removed so the buffer length matches the
        frame geometry exactly. yuv420 chroma planes reported with
        bytes_per_pixel 2 are interleaved and get de-interleaved into
        planar I420.
        """
        fmt = _format_name(frame)
        width, height = frame.width, frame.height
        if width <= 0 or height <= 0:
            raise DecodeFailure(f"Invalid frame size {width}x{height}")

        # (rows, samples per row, {bytes_per_pixel: sample step})
        if fmt == 'yuv420':
            if len(frame.planes) != 3:
                raise DecodeFailure(f"yuv420 frame needs 3 planes, got {len(frame.planes)}")
            chroma_w, chroma_h = (width + 1) // 2, (height + 1) // 2
            layout = [
                (height, width, {1: 1}),
                (chroma_h, chroma_w, {1: 1, 2: 2}),
                (chroma_h, chroma_w, {1: 1, 2: 2}),
            ]
        elif fmt == 'nv21':
            if len(frame.planes) != 2:
                raise DecodeFailure(f"nv21 frame needs 2 planes, got {len(frame.planes)}")
            layout = [
                (height, width, {1: 1}),
                ((height + 1) // 2, 2 * ((width + 1) // 2), {1: 1, 2: 1}),
            ]
        elif fmt == 'bgra8888':
            if len(frame.planes) != 1:
                raise DecodeFailure(f"bgra8888 frame needs 1 plane, got {len(frame.planes)}")
            layout = [(height, width * 4, {4: 1})]
        else:
            raise DecodeFailure(f"Unrecognized camera plane layout: {frame.image_format}")

        chunks = []
        for index, (plane, (rows, cols, steps)) in enumerate(zip(frame.planes, layout)):
            if plane.bytes_per_pixel is None:
                step = 1
            elif plane.bytes_per_pixel in steps:
                step = steps[plane.bytes_per_pixel]
            else:
                raise DecodeFailure(
                    f"{fmt} plane {index} has unsupported bytes_per_pixel {plane.bytes_per_pixel}"
                )
            stride = plane.bytes_per_row or cols * step
            chunks.append(_plane_samples(bytes(plane.bytes), rows, cols, stride, step))

        return b''.join(chunks)

    def frame_to_rgb(self, frame: CameraFrame) -> np.ndarray:
        """
        Convert a camera frame to an RGB uint8 array of shape (H, W, 3).

        Raises:
            DecodeFailure: If the plane layout is unrecognized or inconsistent
        """
        buffer = np.frombuffer(self.assemble_planes(frame), dtype=np.uint8)
        fmt = _format_name(frame)
        width, height = frame.width, frame.height

        try:
            if fmt == 'bgra8888':
                return cv2.cvtColor(buffer.reshape(height, width, 4), cv2.COLOR_BGRA2RGB)

            if width % 2 or height % 2:
                raise DecodeFailure(f"{fmt} frames need even dimensions, got {width}x{height}")
            yuv = buffer.reshape(height * 3 // 2, width)
            code = cv2.COLOR_YUV2RGB_I420 if fmt == 'yuv420' else cv2.COLOR_YUV2RGB_NV21
            return cv2.cvtColor(yuv, code)
        except cv2.error as e:
            raise DecodeFailure(f"Could not convert {fmt} frame: {e}") from e

    def _normalize(self, image: Image.Image) -> np.ndarray:
        size = (self.image_size, self.image_size)
        if image.size != size:
            image = image.resize(size, Image.BILINEAR)

        img_array = np.asarray(image, dtype=np.float32) / 255.0

        # Add batch dimension
        return np.expand_dims(img_array, axis=0)
