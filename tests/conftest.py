from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage

from cropinfer.models.image import Image


def gradient_pixels(width: int, height: int) -> np.ndarray:
    """RGBA buffer where every pixel is distinguishable: R = x, G = y, B = x ^ y (mod 256)."""
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = xs % 256
    pixels[..., 1] = ys % 256
    pixels[..., 2] = (xs ^ ys) % 256
    pixels[..., 3] = 255
    return pixels


def png_bytes(pixels: np.ndarray) -> bytes:
    buf = BytesIO()
    PILImage.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_image():
    def _make(width: int, height: int) -> Image:
        return Image(pixels=gradient_pixels(width, height))
    return _make


@pytest.fixture
def make_png():
    def _make(width: int, height: int) -> bytes:
        return png_bytes(gradient_pixels(width, height))
    return _make
