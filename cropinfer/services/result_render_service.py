import logging
from typing import Sequence

import numpy as np

from ..models.image import Image
from ..models.canonical_tensor import SIDE, CanonicalTensor
from ..models.errors import ShapeMismatch

logger = logging.getLogger(__name__)


class ResultRenderService:
    """Renders a flat SIDE*SIDE model output as an opaque grayscale RGBA image."""

    def __init__(self, side: int = SIDE):
        self.side = side

    def render(self, values: Sequence[float] | CanonicalTensor) -> Image:
        """
        pixel = round(clamp(v, 0, 1) * 255) written to R, G and B; alpha = 255.
        Index i maps to row i // SIDE, column i % SIDE.  NaN samples render black.

        Raises:
            ShapeMismatch: len(values) != SIDE * SIDE
        """
        if isinstance(values, CanonicalTensor):
            values = values.values
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        expected = self.side * self.side
        if arr.size != expected:
            raise ShapeMismatch(expected, int(arr.size))

        arr = np.nan_to_num(arr, nan=0.0)
        levels = np.floor(np.clip(arr, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

        pixels = np.empty((self.side, self.side, 4), dtype=np.uint8)
        pixels[..., :3] = levels.reshape(self.side, self.side, 1)
        pixels[..., 3] = 255
        return Image(pixels=pixels)
