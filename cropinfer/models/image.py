from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass(frozen=True)
class Image:
    """
    Simple data object: RGBA pixels (+ optional source path / MIME type for bookkeeping).
    The pixel buffer is made read-only on construction; derived images are new objects.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.
    path: Path | None = None  # Source of the image.
    mime_type: str | None = None  # Declared type of the uploaded bytes.

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA pixels, got shape {self.pixels.shape}")
        if self.pixels.shape[0] < 1 or self.pixels.shape[1] < 1:
            raise ValueError(f"Image must be at least 1x1, got shape {self.pixels.shape}")
        self.pixels.flags.writeable = False

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])
