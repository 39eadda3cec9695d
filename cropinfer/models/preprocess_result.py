from __future__ import annotations
from dataclasses import dataclass

from .image import Image
from .canonical_tensor import CanonicalTensor


@dataclass(frozen=True)
class PreprocessResult:
    """
    Grayscale SIDE x SIDE bitmap shown to the user and the tensor built from the same luma values.
    tensor.values[i] == display.pixels.reshape(-1, 4)[i, 0] / 255.0
    """
    display: Image
    tensor: CanonicalTensor
