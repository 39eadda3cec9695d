from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from .errors import ShapeMismatch

SIDE = 256
TENSOR_LENGTH = SIDE * SIDE


@dataclass(frozen=True)
class CanonicalTensor:
    """
    Flat, row-major, single-channel float32 vector of length SIDE*SIDE.
    Values are in [0, 1]; the buffer is read-only once built.
    """
    values: np.ndarray

    def __post_init__(self):
        if self.values.ndim != 1 or self.values.shape[0] != TENSOR_LENGTH:
            raise ShapeMismatch(TENSOR_LENGTH, int(self.values.size))
        self.values.flags.writeable = False

    def __len__(self) -> int:
        return TENSOR_LENGTH

