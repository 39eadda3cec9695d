import logging

import cv2
import numpy as np

from ..models.image import Image
from ..models.canonical_tensor import SIDE, CanonicalTensor
from ..models.preprocess_result import PreprocessResult

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights (R, G, B)
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


class PreprocessingService:
    """
    Turns an arbitrary-size crop into the model's canonical input:
    SIDE x SIDE, single-channel luma, normalised to [0, 1], flattened row-major.
    """

    def __init__(self, side: int = SIDE):
        self.side = side

    # ─── Step 1: resample ─────────────────────────────────────────────
    def resample(self, pixels: np.ndarray) -> np.ndarray:
        """
        Scale an (H, W, 4) uint8 buffer to (side, side, 4).
        Area averaging when shrinking in both directions, bicubic otherwise.
        """
        h, w = pixels.shape[:2]
        if w >= self.side and h >= self.side:
            interpolation = cv2.INTER_AREA
        else:
            interpolation = cv2.INTER_CUBIC
        return cv2.resize(np.ascontiguousarray(pixels), (self.side, self.side),
                          interpolation=interpolation)

    # ─── Step 2: luma ─────────────────────────────────────────────────
    @staticmethod
    def to_luma(pixels: np.ndarray) -> np.ndarray:
        """(H, W, 3+) uint8 → (H, W) uint8 luma, rounded half up."""
        weighted = pixels[..., :3].astype(np.float64) @ LUMA_WEIGHTS
        return np.clip(np.floor(weighted + 0.5), 0, 255).astype(np.uint8)

    @staticmethod
    def to_grayscale_rgba(luma: np.ndarray, alpha: np.ndarray) -> np.ndarray:
        gray = np.empty(luma.shape + (4,), dtype=np.uint8)
        gray[..., 0] = luma
        gray[..., 1] = luma
        gray[..., 2] = luma
        gray[..., 3] = alpha
        return gray

    @staticmethod
    def to_tensor(luma: np.ndarray) -> CanonicalTensor:
        values = luma.reshape(-1).astype(np.float32) / np.float32(255.0)
        return CanonicalTensor(values)

    # ─── Public API ───────────────────────────────────────────────────
    def process(self, img: Image) -> PreprocessResult:
        """
        Resample *img* to SIDE x SIDE, convert to luma and build both outputs from the same array:
        a displayable grayscale Image (alpha kept from the resampled pixels) and the CanonicalTensor.
        """
        logger.info(f"Processing image: {img.width}x{img.height} -> {self.side}x{self.side}")
        resampled = self.resample(img.pixels)
        luma = self.to_luma(resampled)

        display = Image(pixels=self.to_grayscale_rgba(luma, resampled[..., 3]))
        return PreprocessResult(display=display, tensor=self.to_tensor(luma))
