import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from ..models.image import Image
from ..models.geometry import DisplayTransform, NormalizedRect, round_half_up

logger = logging.getLogger(__name__)

SELECTION_RGBA = (33, 150, 243, 255)  # #2196F3
LABEL_RGBA = (0, 123, 255, 255)  # #007bff
OUTLINE_RGBA = (0, 0, 0, 255)


class OverlayService:
    """
    Draws the source display surface: the original image scaled to the display size,
    optionally with the in-progress selection on top.  Output only, never read back.
    """

    def __init__(self, dim_alpha: float = 0.3, dash: int = 5, line_width: int = 2,
                 min_label_px: float = 10):
        self.dim_alpha = dim_alpha
        self.dash = dash
        self.line_width = line_width
        self.min_label_px = min_label_px

    @staticmethod
    def scale_to_display(img: Image, display_size: Tuple[int, int]) -> np.ndarray:
        display_w, display_h = display_size
        if (display_w, display_h) == (img.width, img.height):
            return img.pixels.copy()
        interpolation = cv2.INTER_AREA if display_w < img.width else cv2.INTER_LINEAR
        return cv2.resize(np.ascontiguousarray(img.pixels), (display_w, display_h),
                          interpolation=interpolation)

    def _dim_outside(self, canvas: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> None:
        mask = np.ones(canvas.shape[:2], dtype=bool)
        mask[y0:y1, x0:x1] = False
        rgb = canvas[..., :3]
        dimmed = np.floor(rgb[mask].astype(np.float64) * (1.0 - self.dim_alpha) + 0.5)
        rgb[mask] = dimmed.astype(np.uint8)

    def _dashed_rect(self, canvas: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> None:
        edges = (((x0, y0), (x1, y0)), ((x1, y0), (x1, y1)),
                 ((x1, y1), (x0, y1)), ((x0, y1), (x0, y0)))
        for (ax, ay), (bx, by) in edges:
            length = max(abs(bx - ax), abs(by - ay))
            if length == 0:
                continue
            for start in range(0, length, 2 * self.dash):
                end = min(start + self.dash, length)
                p = (ax + (bx - ax) * start // length, ay + (by - ay) * start // length)
                q = (ax + (bx - ax) * end // length, ay + (by - ay) * end // length)
                cv2.line(canvas, p, q, SELECTION_RGBA, self.line_width)

    def _label(self, canvas: np.ndarray, text: str, x: int, y: int) -> None:
        org = (x + 5, max(12, y - 8))
        cv2.putText(canvas, text, org, cv2.FONT_HERSHEY_SIMPLEX, 0.5, OUTLINE_RGBA, 3, cv2.LINE_AA)
        cv2.putText(canvas, text, org, cv2.FONT_HERSHEY_SIMPLEX, 0.5, LABEL_RGBA, 1, cv2.LINE_AA)

    def source_size_label(self, rect: NormalizedRect, transform: DisplayTransform) -> Optional[str]:
        """Selection size in source pixels, or None while it is too small to be worth labelling."""
        src_w = rect.w * transform.scale_x
        src_h = rect.h * transform.scale_y
        if src_w > self.min_label_px and src_h > self.min_label_px:
            return f"{round_half_up(src_w)}x{round_half_up(src_h)}px"
        return None

    def render(self, img: Image, display_size: Tuple[int, int],
               rect: NormalizedRect | None = None,
               transform: DisplayTransform | None = None) -> np.ndarray:
        canvas = self.scale_to_display(img, display_size)
        if rect is None:
            return canvas

        h, w = canvas.shape[:2]
        x0 = min(max(0, round_half_up(rect.x)), w)
        y0 = min(max(0, round_half_up(rect.y)), h)
        x1 = min(max(0, round_half_up(rect.x + rect.w)), w)
        y1 = min(max(0, round_half_up(rect.y + rect.h)), h)

        self._dim_outside(canvas, x0, y0, x1, y1)
        self._dashed_rect(canvas, x0, y0, max(x0, x1 - 1), max(y0, y1 - 1))

        if transform is not None:
            text = self.source_size_label(rect, transform)
            if text:
                self._label(canvas, text, x0, y0)
        return canvas
