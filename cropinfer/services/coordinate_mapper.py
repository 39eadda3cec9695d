"""
Conversions between display space (scaled-down surface pixels) and source space
(original image pixels).  Pure functions; callers guarantee non-zero scales.
"""
import os
from typing import Tuple

from dotenv import load_dotenv

from ..models.geometry import DisplayTransform, NormalizedRect, Point

load_dotenv()
MAX_DISPLAY_WIDTH = int(os.getenv("MAX_DISPLAY_WIDTH", "1200"))
CONTAINER_PADDING = int(os.getenv("CONTAINER_PADDING", "40"))


def to_source(pt: Point, transform: DisplayTransform) -> Point:
    return Point(pt.x * transform.scale_x, pt.y * transform.scale_y)


def to_display(pt: Point, transform: DisplayTransform) -> Point:
    return Point(pt.x / transform.scale_x, pt.y / transform.scale_y)


def rect_to_source(rect: NormalizedRect, transform: DisplayTransform) -> NormalizedRect:
    """Map a display-space rect to source space.  No clamping here."""
    return NormalizedRect(
        x=rect.x * transform.scale_x,
        y=rect.y * transform.scale_y,
        w=rect.w * transform.scale_x,
        h=rect.h * transform.scale_y,
    )


def transform_for(source_width: int, source_height: int,
                  display_width: float, display_height: float) -> DisplayTransform:
    if display_width <= 0 or display_height <= 0:
        raise ValueError(f"Display size must be positive, got {display_width}x{display_height}")
    return DisplayTransform(
        scale_x=source_width / display_width,
        scale_y=source_height / display_height,
    )


def fit_display(source_width: int, source_height: int, container_width: float,
                max_width: int = MAX_DISPLAY_WIDTH,
                padding: int = CONTAINER_PADDING) -> Tuple[int, int]:
    """
    Size the display surface to the container width (minus padding, capped at max_width),
    keeping the source aspect ratio.  Both sides are at least 1 px.
    """
    display_width = max(1, int(min(container_width - padding, max_width)))
    display_height = max(1, int(display_width * source_height / source_width))
    return display_width, display_height
