from __future__ import annotations
from dataclasses import dataclass
import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class DisplayTransform:
    """
    Ratios of source dimensions to display dimensions.
    scale_x = source_width / display_width (same for y). Both must be > 0.
    """
    scale_x: float
    scale_y: float


@dataclass(frozen=True)
class NormalizedRect:
    """Rectangle with non-negative width/height, origin at its top-left corner."""
    x: float
    y: float
    w: float
    h: float

    def is_degenerate(self, threshold: float) -> bool:
        return self.w <= threshold or self.h <= threshold


@dataclass(frozen=True)
class SelectionRect:
    """Display-space rectangle spanned by two arbitrary corners."""
    x0: float
    y0: float
    x1: float
    y1: float

    @classmethod
    def from_points(cls, start: Point, end: Point) -> SelectionRect:
        return cls(start.x, start.y, end.x, end.y)

    def normalized(self) -> NormalizedRect:
        return NormalizedRect(
            x=min(self.x0, self.x1),
            y=min(self.y0, self.y1),
            w=abs(self.x1 - self.x0),
            h=abs(self.y1 - self.y0),
        )


@dataclass(frozen=True)
class PixelBox:
    """Integer pixel block: columns [left, left+width), rows [top, top+height)."""
    left: int
    top: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width < 1 or self.height < 1


@dataclass(frozen=True)
class SourceRect:
    """
    Source-space rectangle, already clamped to the image it was built for.
    Coordinates may be fractional; pixel_box() resolves them to whole pixels.
    """
    x: float
    y: float
    w: float
    h: float
    source_width: int
    source_height: int

    def pixel_box(self) -> PixelBox:
        left = int(math.floor(self.x))
        top = int(math.floor(self.y))
        right = min(self.source_width, round_half_up(self.x + self.w))
        bottom = min(self.source_height, round_half_up(self.y + self.h))
        return PixelBox(left=left, top=top, width=right - left, height=bottom - top)
