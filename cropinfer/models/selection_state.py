from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from .geometry import Point, SelectionRect


@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""


@dataclass(frozen=True)
class Dragging:
    """Gesture in progress, anchored at *start* and currently reaching *end*."""
    start: Point
    end: Point

    @property
    def rect(self) -> SelectionRect:
        return SelectionRect.from_points(self.start, self.end)


SelectionState = Union[Idle, Dragging]

IDLE = Idle()
