import os
import logging
from typing import Optional, Tuple

from dotenv import load_dotenv

from ..models.geometry import NormalizedRect, Point
from ..models.selection_state import IDLE, Dragging, SelectionState

load_dotenv()

logger = logging.getLogger(__name__)


class SelectionService:
    """
    Drives the rectangular selection gesture:  Idle -> Dragging -> Idle.

    State values are immutable; every transition returns the next state.
    """

    def __init__(self, min_size: float = None):
        self.min_size = float(min_size if min_size is not None
                              else os.getenv("MIN_SELECTION_PX", "5"))

    @staticmethod
    def begin(state: SelectionState, pt: Point) -> Dragging:
        # A new gesture while already dragging restarts from the new anchor.
        return Dragging(start=pt, end=pt)

    @staticmethod
    def move(state: SelectionState, pt: Point) -> SelectionState:
        if not isinstance(state, Dragging):
            return state
        return Dragging(start=state.start, end=pt)

    def end(self, state: SelectionState) -> Tuple[SelectionState, Optional[NormalizedRect]]:
        """
        Finish the gesture.  Returns (Idle, rect) when the selection is big enough,
        (Idle, None) when it is degenerate or no gesture was in progress.
        """
        if not isinstance(state, Dragging):
            return IDLE, None

        rect = state.rect.normalized()
        if rect.is_degenerate(self.min_size):
            logger.debug(f"Ignoring degenerate selection {rect.w:.1f}x{rect.h:.1f}")
            return IDLE, None
        return IDLE, rect
