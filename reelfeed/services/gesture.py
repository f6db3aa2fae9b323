"""Turn pointer/touch strokes into next/previous reel commands."""
from __future__ import annotations

import enum
import logging
from typing import Callable

from ..constants import SWIPE_THRESHOLD_PX

logger = logging.getLogger(__name__)


class GestureState(str, enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class SwipeDirection(enum.IntEnum):
    NEXT = 1
    PREVIOUS = -1


class GestureRecognizer:
    """Two-state recognizer: a stroke emits at most one navigation command.

    A stroke counts as a swipe when its vertical travel exceeds ``threshold``
    and dominates the horizontal travel. Swiping up (finger moves towards the
    top of the screen) means next, swiping down means previous.
    """

    def __init__(
        self,
        threshold: float = SWIPE_THRESHOLD_PX,
        on_navigate: Callable[[int], None] | None = None,
    ) -> None:
        self.threshold = threshold
        self.on_navigate = on_navigate
        self.state = GestureState.IDLE
        self._start: tuple[float, float] = (0.0, 0.0)
        self._last: tuple[float, float] = (0.0, 0.0)

    def start(self, x: float, y: float) -> None:
        # A new start while tracking replaces the previous origin.
        self._start = (x, y)
        self._last = (x, y)
        self.state = GestureState.TRACKING

    def move(self, x: float, y: float) -> bool:
        """Record the latest point; True means the caller should suppress scrolling."""

        if self.state is not GestureState.TRACKING:
            return False
        self._last = (x, y)
        return True

    def end(self, x: float | None = None, y: float | None = None) -> SwipeDirection | None:
        if self.state is not GestureState.TRACKING:
            return None
        self.state = GestureState.IDLE

        # touchend carries no coordinates; fall back to the last move.
        end_x = self._last[0] if x is None else x
        end_y = self._last[1] if y is None else y
        delta_x = self._start[0] - end_x
        delta_y = self._start[1] - end_y

        if abs(delta_y) <= self.threshold or abs(delta_y) <= abs(delta_x):
            return None

        direction = SwipeDirection.NEXT if delta_y > 0 else SwipeDirection.PREVIOUS
        logger.debug("Swipe %s (dx=%.1f, dy=%.1f)", direction.name, delta_x, delta_y)
        if self.on_navigate is not None:
            self.on_navigate(int(direction))
        return direction

    def cancel(self) -> None:
        self.state = GestureState.IDLE


__all__ = ["GestureRecognizer", "GestureState", "SwipeDirection"]
