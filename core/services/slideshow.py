"""Timed slideshow state machine.

The controller has no timer of its own: an external tick source calls
`tick(delta_seconds)` periodically (the Qt shell uses a 50 ms `QTimer`).
Advancing wraps around the catalog, unlike regular navigation.
"""

from __future__ import annotations

from loguru import logger

from core.models import SlideshowState
from core.services.navigation import NavigationCursor

MIN_INTERVAL = 1.0
MAX_INTERVAL = 30.0
DEFAULT_INTERVAL = 3.0
INTERVAL_PRESETS: tuple[int, ...] = (2, 3, 5, 10)


def clamp_interval(seconds: float) -> float:
    return max(MIN_INTERVAL, min(MAX_INTERVAL, float(seconds)))


class SlideshowController:
    """Drives automatic advancement of a `NavigationCursor`.

    States: STOPPED -> PLAYING <-> PAUSED -> STOPPED.
    """

    def __init__(self, cursor: NavigationCursor, interval: float = DEFAULT_INTERVAL) -> None:
        self._cursor = cursor
        self._state = SlideshowState.STOPPED
        self._interval = clamp_interval(interval)
        self._progress = 0.0

    @property
    def state(self) -> SlideshowState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def progress(self) -> float:
        """Elapsed fraction of the current interval, in [0, 1)."""
        return self._progress

    @property
    def is_active(self) -> bool:
        return self._state is not SlideshowState.STOPPED

    @property
    def cursor(self) -> NavigationCursor:
        return self._cursor

    def start(self) -> bool:
        """Begin playing; returns False when the catalog is empty."""
        if self._cursor.catalog.is_empty:
            logger.debug("Slideshow start ignored: empty catalog")
            return False
        self._cursor.ensure_position()
        self._state = SlideshowState.PLAYING
        self._progress = 0.0
        return True

    def stop(self) -> None:
        # The cursor keeps its position so single view resumes from here
        self._state = SlideshowState.STOPPED
        self._progress = 0.0

    def pause(self) -> None:
        if self._state is SlideshowState.PLAYING:
            self._state = SlideshowState.PAUSED

    def resume(self) -> None:
        if self._state is SlideshowState.PAUSED:
            self._state = SlideshowState.PLAYING

    def toggle_play_pause(self) -> None:
        if self._state is SlideshowState.PLAYING:
            self._state = SlideshowState.PAUSED
        elif self._state is SlideshowState.PAUSED:
            self._state = SlideshowState.PLAYING

    def set_interval(self, seconds: float) -> float:
        """Clamp and apply a new interval.

        The progress fraction is kept, so a running interval finishes at the
        same relative point of the new duration.
        """
        self._interval = clamp_interval(seconds)
        return self._interval

    def increase_interval(self) -> float:
        return self.set_interval(self._interval + 1)

    def decrease_interval(self) -> float:
        return self.set_interval(self._interval - 1)

    def tick(self, delta_seconds: float) -> bool:
        """Accumulate elapsed time; returns True when the cursor advanced."""
        if self._state is not SlideshowState.PLAYING or delta_seconds <= 0:
            return False
        self._progress += delta_seconds / self._interval
        if self._progress < 1.0:
            return False
        self._progress = 0.0
        return self._cursor.step_wrapping(1) is not None

    def next(self) -> int | None:
        return self.step(1)

    def previous(self) -> int | None:
        return self.step(-1)

    def restart_interval(self) -> None:
        self._progress = 0.0

    def step(self, delta: int) -> int | None:
        """Manual move during a slideshow: wraps and restarts the interval."""
        idx = self._cursor.step_wrapping(delta)
        self._progress = 0.0
        return idx
