"""
Redraw coalescing.

Scroll events arrive much faster than the connector strip needs to be
repainted. The scheduler keeps one dirty flag and at most one pending
single-shot timer, so any burst of requests produces a single redraw.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer


logger = logging.getLogger(__name__)

# Roughly one display frame
FRAME_INTERVAL_MS = 16


class FrameScheduler(QObject):
    """
    Coalesces redraw requests into one callback per frame.

    Usage:
        scheduler = FrameScheduler(self._redraw)
        scheduler.schedule()   # any number of times
        scheduler.flush()      # run now if dirty (tests, resize)
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval_ms: int = FRAME_INTERVAL_MS,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self._callback = callback
        self._dirty = False
        self._generation = 0

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.flush)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def pending(self) -> bool:
        """Check if a timer is waiting to fire."""
        return self._timer.isActive()

    @property
    def generation(self) -> int:
        """Number of completed redraws."""
        return self._generation

    def schedule(self) -> None:
        """Mark dirty and make sure one redraw is pending."""
        self._dirty = True
        if not self._timer.isActive():
            self._timer.start()

    def flush(self) -> bool:
        """
        Run the callback now if a redraw is due.

        Returns:
            True if the callback ran
        """
        self._timer.stop()
        if not self._dirty:
            return False

        self._dirty = False
        self._generation += 1
        self._callback()
        return True

    def cancel(self) -> None:
        """Drop pending work (switching files, teardown)."""
        self._timer.stop()
        self._dirty = False
