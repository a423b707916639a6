"""
Hunk navigation.

Derives the "current" hunk from a scroll snapshot of the after pane and
computes next/previous targets. Holds no scroll state of its own; callers
pass a snapshot and a callback that performs the scroll.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from spineview.core.alignment import AlignmentModel
from spineview.core.models import Alignment


logger = logging.getLogger(__name__)

# A hunk counts as current once it reaches this far down the viewport
ANCHOR_FRACTION = 1 / 3

# "Previous" snaps back to the current hunk when further inside it than this
SNAP_BACK_LINES = 2

# Keyboard scroll step
SCROLL_STEP_LINES = 3


@dataclass(frozen=True)
class ScrollSnapshot:
    """Scroll state of the after pane at the time of a keypress."""
    scroll_top_px: float
    viewport_height_px: float
    line_height_px: float

    @property
    def anchor_line(self) -> int:
        if self.line_height_px <= 0:
            return 0
        return math.floor(
            (self.scroll_top_px + self.viewport_height_px * ANCHOR_FRACTION) / self.line_height_px
        )

    @property
    def anchor_offset_lines(self) -> int:
        """Whole lines between the pane top and the anchor line."""
        if self.line_height_px <= 0:
            return 0
        return math.floor(self.viewport_height_px * ANCHOR_FRACTION / self.line_height_px)

    def top_line_for(self, line: int) -> int:
        """First visible line that puts `line` on the anchor."""
        return max(0, line - self.anchor_offset_lines)


class HunkNavigator:
    """Next/previous/comment/discard over the changed alignments."""

    def __init__(self, model: Optional[AlignmentModel] = None):
        self._model = model or AlignmentModel()

    def set_model(self, model: AlignmentModel) -> None:
        self._model = model

    @property
    def hunk_count(self) -> int:
        return self._model.hunk_count

    def hunk(self, index: int) -> Alignment:
        return self._model.hunk(index)

    def find_current_hunk_index(
        self,
        scroll_top_px: float,
        viewport_height_px: float,
        line_height_px: float
    ) -> int:
        """
        Index of the last hunk starting at or above the anchor line.

        Returns:
            Hunk index, or -1 when scrolled above the first hunk
        """
        anchor = ScrollSnapshot(scroll_top_px, viewport_height_px, line_height_px).anchor_line
        return self._current_index(anchor)

    def _current_index(self, anchor_line: int) -> int:
        current = -1
        for position, (alignment, _) in enumerate(self._model.changed_subset()):
            if alignment.after.start <= anchor_line:
                current = position
            else:
                break
        return current

    def next_target(self, snapshot: ScrollSnapshot) -> Optional[int]:
        """Hunk index `go_to_next` would scroll to."""
        target = self._current_index(snapshot.anchor_line) + 1
        if target >= self.hunk_count:
            return None
        return target

    def previous_target(self, snapshot: ScrollSnapshot) -> Optional[int]:
        """Hunk index `go_to_previous` would scroll to."""
        if self.hunk_count == 0:
            return None

        anchor = snapshot.anchor_line
        current = self._current_index(anchor)
        if current < 0:
            return 0
        if anchor - self.hunk(current).after.start > SNAP_BACK_LINES:
            return current
        return max(current - 1, 0)

    def go_to_next(self, snapshot: ScrollSnapshot, scroll_to_line: Callable[[int], None]) -> bool:
        """
        Bring the next hunk's first after-line to the anchor.

        `scroll_to_line` receives the line to show at the pane top.

        Returns:
            False if already at or after the last hunk
        """
        target = self.next_target(snapshot)
        if target is None:
            return False
        logger.debug("Next hunk: %d", target)
        scroll_to_line(snapshot.top_line_for(self.hunk(target).after.start))
        return True

    def go_to_previous(self, snapshot: ScrollSnapshot, scroll_to_line: Callable[[int], None]) -> bool:
        """Bring the start of the current or previous hunk to the anchor."""
        target = self.previous_target(snapshot)
        if target is None:
            return False
        logger.debug("Previous hunk: %d", target)
        scroll_to_line(snapshot.top_line_for(self.hunk(target).after.start))
        return True

    def comment_on_current(self, snapshot: ScrollSnapshot, callback: Callable[[int], None]) -> bool:
        """Invoke `callback` with the current hunk index, if there is one."""
        current = self._current_index(snapshot.anchor_line)
        if current < 0:
            return False
        callback(current)
        return True

    def discard_current(self, snapshot: ScrollSnapshot, callback: Callable[[Alignment], None]) -> bool:
        """Surface a discard request for the current hunk."""
        current = self._current_index(snapshot.anchor_line)
        if current < 0:
            return False
        callback(self.hunk(current))
        return True

    @staticmethod
    def scroll_by_lines(
        snapshot: ScrollSnapshot,
        lines: int,
        scroll_to_px: Callable[[float], None]
    ) -> None:
        """Keyboard scroll by a number of lines (negative scrolls up)."""
        scroll_to_px(max(0.0, snapshot.scroll_top_px + lines * snapshot.line_height_px))
