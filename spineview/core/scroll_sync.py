"""
Synchronized scrolling between the before and after panes.

Maps a scroll position on one pane to the corresponding position on the
other, proportionally inside the alignment holding the source line:
- Context regions map 1:1
- Changed regions interpolate between spans of different length
- Empty target spans pin the other pane at their anchor line

Programmatic writes are guarded so the scroll event they trigger is not
synced back to the pane that caused it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Protocol, Sequence, Union

from spineview.core.alignment import AlignmentModel
from spineview.core.models import Alignment, MetricsProvider, Side, ViewportMetrics


logger = logging.getLogger(__name__)

# Minimum pixel difference that triggers a write to the other pane
SCROLL_THRESHOLD_PX = 2.0

# Scroll bars round to whole units; an echo may come back slightly off
ECHO_TOLERANCE_PX = 1.0


class PaneHandle(Protocol):
    """What the engine needs from a scrollable pane."""

    @property
    def scroll_top(self) -> float: ...

    @property
    def viewport_height(self) -> float: ...

    def set_scroll_top(self, value: float) -> None: ...


class SyncOutcome(Enum):
    """Result of handling one scroll event."""
    SYNCED = auto()     # Other pane was moved
    UNCHANGED = auto()  # Other pane already in place
    ECHO = auto()       # Event caused by our own write, ignored for sync
    SKIPPED = auto()    # Disabled, nothing to map, or no pane/metrics


@dataclass
class _PaneGuard:
    """Reentrancy state of one pane."""
    writing: bool = False
    expected: Optional[float] = None


def map_line(model: AlignmentModel, source_side: Side, line: float) -> float:
    """
    Map a fractional line on one side to the other side.

    Args:
        model: Alignment lookup
        source_side: Side the line belongs to
        line: Fractional line number (scroll top / line height)

    Returns:
        Fractional line on the opposite side
    """
    if model.is_empty:
        return line

    found = model.find_containing(source_side, math.floor(line))
    if found is None:
        return line
    alignment, _ = found

    source = alignment.span(source_side)
    target = alignment.span(source_side.opposite)

    t = (line - source.start) / max(source.length, 1)
    t = min(max(t, 0.0), 1.0)
    return target.start + t * target.length


class ScrollSyncEngine:
    """
    Keeps two independently scrollable panes in lock-step.

    Usage:
        engine = ScrollSyncEngine(metrics_provider)
        engine.set_alignments(diff.alignments)
        # from the before pane's scroll handler:
        engine.on_scroll(Side.BEFORE, before.scroll_top, after_pane)
    """

    def __init__(
        self,
        metrics: MetricsProvider,
        anchor_fraction: float = 0.0,
        threshold_px: float = SCROLL_THRESHOLD_PX,
        echo_tolerance_px: float = ECHO_TOLERANCE_PX
    ):
        self._metrics = metrics
        self.anchor_fraction = anchor_fraction
        self.threshold_px = threshold_px
        self.echo_tolerance_px = echo_tolerance_px

        self._model = AlignmentModel()
        self._enabled = True
        self._guards = {side: _PaneGuard() for side in Side}

    # === Configuration ===

    @property
    def model(self) -> AlignmentModel:
        return self._model

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """Enable/disable scroll synchronization."""
        self._enabled = enabled
        if not enabled:
            self.reset()

    def set_alignments(self, alignments: Union[AlignmentModel, Sequence[Alignment]]) -> None:
        """Replace the mapping table in one step."""
        model = alignments if isinstance(alignments, AlignmentModel) else AlignmentModel(alignments)
        self._model = model
        self.reset()

    def reset(self) -> None:
        """Forget pending echo expectations."""
        for guard in self._guards.values():
            guard.writing = False
            guard.expected = None

    # === Mapping ===

    def _current_metrics(self) -> Optional[ViewportMetrics]:
        metrics = self._metrics()
        if metrics is None or not metrics.is_valid:
            return None
        return metrics

    def _anchor_px(self, viewport_height: float) -> float:
        return viewport_height * self.anchor_fraction

    def map_scroll(
        self,
        source_side: Side,
        scroll_top_px: float,
        source_viewport_px: float = 0.0,
        target_viewport_px: Optional[float] = None
    ) -> Optional[float]:
        """
        Compute the other pane's scroll top for a source scroll top.

        Returns:
            Target scroll top in pixels, or None without metrics
        """
        metrics = self._current_metrics()
        if metrics is None:
            return None
        if target_viewport_px is None:
            target_viewport_px = source_viewport_px

        line_height = metrics.line_height_px
        source_anchor = self._anchor_px(source_viewport_px)
        line = (scroll_top_px + source_anchor) / line_height
        target_line = map_line(self._model, source_side, line)
        target_px = target_line * line_height - self._anchor_px(target_viewport_px)
        return max(0.0, target_px)

    # === Events ===

    def _consume_echo(self, side: Side, scroll_top_px: float) -> bool:
        """Check if an event was caused by our own write to this pane."""
        guard = self._guards[side]
        if guard.writing:
            guard.expected = None
            return True

        expected = guard.expected
        guard.expected = None
        return expected is not None and abs(scroll_top_px - expected) <= self.echo_tolerance_px

    def _write(self, side: Side, pane: PaneHandle, value: float) -> bool:
        """Write a scroll position with the reentrancy guard engaged."""
        guard = self._guards[side]
        previous = pane.scroll_top
        if abs(previous - value) <= self.threshold_px:
            return False

        guard.expected = value
        guard.writing = True
        try:
            pane.set_scroll_top(value)
        finally:
            guard.writing = False

        if guard.expected is not None:
            # No synchronous echo; wait for the one at the accepted position
            actual = pane.scroll_top
            guard.expected = actual if actual != previous else None
        return True

    def on_scroll(
        self,
        source_side: Side,
        scroll_top_px: float,
        target_pane: Optional[PaneHandle],
        source_viewport_px: float = 0.0
    ) -> SyncOutcome:
        """
        Handle a scroll event from one pane.

        Args:
            source_side: Pane that scrolled
            scroll_top_px: Its new scroll top
            target_pane: The pane to move, None if not mounted
            source_viewport_px: Viewport height of the source pane

        Returns:
            What happened; callers refresh geometry for every outcome
        """
        if self._consume_echo(source_side, scroll_top_px):
            return SyncOutcome.ECHO

        if not self._enabled or target_pane is None:
            return SyncOutcome.SKIPPED

        target_px = self.map_scroll(
            source_side, scroll_top_px,
            source_viewport_px, target_pane.viewport_height
        )
        if target_px is None:
            return SyncOutcome.SKIPPED

        if self._write(source_side.opposite, target_pane, target_px):
            logger.debug(
                "Synced %s scroll %.1f -> %s %.1f",
                source_side.value, scroll_top_px, source_side.opposite.value, target_px
            )
            return SyncOutcome.SYNCED
        return SyncOutcome.UNCHANGED

    def scroll_to_line(
        self,
        side: Side,
        line: float,
        before_pane: Optional[PaneHandle],
        after_pane: Optional[PaneHandle],
        anchor_fraction: Optional[float] = None
    ) -> bool:
        """
        Bring a line to the anchor of one pane and follow with the other.

        Args:
            anchor_fraction: Anchor for this write only (0 puts the line at
                the top); the engine's own anchor when None

        Returns:
            True if any pane was written
        """
        metrics = self._current_metrics()
        if metrics is None:
            return False

        panes = {Side.BEFORE: before_pane, Side.AFTER: after_pane}
        source_pane = panes[side]
        target_pane = panes[side.opposite]
        line_height = metrics.line_height_px

        wrote = False
        source_viewport = source_pane.viewport_height if source_pane else 0.0
        if anchor_fraction is None:
            anchor_fraction = self.anchor_fraction
        source_px = max(0.0, line * line_height - source_viewport * anchor_fraction)
        if source_pane is not None:
            wrote = self._write(side, source_pane, source_px)
            # The pane may clamp near the end of the file
            source_px = source_pane.scroll_top

        if target_pane is not None and self._enabled:
            target_px = self.map_scroll(side, source_px, source_viewport, target_pane.viewport_height)
            if target_px is not None:
                wrote = self._write(side.opposite, target_pane, target_px) or wrote
        return wrote
