"""
View session for one diff viewer.

Owns the engine components for the diff currently on screen and the state
that ties them together:
- The active FileDiff and its alignment model
- Pane handles, scroll sync and the connector renderer
- Hover, collapse and zoom state of the panes
- Redraw scheduling and token generation

Everything that changes with the diff is rebuilt in `set_file_diff`; the UI
layer listens to the signals and never reaches into the components.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from PyQt6.QtCore import QObject, pyqtSignal

from spineview.core.alignment import AlignmentError, AlignmentModel, validate_alignments
from spineview.core.connectors import ConnectorFrame, ConnectorRenderer
from spineview.core.diff_utils import display_path
from spineview.core.hunk_navigator import HunkNavigator, ScrollSnapshot
from spineview.core.models import (
    Comment, FileDiff, MetricsProvider, PanelState, Side, ViewportMetrics
)
from spineview.core.panel_layout import LayoutRatios, PanelLayout, compute_layout
from spineview.core.scroll_sync import PaneHandle, ScrollSyncEngine, SyncOutcome
from spineview.services.redraw import FrameScheduler
from spineview.services.settings import ApplicationSettings
from spineview.services.tokens import TokenCache, TokenizationService, TokenLines
from spineview.workers.tokenize_worker import start_tokenizing


logger = logging.getLogger(__name__)


class DiffViewSession(QObject):
    """
    Explicit state holder for one two-pane diff view.

    Usage:
        session = DiffViewSession(metrics_provider)
        session.attach_panes(before_pane, after_pane)
        session.set_file_diff(diff)
        # from the panes' scroll handlers:
        session.pane_scrolled(Side.BEFORE, before_pane.scroll_top)
    """

    # Signals
    diff_changed = pyqtSignal(object)          # FileDiff or None
    layout_changed = pyqtSignal(object)        # PanelLayout
    frame_ready = pyqtSignal(object)           # ConnectorFrame
    current_hunk_changed = pyqtSignal(int)     # hunk index, -1 above the first
    hovered_hunk_changed = pyqtSignal(object)  # hunk index or None
    tokens_changed = pyqtSignal(object)        # Side
    discard_requested = pyqtSignal(object)     # Alignment
    comment_requested = pyqtSignal(int)        # hunk index

    def __init__(
        self,
        metrics: MetricsProvider,
        settings: Optional[ApplicationSettings] = None,
        tokenizer: Optional[TokenizationService] = None,
        tokenize_async: bool = True,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        settings = settings or ApplicationSettings()

        self._metrics = metrics
        self._diff: Optional[FileDiff] = None
        self._model = AlignmentModel()
        self._generation = 0
        self._pending_generation: Optional[int] = None

        self._panes: dict[Side, Optional[PaneHandle]] = {side: None for side in Side}
        self._panel_state = PanelState()
        self._current_hunk = -1
        self._hovered_hunk: Optional[int] = None

        self._sync = ScrollSyncEngine(
            self._current_metrics,
            anchor_fraction=settings.scroll.anchor_fraction,
            threshold_px=settings.scroll.threshold_px,
            echo_tolerance_px=settings.scroll.echo_tolerance_px,
        )
        self._sync.set_enabled(settings.scroll.sync_enabled)

        self._renderer = ConnectorRenderer(
            width=settings.connectors.width,
            control_fraction=settings.connectors.control_fraction,
        )
        self._renderer.set_show_range_markers(False)
        self._renderer.add_listener(self.frame_ready.emit)

        self._navigator = HunkNavigator(self._model)
        self._ratios = self._ratios_from(settings)
        self._scroll_step = settings.scroll.keyboard_step_lines

        self._scheduler = FrameScheduler(
            self.redraw_now, settings.scroll.redraw_interval_ms, parent=self
        )

        self._tokens = TokenCache(tokenizer)
        self._tokenize_async = tokenize_async
        self._token_workers: list = []

    @staticmethod
    def _ratios_from(settings: ApplicationSettings) -> LayoutRatios:
        layout = settings.layout
        return LayoutRatios(
            default_before=layout.default_before,
            default_after=layout.default_after,
            focused=layout.focused,
            focused_sibling=100 - layout.focused,
            zoomed=layout.zoomed,
            zoomed_sibling=100 - layout.zoomed,
            collapsed=layout.collapsed,
            collapsed_sibling=100 - layout.collapsed,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def file_diff(self) -> Optional[FileDiff]:
        return self._diff

    @property
    def model(self) -> AlignmentModel:
        return self._model

    @property
    def generation(self) -> int:
        """Incremented on every diff change."""
        return self._generation

    @property
    def sync_engine(self) -> ScrollSyncEngine:
        return self._sync

    @property
    def renderer(self) -> ConnectorRenderer:
        return self._renderer

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    @property
    def panel_state(self) -> PanelState:
        return self._panel_state

    @property
    def current_hunk(self) -> int:
        return self._current_hunk

    @property
    def hovered_hunk(self) -> Optional[int]:
        return self._hovered_hunk

    @property
    def hunk_count(self) -> int:
        return self._model.hunk_count

    def pane(self, side: Side) -> Optional[PaneHandle]:
        return self._panes[side]

    def tokens(self, side: Side) -> TokenLines:
        return self._tokens.tokens(side)

    # =========================================================================
    # Configuration
    # =========================================================================

    def apply_settings(self, settings: ApplicationSettings) -> None:
        """Apply changed settings (settings manager observer)."""
        self._sync.anchor_fraction = settings.scroll.anchor_fraction
        self._sync.threshold_px = settings.scroll.threshold_px
        self._sync.echo_tolerance_px = settings.scroll.echo_tolerance_px
        self._sync.set_enabled(settings.scroll.sync_enabled)
        self._renderer.width = settings.connectors.width
        self._renderer.control_fraction = settings.connectors.control_fraction
        self._scroll_step = settings.scroll.keyboard_step_lines

        ratios = self._ratios_from(settings)
        if ratios != self._ratios:
            self._ratios = ratios
            self.layout_changed.emit(self.layout())
        self.schedule_redraw()

    def set_sync_enabled(self, enabled: bool) -> None:
        self._sync.set_enabled(enabled)

    # =========================================================================
    # Diff
    # =========================================================================

    def set_file_diff(self, diff: Optional[FileDiff]) -> bool:
        """
        Show a new diff.

        The same object again is a no-op; any other object resets scroll
        state, hover, collapse and comments.

        Returns:
            True if the diff changed
        """
        if diff is self._diff:
            return False

        self._diff = diff
        self._generation += 1
        self._scheduler.cancel()
        self._pending_generation = None
        self._cancel_tokenizing()

        alignments = diff.alignments if diff is not None else ()
        if diff is not None:
            try:
                validate_alignments(
                    alignments, diff.line_count(Side.BEFORE), diff.line_count(Side.AFTER)
                )
            except AlignmentError as e:
                logger.warning("Inconsistent alignments for %s: %s", display_path(diff), e)

        self._model = AlignmentModel(alignments)
        self._sync.set_alignments(self._model)
        self._navigator.set_model(self._model)

        self._renderer.clear()
        self._renderer.set_alignments(self._model)
        self._renderer.set_show_range_markers(diff is not None and diff.show_range_markers)

        space_held = self._panel_state.space_held
        self._panel_state = PanelState.for_diff(diff)
        self._panel_state.space_held = space_held
        self._current_hunk = -1
        self._hovered_hunk = None

        self._reset_pane_scroll()
        self._start_tokenizing()

        logger.info(
            "Showing %s (%d alignments, %d hunks)",
            display_path(diff) or "<no diff>", len(self._model), self._model.hunk_count
        )
        self.diff_changed.emit(diff)
        self.layout_changed.emit(self.layout())
        self.schedule_redraw()
        return True

    def set_comments(self, comments: Sequence[Comment]) -> None:
        """Set the review comments anchored on the after side."""
        self._renderer.set_comments(comments)
        self.schedule_redraw()

    def _reset_pane_scroll(self) -> None:
        for pane in self._panes.values():
            if pane is not None:
                pane.set_scroll_top(0.0)
        # Events from the reset above are not user scrolls
        self._sync.reset()

    # =========================================================================
    # Panes and scrolling
    # =========================================================================

    def attach_panes(
        self,
        before: Optional[PaneHandle],
        after: Optional[PaneHandle]
    ) -> None:
        """Register the pane handles; either may be None while unmounted."""
        self._panes[Side.BEFORE] = before
        self._panes[Side.AFTER] = after
        self._sync.reset()
        self.schedule_redraw()

    def detach_panes(self) -> None:
        self.attach_panes(None, None)
        self._scheduler.cancel()

    def _current_metrics(self) -> Optional[ViewportMetrics]:
        metrics = self._metrics()
        if metrics is None or not metrics.is_valid:
            return None
        return metrics

    def pane_scrolled(self, side: Side, scroll_top_px: float) -> SyncOutcome:
        """
        Handle a scroll event from one pane.

        Every outcome schedules a redraw, since the connectors depend on
        both panes' positions even when nothing was synced.
        """
        source = self._panes[side]
        outcome = self._sync.on_scroll(
            side,
            scroll_top_px,
            self._panes[side.opposite],
            source.viewport_height if source is not None else 0.0,
        )
        self.schedule_redraw()
        return outcome

    def scroll_to_line(
        self,
        side: Side,
        line: int,
        anchor_fraction: Optional[float] = None
    ) -> bool:
        """Bring a line to the sync anchor of one pane, following with the other."""
        wrote = self._sync.scroll_to_line(
            side, line, self._panes[Side.BEFORE], self._panes[Side.AFTER], anchor_fraction
        )
        self.schedule_redraw()
        return wrote

    # =========================================================================
    # Hover and layout
    # =========================================================================

    def layout(self) -> PanelLayout:
        return compute_layout(self._panel_state, self._ratios)

    def set_pane_hovered(self, side: Side, hovered: bool) -> None:
        """Update pane hover; hovering one pane un-hovers the other."""
        state = self._panel_state
        before = (state.before_hovered, state.after_hovered)

        state.set_hovered(side, hovered)
        if hovered:
            state.set_hovered(side.opposite, False)

        if (state.before_hovered, state.after_hovered) != before:
            self.layout_changed.emit(self.layout())

    def set_space_held(self, held: bool) -> None:
        if held == self._panel_state.space_held:
            return
        self._panel_state.space_held = held
        self.layout_changed.emit(self.layout())

    def hover_line(self, side: Side, line: Optional[int]) -> Optional[int]:
        """
        Highlight the hunk under a hovered line.

        Returns:
            The hovered hunk index, None over context or outside the panes
        """
        index = None
        if line is not None:
            index = self._model.line_to_change_index(side, line)
        self.hover_hunk(index)
        return index

    def hover_hunk(self, index: Optional[int]) -> None:
        if index == self._hovered_hunk:
            return
        self._hovered_hunk = index
        self._renderer.set_hovered_index(index)
        self.hovered_hunk_changed.emit(index)
        self.schedule_redraw()

    # =========================================================================
    # Navigation
    # =========================================================================

    def _snapshot(self) -> Optional[ScrollSnapshot]:
        metrics = self._current_metrics()
        pane = self._panes[Side.AFTER]
        if metrics is None or pane is None:
            return None
        return ScrollSnapshot(pane.scroll_top, pane.viewport_height, metrics.line_height_px)

    def _scroll_after_to_line(self, top_line: int) -> None:
        self.scroll_to_line(Side.AFTER, top_line, anchor_fraction=0.0)

    def next_hunk(self) -> bool:
        snapshot = self._snapshot()
        if snapshot is None:
            return False
        return self._navigator.go_to_next(snapshot, self._scroll_after_to_line)

    def previous_hunk(self) -> bool:
        snapshot = self._snapshot()
        if snapshot is None:
            return False
        return self._navigator.go_to_previous(snapshot, self._scroll_after_to_line)

    def comment_on_current_hunk(self) -> bool:
        snapshot = self._snapshot()
        if snapshot is None:
            return False
        return self._navigator.comment_on_current(snapshot, self.comment_requested.emit)

    def discard_current_hunk(self) -> bool:
        snapshot = self._snapshot()
        if snapshot is None:
            return False
        return self._navigator.discard_current(snapshot, self.discard_requested.emit)

    def scroll_lines(self, lines: int) -> bool:
        """
        Keyboard scroll of the after pane.

        The pane's own scroll event drives the sync, as for a wheel scroll.
        """
        snapshot = self._snapshot()
        pane = self._panes[Side.AFTER]
        if snapshot is None or pane is None:
            return False
        HunkNavigator.scroll_by_lines(snapshot, lines, pane.set_scroll_top)
        return True

    @property
    def scroll_step(self) -> int:
        return self._scroll_step

    # =========================================================================
    # Redraw
    # =========================================================================

    def schedule_redraw(self) -> None:
        self._pending_generation = self._generation
        self._scheduler.schedule()

    def redraw_now(self) -> Optional[ConnectorFrame]:
        """
        Compute the connector frame from the live pane positions.

        Returns:
            The frame, or None if dropped (stale, unmounted or no metrics)
        """
        pending = self._pending_generation
        self._pending_generation = None
        if pending is not None and pending != self._generation:
            logger.debug("Dropping redraw for stale generation %d", pending)
            return None

        metrics = self._current_metrics()
        if metrics is None:
            return None

        before = self._panes[Side.BEFORE]
        after = self._panes[Side.AFTER]
        if before is None and after is None:
            return None

        before_px = before.scroll_top if before is not None else 0.0
        after_px = after.scroll_top if after is not None else 0.0
        frame = self._renderer.render(before_px, after_px, metrics)

        self._update_current_hunk()
        return frame

    def _update_current_hunk(self) -> None:
        snapshot = self._snapshot()
        if snapshot is None:
            return
        current = self._navigator.find_current_hunk_index(
            snapshot.scroll_top_px, snapshot.viewport_height_px, snapshot.line_height_px
        )
        if current != self._current_hunk:
            self._current_hunk = current
            self.current_hunk_changed.emit(current)

    # =========================================================================
    # Tokens
    # =========================================================================

    def _start_tokenizing(self) -> None:
        self._tokens.reset(self._diff)
        if self._tokens.service is None:
            return

        if self._tokenize_async:
            self._token_workers = start_tokenizing(
                self._tokens, self._on_tokens_finished, self._on_tokens_error
            )
            return

        for side in Side:
            if self._tokens.highlight_now(side):
                self.tokens_changed.emit(side)

    def _cancel_tokenizing(self) -> None:
        for worker in self._token_workers:
            worker.cancel()
        self._token_workers = []

    def _on_tokens_finished(self, generation: int, side: Side, tokens: TokenLines) -> None:
        if self._tokens.deliver(generation, side, tokens):
            self.tokens_changed.emit(side)

    def _on_tokens_error(self, generation: int, side: Side, message: str) -> None:
        self._tokens.fail(generation, side, message)
