"""Tests for synchronized scrolling."""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from spineview.core.alignment import AlignmentModel
from spineview.core.models import Side, ViewportMetrics
from spineview.core.scroll_sync import ScrollSyncEngine, SyncOutcome, map_line

from conftest import LINE_HEIGHT, SAMPLE_ALIGNMENTS, make_alignment


class FakePane:
    """Pane handle recording writes; optionally clamps like a scroll bar."""

    def __init__(self, scroll_top: float = 0.0, viewport_height: float = 0.0,
                 max_scroll: Optional[float] = None):
        self.scroll_top = scroll_top
        self.viewport_height = viewport_height
        self.max_scroll = max_scroll
        self.writes: list[float] = []
        self.on_change: Optional[Callable[[float], None]] = None

    def set_scroll_top(self, value: float) -> None:
        self.writes.append(value)
        if self.max_scroll is not None:
            value = min(value, self.max_scroll)
        if value == self.scroll_top:
            return
        self.scroll_top = value
        if self.on_change is not None:
            self.on_change(value)


@pytest.fixture
def engine() -> ScrollSyncEngine:
    sync = ScrollSyncEngine(lambda: ViewportMetrics(line_height_px=LINE_HEIGHT))
    sync.set_alignments(SAMPLE_ALIGNMENTS)
    return sync


class TestMapLine:
    def test_context_maps_one_to_one(self):
        model = AlignmentModel(SAMPLE_ALIGNMENTS)
        assert map_line(model, Side.BEFORE, 1.5) == pytest.approx(1.5)

    def test_context_after_hunk_is_shifted(self):
        model = AlignmentModel(SAMPLE_ALIGNMENTS)
        assert map_line(model, Side.BEFORE, 6.0) == pytest.approx(8.0)

    def test_hunk_interpolates(self):
        model = AlignmentModel(SAMPLE_ALIGNMENTS)
        # Halfway through 2 before lines is halfway through 4 after lines
        assert map_line(model, Side.BEFORE, 4.0) == pytest.approx(5.0)
        assert map_line(model, Side.AFTER, 5.0) == pytest.approx(4.0)

    def test_empty_target_pins_to_anchor(self):
        model = AlignmentModel(SAMPLE_ALIGNMENTS)
        assert map_line(model, Side.AFTER, 10.5) == pytest.approx(8.0)

    def test_no_alignments_is_identity(self):
        assert map_line(AlignmentModel(), Side.BEFORE, 7.25) == 7.25


class TestOnScroll:
    def test_moves_other_pane(self, engine):
        after = FakePane()
        outcome = engine.on_scroll(Side.BEFORE, 4 * LINE_HEIGHT, after)
        assert outcome is SyncOutcome.SYNCED
        assert after.scroll_top == pytest.approx(5 * LINE_HEIGHT)

    def test_deferred_echo_is_ignored(self, engine):
        before = FakePane(4 * LINE_HEIGHT)
        after = FakePane()
        engine.on_scroll(Side.BEFORE, before.scroll_top, after)

        # The after pane reports our write later, as a real widget would
        outcome = engine.on_scroll(Side.AFTER, after.scroll_top, before)
        assert outcome is SyncOutcome.ECHO
        assert before.writes == []

        # The next real scroll of the after pane syncs again
        outcome = engine.on_scroll(Side.AFTER, 0.0, before)
        assert outcome is SyncOutcome.SYNCED
        assert before.scroll_top == 0.0

    def test_synchronous_echo_is_ignored(self, engine):
        before = FakePane()
        after = FakePane()
        outcomes = []
        after.on_change = lambda px: outcomes.append(engine.on_scroll(Side.AFTER, px, before))

        engine.on_scroll(Side.BEFORE, 4 * LINE_HEIGHT, after)
        assert outcomes == [SyncOutcome.ECHO]
        assert before.writes == []

    def test_small_difference_is_not_written(self, engine):
        after = FakePane(5 * LINE_HEIGHT)
        # Maps to 101px, within the 2px threshold of 100px
        outcome = engine.on_scroll(Side.BEFORE, 80.5, after)
        assert outcome is SyncOutcome.UNCHANGED
        assert after.writes == []

    def test_disabled(self, engine):
        engine.set_enabled(False)
        after = FakePane()
        assert engine.on_scroll(Side.BEFORE, 80.0, after) is SyncOutcome.SKIPPED
        assert after.writes == []

    def test_missing_target_pane(self, engine):
        assert engine.on_scroll(Side.BEFORE, 80.0, None) is SyncOutcome.SKIPPED

    def test_missing_metrics(self):
        sync = ScrollSyncEngine(lambda: None)
        sync.set_alignments(SAMPLE_ALIGNMENTS)
        after = FakePane()
        assert sync.on_scroll(Side.BEFORE, 80.0, after) is SyncOutcome.SKIPPED

    def test_clamped_write_expects_accepted_position(self, engine):
        before = FakePane(4 * LINE_HEIGHT)
        after = FakePane(max_scroll=60.0)
        engine.on_scroll(Side.BEFORE, before.scroll_top, after)
        assert after.scroll_top == 60.0

        assert engine.on_scroll(Side.AFTER, 60.0, before) is SyncOutcome.ECHO
        assert before.writes == []

    def test_anchor_fraction(self):
        sync = ScrollSyncEngine(
            lambda: ViewportMetrics(line_height_px=LINE_HEIGHT), anchor_fraction=0.5
        )
        sync.set_alignments(SAMPLE_ALIGNMENTS)
        after = FakePane(viewport_height=200.0)

        # Anchor sits 100px (5 lines) down: before line 5 maps to after line 7
        sync.on_scroll(Side.BEFORE, 0.0, after, source_viewport_px=200.0)
        assert after.scroll_top == pytest.approx(7 * LINE_HEIGHT - 100.0)

    def test_reset_forgets_expectations(self, engine):
        before = FakePane(4 * LINE_HEIGHT)
        after = FakePane()
        engine.on_scroll(Side.BEFORE, before.scroll_top, after)
        engine.reset()
        assert engine.on_scroll(Side.AFTER, after.scroll_top, before) is not SyncOutcome.ECHO


class TestScrollToLine:
    def test_moves_both_panes(self, engine):
        before = FakePane()
        after = FakePane()
        assert engine.scroll_to_line(Side.AFTER, 10, before, after)
        assert after.scroll_top == pytest.approx(10 * LINE_HEIGHT)
        # Insertion at after line 10 is anchored at before line 8
        assert before.scroll_top == pytest.approx(8 * LINE_HEIGHT)

    def test_already_there(self, engine):
        before = FakePane(3 * LINE_HEIGHT)
        after = FakePane(3 * LINE_HEIGHT)
        assert not engine.scroll_to_line(Side.AFTER, 3, before, after)

    def test_without_metrics(self):
        sync = ScrollSyncEngine(lambda: ViewportMetrics(line_height_px=0.0))
        assert not sync.scroll_to_line(Side.AFTER, 3, FakePane(), FakePane())


class TestScenarios:
    def test_pure_insertion_anchors_before_pane(self):
        model = AlignmentModel((make_alignment((0, 5), (0, 5)), make_alignment((5, 5), (5, 10), True)))
        assert map_line(model, Side.AFTER, 7.0) == pytest.approx(5.0)

    @pytest.mark.parametrize("t", [0.0, 0.25, 0.5, 0.75])
    def test_round_trip_stays_within_a_line(self, t):
        model = AlignmentModel(SAMPLE_ALIGNMENTS)
        for alignment in model:
            if alignment.before.is_empty:
                continue
            line = alignment.before.start + t * alignment.before.length
            back = map_line(model, Side.AFTER, map_line(model, Side.BEFORE, line))
            assert abs(back - line) <= 1.0
