"""Tests for connector geometry and comment markers."""

from __future__ import annotations

import pytest

from spineview.core.alignment import AlignmentModel
from spineview.core.connectors import (
    COMMENT_GAP, COMMENT_VERTICAL_PADDING, COMMENT_WIDTH,
    ConnectorFrame, ConnectorKind, ConnectorRenderer, PathOp,
    compute_connectors, layout_comment_markers
)
from spineview.core.models import Comment, Side, Span, ViewportMetrics

from conftest import LINE_HEIGHT, SAMPLE_ALIGNMENTS, make_alignment, make_diff


@pytest.fixture
def model() -> AlignmentModel:
    return AlignmentModel(SAMPLE_ALIGNMENTS)


class TestComputeConnectors:
    def test_one_shape_per_hunk(self, model, metrics):
        shapes = compute_connectors(model, 0.0, 0.0, metrics)
        assert [s.kind for s in shapes] == [
            ConnectorKind.MODIFICATION, ConnectorKind.INSERTION, ConnectorKind.DELETION
        ]
        assert [s.alignment_index for s in shapes] == [1, 3, 5]

    @pytest.mark.parametrize("alignment, kind", [
        (make_alignment((0, 0), (0, 2), changed=True), ConnectorKind.INSERTION),
        (make_alignment((0, 2), (0, 0), changed=True), ConnectorKind.DELETION),
        (make_alignment((0, 1), (0, 3), changed=True), ConnectorKind.MODIFICATION),
    ])
    def test_kind_follows_alignment(self, metrics, alignment, kind):
        shape, = compute_connectors(AlignmentModel((alignment,)), 0.0, 0.0, metrics)
        assert shape.kind is kind
        assert alignment.is_insertion == (kind is ConnectorKind.INSERTION)
        assert alignment.is_deletion == (kind is ConnectorKind.DELETION)

    def test_edges_follow_line_height(self, model, metrics):
        first = compute_connectors(model, 0.0, 0.0, metrics)[0]
        assert (first.before_top, first.before_bottom) == (60.0, 100.0)
        assert (first.after_top, first.after_bottom) == (60.0, 140.0)

    def test_empty_side_has_zero_height(self, model, metrics):
        insertion = compute_connectors(model, 0.0, 0.0, metrics)[1]
        assert insertion.before_top == insertion.before_bottom == 160.0

    def test_independent_scroll_offsets(self, model, metrics):
        first = compute_connectors(model, 20.0, 40.0, metrics)[0]
        assert first.before_top == 40.0
        assert first.after_top == 20.0

    def test_vertical_offset(self, model):
        shifted = ViewportMetrics(line_height_px=LINE_HEIGHT, vertical_offset_px=-5.0)
        first = compute_connectors(model, 0.0, 0.0, shifted)[0]
        assert first.before_top == 55.0

    def test_hunks_below_viewport_are_cut(self, model):
        short = ViewportMetrics(line_height_px=LINE_HEIGHT, viewport_height_px=100.0)
        shapes = compute_connectors(model, 0.0, 0.0, short)
        assert [s.change_index for s in shapes] == [0]

    def test_hunks_above_viewport_are_skipped(self, model, metrics):
        shapes = compute_connectors(model, 200.0, 200.0, metrics)
        assert [s.change_index for s in shapes] == [1, 2]

    def test_hovered_flag(self, model, metrics):
        shapes = compute_connectors(model, 0.0, 0.0, metrics, hovered_index=1)
        assert [s.hovered for s in shapes] == [False, True, False]

    def test_no_hunks(self, metrics):
        assert compute_connectors(AlignmentModel(), 0.0, 0.0, metrics) == ()


class TestOutline:
    def test_modification_outline_is_closed(self, model, metrics):
        segments = compute_connectors(model, 0.0, 0.0, metrics)[0].outline(24.0)
        assert segments[0].op is PathOp.MOVE
        assert segments[0].points == ((0.0, 60.0),)
        assert segments[-1].op is PathOp.CLOSE
        assert [s.op for s in segments].count(PathOp.CUBIC) == 2

    def test_control_points_use_fraction(self, model, metrics):
        cubic = compute_connectors(model, 0.0, 0.0, metrics)[0].outline(24.0)[1]
        assert cubic.points == ((12.0, 60.0), (12.0, 60.0), (24.0, 60.0))

    def test_deletion_collapses_to_a_point_on_the_right(self, model, metrics):
        deletion = compute_connectors(model, 0.0, 0.0, metrics)[2]
        segments = deletion.outline(24.0)
        assert [s.op for s in segments] == [PathOp.MOVE, PathOp.CUBIC, PathOp.CUBIC, PathOp.CLOSE]

    def test_stroke_has_two_curves(self, model, metrics):
        segments = compute_connectors(model, 0.0, 0.0, metrics)[0].stroke_segments(24.0)
        assert [s.op for s in segments] == [PathOp.MOVE, PathOp.CUBIC, PathOp.MOVE, PathOp.CUBIC]


class TestCommentMarkers:
    def test_overlapping_comments_stack_inward(self, metrics):
        comments = [Comment("small", Span(4, 5)), Comment("big", Span(3, 7))]
        markers = layout_comment_markers(comments, 0.0, metrics, 24.0)

        by_id = {m.comment_id: m for m in markers}
        assert by_id["big"].level == 0
        assert by_id["small"].level == 1
        assert by_id["big"].x == 24.0 - COMMENT_WIDTH
        assert by_id["small"].x == 24.0 - 2 * COMMENT_WIDTH - COMMENT_GAP

    def test_marker_edges(self, metrics):
        marker = layout_comment_markers([Comment("c", Span(3, 7))], 0.0, metrics, 24.0)[0]
        assert marker.top == 60.0 + COMMENT_VERTICAL_PADDING
        assert marker.bottom == 140.0 - COMMENT_VERTICAL_PADDING

    def test_file_level_comments_are_skipped(self, metrics):
        assert layout_comment_markers([Comment("file", Span(0, 0))], 0.0, metrics, 24.0) == ()

    def test_scrolled_out_comments_are_skipped(self, metrics):
        assert layout_comment_markers([Comment("c", Span(1, 2))], 200.0, metrics, 24.0) == ()

    def test_hit_test(self, metrics):
        markers = layout_comment_markers([Comment("c", Span(3, 7))], 0.0, metrics, 24.0)
        frame = ConnectorFrame(markers=markers)
        assert frame.hit_test(21.0, 100.0) == "c"
        assert frame.hit_test(2.0, 100.0) is None


class TestRenderer:
    def test_listener_only_sees_changed_frames(self, model, metrics):
        renderer = ConnectorRenderer()
        renderer.set_alignments(model)
        frames = []
        renderer.add_listener(frames.append)

        renderer.render(0.0, 0.0, metrics)
        renderer.render(0.0, 0.0, metrics)
        assert len(frames) == 1

        renderer.render(20.0, 0.0, metrics)
        assert len(frames) == 2

    def test_hidden_range_markers(self, model, metrics):
        renderer = ConnectorRenderer()
        renderer.set_alignments(model)
        renderer.set_show_range_markers(False)
        frame = renderer.compute(0.0, 0.0, metrics)
        assert not frame.show_range_markers
        assert frame.is_empty

    def test_clear(self, model, metrics):
        renderer = ConnectorRenderer()
        renderer.set_alignments(model)
        renderer.set_hovered_index(0)
        renderer.render(0.0, 0.0, metrics)
        renderer.clear()
        assert renderer.last_frame is None
        assert renderer.hovered_index is None
        assert renderer.compute(0.0, 0.0, metrics).is_empty


def test_geometry_is_idempotent(model, metrics):
    first = compute_connectors(model, 30.0, 50.0, metrics, hovered_index=2)
    assert compute_connectors(model, 30.0, 50.0, metrics, hovered_index=2) == first


def test_new_file_has_no_connectors(metrics):
    diff = make_diff(before_path=None, alignments=(make_alignment((0, 0), (0, 12), True),))
    renderer = ConnectorRenderer()
    renderer.set_alignments(diff.alignments)
    renderer.set_show_range_markers(diff.show_range_markers)
    assert renderer.compute(0.0, 0.0, metrics).shapes == ()
    assert diff.line_count(Side.BEFORE) == 0
