"""
Connector ("spine") geometry between the two panes.

Computes, for every changed alignment, the ribbon that links its region in
the before pane to its counterpart in the after pane, positioned under
independent scrolling. Also lays out comment markers along the after edge.

The output is plain geometry (no Qt types) so it can be compared and tested;
the canvas widget turns it into painter paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Sequence, Union

from spineview.core.alignment import AlignmentModel
from spineview.core.models import Alignment, Comment, ViewportMetrics


# Bezier control point offset as fraction of the strip width
BEZIER_CP_FRACTION = 0.5

# Default strip width in pixels
CONNECTOR_WIDTH = 24.0

# Comment marker dimensions
COMMENT_WIDTH = 4.0
COMMENT_GAP = 2.0
COMMENT_VERTICAL_PADDING = 2.0
COMMENT_HIT_SLOP = 4.0


class ConnectorKind(Enum):
    """Shape of a connector."""
    MODIFICATION = auto()  # Band on both edges
    INSERTION = auto()     # Point on the left, band on the right
    DELETION = auto()      # Band on the left, point on the right


class PathOp(Enum):
    """Path drawing operation."""
    MOVE = auto()
    LINE = auto()
    CUBIC = auto()
    CLOSE = auto()


Point = tuple[float, float]


@dataclass(frozen=True)
class PathSegment:
    """One drawing operation with its points (control points first)."""
    op: PathOp
    points: tuple[Point, ...] = ()


def _move(x: float, y: float) -> PathSegment:
    return PathSegment(PathOp.MOVE, ((x, y),))


def _line(x: float, y: float) -> PathSegment:
    return PathSegment(PathOp.LINE, ((x, y),))


def _cubic(c1: Point, c2: Point, end: Point) -> PathSegment:
    return PathSegment(PathOp.CUBIC, (c1, c2, end))


@dataclass(frozen=True)
class ConnectorShape:
    """
    Vertical bands of one hunk on both edges of the connector strip.

    Coordinates are relative to the strip's top edge. Empty spans give a
    zero-height band (top == bottom).
    """
    change_index: int
    alignment_index: int
    kind: ConnectorKind
    before_top: float
    before_bottom: float
    after_top: float
    after_bottom: float
    hovered: bool = False

    def outline(
        self,
        width: float,
        control_fraction: float = BEZIER_CP_FRACTION
    ) -> list[PathSegment]:
        """Closed ribbon outline used for the fill."""
        cp = width * control_fraction
        bt, bb = self.before_top, self.before_bottom
        at, ab = self.after_top, self.after_bottom

        segments = [
            _move(0.0, bt),
            _cubic((cp, bt), (width - cp, at), (width, at)),
        ]
        if self.kind is ConnectorKind.INSERTION:
            segments += [
                _line(width, ab),
                _cubic((width - cp, ab), (cp, bt), (0.0, bt)),
            ]
        elif self.kind is ConnectorKind.DELETION:
            segments.append(_cubic((width - cp, at), (cp, bb), (0.0, bb)))
        else:
            segments += [
                _line(width, ab),
                _cubic((width - cp, ab), (cp, bb), (0.0, bb)),
            ]
        segments.append(PathSegment(PathOp.CLOSE))
        return segments

    def stroke_segments(
        self,
        width: float,
        control_fraction: float = BEZIER_CP_FRACTION
    ) -> list[PathSegment]:
        """Top and bottom curves only, drawn as the ribbon border."""
        cp = width * control_fraction
        bt, bb = self.before_top, self.before_bottom
        at, ab = self.after_top, self.after_bottom

        segments = [
            _move(0.0, bt),
            _cubic((cp, bt), (width - cp, at), (width, at)),
        ]
        if self.kind is ConnectorKind.INSERTION:
            segments += [_move(width, ab), _cubic((width - cp, ab), (cp, bt), (0.0, bt))]
        elif self.kind is ConnectorKind.DELETION:
            segments += [_move(width, at), _cubic((width - cp, at), (cp, bb), (0.0, bb))]
        else:
            segments += [_move(width, ab), _cubic((width - cp, ab), (cp, bb), (0.0, bb))]
        return segments


@dataclass(frozen=True)
class CommentMarker:
    """Comment bar drawn at the after edge of the strip."""
    comment_id: str
    x: float
    top: float
    bottom: float
    width: float
    level: int   # Stacking offset among overlapping comments

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, x: float, y: float) -> bool:
        return (
            self.x <= x <= self.x + self.width + COMMENT_HIT_SLOP
            and self.top <= y <= self.bottom
        )


@dataclass(frozen=True)
class ConnectorFrame:
    """Everything the connector strip draws for one scroll state."""
    shapes: tuple[ConnectorShape, ...] = ()
    markers: tuple[CommentMarker, ...] = ()
    show_range_markers: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.shapes and not self.markers

    def hit_test(self, x: float, y: float) -> Optional[str]:
        """Comment id under a point of the strip, if any."""
        for marker in self.markers:
            if marker.contains(x, y):
                return marker.comment_id
        return None


def _connector_kind(alignment: Alignment) -> ConnectorKind:
    if alignment.is_insertion:
        return ConnectorKind.INSERTION
    if alignment.is_deletion:
        return ConnectorKind.DELETION
    return ConnectorKind.MODIFICATION


def compute_connectors(
    model: AlignmentModel,
    before_scroll_px: float,
    after_scroll_px: float,
    metrics: ViewportMetrics,
    hovered_index: Optional[int] = None
) -> tuple[ConnectorShape, ...]:
    """
    Compute connector shapes for the visible changed alignments.

    A viewport height of 0 means "unknown" and disables the lower cut-off.
    """
    changed = model.changed_subset()
    if not changed or not metrics.is_valid:
        return ()

    lh = metrics.line_height_px
    offset = metrics.vertical_offset_px
    height = metrics.viewport_height_px

    def edges(alignment: Alignment) -> tuple[float, float, float, float]:
        return (
            alignment.before.start * lh - before_scroll_px + offset,
            alignment.before.end * lh - before_scroll_px + offset,
            alignment.after.start * lh - after_scroll_px + offset,
            alignment.after.end * lh - after_scroll_px + offset,
        )

    # First hunk whose lower edge reaches into the strip
    low, high = 0, len(changed) - 1
    while low < high:
        mid = (low + high) // 2
        _, before_bottom, _, after_bottom = edges(changed[mid][0])
        if max(before_bottom, after_bottom) < 0:
            low = mid + 1
        else:
            high = mid

    shapes = []
    for change_index in range(low, len(changed)):
        alignment, alignment_index = changed[change_index]
        before_top, before_bottom, after_top, after_bottom = edges(alignment)

        if height > 0 and before_top > height and after_top > height:
            break
        if before_bottom < 0 and after_bottom < 0:
            continue

        shapes.append(ConnectorShape(
            change_index=change_index,
            alignment_index=alignment_index,
            kind=_connector_kind(alignment),
            before_top=before_top,
            before_bottom=before_bottom,
            after_top=after_top,
            after_bottom=after_bottom,
            hovered=change_index == hovered_index,
        ))
    return tuple(shapes)


def layout_comment_markers(
    comments: Sequence[Comment],
    after_scroll_px: float,
    metrics: ViewportMetrics,
    strip_width: float
) -> tuple[CommentMarker, ...]:
    """
    Place comment bars along the after edge.

    Larger spans are placed first; each comment moves one slot inward for
    every larger comment it overlaps.
    """
    if not comments or not metrics.is_valid:
        return ()

    lh = metrics.line_height_px
    offset = metrics.vertical_offset_px
    height = metrics.viewport_height_px
    clip_top = max(0.0, offset)

    # Spans of [0, 0) belong to file-level comments
    anchored = [c for c in comments if c.span.start != 0 or c.span.end != 0]
    anchored.sort(key=lambda c: (-c.span.length, c.span.start))

    markers = []
    for i, comment in enumerate(anchored):
        level = sum(
            1 for other in anchored[:i]
            if comment.span.start < other.span.end and comment.span.end > other.span.start
        )

        top = comment.span.start * lh - after_scroll_px + offset + COMMENT_VERTICAL_PADDING
        bottom = (
            max(comment.span.end, comment.span.start + 1) * lh
            - after_scroll_px + offset - COMMENT_VERTICAL_PADDING
        )
        if bottom < clip_top or bottom <= top or (height > 0 and top > height):
            continue

        markers.append(CommentMarker(
            comment_id=comment.id,
            x=strip_width - COMMENT_WIDTH - level * (COMMENT_WIDTH + COMMENT_GAP),
            top=top,
            bottom=bottom,
            width=COMMENT_WIDTH,
            level=level,
        ))
    return tuple(markers)


class ConnectorRenderer:
    """
    Stateful front of the connector geometry.

    Holds the inputs that change rarely (alignments, comments, hover) and
    notifies listeners only when a recomputed frame differs from the last.
    """

    def __init__(
        self,
        width: float = CONNECTOR_WIDTH,
        control_fraction: float = BEZIER_CP_FRACTION
    ):
        self.width = width
        self.control_fraction = control_fraction

        self._model = AlignmentModel()
        self._comments: tuple[Comment, ...] = ()
        self._hovered_index: Optional[int] = None
        self._show_range_markers = True
        self._last_frame: Optional[ConnectorFrame] = None
        self._listeners: list[Callable[[ConnectorFrame], None]] = []

    @property
    def last_frame(self) -> Optional[ConnectorFrame]:
        return self._last_frame

    @property
    def hovered_index(self) -> Optional[int]:
        return self._hovered_index

    @property
    def show_range_markers(self) -> bool:
        return self._show_range_markers

    def set_alignments(self, alignments: Union[AlignmentModel, Sequence[Alignment]]) -> None:
        model = alignments if isinstance(alignments, AlignmentModel) else AlignmentModel(alignments)
        self._model = model

    def set_comments(self, comments: Sequence[Comment]) -> None:
        self._comments = tuple(comments)

    def set_hovered_index(self, index: Optional[int]) -> None:
        """Set the hovered hunk (position among changed alignments)."""
        self._hovered_index = index

    def set_show_range_markers(self, show: bool) -> None:
        self._show_range_markers = show

    def add_listener(self, callback: Callable[[ConnectorFrame], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[ConnectorFrame], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def compute(
        self,
        before_scroll_px: float,
        after_scroll_px: float,
        metrics: ViewportMetrics
    ) -> ConnectorFrame:
        """Compute the frame for a scroll state. No side effects."""
        if not self._show_range_markers:
            return ConnectorFrame(show_range_markers=False)

        shapes = compute_connectors(
            self._model, before_scroll_px, after_scroll_px, metrics, self._hovered_index
        )
        markers = layout_comment_markers(self._comments, after_scroll_px, metrics, self.width)
        return ConnectorFrame(shapes=shapes, markers=markers)

    def render(
        self,
        before_scroll_px: float,
        after_scroll_px: float,
        metrics: ViewportMetrics
    ) -> ConnectorFrame:
        """Compute the frame and notify listeners if it changed."""
        frame = self.compute(before_scroll_px, after_scroll_px, metrics)
        if frame == self._last_frame:
            return frame

        self._last_frame = frame
        for callback in list(self._listeners):
            callback(frame)
        return frame

    def clear(self) -> None:
        """Drop all per-file state (switching files)."""
        self._model = AlignmentModel()
        self._comments = ()
        self._hovered_index = None
        self._show_range_markers = True
        self._last_frame = None
