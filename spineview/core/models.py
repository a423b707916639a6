"""
Core data models for the diff viewer engine.

This module defines the data structures shared by every engine component:
- Line spans and before/after alignments
- File sides and the per-file diff supplied by the diff backend
- Pane layout state
- Viewport metrics and review comments

All models are designed to be:
- UI-agnostic (can be used with any frontend)
- Serializable (the diff backend hands them over as JSON)
- Immutable where practical
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union


# =============================================================================
# Enumerations
# =============================================================================

class Side(Enum):
    """One of the two panes of the diff."""
    BEFORE = "before"
    AFTER = "after"

    @property
    def opposite(self) -> 'Side':
        """The other pane."""
        return Side.AFTER if self is Side.BEFORE else Side.BEFORE

    @classmethod
    def from_string(cls, value: Union[str, 'Side']) -> 'Side':
        """Create from a string value ('before'/'after')."""
        if isinstance(value, Side):
            return value
        return cls(value.lower())


# =============================================================================
# Alignment Models
# =============================================================================

@dataclass(frozen=True)
class Span:
    """
    Half-open interval [start, end) of zero-indexed line numbers.

    An empty span (start == end) marks the anchor point of a pure
    insertion or deletion on that side.
    """
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < 0:
            raise ValueError(f"Span bounds must be non-negative: [{self.start}, {self.end})")
        if self.start > self.end:
            raise ValueError(f"Span start after end: [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        """Number of lines in the span."""
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        """Check if the span has zero height."""
        return self.start == self.end

    def contains(self, line: int) -> bool:
        """Check if a line falls in the span (empty spans contain their anchor)."""
        if self.is_empty:
            return line == self.start
        return self.start <= line < self.end

    def to_dict(self) -> dict:
        return {'start': self.start, 'end': self.end}

    @classmethod
    def from_dict(cls, data: dict) -> 'Span':
        return cls(int(data['start']), int(data['end']))


@dataclass(frozen=True)
class Alignment:
    """
    Correspondence between a before-side region and an after-side region.

    Unchanged alignments map context lines 1:1; changed alignments (hunks)
    may have spans of different lengths, including an empty side.
    """
    before: Span
    after: Span
    changed: bool = False

    def span(self, side: Side) -> Span:
        """Get the span for one side."""
        return self.before if side is Side.BEFORE else self.after

    @property
    def is_insertion(self) -> bool:
        """Pure insertion: nothing on the before side."""
        return self.before.is_empty and not self.after.is_empty

    @property
    def is_deletion(self) -> bool:
        """Pure deletion: nothing on the after side."""
        return self.after.is_empty and not self.before.is_empty

    def to_dict(self) -> dict:
        return {
            'before': self.before.to_dict(),
            'after': self.after.to_dict(),
            'changed': self.changed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Alignment':
        return cls(
            before=Span.from_dict(data['before']),
            after=Span.from_dict(data['after']),
            changed=bool(data.get('changed', False)),
        )


# =============================================================================
# File Models
# =============================================================================

@dataclass(frozen=True)
class TextContent:
    """Text file content split into lines."""
    lines: tuple[str, ...] = ()

    @property
    def line_count(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class BinaryContent:
    """Marker for a side whose content cannot be shown as text."""

    @property
    def line_count(self) -> int:
        return 0


FileContent = Union[TextContent, BinaryContent]


@dataclass(frozen=True)
class DiffFile:
    """One side of a file diff."""
    path: str
    content: FileContent = field(default_factory=TextContent)

    @property
    def is_binary(self) -> bool:
        return isinstance(self.content, BinaryContent)

    @property
    def lines(self) -> tuple[str, ...]:
        """Text lines, or an empty tuple for binary content."""
        if isinstance(self.content, TextContent):
            return self.content.lines
        return ()

    def to_dict(self) -> dict:
        if isinstance(self.content, BinaryContent):
            content = {'type': 'binary'}
        else:
            content = {'type': 'text', 'lines': list(self.content.lines)}
        return {'path': self.path, 'content': content}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['DiffFile']:
        if data is None:
            return None
        content_data = data.get('content') or {}
        if content_data.get('type') == 'binary':
            content: FileContent = BinaryContent()
        else:
            content = TextContent(tuple(content_data.get('lines', [])))
        return cls(path=data.get('path', ''), content=content)


@dataclass(frozen=True)
class FileDiff:
    """
    The diff of a single file as produced by the diff backend.

    Either side may be None to represent an added or deleted file.
    Treated as read-only; a new instance means "the diff changed".
    """
    before: Optional[DiffFile]
    after: Optional[DiffFile]
    alignments: tuple[Alignment, ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence but always store a tuple
        if not isinstance(self.alignments, tuple):
            object.__setattr__(self, 'alignments', tuple(self.alignments))

    def file(self, side: Side) -> Optional[DiffFile]:
        return self.before if side is Side.BEFORE else self.after

    @property
    def is_new_file(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def is_deleted_file(self) -> bool:
        return self.after is None and self.before is not None

    @property
    def is_binary(self) -> bool:
        return any(f is not None and f.is_binary for f in (self.before, self.after))

    @property
    def show_range_markers(self) -> bool:
        """Connectors only make sense when both sides exist."""
        return self.before is not None and self.after is not None

    def line_count(self, side: Side) -> int:
        diff_file = self.file(side)
        if diff_file is None:
            return 0
        return diff_file.content.line_count

    def to_dict(self) -> dict:
        return {
            'before': self.before.to_dict() if self.before else None,
            'after': self.after.to_dict() if self.after else None,
            'alignments': [a.to_dict() for a in self.alignments],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FileDiff':
        return cls(
            before=DiffFile.from_dict(data.get('before')),
            after=DiffFile.from_dict(data.get('after')),
            alignments=tuple(Alignment.from_dict(a) for a in data.get('alignments', [])),
        )


# =============================================================================
# View State Models
# =============================================================================

@dataclass
class PanelState:
    """
    Hover/collapse/zoom inputs of the pane layout.

    Owned by the view session and recreated whenever the diff changes.
    """
    before_collapsed: bool = False
    after_collapsed: bool = False
    before_hovered: bool = False
    after_hovered: bool = False
    space_held: bool = False

    @classmethod
    def initial(cls, is_new_file: bool, is_deleted_file: bool) -> 'PanelState':
        """Create the initial state from file characteristics."""
        return cls(before_collapsed=is_new_file, after_collapsed=is_deleted_file)

    @classmethod
    def for_diff(cls, diff: Optional[FileDiff]) -> 'PanelState':
        if diff is None:
            return cls()
        return cls(before_collapsed=diff.before is None, after_collapsed=diff.after is None)

    def collapsed(self, side: Side) -> bool:
        return self.before_collapsed if side is Side.BEFORE else self.after_collapsed

    def hovered(self, side: Side) -> bool:
        return self.before_hovered if side is Side.BEFORE else self.after_hovered

    def set_hovered(self, side: Side, hovered: bool) -> None:
        if side is Side.BEFORE:
            self.before_hovered = hovered
        else:
            self.after_hovered = hovered


@dataclass(frozen=True)
class ViewportMetrics:
    """
    Measurements supplied by the rendering surface.

    Refreshed on every redraw since font size changes alter them.
    """
    line_height_px: float
    vertical_offset_px: float = 0.0   # Connector strip top vs code container top
    viewport_height_px: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.line_height_px > 0


# Returns None while the panes are not mounted yet
MetricsProvider = Callable[[], Optional[ViewportMetrics]]


@dataclass(frozen=True)
class Comment:
    """A review comment anchored to an after-side span."""
    id: str
    span: Span
    text: str = ""
