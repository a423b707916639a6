"""
Alignment model.

Read-only lookups over the ordered alignment list of one file diff:
- Locate the alignment containing a line on either side
- Enumerate changed alignments (hunks)
- Map raw lines back to hunk positions
- Hunk separator boundaries for line decorations

The alignment list is never mutated; a new diff means a new model.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from spineview.core.models import Alignment, Side


class AlignmentError(ValueError):
    """Raised when an alignment list breaks the coverage invariant."""


@dataclass(frozen=True)
class LineBoundary:
    """Whether a line draws the top and/or bottom separator of a hunk."""
    is_start: bool = False
    is_end: bool = False


def validate_alignments(
    alignments: Sequence[Alignment],
    before_count: int,
    after_count: int
) -> None:
    """
    Check that alignments tile both sides exactly once.

    Args:
        alignments: Ordered alignment list
        before_count: Number of lines on the before side
        after_count: Number of lines on the after side

    Raises:
        AlignmentError: On gaps, overlaps, bad coverage or uneven context
    """
    expected = {Side.BEFORE: 0, Side.AFTER: 0}

    for i, alignment in enumerate(alignments):
        for side in Side:
            span = alignment.span(side)
            if span.start != expected[side]:
                raise AlignmentError(
                    f"Alignment {i} {side.value} span starts at {span.start}, "
                    f"expected {expected[side]}"
                )
            expected[side] = span.end

        if not alignment.changed and alignment.before.length != alignment.after.length:
            raise AlignmentError(
                f"Unchanged alignment {i} has unequal spans "
                f"({alignment.before.length} vs {alignment.after.length})"
            )

    if expected[Side.BEFORE] != before_count:
        raise AlignmentError(
            f"Before side covers {expected[Side.BEFORE]} lines, file has {before_count}"
        )
    if expected[Side.AFTER] != after_count:
        raise AlignmentError(
            f"After side covers {expected[Side.AFTER]} lines, file has {after_count}"
        )


class AlignmentModel:
    """
    Immutable lookup structure over an alignment list.

    Lookups by line use binary search over the span ends of each side,
    which are monotonic because both sides advance together.
    """

    def __init__(self, alignments: Sequence[Alignment] = ()):
        self._alignments: tuple[Alignment, ...] = tuple(alignments)
        self._ends = {
            side: [a.span(side).end for a in self._alignments]
            for side in Side
        }
        self._changed: tuple[tuple[Alignment, int], ...] = tuple(
            (a, i) for i, a in enumerate(self._alignments) if a.changed
        )
        self._change_index_by_alignment = {
            index: position for position, (_, index) in enumerate(self._changed)
        }

    @property
    def alignments(self) -> tuple[Alignment, ...]:
        return self._alignments

    def __len__(self) -> int:
        return len(self._alignments)

    def __iter__(self) -> Iterator[Alignment]:
        return iter(self._alignments)

    def __getitem__(self, index: int) -> Alignment:
        return self._alignments[index]

    @property
    def is_empty(self) -> bool:
        return not self._alignments

    @property
    def hunk_count(self) -> int:
        return len(self._changed)

    def line_count(self, side: Side) -> int:
        """Number of lines covered on a side."""
        ends = self._ends[side]
        return ends[-1] if ends else 0

    def find_containing(
        self,
        side: Side,
        line: int,
        clamp: bool = True
    ) -> Optional[tuple[Alignment, int]]:
        """
        Locate the alignment whose span on `side` contains `line`.

        A non-empty span holding the line wins over an empty span anchored
        at the same line. With `clamp`, lines outside the covered range
        resolve to the first or last alignment.

        Returns:
            (alignment, index) or None
        """
        if not self._alignments:
            return None

        ends = self._ends[side]
        i = bisect.bisect_right(ends, line)
        if i < len(ends) and self._alignments[i].span(side).start <= line:
            return self._alignments[i], i

        # Empty spans anchored exactly at the line
        j = bisect.bisect_left(ends, line)
        while j < len(ends) and ends[j] == line:
            span = self._alignments[j].span(side)
            if span.is_empty:
                return self._alignments[j], j
            j += 1

        if not clamp:
            return None
        if line < 0 or line < self._alignments[0].span(side).start:
            return self._alignments[0], 0
        last = len(self._alignments) - 1
        return self._alignments[last], last

    def changed_subset(self) -> list[tuple[Alignment, int]]:
        """Changed alignments with their original indices, in order."""
        return list(self._changed)

    def hunk(self, change_index: int) -> Alignment:
        """Get the changed alignment at a position of `changed_subset()`."""
        return self._changed[change_index][0]

    def change_index_of(self, alignment_index: int) -> Optional[int]:
        """Position of an alignment in `changed_subset()`, if changed."""
        return self._change_index_by_alignment.get(alignment_index)

    def line_to_change_index(self, side: Side, line: int) -> Optional[int]:
        """Map a raw line number to its hunk position, or None for context."""
        found = self.find_containing(side, line, clamp=False)
        if found is None:
            return None
        return self.change_index_of(found[1])

    def line_boundary(self, side: Side, line: int) -> LineBoundary:
        """
        Check if a line sits on the edge of a hunk.

        Empty spans draw a single separator at the line found at their
        anchor, to avoid a double-thick border.
        """
        for alignment, _ in self._changed:
            span = alignment.span(side)
            if span.is_empty:
                if line == span.start:
                    return LineBoundary(is_start=True, is_end=False)
                continue
            if line == span.start:
                return LineBoundary(is_start=True, is_end=line == span.end - 1)
            if line == span.end - 1:
                return LineBoundary(is_start=False, is_end=True)
        return LineBoundary()
