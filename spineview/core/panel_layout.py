"""
Pane layout calculation.

Maps the hover/collapse/zoom state of the two panes to flex shares:
- Default: 40/60 (before gets 40, after gets 60)
- Focused (hovered): 60/40, the hovered pane expands
- Zoomed (space held while focused): 90/10
- Collapsed (side absent): 10, always wins over hover and zoom

Pure function of the state; the caller keeps hover mutually exclusive.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from spineview.core.models import PanelState, Side


class PaneMode(Enum):
    """Layout classification of one pane."""
    DEFAULT = auto()
    FOCUSED = auto()
    ZOOMED = auto()
    COLLAPSED = auto()


@dataclass(frozen=True)
class LayoutRatios:
    """Flex shares used by the layout."""
    default_before: int = 40
    default_after: int = 60
    focused: int = 60
    focused_sibling: int = 40
    zoomed: int = 90
    zoomed_sibling: int = 10
    collapsed: int = 10
    collapsed_sibling: int = 90


@dataclass(frozen=True)
class PaneLayout:
    """Layout of one pane."""
    mode: PaneMode
    share: int
    classes: tuple[str, ...]


@dataclass(frozen=True)
class PanelLayout:
    """Layout of both panes."""
    before: PaneLayout
    after: PaneLayout

    def pane(self, side: Side) -> PaneLayout:
        return self.before if side is Side.BEFORE else self.after

    def fractions(self) -> tuple[float, float]:
        """Shares normalized to sum to 1."""
        total = self.before.share + self.after.share
        if total <= 0:
            return 0.5, 0.5
        return self.before.share / total, self.after.share / total


def _mode(state: PanelState, side: Side) -> PaneMode:
    if state.collapsed(side):
        return PaneMode.COLLAPSED
    if state.hovered(side):
        return PaneMode.ZOOMED if state.space_held else PaneMode.FOCUSED
    return PaneMode.DEFAULT


def _classes(side: Side, mode: PaneMode) -> tuple[str, ...]:
    classes = ['diff-pane', f'{side.value}-pane']
    if mode is PaneMode.COLLAPSED:
        classes.append('collapsed')
    elif mode is PaneMode.FOCUSED:
        classes.append('focused')
    elif mode is PaneMode.ZOOMED:
        classes += ['focused', 'zoomed']
    return tuple(classes)


def _share(mode: PaneMode, sibling: PaneMode, side: Side, ratios: LayoutRatios) -> int:
    if mode is PaneMode.COLLAPSED:
        return ratios.collapsed
    if mode is PaneMode.ZOOMED:
        return ratios.zoomed
    if mode is PaneMode.FOCUSED:
        return ratios.focused
    if sibling is PaneMode.COLLAPSED:
        return ratios.collapsed_sibling
    if sibling is PaneMode.ZOOMED:
        return ratios.zoomed_sibling
    if sibling is PaneMode.FOCUSED:
        return ratios.focused_sibling
    return ratios.default_before if side is Side.BEFORE else ratios.default_after


def compute_layout(state: PanelState, ratios: LayoutRatios = LayoutRatios()) -> PanelLayout:
    """
    Calculate the layout of both panes.

    Args:
        state: Current panel state
        ratios: Flex shares to use

    Returns:
        PanelLayout with mode, share and class list per pane
    """
    modes = {side: _mode(state, side) for side in Side}
    panes = {
        side: PaneLayout(
            mode=modes[side],
            share=_share(modes[side], modes[side.opposite], side, ratios),
            classes=_classes(side, modes[side]),
        )
        for side in Side
    }
    return PanelLayout(before=panes[Side.BEFORE], after=panes[Side.AFTER])
