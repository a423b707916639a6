"""Shared fixtures.

Qt runs offscreen so the widget tests work without a display. The sample
diff is used across the engine tests:

    before  after
    0-2     0-2     context
    3-4     3-6     modification (2 -> 4 lines)
    5-7     7-9     context
    (8)     10      insertion
    8       11      context
    9       (12)    deletion
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from spineview.core.models import (  # noqa: E402
    Alignment, DiffFile, FileDiff, Span, TextContent, ViewportMetrics
)


LINE_HEIGHT = 20.0


def make_alignment(before: tuple[int, int], after: tuple[int, int], changed: bool = False) -> Alignment:
    return Alignment(Span(*before), Span(*after), changed)


SAMPLE_ALIGNMENTS = (
    make_alignment((0, 3), (0, 3)),
    make_alignment((3, 5), (3, 7), changed=True),
    make_alignment((5, 8), (7, 10)),
    make_alignment((8, 8), (10, 11), changed=True),
    make_alignment((8, 9), (11, 12)),
    make_alignment((9, 10), (12, 12), changed=True),
)


def make_diff(
    before_path: str = "src/app.py",
    after_path: str = "src/app.py",
    before_lines: int = 10,
    after_lines: int = 12,
    alignments=SAMPLE_ALIGNMENTS,
) -> FileDiff:
    before = None
    after = None
    if before_path is not None:
        before = DiffFile(before_path, TextContent(tuple(f"x = {i}" for i in range(before_lines))))
    if after_path is not None:
        after = DiffFile(after_path, TextContent(tuple(f"y = {i}" for i in range(after_lines))))
    return FileDiff(before, after, alignments)


@pytest.fixture
def sample_diff() -> FileDiff:
    return make_diff()


@pytest.fixture
def metrics() -> ViewportMetrics:
    return ViewportMetrics(line_height_px=LINE_HEIGHT)


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole run."""
    QtWidgets = pytest.importorskip("PyQt6.QtWidgets")
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app
