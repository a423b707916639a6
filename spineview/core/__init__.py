"""
Diff alignment and viewport synchronization engine.

Pure Python, no Qt imports:
- Alignment lookups over a file diff
- Scroll mapping between the two panes
- Connector geometry for the spine between them
- Hunk navigation and pane layout
"""

from spineview.core.models import (
    Side,
    Span,
    Alignment,
    TextContent,
    BinaryContent,
    DiffFile,
    FileDiff,
    PanelState,
    ViewportMetrics,
    Comment,
)
from spineview.core.alignment import (
    AlignmentModel,
    AlignmentError,
    LineBoundary,
    validate_alignments,
)
from spineview.core.scroll_sync import (
    ScrollSyncEngine,
    SyncOutcome,
    PaneHandle,
    map_line,
)
from spineview.core.connectors import (
    ConnectorRenderer,
    ConnectorFrame,
    ConnectorShape,
    ConnectorKind,
    CommentMarker,
    compute_connectors,
)
from spineview.core.hunk_navigator import (
    HunkNavigator,
    ScrollSnapshot,
)
from spineview.core.panel_layout import (
    PaneMode,
    LayoutRatios,
    PaneLayout,
    PanelLayout,
    compute_layout,
)

__all__ = [
    # Models
    'Side',
    'Span',
    'Alignment',
    'TextContent',
    'BinaryContent',
    'DiffFile',
    'FileDiff',
    'PanelState',
    'ViewportMetrics',
    'Comment',
    # Alignment
    'AlignmentModel',
    'AlignmentError',
    'LineBoundary',
    'validate_alignments',
    # Scroll sync
    'ScrollSyncEngine',
    'SyncOutcome',
    'PaneHandle',
    'map_line',
    # Connectors
    'ConnectorRenderer',
    'ConnectorFrame',
    'ConnectorShape',
    'ConnectorKind',
    'CommentMarker',
    'compute_connectors',
    # Navigation and layout
    'HunkNavigator',
    'ScrollSnapshot',
    'PaneMode',
    'LayoutRatios',
    'PaneLayout',
    'PanelLayout',
    'compute_layout',
]
