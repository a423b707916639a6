"""
Reusable UI widgets for the diff viewer.

Provides specialized widgets for:
- Code display with change highlighting
- Connector painting between the panes
"""

from spineview.ui.widgets.diff_pane import (
    DiffPane,
    PaneColors,
)
from spineview.ui.widgets.connector_canvas import (
    ConnectorCanvas,
    build_path,
)

__all__ = [
    # Panes
    'DiffPane',
    'PaneColors',
    # Connectors
    'ConnectorCanvas',
    'build_path',
]
