"""
PyQt6 User Interface module.

Provides the two-pane diff viewer:
- Before and after code panes
- Connector strip between them
- Keyboard routing for hunk navigation and pane zoom
"""

from spineview.ui.diff_viewer import DiffViewerWidget, KeyEventFilter

__all__ = [
    'DiffViewerWidget',
    'KeyEventFilter',
]
