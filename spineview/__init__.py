"""
SpineView - two-pane diff viewer with synchronized scrolling.
"""

__version__ = "0.1.0"
