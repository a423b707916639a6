"""
Two-pane diff viewer.

Hosts the before pane, the connector strip and the after pane, and wires
them to a DiffViewSession:
- Pane scroll events feed the scroll sync
- Session frames are painted by the connector strip
- Session layouts set the pane stretch factors
- Key events are routed through an InputRouter
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import Qt, QEvent, QObject, QPoint, pyqtSignal
from PyQt6.QtGui import QKeyEvent, QResizeEvent
from PyQt6.QtWidgets import (
    QWidget, QHBoxLayout, QVBoxLayout, QLabel, QLineEdit, QPlainTextEdit, QTextEdit,
    QApplication
)

from spineview.core.diff_utils import display_path, is_binary_diff, text_lines
from spineview.core.models import Comment, FileDiff, Side, ViewportMetrics
from spineview.core.panel_layout import PaneMode, PanelLayout
from spineview.services.input_router import (
    InputRouter, KeyInput, NavigationActions, SPACE, register_navigation_shortcuts
)
from spineview.services.settings import ApplicationSettings
from spineview.services.tokens import RegexTokenizer, TokenizationService
from spineview.services.view_session import DiffViewSession
from spineview.ui.widgets.connector_canvas import ConnectorCanvas
from spineview.ui.widgets.diff_pane import DiffPane


logger = logging.getLogger(__name__)

# Qt key codes that have no printable text of their own
_SPECIAL_KEYS = {
    Qt.Key.Key_Space.value: SPACE,
    Qt.Key.Key_Up.value: 'ArrowUp',
    Qt.Key.Key_Down.value: 'ArrowDown',
    Qt.Key.Key_Left.value: 'ArrowLeft',
    Qt.Key.Key_Right.value: 'ArrowRight',
    Qt.Key.Key_Escape.value: 'Escape',
    Qt.Key.Key_Return.value: 'Enter',
    Qt.Key.Key_Enter.value: 'Enter',
}


def key_name(key: int) -> Optional[str]:
    """Router key name for a Qt key code, None for keys we ignore."""
    if key in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[key]
    if 0x20 < key < 0x7f:
        return chr(key).lower()
    return None


def is_text_entry(widget: Optional[QWidget]) -> bool:
    """Check if a widget accepts typed text."""
    if isinstance(widget, QLineEdit):
        return not widget.isReadOnly()
    if isinstance(widget, (QPlainTextEdit, QTextEdit)):
        return not widget.isReadOnly()
    return False


def key_input_from_event(event: QKeyEvent, focus: Optional[QWidget]) -> Optional[KeyInput]:
    name = key_name(event.key())
    if name is None:
        return None

    modifiers = event.modifiers()
    return KeyInput(
        key=name,
        ctrl=bool(modifiers & Qt.KeyboardModifier.ControlModifier),
        meta=bool(modifiers & Qt.KeyboardModifier.MetaModifier),
        shift=bool(modifiers & Qt.KeyboardModifier.ShiftModifier),
        alt=bool(modifiers & Qt.KeyboardModifier.AltModifier),
        is_repeat=event.isAutoRepeat(),
        in_text_entry=is_text_entry(focus),
    )


class KeyEventFilter(QObject):
    """
    Feeds key events of the viewer and its children to an InputRouter.

    Installed on each widget that can hold focus inside the viewer.
    """

    def __init__(self, router: InputRouter, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.router = router

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        event_type = event.type()

        if event_type in (QEvent.Type.KeyPress, QEvent.Type.KeyRelease):
            key_input = key_input_from_event(event, QApplication.focusWidget())
            if key_input is None:
                return False
            if event_type == QEvent.Type.KeyPress:
                return self.router.key_pressed(key_input)
            return self.router.key_released(key_input)

        if event_type == QEvent.Type.WindowDeactivate:
            self.router.focus_lost()

        return False


class DiffViewerWidget(QWidget):
    """
    Before pane, connector strip and after pane for one file diff.
    """

    # Signals
    comment_requested = pyqtSignal(int)       # hunk index
    discard_requested = pyqtSignal(object)    # Alignment
    comment_clicked = pyqtSignal(str)         # comment id
    size_change_requested = pyqtSignal(int)   # +1, -1, or 0 to reset

    def __init__(
        self,
        settings: Optional[ApplicationSettings] = None,
        tokenizer: Optional[TokenizationService] = None,
        parent: Optional[QWidget] = None
    ):
        super().__init__(parent)
        self._settings = settings or ApplicationSettings()

        self.session = DiffViewSession(
            self._metrics,
            self._settings,
            tokenizer if tokenizer is not None else RegexTokenizer(),
            parent=self,
        )
        self.router = InputRouter(blur_focus=self._blur_focus)

        self._setup_ui()
        self._connect_signals()
        self._setup_input()

        self.session.attach_panes(self.before_pane, self.after_pane)

    # =========================================================================
    # Setup
    # =========================================================================

    def _setup_ui(self) -> None:
        display = self._settings.display

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.title_label = QLabel()
        self.title_label.setContentsMargins(6, 4, 6, 4)
        layout.addWidget(self.title_label)

        self.panes_layout = QHBoxLayout()
        self.panes_layout.setContentsMargins(0, 0, 0, 0)
        self.panes_layout.setSpacing(0)

        self.before_pane = DiffPane(Side.BEFORE, self, display)
        self.canvas = ConnectorCanvas(self._settings.connectors, self)
        self.after_pane = DiffPane(Side.AFTER, self, display)

        self.panes_layout.addWidget(self.before_pane)
        self.panes_layout.addWidget(self.canvas)
        self.panes_layout.addWidget(self.after_pane)
        layout.addLayout(self.panes_layout, 1)

        self._apply_layout(self.session.layout())

    def _connect_signals(self) -> None:
        for pane in (self.before_pane, self.after_pane):
            side = pane.side
            pane.scrolled.connect(
                lambda px, side=side: self.session.pane_scrolled(side, px)
            )
            pane.hover_changed.connect(
                lambda hovered, side=side: self.session.set_pane_hovered(side, hovered)
            )
            pane.line_hovered.connect(
                lambda line, side=side: self.session.hover_line(side, line)
            )

        self.session.diff_changed.connect(self._on_diff_changed)
        self.session.layout_changed.connect(self._apply_layout)
        self.session.frame_ready.connect(self.canvas.set_frame)
        self.session.tokens_changed.connect(self._on_tokens_changed)
        self.session.comment_requested.connect(self.comment_requested)
        self.session.discard_requested.connect(self.discard_requested)
        self.canvas.comment_clicked.connect(self.comment_clicked)

    def _setup_input(self) -> None:
        self.router.add_space_observer(self.session.set_space_held)
        self._unregister_shortcuts = register_navigation_shortcuts(
            self.router,
            NavigationActions(
                next_hunk=self.session.next_hunk,
                previous_hunk=self.session.previous_hunk,
                comment_on_hunk=self.session.comment_on_current_hunk,
                scroll_lines=self.session.scroll_lines,
                scroll_step=self.session.scroll_step,
                change_size=self.size_change_requested.emit,
            )
        )

        self.key_filter = KeyEventFilter(self.router, self)
        for widget in (self, self.before_pane, self.after_pane, self.canvas):
            widget.installEventFilter(self.key_filter)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    # =========================================================================
    # Public API
    # =========================================================================

    def set_file_diff(self, diff: Optional[FileDiff]) -> bool:
        return self.session.set_file_diff(diff)

    def set_comments(self, comments: list[Comment]) -> None:
        self.session.set_comments(comments)

    def apply_settings(self, settings: ApplicationSettings) -> None:
        """
        Apply changed settings (settings manager observer).

        Panes take the new font first so the next redraw measures the new
        line height.
        """
        self._settings = settings
        for pane in (self.before_pane, self.after_pane):
            pane.apply_display(settings.display)
        self.session.apply_settings(settings)

    # =========================================================================
    # Session callbacks
    # =========================================================================

    def _metrics(self) -> Optional[ViewportMetrics]:
        """Measure the panes for the engine."""
        if not self.isVisible():
            return None

        pane = self.after_pane
        top_in_self = pane.viewport().mapTo(self, QPoint(0, 0)).y()
        canvas_top = self.canvas.mapTo(self, QPoint(0, 0)).y()
        offset = top_in_self - canvas_top + pane.document().documentMargin()

        return ViewportMetrics(
            line_height_px=pane.line_height,
            vertical_offset_px=float(offset),
            viewport_height_px=float(self.canvas.height()),
        )

    def _blur_focus(self) -> None:
        # Keep space from reaching the focused pane
        self.setFocus(Qt.FocusReason.OtherFocusReason)

    def _on_diff_changed(self, diff: Optional[FileDiff]) -> None:
        model = self.session.model
        for pane in (self.before_pane, self.after_pane):
            pane.set_content(text_lines(diff, pane.side), model)

        if diff is None:
            self.title_label.setText("")
        elif is_binary_diff(diff):
            self.title_label.setText(f"{display_path(diff)} (binary)")
        else:
            self.title_label.setText(display_path(diff))

    def _on_tokens_changed(self, side: Side) -> None:
        pane = self.before_pane if side is Side.BEFORE else self.after_pane
        pane.set_tokens(self.session.tokens(side))

    def _apply_layout(self, panel_layout: PanelLayout) -> None:
        """Set pane stretch factors from the computed layout."""
        self.panes_layout.setStretch(0, panel_layout.before.share)
        self.panes_layout.setStretch(2, panel_layout.after.share)

        for pane, pane_layout in (
            (self.before_pane, panel_layout.before),
            (self.after_pane, panel_layout.after),
        ):
            pane.setProperty('paneClasses', ' '.join(pane_layout.classes))
            pane.setEnabled(pane_layout.mode is not PaneMode.COLLAPSED)

        self.session.schedule_redraw()

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        self.session.schedule_redraw()

    def closeEvent(self, event) -> None:
        self._unregister_shortcuts()
        self.session.detach_panes()
        super().closeEvent(event)
