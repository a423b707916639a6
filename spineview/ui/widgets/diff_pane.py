"""
Code pane for one side of the diff.

A read-only text editor that:
- Exposes its scroll position in pixels for the scroll sync engine
- Paints changed regions and hunk separators from the alignment model
- Applies syntax tokens as character formats
- Reports hover over lines and over the pane itself
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from PyQt6.QtCore import Qt, QEvent, pyqtSignal
from PyQt6.QtGui import (
    QColor, QFont, QPainter, QPen, QTextCharFormat, QTextCursor,
    QPaintEvent, QMouseEvent, QEnterEvent
)
from PyQt6.QtWidgets import QPlainTextEdit, QWidget

from spineview.core.alignment import AlignmentModel
from spineview.core.models import Side
from spineview.services.settings import DisplaySettings
from spineview.services.tokens import TokenLines


@dataclass
class PaneColors:
    """Color scheme for one pane."""
    added_bg: QColor = field(default_factory=lambda: QColor(230, 255, 236))    # #e6ffec
    removed_bg: QColor = field(default_factory=lambda: QColor(255, 235, 233))  # #ffebe9
    separator: QColor = field(default_factory=lambda: QColor(200, 200, 200))

    @classmethod
    def from_settings(cls, display: DisplaySettings) -> 'PaneColors':
        return cls(
            added_bg=QColor(display.added_background),
            removed_bg=QColor(display.removed_background),
            separator=QColor(display.separator_color),
        )


class DiffPane(QPlainTextEdit):
    """
    Read-only code view implementing the pane handle of the sync engine.

    The vertical scroll bar of a plain text edit counts lines, so pixel
    positions are whole multiples of the line height.
    """

    # Signals
    scrolled = pyqtSignal(float)         # scroll top in px
    hover_changed = pyqtSignal(bool)     # pointer entered/left the pane
    line_hovered = pyqtSignal(object)    # line number or None

    def __init__(
        self,
        side: Side,
        parent: Optional[QWidget] = None,
        display: Optional[DisplaySettings] = None
    ):
        super().__init__(parent)
        self.side = side
        display = display or DisplaySettings()
        self.colors = PaneColors.from_settings(display)

        self._model = AlignmentModel()
        self._line_backgrounds: dict[int, QColor] = {}
        self._hovered_line: Optional[int] = None

        self._setup_editor(display)
        self.verticalScrollBar().valueChanged.connect(self._on_scroll)

    def _setup_editor(self, display: DisplaySettings) -> None:
        """Configure editor settings."""
        self.setReadOnly(True)
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse |
            Qt.TextInteractionFlag.TextSelectableByKeyboard
        )
        self.setMouseTracking(True)
        self.viewport().setMouseTracking(True)
        self.set_display_size(display.font_family, display.size)

    def set_display_size(self, family: str, size: int) -> None:
        font = QFont(family)
        font.setPixelSize(size)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self.setFont(font)
        self.setTabStopDistance(self.fontMetrics().horizontalAdvance(' ') * 4)

    def apply_display(self, display: DisplaySettings) -> None:
        """Take over font and change colors from changed settings."""
        self.colors = PaneColors.from_settings(display)
        self.set_display_size(display.font_family, display.size)
        self._update_backgrounds()
        self.viewport().update()

    # =========================================================================
    # Pane handle
    # =========================================================================

    @property
    def line_height(self) -> float:
        return float(self.fontMetrics().lineSpacing())

    @property
    def scroll_top(self) -> float:
        return self.verticalScrollBar().value() * self.line_height

    @property
    def viewport_height(self) -> float:
        return float(self.viewport().height())

    def set_scroll_top(self, value: float) -> None:
        line_height = self.line_height
        if line_height <= 0:
            return
        self.verticalScrollBar().setValue(round(value / line_height))

    def _on_scroll(self, value: int) -> None:
        self.scrolled.emit(value * self.line_height)

    # =========================================================================
    # Content
    # =========================================================================

    def set_content(self, lines: tuple[str, ...], model: AlignmentModel) -> None:
        """
        Show one side of a diff.

        Args:
            lines: Text lines of this side
            model: Alignments of the diff, for change backgrounds
        """
        self._model = model
        self._update_backgrounds()
        self.setPlainText('\n'.join(lines))
        self.viewport().update()

    def _update_backgrounds(self) -> None:
        self._line_backgrounds.clear()
        color = self.colors.removed_bg if self.side is Side.BEFORE else self.colors.added_bg
        for alignment, _ in self._model.changed_subset():
            span = alignment.span(self.side)
            for line in range(span.start, span.end):
                self._line_backgrounds[line] = color

    def set_tokens(self, tokens: TokenLines) -> None:
        """Apply token colors as character formats."""
        edit = QTextCursor(self.document())
        edit.beginEditBlock()
        edit.select(QTextCursor.SelectionType.Document)
        edit.setCharFormat(QTextCharFormat())

        for block_number, line_tokens in enumerate(tokens):
            block = self.document().findBlockByNumber(block_number)
            if not block.isValid():
                break

            offset = 0
            for token in line_tokens:
                if token.color is not None:
                    cursor = QTextCursor(block)
                    cursor.setPosition(block.position() + offset)
                    cursor.setPosition(
                        block.position() + offset + len(token.text),
                        QTextCursor.MoveMode.KeepAnchor
                    )
                    fmt = QTextCharFormat()
                    fmt.setForeground(QColor(token.color))
                    cursor.mergeCharFormat(fmt)
                offset += len(token.text)

        edit.endEditBlock()

    # =========================================================================
    # Painting
    # =========================================================================

    def paintEvent(self, event: QPaintEvent) -> None:
        """Custom paint for change backgrounds and hunk separators."""
        painter = QPainter(self.viewport())
        width = self.viewport().width()

        block = self.firstVisibleBlock()
        block_number = block.blockNumber()
        top = int(self.blockBoundingGeometry(block).translated(
            self.contentOffset()).top())
        bottom = top + int(self.blockBoundingRect(block).height())

        painter.setPen(QPen(self.colors.separator, 1))
        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                if block_number in self._line_backgrounds:
                    painter.fillRect(
                        0, top, width, bottom - top,
                        self._line_backgrounds[block_number]
                    )

                boundary = self._model.line_boundary(self.side, block_number)
                if boundary.is_start:
                    painter.drawLine(0, top, width, top)
                if boundary.is_end:
                    painter.drawLine(0, bottom - 1, width, bottom - 1)

            block = block.next()
            top = bottom
            bottom = top + int(self.blockBoundingRect(block).height())
            block_number += 1

        painter.end()

        # Standard paint
        super().paintEvent(event)

    # =========================================================================
    # Hover
    # =========================================================================

    def line_at(self, y: float) -> Optional[int]:
        """Line number at a viewport y position."""
        block = self.firstVisibleBlock()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()

        while block.isValid():
            bottom = top + self.blockBoundingRect(block).height()
            if top <= y < bottom:
                return block.blockNumber()
            block = block.next()
            top = bottom
        return None

    def _set_hovered_line(self, line: Optional[int]) -> None:
        if line != self._hovered_line:
            self._hovered_line = line
            self.line_hovered.emit(line)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        super().mouseMoveEvent(event)
        self._set_hovered_line(self.line_at(event.position().y()))

    def enterEvent(self, event: QEnterEvent) -> None:
        super().enterEvent(event)
        self.hover_changed.emit(True)

    def leaveEvent(self, event: QEvent) -> None:
        super().leaveEvent(event)
        self._set_hovered_line(None)
        self.hover_changed.emit(False)
