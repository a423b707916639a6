from typing import Optional

from PyQt6.QtWidgets import QWidget
from PyQt6.QtCore import pyqtSignal, QPointF, QSize, Qt
from PyQt6.QtGui import QPainter, QPainterPath, QColor, QPen, QPaintEvent, QMouseEvent

from spineview.core.connectors import ConnectorFrame, ConnectorShape, PathOp, PathSegment
from spineview.services.settings import ConnectorSettings


def build_path(segments: list[PathSegment]) -> QPainterPath:
    """Turn connector path segments into a painter path."""
    path = QPainterPath()
    for segment in segments:
        points = [QPointF(x, y) for x, y in segment.points]
        if segment.op is PathOp.MOVE:
            path.moveTo(points[0])
        elif segment.op is PathOp.LINE:
            path.lineTo(points[0])
        elif segment.op is PathOp.CUBIC:
            path.cubicTo(points[0], points[1], points[2])
        else:
            path.closeSubpath()
    return path


class ConnectorCanvas(QWidget):
    """
    Strip between the two panes showing which regions correspond.
    """
    comment_clicked = pyqtSignal(str)

    def __init__(self, settings: Optional[ConnectorSettings] = None, parent=None):
        super().__init__(parent)
        settings = settings or ConnectorSettings()
        self._frame = ConnectorFrame()
        self._hovered_comment: Optional[str] = None

        self.fill_color = QColor(settings.fill_color)
        self.hover_color = QColor(settings.hover_color)
        self.stroke_color = QColor(settings.stroke_color)
        self.comment_color = QColor(settings.comment_color)

        self.setFixedWidth(int(settings.width))
        self.setMouseTracking(True)

    @property
    def frame(self) -> ConnectorFrame:
        return self._frame

    def set_frame(self, frame: ConnectorFrame):
        """Show a newly computed frame."""
        self._frame = frame
        self.update()

    def _paint_shape(self, painter: QPainter, shape: ConnectorShape):
        width = float(self.width())

        fill = self.hover_color if shape.hovered else self.fill_color
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(fill)
        painter.drawPath(build_path(shape.outline(width)))

        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setPen(QPen(self.stroke_color, 1))
        painter.drawPath(build_path(shape.stroke_segments(width)))

    def paintEvent(self, event: QPaintEvent):
        """Paint connectors and comment markers."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        if not self._frame.show_range_markers:
            # Placeholder: a single divider line
            painter.setPen(QColor(220, 220, 220))
            x = self.width() // 2
            painter.drawLine(x, 0, x, self.height())
            return

        for shape in self._frame.shapes:
            self._paint_shape(painter, shape)

        painter.setPen(Qt.PenStyle.NoPen)
        for marker in self._frame.markers:
            color = QColor(self.comment_color)
            if marker.comment_id != self._hovered_comment:
                color.setAlpha(160)
            painter.setBrush(color)
            painter.drawRoundedRect(
                int(marker.x), int(marker.top), int(marker.width), int(marker.height), 1, 1
            )

    def mouseMoveEvent(self, event: QMouseEvent):
        """Highlight the comment marker under the pointer."""
        hovered = self._frame.hit_test(event.position().x(), event.position().y())
        if hovered != self._hovered_comment:
            self._hovered_comment = hovered
            self.setCursor(
                Qt.CursorShape.PointingHandCursor if hovered else Qt.CursorShape.ArrowCursor
            )
            self.update()

    def mousePressEvent(self, event: QMouseEvent):
        """Handle mouse click."""
        if event.button() == Qt.MouseButton.LeftButton:
            comment_id = self._frame.hit_test(event.position().x(), event.position().y())
            if comment_id is not None:
                self.comment_clicked.emit(comment_id)

    def sizeHint(self):
        return QSize(self.width(), 0)
