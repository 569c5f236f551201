"""Application icon helpers."""
from __future__ import annotations


def create_icon(size: int = 64):  # pragma: no cover - requires PyQt at runtime
    """Create a :class:`~PyQt5.QtGui.QIcon` showing three QR finder patterns."""

    from PyQt5.QtCore import Qt
    from PyQt5.QtGui import QColor, QIcon, QPainter, QPixmap

    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.white)

    painter = QPainter(pixmap)
    dark = QColor("#1F2430")
    module = max(1, size // 16)
    finder = module * 7
    for x, y in ((module, module), (size - finder - module, module), (module, size - finder - module)):
        painter.fillRect(x, y, finder, finder, dark)
        painter.fillRect(x + module, y + module, finder - 2 * module, finder - 2 * module, Qt.white)
        painter.fillRect(x + 2 * module, y + 2 * module, finder - 4 * module, finder - 4 * module, dark)
    painter.fillRect(size - finder, size - finder, module * 3, module * 3, QColor("#2F6FEB"))
    painter.end()

    return QIcon(pixmap)


__all__ = ["create_icon"]
