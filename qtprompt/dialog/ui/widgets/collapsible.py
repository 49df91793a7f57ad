"""
Collapsible Section Widget

A header button with an arrow that shows or hides a content widget.
Used for collapsible prompts and collapsible groups.
"""

from typing import Optional

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QFrame,
    QToolButton,
    QVBoxLayout,
    QWidget,
)


class CollapsibleSection(QWidget):
    """
    Expander with a clickable title.

    Emits toggled(expanded) whenever the content is shown or hidden.
    """

    toggled = pyqtSignal(bool)

    def __init__(
        self,
        title: str,
        content: QWidget,
        collapsed: bool = False,
        bordered: bool = False,
        parent: Optional[QWidget] = None,
    ):
        super().__init__(parent)
        self._content = content

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)

        self._header = QToolButton()
        self._header.setText(title)
        self._header.setCheckable(True)
        self._header.setChecked(not collapsed)
        self._header.setToolButtonStyle(Qt.ToolButtonTextBesideIcon)
        self._header.setStyleSheet("QToolButton { border: none; font-weight: bold; }")
        self._header.toggled.connect(self._on_header_toggled)
        layout.addWidget(self._header)

        if bordered:
            frame = QFrame()
            frame.setFrameShape(QFrame.StyledPanel)
            frame_layout = QVBoxLayout(frame)
            frame_layout.setContentsMargins(6, 6, 6, 6)
            frame_layout.addWidget(content)
            self._body: QWidget = frame
        else:
            self._body = content
        layout.addWidget(self._body)

        self._apply(not collapsed)

    def _on_header_toggled(self, expanded: bool):
        self._apply(expanded)
        self.toggled.emit(expanded)

    def _apply(self, expanded: bool):
        self._header.setArrowType(Qt.DownArrow if expanded else Qt.RightArrow)
        self._body.setVisible(expanded)

    def isExpanded(self) -> bool:
        return self._header.isChecked()

    def setExpanded(self, expanded: bool):
        self._header.setChecked(expanded)

    def content(self) -> QWidget:
        return self._content
