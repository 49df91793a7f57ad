"""
DialogServices - Qt-backed implementations of the engine's collaborators.

Also provides in-memory mocks that record every call, for testing.
"""

import base64
import binascii
import csv
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from PyQt5.QtCore import QUrl
from PyQt5.QtGui import QDesktopServices, QIcon, QPixmap
from PyQt5.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QDialog,
    QFileDialog,
    QHeaderView,
    QStyle,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..models.rows import cell_text, columns_for
from .interfaces import (
    FileDialogKind,
    IClipboardService,
    ICsvWriter,
    IFileDialogService,
    IIconProvider,
    IImageDecoder,
    IOpener,
    ITableViewer,
)

logger = logging.getLogger(__name__)


class QtFileDialogService:
    """OS file dialogs through QFileDialog."""

    def __init__(self, parent: Optional[QWidget] = None, file_filter: str = "All Files (*.*)"):
        self._parent = parent
        self._filter = file_filter

    def show(self, kind: FileDialogKind, initial_path: Optional[str] = None) -> Optional[str]:
        if kind == FileDialogKind.SAVE:
            path, _ = QFileDialog.getSaveFileName(
                self._parent, "Save As", initial_path or "", self._filter
            )
        else:
            path, _ = QFileDialog.getOpenFileName(
                self._parent, "Open", initial_path or "", self._filter
            )
        return path or None


class QtClipboardService:
    """System clipboard through QApplication.clipboard()."""

    def set_text(self, text: str) -> bool:
        clipboard = QApplication.clipboard()
        if clipboard is None:
            return False
        clipboard.setText(text)
        return clipboard.text() == text


class CsvFileWriter:
    """Writes row objects to CSV, one column per row field."""

    def __init__(self, encoding: str = "utf-8-sig"):
        self._encoding = encoding

    def write(self, rows: Sequence[Any], path: str) -> bool:
        columns = columns_for(rows)
        with open(path, "w", newline="", encoding=self._encoding) as f:
            writer = csv.writer(f)
            writer.writerow(columns)
            for row in rows:
                writer.writerow([cell_text(row, column) for column in columns])
        logger.debug(f"Wrote {len(rows)} row(s) to {path}")
        return True


class TableViewerWindow(QDialog):
    """Independent, non-modal window listing rows in a table."""

    def __init__(self, rows: Sequence[Any], parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle(f"{len(rows)} Results")
        self.setModal(False)
        self.resize(640, 400)

        columns = columns_for(rows)
        layout = QVBoxLayout(self)

        self.table = QTableWidget(len(rows), len(columns))
        self.table.setHorizontalHeaderLabels(columns)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Interactive)
        for r, row in enumerate(rows):
            for c, column in enumerate(columns):
                self.table.setItem(r, c, QTableWidgetItem(cell_text(row, column)))
        self.table.resizeColumnsToContents()
        self.table.setSortingEnabled(True)

        layout.addWidget(self.table)


class QtTableViewer:
    """Opens rows in TableViewerWindow instances that outlive the caller."""

    def __init__(self):
        self._windows: list[TableViewerWindow] = []

    def open(self, rows: Sequence[Any]) -> None:
        window = TableViewerWindow(list(rows))
        # Keep a reference until the window is closed
        self._windows.append(window)
        window.finished.connect(lambda _code, w=window: self._forget(w))
        window.show()

    def _forget(self, window: TableViewerWindow):
        if window in self._windows:
            self._windows.remove(window)


class QtOpener:
    """System default application through QDesktopServices."""

    def open(self, target: str) -> bool:
        if "://" in target or target.startswith("mailto:"):
            url = QUrl(target)
        else:
            url = QUrl.fromLocalFile(os.path.abspath(target))
        return QDesktopServices.openUrl(url)


class QtIconProvider:
    """Standard style icons keyed by IconKind value."""

    _STANDARD_PIXMAPS = {
        "information": QStyle.SP_MessageBoxInformation,
        "warning": QStyle.SP_MessageBoxWarning,
        "error": QStyle.SP_MessageBoxCritical,
        "question": QStyle.SP_MessageBoxQuestion,
    }

    def icon(self, kind: Any) -> QIcon:
        key = getattr(kind, "value", kind)
        pixmap = self._STANDARD_PIXMAPS.get(str(key).lower())
        style = QApplication.style()
        if pixmap is None or style is None:
            return QIcon()
        return style.standardIcon(pixmap)


class QtImageDecoder:
    """Decodes an image file path or inline base-64 payload into a QPixmap."""

    def decode(self, source: str) -> Optional[QPixmap]:
        pixmap = QPixmap()
        if os.path.isfile(source):
            pixmap.load(source)
        else:
            payload = source.split(",", 1)[1] if source.startswith("data:") else source
            try:
                data = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError):
                return None
            pixmap.loadFromData(data)
        return None if pixmap.isNull() else pixmap


@dataclass
class DialogServices:
    """Bundle of collaborators used by one dialog."""
    file_dialog: IFileDialogService
    clipboard: IClipboardService
    csv_writer: ICsvWriter
    table_viewer: ITableViewer
    opener: IOpener
    icons: IIconProvider
    images: IImageDecoder

    @classmethod
    def default(cls) -> "DialogServices":
        """Qt-backed implementations."""
        return cls(
            file_dialog=QtFileDialogService(),
            clipboard=QtClipboardService(),
            csv_writer=CsvFileWriter(),
            table_viewer=_shared_viewer,
            opener=QtOpener(),
            icons=QtIconProvider(),
            images=QtImageDecoder(),
        )


# Viewer windows must survive the dialog that opened them
_shared_viewer = QtTableViewer()


# ============================================================================
# Mocks
# ============================================================================

class MockFileDialogService:
    """Returns queued paths; None once the queue is empty."""

    def __init__(self, responses: Optional[list[Optional[str]]] = None):
        self.responses = list(responses or [])
        self.calls: list[tuple[FileDialogKind, Optional[str]]] = []

    def show(self, kind: FileDialogKind, initial_path: Optional[str] = None) -> Optional[str]:
        self.calls.append((kind, initial_path))
        return self.responses.pop(0) if self.responses else None


class MockClipboardService:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.texts: list[str] = []

    def set_text(self, text: str) -> bool:
        self.texts.append(text)
        return self.succeed


class MockCsvWriter:
    def __init__(self, error: Optional[Exception] = None, succeed: bool = True):
        self.error = error
        self.succeed = succeed
        self.writes: list[tuple[list[Any], str]] = []

    def write(self, rows: Sequence[Any], path: str) -> bool:
        if self.error is not None:
            raise self.error
        self.writes.append((list(rows), path))
        return self.succeed


class MockTableViewer:
    def __init__(self):
        self.opened: list[list[Any]] = []

    def open(self, rows: Sequence[Any]) -> None:
        self.opened.append(list(rows))


class MockOpener:
    def __init__(self):
        self.opened: list[str] = []

    def open(self, target: str) -> bool:
        self.opened.append(target)
        return True


class MockIconProvider:
    def icon(self, kind: Any) -> QIcon:
        return QIcon()


class MockImageDecoder:
    """Decodes nothing unless a pixmap is supplied."""

    def __init__(self, pixmap: Optional[QPixmap] = None):
        self.pixmap = pixmap
        self.sources: list[str] = []

    def decode(self, source: str) -> Optional[QPixmap]:
        self.sources.append(source)
        return self.pixmap


@dataclass
class MockDialogServices(DialogServices):
    """DialogServices wired entirely to mocks."""
    file_dialog: MockFileDialogService = field(default_factory=MockFileDialogService)
    clipboard: MockClipboardService = field(default_factory=MockClipboardService)
    csv_writer: MockCsvWriter = field(default_factory=MockCsvWriter)
    table_viewer: MockTableViewer = field(default_factory=MockTableViewer)
    opener: MockOpener = field(default_factory=MockOpener)
    icons: MockIconProvider = field(default_factory=MockIconProvider)
    images: MockImageDecoder = field(default_factory=MockImageDecoder)
