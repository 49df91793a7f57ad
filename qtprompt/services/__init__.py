"""
Services - Collaborators the dialog engine talks to.

Each collaborator has a Protocol in interfaces.py, a Qt-backed
implementation and a recording mock for tests.
"""

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
from .config_service import ConfigService, MockConfigService, CONFIG_ENV_VAR
from .dialog_services import (
    DialogServices,
    QtFileDialogService,
    QtClipboardService,
    CsvFileWriter,
    QtTableViewer,
    QtOpener,
    QtIconProvider,
    QtImageDecoder,
    TableViewerWindow,
    MockDialogServices,
    MockFileDialogService,
    MockClipboardService,
    MockCsvWriter,
    MockTableViewer,
    MockOpener,
    MockIconProvider,
    MockImageDecoder,
)

__all__ = [
    # Interfaces
    "FileDialogKind",
    "IFileDialogService",
    "IClipboardService",
    "ICsvWriter",
    "ITableViewer",
    "IOpener",
    "IIconProvider",
    "IImageDecoder",
    # Services
    "ConfigService",
    "CONFIG_ENV_VAR",
    "DialogServices",
    "QtFileDialogService",
    "QtClipboardService",
    "CsvFileWriter",
    "QtTableViewer",
    "QtOpener",
    "QtIconProvider",
    "QtImageDecoder",
    "TableViewerWindow",
    # Mocks for testing
    "MockConfigService",
    "MockDialogServices",
    "MockFileDialogService",
    "MockClipboardService",
    "MockCsvWriter",
    "MockTableViewer",
    "MockOpener",
    "MockIconProvider",
    "MockImageDecoder",
]
