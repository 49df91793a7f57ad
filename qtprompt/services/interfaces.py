"""
Service interfaces (Protocols) for the dialog engine's external collaborators.

These protocols define the narrow contracts the engine calls through,
enabling easy mocking in tests and loose coupling from the OS and toolkit.
"""

from enum import Enum
from typing import Any, Optional, Protocol, Sequence


class FileDialogKind(str, Enum):
    """Which OS file dialog to show."""
    OPEN = "open"
    SAVE = "save"


class IFileDialogService(Protocol):
    """Interface for OS file-open/file-save dialogs."""

    def show(self, kind: FileDialogKind, initial_path: Optional[str] = None) -> Optional[str]:
        """
        Show a modal file dialog.

        Args:
            kind: Open or save dialog
            initial_path: Path the dialog starts at

        Returns:
            Chosen path, or None if the user cancelled
        """
        ...


class IClipboardService(Protocol):
    """Interface for clipboard access."""

    def set_text(self, text: str) -> bool:
        """Place text on the clipboard. Returns True on success."""
        ...


class ICsvWriter(Protocol):
    """Interface for CSV export."""

    def write(self, rows: Sequence[Any], path: str) -> bool:
        """
        Write rows to a CSV file.

        Raises:
            OSError: If the file cannot be written
        """
        ...


class ITableViewer(Protocol):
    """Interface for the secondary, independent table viewer."""

    def open(self, rows: Sequence[Any]) -> None:
        """Show rows in a new window. Fire-and-forget."""
        ...


class IOpener(Protocol):
    """Interface for the system default opener."""

    def open(self, target: str) -> bool:
        """Open a file path or URL with the default application."""
        ...


class IIconProvider(Protocol):
    """Interface for icon lookup by name."""

    def icon(self, kind: Any) -> Any:
        """Return a QIcon for an IconKind."""
        ...


class IImageDecoder(Protocol):
    """Interface for image decoding."""

    def decode(self, source: str) -> Optional[Any]:
        """
        Decode a file path or inline base-64 payload.

        Returns:
            QPixmap, or None if the source cannot be decoded
        """
        ...
