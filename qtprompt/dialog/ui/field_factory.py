"""
Field Factory

Creates Qt widgets from prompt definitions.
Every widget's change notification writes straight into the dialog's
Result Map under the prompt's name.
"""

import html
from collections.abc import MutableMapping
from typing import Any, Optional

from PyQt5.QtCore import QDate, QObject, Qt, QTimer, pyqtSignal
from PyQt5.QtGui import QFont
from PyQt5.QtWidgets import (
    QButtonGroup,
    QCheckBox,
    QComboBox,
    QDateEdit,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QRadioButton,
    QVBoxLayout,
    QWidget,
)

from ...services.dialog_services import DialogServices
from ...services.interfaces import FileDialogKind
from ..logging import logger
from ..schema import (
    Alignment,
    InputType,
    MessagePosition,
    Prompt,
    SecureText,
    SetPresentation,
)
from ..validation import check_prompt

_QT_ALIGNMENT = {
    Alignment.LEFT: Qt.AlignLeft | Qt.AlignVCenter,
    Alignment.CENTER: Qt.AlignHCenter | Qt.AlignVCenter,
    Alignment.RIGHT: Qt.AlignRight | Qt.AlignVCenter,
}


class SelectAllLineEdit(QLineEdit):
    """QLineEdit that selects its whole text when focused."""

    def focusInEvent(self, event):
        super().focusInEvent(event)
        # Deferred so the mouse press doesn't clear the selection again
        QTimer.singleShot(0, self.selectAll)


class SelectAllTextEdit(QPlainTextEdit):
    """Multi-line counterpart of SelectAllLineEdit."""

    def focusInEvent(self, event):
        super().focusInEvent(event)
        QTimer.singleShot(0, self.selectAll)


class RadioScopes(QObject):
    """
    Owns one exclusive QButtonGroup per radio scope name.

    Prompts sharing a radio_group share a scope; every other radio prompt
    gets a scope of its own.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._groups: dict[str, QButtonGroup] = {}

    def group(self, scope: str) -> QButtonGroup:
        if scope not in self._groups:
            group = QButtonGroup(self)
            group.setExclusive(True)
            self._groups[scope] = group
        return self._groups[scope]

    @staticmethod
    def scope_for(prompt: Prompt) -> str:
        return prompt.radio_group or f"prompt:{prompt.name}"


class FieldWidget(QWidget):
    """
    Wrapper for one prompt: label, input widget and optional picker button.

    Emits valueChanged after the Result Map entry was updated and
    errorOccurred(title, message) when a collaborator call fails.
    """

    valueChanged = pyqtSignal(str, object)  # prompt name, new value
    errorOccurred = pyqtSignal(str, str)  # title, message

    # One builder per input type; checked against InputType below
    _INPUT_BUILDERS = {
        InputType.PLAIN_TEXT: "_create_text_input",
        InputType.CHECKBOX: "_create_checkbox",
        InputType.PASSWORD: "_create_password_input",
        InputType.DATE: "_create_date_input",
        InputType.LINK: "_create_link",
        InputType.FILE_OPEN: "_create_file_picker",
        InputType.FILE_SAVE: "_create_file_picker",
    }

    def __init__(
        self,
        prompt: Prompt,
        result: MutableMapping,
        services: DialogServices,
        radio_scopes: Optional[RadioScopes] = None,
        show_label: bool = True,
        message_position: Optional[MessagePosition] = None,
        parent: Optional[QWidget] = None,
    ):
        super().__init__(parent)
        self.prompt = prompt
        self._result = result
        self._services = services
        self._radio_scopes = radio_scopes or RadioScopes(self)
        self._show_label = show_label
        self._message_position = message_position or prompt.message_position
        self._input_widget: Optional[QWidget] = None
        self._focus_widget: Optional[QWidget] = None
        self._radio_buttons: list[QRadioButton] = []

        self._result.setdefault(prompt.name, prompt.initial_value())
        self._setup_ui()

    def _setup_ui(self):
        """Set up the field UI with label, input and optional separator."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 4)
        layout.setSpacing(4)

        self._input_widget = self._create_input_widget()
        if self._focus_widget is None:
            self._focus_widget = self._input_widget

        if self.prompt.tooltip:
            self._input_widget.setToolTip(self.prompt.tooltip)
        if self.prompt.read_only:
            self._apply_read_only()

        label = self._create_label()
        if label is not None and self._message_position == MessagePosition.LEFT:
            row = QHBoxLayout()
            row.setContentsMargins(0, 0, 0, 0)
            row.addWidget(label)
            row.addWidget(self._input_widget, 1)
            layout.addLayout(row)
        else:
            if label is not None:
                layout.addWidget(label)
            layout.addWidget(self._input_widget)

        if self.prompt.show_separator:
            separator = QFrame()
            separator.setFrameShape(QFrame.HLine)
            separator.setFrameShadow(QFrame.Sunken)
            layout.addWidget(separator)

        self.setLayout(layout)

    def _create_label(self) -> Optional[QLabel]:
        """Message label, unless the input shows the message itself."""
        if not self._show_label or not self.prompt.message:
            return None
        if not self.prompt.is_choice and self.prompt.input_type in (InputType.CHECKBOX, InputType.LINK):
            return None
        label = QLabel(self.prompt.message)
        label.setWordWrap(self._message_position == MessagePosition.TOP)
        label.setBuddy(self._focus_widget)
        self._apply_font(label)
        if self.prompt.alignment and self._message_position == MessagePosition.TOP:
            label.setAlignment(_QT_ALIGNMENT[self.prompt.alignment])
        return label

    def _create_input_widget(self) -> QWidget:
        """Create the input widget for the prompt's variant."""
        if self.prompt.is_choice:
            if self.prompt.show_set_as == SetPresentation.RADIO:
                return self._create_radio_set()
            return self._create_combo()

        builder = getattr(self, self._INPUT_BUILDERS[self.prompt.input_type])
        return builder()

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _create_text_input(self) -> QWidget:
        """Single or multi-line text input; height follows line_height."""
        text = self._current_text()
        lines = max(self.prompt.line_height, len(text.splitlines()) or 1)

        if lines > 1:
            widget = SelectAllTextEdit()
            widget.setPlainText(text)
            metrics = widget.fontMetrics()
            widget.setFixedHeight(lines * metrics.lineSpacing() + 2 * widget.frameWidth() + 8)
            widget.textChanged.connect(lambda: self._write(widget.toPlainText()))
            self._apply_font(widget)
            return widget

        widget = SelectAllLineEdit()
        widget.setText(text)
        if self.prompt.alignment:
            widget.setAlignment(_QT_ALIGNMENT[self.prompt.alignment])
        widget.textChanged.connect(self._write)
        self._apply_font(widget)
        return widget

    def _create_password_input(self) -> QLineEdit:
        """Masked input; the Result Map only ever holds a SecureText."""
        widget = QLineEdit()
        widget.setEchoMode(QLineEdit.Password)
        current = self._result.get(self.prompt.name)
        if isinstance(current, SecureText):
            widget.setText(current.reveal())
        widget.textChanged.connect(lambda text: self._write(SecureText(text)))
        self._apply_font(widget)
        return widget

    def _create_checkbox(self) -> QCheckBox:
        """Checkbox labelled with the prompt message."""
        widget = QCheckBox(self.prompt.message)
        widget.setChecked(bool(self._result.get(self.prompt.name)))
        widget.stateChanged.connect(lambda state: self._write(state == Qt.Checked))
        self._apply_font(widget)
        return widget

    def _create_date_input(self) -> QDateEdit:
        """Date selector; today when there is no usable default."""
        widget = QDateEdit()
        widget.setCalendarPopup(True)
        widget.setDisplayFormat("yyyy-MM-dd")

        date = QDate()
        if self.prompt.default_value:
            date = QDate.fromString(str(self.prompt.default_value), Qt.ISODate)
        if not date.isValid():
            date = QDate.currentDate()
        widget.setDate(date)
        self._sync_initial(date.toString(Qt.ISODate))

        widget.dateChanged.connect(lambda d: self._write(d.toString(Qt.ISODate)))
        self._apply_font(widget)
        return widget

    def _create_link(self) -> QLabel:
        """Clickable text that opens a URL or path."""
        widget = QLabel(f'<a href="#">{html.escape(self.prompt.message or self._link_target())}</a>')
        widget.setTextFormat(Qt.RichText)
        widget.setTextInteractionFlags(Qt.TextBrowserInteraction)
        widget.setOpenExternalLinks(False)
        widget.linkActivated.connect(self._on_link_activated)
        if self.prompt.alignment:
            widget.setAlignment(_QT_ALIGNMENT[self.prompt.alignment])
        self._apply_font(widget)
        return widget

    def _create_file_picker(self) -> QWidget:
        """Text input with a '...' button opening the file dialog."""
        container = QWidget()
        layout = QHBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)

        line_edit = SelectAllLineEdit()
        line_edit.setText(self._current_text())
        line_edit.textChanged.connect(self._write)
        self._apply_font(line_edit)

        kind = FileDialogKind.SAVE if self.prompt.input_type == InputType.FILE_SAVE else FileDialogKind.OPEN
        browse_btn = QPushButton("...")
        browse_btn.setFixedWidth(32)
        browse_btn.clicked.connect(lambda: self._browse_file(line_edit, kind))

        layout.addWidget(line_edit, 1)
        layout.addWidget(browse_btn)

        container._line_edit = line_edit
        container._browse_btn = browse_btn
        self._focus_widget = line_edit
        return container

    def _create_combo(self) -> QComboBox:
        """Dropdown for a fixed choice set."""
        widget = QComboBox()
        widget.addItems(self.prompt.validate_set)

        index = widget.findText(str(self.prompt.default_value)) if self.prompt.default_value is not None else -1
        widget.setCurrentIndex(index)
        self._sync_initial(widget.currentText() if index >= 0 else None)

        widget.currentIndexChanged.connect(
            lambda i: self._write(widget.itemText(i) if i >= 0 else None)
        )
        self._apply_font(widget)
        return widget

    def _create_radio_set(self) -> QWidget:
        """One radio button per option, in the prompt's exclusivity scope."""
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)

        group = self._radio_scopes.group(RadioScopes.scope_for(self.prompt))
        default = self.prompt.default_value
        selected = None

        for option in self.prompt.validate_set:
            button = QRadioButton(option)
            self._apply_font(button)
            group.addButton(button)
            if default is not None and option == str(default) and selected is None:
                button.setChecked(True)
                selected = option
            button.toggled.connect(lambda checked, label=option: self._on_radio_toggled(label, checked))
            layout.addWidget(button)
            self._radio_buttons.append(button)

        self._sync_initial(selected)
        if self._radio_buttons:
            self._focus_widget = self._radio_buttons[0]
        return container

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_radio_toggled(self, label: str, checked: bool):
        if checked:
            self._write(label)
        elif self._result.get(self.prompt.name) == label:
            # Unchecked by a selection elsewhere in a shared scope
            self._write(None)

    def _on_link_activated(self, _href: str):
        self._write(True)
        target = self._link_target()
        try:
            self._services.opener.open(target)
        except Exception as e:
            logger.error(f"Failed to open link {target}: {e}", exc_info=True)
            self.errorOccurred.emit("Error", f"Could not open {target}:\n{e}")

    def _browse_file(self, line_edit: QLineEdit, kind: FileDialogKind):
        """Ask the file dialog for a path and put it in the text field."""
        try:
            path = self._services.file_dialog.show(kind, line_edit.text() or None)
        except Exception as e:
            logger.error(f"File dialog failed: {e}", exc_info=True)
            self.errorOccurred.emit("Error", f"Could not show the file dialog:\n{e}")
            return
        if path:
            line_edit.setText(path)

    def _write(self, value: Any):
        """Store the value in the Result Map and notify listeners."""
        if getattr(self._result, "is_frozen", False):
            return
        self._result[self.prompt.name] = value
        self.valueChanged.emit(self.prompt.name, value)

    def _sync_initial(self, value: Any):
        """Align the Result Map with what the widget actually shows."""
        if not getattr(self._result, "is_frozen", False):
            self._result[self.prompt.name] = value

    # ------------------------------------------------------------------
    # Styling helpers
    # ------------------------------------------------------------------

    def _link_target(self) -> str:
        if self.prompt.default_value:
            return str(self.prompt.default_value)
        return self.prompt.message

    def _current_text(self) -> str:
        value = self._result.get(self.prompt.name)
        return "" if value is None else str(value)

    def _apply_font(self, widget: QWidget):
        """Apply the prompt's (already inherited) font attributes."""
        spec = self.prompt.font
        if spec.family or spec.size:
            font = QFont(widget.font())
            if spec.family:
                font.setFamily(spec.family)
            if spec.size:
                font.setPointSize(int(spec.size))
            widget.setFont(font)
        if spec.color:
            widget.setStyleSheet(f"color: {spec.color};")

    def _apply_read_only(self):
        """Visible but not editable."""
        widget = self._input_widget
        if isinstance(widget, (QLineEdit, QPlainTextEdit)):
            widget.setReadOnly(True)
        elif hasattr(widget, "_line_edit"):
            widget._line_edit.setReadOnly(True)
        widget.setEnabled(False)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def getValue(self) -> Any:
        """Get the prompt's current Result Map value."""
        return self._result.get(self.prompt.name)

    def getFieldId(self) -> str:
        """Get the prompt name."""
        return self.prompt.name

    def inputWidget(self) -> QWidget:
        """The interactive widget (container for radio sets and file pickers)."""
        return self._input_widget

    def focusTarget(self) -> QWidget:
        """The widget that receives keyboard focus for this prompt."""
        return self._focus_widget

    def radioButtons(self) -> list[QRadioButton]:
        return list(self._radio_buttons)

    def focusInput(self):
        """Move keyboard focus to the prompt's input."""
        target = self._focus_widget
        if self._radio_buttons:
            target = next((b for b in self._radio_buttons if b.isChecked()), self._radio_buttons[0])
        target.setFocus(Qt.OtherFocusReason)

    def isEmpty(self) -> bool:
        """True when the prompt holds no value yet."""
        value = self.getValue()
        if isinstance(value, bool):
            return False
        if isinstance(value, SecureText):
            return not value
        return value is None or value == ""

    def validate(self) -> tuple[bool, str]:
        """Check the prompt's constraints against its current value."""
        return check_prompt(self.prompt, self.getValue())

    def isValid(self) -> bool:
        is_valid, _ = self.validate()
        return is_valid


_missing_builders = set(InputType) - set(FieldWidget._INPUT_BUILDERS)
if _missing_builders:
    raise RuntimeError(f"No widget builder for input types: {sorted(t.value for t in _missing_builders)}")


class FieldFactory:
    """
    Factory for creating field widgets from prompt definitions.
    """

    @staticmethod
    def create(
        prompt: Prompt,
        result: MutableMapping,
        services: DialogServices,
        radio_scopes: Optional[RadioScopes] = None,
        show_label: bool = True,
        message_position: Optional[MessagePosition] = None,
        parent: Optional[QWidget] = None,
    ) -> FieldWidget:
        """
        Create a FieldWidget bound to the Result Map.

        Args:
            prompt: Normalized prompt definition
            result: The dialog's Result Map
            services: Collaborators (file dialog, opener)
            radio_scopes: Shared radio scopes of the dialog
            show_label: False when a surrounding container shows the message
            message_position: Effective message position from the layout
            parent: Parent widget

        Returns:
            Configured FieldWidget instance
        """
        return FieldWidget(
            prompt,
            result,
            services,
            radio_scopes=radio_scopes,
            show_label=show_label,
            message_position=message_position,
            parent=parent,
        )

    @staticmethod
    def create_all(
        prompts: list[Prompt],
        result: MutableMapping,
        services: DialogServices,
        parent: Optional[QWidget] = None,
    ) -> list[FieldWidget]:
        """
        Create FieldWidgets for several prompts sharing one set of radio scopes.
        """
        scopes = RadioScopes(parent)
        return [
            FieldFactory.create(p, result, services, radio_scopes=scopes, parent=parent)
            for p in prompts
        ]
