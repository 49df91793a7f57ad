"""
Dialog Schema Definitions

Dataclass models describing a declarative dialog: prompts, buttons,
grid options, window chrome and styling.
These models are used for parsing, layout compilation, and type-safe access.
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence


class InputType(str, Enum):
    """Types of prompt input fields."""
    PLAIN_TEXT = "text"
    CHECKBOX = "checkbox"
    PASSWORD = "password"
    DATE = "date"
    LINK = "link"
    FILE_OPEN = "file_open"
    FILE_SAVE = "file_save"


class SetPresentation(str, Enum):
    """How a fixed choice set is rendered."""
    COMBO = "combo"
    RADIO = "radio"


class MessagePosition(str, Enum):
    """Where a prompt's message label sits relative to its input."""
    LEFT = "left"
    TOP = "top"


class Alignment(str, Enum):
    """Horizontal content alignment."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class SelectionMode(str, Enum):
    """Grid selection modes."""
    NONE = "none"
    SINGLE_CELL = "single_cell"
    SINGLE_ROW = "single_row"
    MULTI_ROW = "multi_row"


class IconKind(str, Enum):
    """Standard dialog icons."""
    NONE = "none"
    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"
    QUESTION = "question"


class WindowStyle(str, Enum):
    """Window frame styles."""
    NORMAL = "normal"
    TOOL = "tool"
    NONE = "none"


class ResizeMode(str, Enum):
    """Window resize behaviour."""
    NO_RESIZE = "no_resize"
    CAN_MINIMIZE = "can_minimize"
    CAN_RESIZE = "can_resize"


# ============================================================================
# Result Map Keys
# ============================================================================

TIMED_OUT_KEY = "TimedOut"
GRID_SELECT_PREFIX = "grid_select"

# Buttons synthesized by the engine itself
EXPLORE_BUTTON = "Explore"
SAVE_BUTTON = "Save"
COPY_BUTTON = "Copy"
RESERVED_BUTTONS = (EXPLORE_BUTTON, SAVE_BUTTON, COPY_BUTTON)


def grid_select_key(index: int) -> str:
    """Result Map key holding the selection of grid ``index`` (1-based)."""
    return f"{GRID_SELECT_PREFIX}{index}"


class SecureText:
    """
    Opaque password value.

    The plain text is only available through reveal(); repr and str never
    expose it.
    """

    __slots__ = ("_value",)

    def __init__(self, value: str = ""):
        self._value = value

    def reveal(self) -> str:
        return self._value

    def __len__(self) -> int:
        return len(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, SecureText):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return "SecureText('********')"

    __str__ = __repr__


# ============================================================================
# Prompt and Button Definitions
# ============================================================================

@dataclass
class FontSpec:
    """Font attributes; unset values are inherited from the dialog."""
    family: Optional[str] = None
    size: Optional[int] = None
    color: Optional[str] = None

    def inherit(self, parent: "FontSpec") -> "FontSpec":
        """Return a copy with unset attributes taken from ``parent``."""
        return FontSpec(
            family=self.family or parent.family,
            size=self.size or parent.size,
            color=self.color or parent.color,
        )


@dataclass
class Prompt:
    """Definition of a single input prompt."""
    message: str = ""
    name: Optional[str] = None  # Auto-generated as Input_<index> when missing
    input_type: InputType = InputType.PLAIN_TEXT
    validate_set: Optional[list[str]] = None  # Overrides input_type when present
    show_set_as: SetPresentation = SetPresentation.COMBO
    default_value: Any = None
    read_only: bool = False
    line_height: int = 1
    alignment: Optional[Alignment] = None
    font: FontSpec = field(default_factory=FontSpec)
    message_position: MessagePosition = MessagePosition.TOP
    collapsible: bool = False
    collapsed: bool = False
    group: Optional[str] = None
    tab: Optional[str] = None
    radio_group: Optional[str] = None
    show_separator: bool = False
    tooltip: Optional[str] = None
    # Validation
    validate_not_empty: bool = False
    validate_pattern: Optional[str] = None
    validate_script: Optional[Callable[[Any], bool]] = None
    validation_message: Optional[str] = None

    @property
    def is_choice(self) -> bool:
        """True when the prompt renders a fixed choice set."""
        return self.validate_set is not None

    @property
    def label(self) -> str:
        """Text used to name the prompt in messages."""
        return self.message or self.name or ""

    def has_constraint(self) -> bool:
        """Check if the prompt carries any validation rule."""
        return bool(
            self.validate_not_empty
            or self.validate_pattern
            or self.validate_script is not None
        )

    def initial_value(self) -> Any:
        """Value placed in the Result Map before any user interaction."""
        if self.is_choice:
            return self.default_value
        if self.input_type == InputType.CHECKBOX:
            return bool(self.default_value)
        if self.input_type == InputType.LINK:
            return False
        if self.input_type == InputType.PASSWORD:
            if isinstance(self.default_value, SecureText):
                return self.default_value
            return SecureText("" if self.default_value is None else str(self.default_value))
        if self.input_type == InputType.DATE:
            if self.default_value:
                return str(self.default_value)
            return datetime.date.today().isoformat()
        if self.default_value is None:
            return ""
        return str(self.default_value)


@dataclass
class DialogContext:
    """
    Live dialog state handed to button handlers and the preparation hook.

    ``result`` is the shared Result Map, ``widgets`` maps prompt/button names
    to their live widgets, ``close`` requests an unvalidated close.
    """
    result: Any
    widgets: dict[str, Any]
    close: Callable[[], None]
    button: Optional["Button"] = None


@dataclass
class Button:
    """Definition of a single dialog button."""
    text: str
    name: Optional[str] = None  # Falls back to text
    is_cancel: bool = False
    is_default: bool = False
    on_click: Optional[Callable[[DialogContext], None]] = None
    tooltip: Optional[str] = None
    reserved: bool = field(default=False, repr=False)  # Synthesized by the engine

    def __post_init__(self):
        if not self.name:
            self.name = self.text

    @property
    def has_handler(self) -> bool:
        """True when the button replaces validate-then-close."""
        return self.on_click is not None or self.reserved

    @property
    def has_role(self) -> bool:
        return self.is_cancel or self.is_default


# ============================================================================
# Dialog Definitions
# ============================================================================

@dataclass
class WindowOptions:
    """Window chrome options."""
    style: WindowStyle = WindowStyle.NORMAL
    resize_mode: ResizeMode = ResizeMode.CAN_RESIZE
    min_width: Optional[int] = None
    min_height: Optional[int] = None
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    topmost: bool = False
    hide_taskbar_icon: bool = False


@dataclass
class GridOptions:
    """Tabular data shown below the prompts."""
    data: Sequence[Any] = field(default_factory=list)
    multi: bool = False  # data is a sequence of sequences, one grid each
    as_list: bool = False  # show each row's fields as Name/Value pairs
    selection_mode: SelectionMode = SelectionMode.SINGLE_ROW
    hide_search: bool = False

    def sequences(self) -> list[list[Any]]:
        """Return one row list per grid instance."""
        if self.multi:
            return [list(rows) for rows in self.data]
        return [list(self.data)]


@dataclass
class DialogSpec:
    """Complete declarative description of one modal dialog."""
    title: str = ""
    icon: IconKind = IconKind.NONE
    image: Optional[str] = None  # Path or base-64 payload
    message: list[str] = field(default_factory=list)
    prompts: list[Any] = field(default_factory=list)  # Prompt or str
    buttons: list[Any] = field(default_factory=list)  # Button or str
    cancel_button: Optional[str] = None
    default_button: Optional[str] = None
    button_rows: int = 1
    comment: list[str] = field(default_factory=list)
    content_alignment: Alignment = Alignment.LEFT
    font: FontSpec = field(default_factory=FontSpec)
    background_color: Optional[str] = None
    accent_color: Optional[str] = None
    window: WindowOptions = field(default_factory=WindowOptions)
    timeout: Optional[int] = None  # Seconds
    countdown: bool = False
    parent_window: Optional[Any] = None  # Owner QWidget
    grid: Optional[GridOptions] = None
    copy_button: bool = False
    collapsible_groups: bool = False
    collapsed_groups: bool = False
    prep_hook: Optional[Callable[[DialogContext], None]] = None

    def has_grid(self) -> bool:
        """Check if tabular data was supplied."""
        return self.grid is not None

    def grid_sequences(self) -> list[list[Any]]:
        """Row lists for every grid instance, empty when there is no grid."""
        if self.grid is None:
            return []
        return self.grid.sequences()

    def find_button(self, name: str) -> Optional[Button]:
        """Get a button by name or text."""
        for button in self.buttons:
            if isinstance(button, Button) and name in (button.name, button.text):
                return button
        return None

    def cancel(self) -> Optional[Button]:
        """The designated cancel button, if any."""
        for button in self.buttons:
            if isinstance(button, Button) and button.is_cancel:
                return button
        return None
