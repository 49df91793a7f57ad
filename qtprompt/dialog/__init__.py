"""
Declarative Dialog Engine

Builds one modal Qt dialog from a declarative description and returns a
flat Result Map once it closes. Supports:
- Typed prompts (text, password, date, link, file pickers, checkboxes)
- Choice sets shown as combo boxes or scoped radio groups
- Groups, tabs and collapsible sections
- Validation before a successful close
- Tabular data grids with filtering, selection capture and CSV export
- Timeouts with an optional countdown
"""

from .schema import (
    Alignment,
    Button,
    DialogContext,
    DialogSpec,
    FontSpec,
    GridOptions,
    IconKind,
    InputType,
    MessagePosition,
    Prompt,
    ResizeMode,
    SecureText,
    SelectionMode,
    SetPresentation,
    WindowOptions,
    WindowStyle,
    TIMED_OUT_KEY,
    grid_select_key,
)

from .parser import DialogSpecParser, SpecParseError

from .result_map import ResultMap, ResultMapFrozenError

from .validation import ValidationOutcome, validate

from .layout import compile_layout, outline

from .grid_filter import FilterOperator, apply_filter

from .ui import (
    DialogBuilder,
    DialogConstructionError,
    DialogState,
    PromptDialog,
    show_dialog,
    show_message,
)

from .logging import (
    logger,
    configure_logging,
    level_from_env,
    set_debug_enabled,
    is_debug_enabled,
)

__all__ = [
    # Schema classes
    "Alignment",
    "Button",
    "DialogContext",
    "DialogSpec",
    "FontSpec",
    "GridOptions",
    "IconKind",
    "InputType",
    "MessagePosition",
    "Prompt",
    "ResizeMode",
    "SecureText",
    "SelectionMode",
    "SetPresentation",
    "WindowOptions",
    "WindowStyle",
    # Constants
    "TIMED_OUT_KEY",
    "grid_select_key",
    # Parser
    "DialogSpecParser",
    "SpecParseError",
    # Result Map
    "ResultMap",
    "ResultMapFrozenError",
    # Validation
    "ValidationOutcome",
    "validate",
    # Layout
    "compile_layout",
    "outline",
    # Grid filter
    "FilterOperator",
    "apply_filter",
    # Dialog
    "DialogBuilder",
    "DialogConstructionError",
    "DialogState",
    "PromptDialog",
    "show_dialog",
    "show_message",
    # Logging
    "logger",
    "configure_logging",
    "level_from_env",
    "set_debug_enabled",
    "is_debug_enabled",
]
