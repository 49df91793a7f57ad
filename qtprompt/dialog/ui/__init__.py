"""
UI Generation Components

Provides widget creation, the grid view and dialog building from
normalized dialog specifications.
"""

from .field_factory import (
    FieldWidget,
    FieldFactory,
    RadioScopes,
)

from .grid_view import GridView

from .dialog_builder import (
    DialogBuilder,
    DialogConstructionError,
    DialogState,
    PromptDialog,
    show_dialog,
    show_message,
)

__all__ = [
    # Field Factory
    "FieldWidget",
    "FieldFactory",
    "RadioScopes",
    # Grid
    "GridView",
    # Dialog Builder
    "DialogBuilder",
    "DialogConstructionError",
    "DialogState",
    "PromptDialog",
    "show_dialog",
    "show_message",
]
