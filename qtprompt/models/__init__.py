"""
Models - Pure Python data shared by the engine and its services.

No Qt dependencies in this package.
"""

from .config import CONFIG_VERSION, DefaultsConfig
from .rows import SCALAR_COLUMN, cell_text, cell_value, columns_for, row_columns

__all__ = [
    "CONFIG_VERSION",
    "DefaultsConfig",
    "SCALAR_COLUMN",
    "cell_text",
    "cell_value",
    "columns_for",
    "row_columns",
]
