"""
Row access helpers for tabular data.

Rows may be mappings, dataclass instances, plain objects or scalars.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any, Iterable

SCALAR_COLUMN = "Value"


def _is_scalar(row: Any) -> bool:
    return isinstance(row, (str, bytes, int, float, bool)) or row is None


def row_columns(row: Any) -> list[str]:
    """Column names of a single row object."""
    if isinstance(row, Mapping):
        return [str(key) for key in row.keys()]
    if dataclasses.is_dataclass(row) and not isinstance(row, type):
        return [f.name for f in dataclasses.fields(row)]
    if _is_scalar(row):
        return [SCALAR_COLUMN]
    return [name for name in vars(row) if not name.startswith("_")]


def columns_for(rows: Iterable[Any]) -> list[str]:
    """Union of all row columns, in first-seen order."""
    columns: dict[str, None] = {}
    for row in rows:
        for column in row_columns(row):
            columns.setdefault(column, None)
    return list(columns)


def cell_value(row: Any, column: str) -> Any:
    """Value of ``column`` in ``row``; None when the row lacks it."""
    if isinstance(row, Mapping):
        return row.get(column)
    if _is_scalar(row):
        return row if column == SCALAR_COLUMN else None
    return getattr(row, column, None)


def cell_text(row: Any, column: str) -> str:
    value = cell_value(row, column)
    return "" if value is None else str(value)
