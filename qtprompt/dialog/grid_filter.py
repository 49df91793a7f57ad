"""
Grid Filter

Filter predicate compilation, result counting and the as-list transform
for the grid sub-view. Independent of Qt so it can be tested on plain data.
"""

import re
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from ..models.rows import cell_text, cell_value, row_columns


class FilterOperator(str, Enum):
    """Grid filter operators, values are the labels shown to the user."""
    CONTAINS = "contains"
    NOT_CONTAINS = "not contains"
    STARTS_WITH = "starts with"
    ENDS_WITH = "ends with"
    EQUALS = "equals"
    NOT_EQUALS = "not equals"


def compile_filter(
    column: str,
    operator: FilterOperator,
    text: str,
) -> Callable[[Any], bool]:
    """
    Build a row predicate.

    ``contains``, ``starts with`` and ``ends with`` ignore case and treat
    the text literally. ``equals``/``not equals`` compare the whole cell
    text exactly.
    """
    operator = FilterOperator(operator)
    needle = text.lower()

    if operator in (FilterOperator.CONTAINS, FilterOperator.NOT_CONTAINS):
        pattern = re.compile(re.escape(text), re.IGNORECASE)
        negate = operator == FilterOperator.NOT_CONTAINS
        return lambda row: bool(pattern.search(cell_text(row, column))) != negate

    if operator == FilterOperator.STARTS_WITH:
        return lambda row: cell_text(row, column).lower().startswith(needle)

    if operator == FilterOperator.ENDS_WITH:
        return lambda row: cell_text(row, column).lower().endswith(needle)

    negate = operator == FilterOperator.NOT_EQUALS
    return lambda row: (cell_text(row, column) == text) != negate


def apply_filter(
    rows: list[Any],
    column: Optional[str],
    operator: FilterOperator,
    text: str,
) -> list[Any]:
    """
    Filter the original rows. Empty text or no column returns all rows.
    """
    if not text or not column:
        return list(rows)
    predicate = compile_filter(column, operator, text)
    return [row for row in rows if predicate(row)]


def counter_text(displayed: int, total: int, filtered: bool) -> str:
    """Results counter label."""
    if filtered:
        return f"{displayed} / {total} Results"
    return f"{total} Results"


def rows_as_list(rows: Iterable[Any]) -> list[dict[str, Any]]:
    """Flatten row objects into Name/Value pairs, one pair per field."""
    pairs: list[dict[str, Any]] = []
    for row in rows:
        for column in row_columns(row):
            pairs.append({"Name": column, "Value": cell_value(row, column)})
    return pairs
