from __future__ import annotations

import locale
import math
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from .state import SortDirection

if TYPE_CHECKING:
    from .rows import Row
    from .state import TableView


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return None if math.isnan(number) else number


def compare_values(a: Any, b: Any) -> int:
    """
    Numeric comparison when both operands parse as numbers, locale-aware
    comparison of the lowercased text otherwise.
    """
    num_a, num_b = _as_number(a), _as_number(b)
    if num_a is not None and num_b is not None:
        return (num_a > num_b) - (num_a < num_b)

    text_a = "" if a is None else str(a).lower()
    text_b = "" if b is None else str(b).lower()
    result = locale.strcoll(text_a, text_b)
    return (result > 0) - (result < 0)


def sort_rows(rows: Sequence[Row], column: str, direction: SortDirection) -> List[Row]:
    """
    Stable sort of rows by one column. Rows whose keys compare equal keep their
    relative order in both directions.
    """
    sign = -1 if direction is SortDirection.DESC else 1

    def cmp(left: Row, right: Row) -> int:
        return sign * compare_values(left.attributes.get(column), right.attributes.get(column))

    return sorted(rows, key=cmp_to_key(cmp))


# -----------------------------------------------------------------------------
# Mutations on a TableView
# -----------------------------------------------------------------------------
def set_sort(view: TableView, column: str, direction: SortDirection) -> None:
    view.sort_column = column
    view.sort_direction = direction
    view.reset_position()


def toggle_sort(view: TableView, column: str) -> SortDirection:
    """Header click: ascending on a new column, flip on the active one."""
    if view.sort_column == column and view.sort_direction is SortDirection.ASC:
        direction = SortDirection.DESC
    else:
        direction = SortDirection.ASC
    set_sort(view, column, direction)
    return direction


def apply_default_sort(
        view: TableView,
        column: Optional[str],
        direction: SortDirection = SortDirection.ASC,
) -> bool:
    """
    Apply the table's declared default sort exactly once, on initial load.
    The pagination position is left untouched.
    """
    if view.default_sort_applied or not column:
        return False
    view.default_sort_applied = True
    if view.sort_column is None:
        view.sort_column = column
        view.sort_direction = direction
    return True
