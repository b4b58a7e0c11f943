from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Tuple

from .filters import as_text, evaluate
from .pagination import PageWindow, paginate
from .sorting import sort_rows

if TYPE_CHECKING:
    from .rows import Row, RowSnapshot
    from .state import TableView


@dataclass(frozen=True)
class QueryResult:
    rows: Tuple[Row, ...]
    window: PageWindow
    filtered_count: int

    @property
    def row_ids(self) -> Tuple[str, ...]:
        return tuple(row.id for row in self.rows)


def matches_search(row: Row, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in as_text(value) for value in row.attributes.values())


def refresh_hidden(rows: Iterable[Row], view: TableView) -> None:
    """
    Recompute the filter_hidden cache. Remote tables never evaluate rows
    locally, so their caches are simply cleared.
    """
    for row in rows:
        if view.is_remote:
            row.filter_hidden = False
        else:
            row.filter_hidden = not (
                matches_search(row, view.search_term)
                and evaluate(view.filter_conditions, row.attributes)
            )


def set_search(view: TableView, term: str) -> bool:
    term = (term or "").strip()
    if term == view.search_term:
        return False
    view.search_term = term
    view.reset_position()
    return True


def run_query(snapshot: RowSnapshot, view: TableView) -> QueryResult:
    """
    Visible subset and order of a local table: search and filters, then the
    stable sort, then the page slice. Also clamps the page and records the
    filtered count as total_rows.
    """
    if view.is_remote:
        raise ValueError(f"Table '{view.table_id}' is remote; rows are paged by the render service")

    refresh_hidden(snapshot, view)
    filtered = [row for row in snapshot if not row.filter_hidden]
    if view.sort_column:
        filtered = sort_rows(filtered, view.sort_column, view.sort_direction)

    view.total_rows = len(filtered)
    window = paginate(view, len(filtered))
    return QueryResult(
        rows=tuple(filtered[window.slice_start:window.slice_end]),
        window=window,
        filtered_count=len(filtered),
    )
