from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set
from urllib.parse import parse_qsl

from tableview.core import filters as filter_engine
from tableview.core import pagination, sorting
from tableview.core.filters import VALUELESS_OPERATORS, Connector, FilterCondition, FilterOperator
from tableview.core.pagination import PageWindow
from tableview.core.query import QueryResult, run_query, set_search
from tableview.core.rows import RowSnapshot
from tableview.core.selection import BulkAction, SelectionSnapshot, bulk_action_enabled, select_all_state
from tableview.core.state import TableView
from tableview.dom.anchors import Anchors
from tableview.dom.document import parse_fragment
from tableview.dom.render import row_attributes
from tableview.services.history import from_query
from tableview.services.remote_sync import FullReplacement, Response, TargetedPatch
from tableview.services.table_controller import TableOptions

from .ids import IDs

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Store <-> TableView
# -----------------------------------------------------------------------------
def new_view(options: TableOptions) -> TableView:
    """Fresh view for a table on first load, default sort applied."""
    view = TableView(
        table_id=options.table_id,
        mode=options.mode,
        position=options.new_position(),
        page_size=options.page_size,
    )
    sorting.apply_default_sort(view, options.default_sort, options.default_direction)
    return view


def load_view(data: Optional[Mapping[str, Any]], options: TableOptions) -> TableView:
    if not data:
        return new_view(options)
    return TableView.from_dict(dict(data))


def local_result(view: TableView, snapshot: RowSnapshot) -> QueryResult:
    """Run the local query; clamps the page and records total_rows on the view."""
    return run_query(snapshot, view)


# -----------------------------------------------------------------------------
# Remote bodies
# -----------------------------------------------------------------------------
def rows_from_body(markup: str) -> List[Dict[str, Any]]:
    """
    On-screen rows of a server-rendered body:
    [{"id", "attributes", "cells"}], cells keyed by data-column where present,
    otherwise by position.
    """
    soup = parse_fragment(markup)
    rows = []
    for tr in soup.select("tr[data-id]"):
        cells: Dict[str, str] = {}
        for idx, td in enumerate(tr.find_all("td")):
            if "row-checkbox" in (td.get("class") or []):
                continue
            cells[td.get("data-column") or str(idx)] = td.get_text(strip=True)
        rows.append({"id": str(tr["data-id"]), "attributes": row_attributes(tr), "cells": cells})
    return rows


def rows_from_response(table_id: str, response: Optional[Response]) -> List[Dict[str, Any]]:
    if isinstance(response, TargetedPatch):
        return rows_from_body(response.body)
    if isinstance(response, FullReplacement):
        soup = parse_fragment(response.card)
        body = soup.find(id=Anchors.body(table_id))
        return rows_from_body(body.decode_contents() if body is not None else "")
    return []


# -----------------------------------------------------------------------------
# Reducer: one control event -> view mutation
# -----------------------------------------------------------------------------
def build_condition(
        column: Optional[str],
        operator: Optional[str],
        value: Optional[str],
        logic: Optional[str] = None,
        first: bool = True,
) -> Optional[FilterCondition]:
    """Condition from the filter form, or None when the form is incomplete."""
    if not column or not operator:
        return None
    try:
        op = FilterOperator(operator)
    except ValueError:
        return None
    if op in VALUELESS_OPERATORS:
        value = None
    elif value is None or str(value).strip() == "":
        return None
    connector = None if first else Connector.parse(logic or Connector.AND.value)
    return FilterCondition(column=column, operator=op, value=value, connector=connector)


VIEW_ONLY_CONTROLS = frozenset({IDs.Pattern.COLUMNS, IDs.Pattern.FILTER_TOGGLE})


def changes_query(trigger: Mapping[str, Any]) -> bool:
    """False for controls that only change presentation (no remote round trip)."""
    return trigger.get("type") not in VIEW_ONLY_CONTROLS


def reduce_view(
        view: TableView,
        trigger: Mapping[str, Any],
        value: Any = None,
        form: Optional[Mapping[str, Any]] = None,
        column_keys: Sequence[str] = (),
) -> bool:
    """
    Apply the control identified by `trigger` (a pattern-matching id) to the
    view. Returns True when the view changed.
    """
    kind = trigger.get("type")
    P = IDs.Pattern

    if kind == P.SEARCH:
        return set_search(view, value or "")
    if kind == P.SORT:
        sorting.toggle_sort(view, trigger["column"])
        return True
    if kind == P.PAGE:
        return pagination.go_to_page(view, int(trigger["page"]), view.total_rows)
    if kind == P.PREV:
        return pagination.prev_page(view)
    if kind == P.NEXT:
        return pagination.next_page(view)
    if kind == P.PAGE_SIZE:
        if value is None or int(value) == view.page_size:
            return False
        pagination.set_page_size(view, int(value))
        return True
    if kind == P.FILTER_ADD:
        form = form or {}
        condition = build_condition(
            form.get("column"),
            form.get("operator"),
            form.get("value"),
            form.get("logic"),
            first=not view.filter_conditions,
        )
        if condition is None:
            return False
        filter_engine.append_condition(view, condition)
        return True
    if kind == P.FILTER_CLEAR:
        if not view.filter_conditions:
            return False
        filter_engine.clear_filters(view)
        return True
    if kind == P.FILTER_REMOVE:
        index = int(trigger["index"])
        if not 0 <= index < len(view.filter_conditions):
            return False
        filter_engine.remove_condition(view, index)
        return True
    if kind == P.FILTER_TOGGLE:
        view.open_panels.symmetric_difference_update({"filters"})
        return True
    if kind == P.COLUMNS:
        hidden = set(column_keys) - set(value or [])
        if hidden == view.hidden_columns:
            return False
        view.hidden_columns = hidden
        return True

    logger.debug("Unhandled table control", extra={"table_id": view.table_id, "trigger": dict(trigger)})
    return False


# -----------------------------------------------------------------------------
# Selection
# -----------------------------------------------------------------------------
def merge_selection(selected: Iterable[str], checks: Mapping[str, bool]) -> Set[str]:
    """
    Selection after reading the on-screen checkboxes: ids not on screen keep
    their state, on-screen ids follow their checkbox.
    """
    merged = set(selected) - set(checks)
    merged.update(row_id for row_id, checked in checks.items() if checked)
    return merged


def selection_state(
        view: TableView,
        visible_ids: Sequence[str],
        actions: Iterable[BulkAction],
        attributes: Mapping[str, Mapping[str, Any]],
) -> SelectionSnapshot:
    """Bulk toolbar state; `attributes` maps row id -> row attributes."""
    enabled: List[str] = []
    disabled: List[str] = []
    for action in actions:
        ok = bulk_action_enabled(action, view.selected_ids, attributes.get)
        (enabled if ok else disabled).append(action.name)
    return SelectionSnapshot(
        count=len(view.selected_ids),
        select_all=select_all_state(view.selected_ids, visible_ids),
        enabled_actions=tuple(enabled),
        disabled_actions=tuple(disabled),
    )


# -----------------------------------------------------------------------------
# Footer and address bar
# -----------------------------------------------------------------------------
def footer_text(window: PageWindow) -> str:
    return f"Showing {window.start} to {window.end} of {window.total} entries"


def restore_from_search(view: TableView, search: Optional[str]) -> bool:
    """Restore a view from a location search string ("?page=2&size=10")."""
    params = dict(parse_qsl((search or "").lstrip("?")))
    if not params:
        return False
    return from_query(view, params)


def local_rows(result: QueryResult) -> List[Dict[str, Any]]:
    """Visible local rows in the same shape as rows_from_body."""
    return [
        {"id": row.id, "attributes": dict(row.attributes), "cells": dict(row.attributes)}
        for row in result.rows
    ]
