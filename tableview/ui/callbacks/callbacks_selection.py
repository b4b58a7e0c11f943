from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Sequence

import dash
from dash import ALL, MATCH, Input, Output, State, exceptions

from tableview.core.registry import StateRegistry
from tableview.core.selection import SelectAllState, SelectionTracker, select_all_state
from tableview.core.state import TableView
from tableview.ui.callbacks.callbacks_utils import triggered_control, try_load_view
from tableview.ui.helpers import merge_selection
from tableview.ui.ids import IDs

if TYPE_CHECKING:
    from tableview.ui.config import AppConfig

logger = logging.getLogger(__name__)

P = IDs.Pattern


def apply_selection_event(
        view: TableView,
        trigger: Dict[str, Any],
        visible_ids: Sequence[str],
        checks: Sequence[Any],
) -> bool:
    """
    Apply one selection control to the view through a SelectionTracker.

    - select-all: selects every visible row, or deselects them when all are
      already selected
    - cancel: clears the whole selection
    - row checkboxes: on-screen rows follow their checkbox, the rest of the
      selection (other pages) is kept
    """
    registry = StateRegistry()
    registry.adopt(view)
    tracker = SelectionTracker(registry)
    table_id = view.table_id
    kind = trigger.get("type")

    if kind == P.SELECT_ALL:
        if select_all_state(view.selected_ids, visible_ids) is SelectAllState.ALL:
            return tracker.set_many(table_id, visible_ids, False)
        return tracker.select_all_visible(table_id, visible_ids)
    if kind == P.BULK_CANCEL:
        return tracker.clear(table_id)

    merged = merge_selection(view.selected_ids, dict(zip(visible_ids, (bool(c) for c in checks))))
    if merged == view.selected_ids:
        return False
    added = merged - view.selected_ids
    removed = view.selected_ids - merged
    changed = tracker.set_many(table_id, added, True)
    return tracker.set_many(table_id, removed, False) or changed


def register_selection_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    @app.callback(
        Output({"type": P.STATE, "table": MATCH}, "data", allow_duplicate=True),
        Input({"type": P.ROW_CHECK, "table": MATCH, "row": ALL}, "value"),
        Input({"type": P.SELECT_ALL, "table": MATCH}, "n_clicks"),
        Input({"type": P.BULK_CANCEL, "table": MATCH}, "n_clicks"),
        State({"type": P.ROW_CHECK, "table": MATCH, "row": ALL}, "id"),
        State({"type": P.STATE, "table": MATCH}, "data"),
        prevent_initial_call=True,
    )
    def on_selection_control(checks: List[Any], _all_clicks, _cancel_clicks, check_ids, state):
        trigger = triggered_control((P.SELECT_ALL, P.BULK_CANCEL))
        view = try_load_view(ctx, trigger["table"], state)
        if view is None or not ctx.options_for(view.table_id).selectable:
            raise exceptions.PreventUpdate

        visible_ids = [i["row"] for i in check_ids]
        if not apply_selection_event(view, trigger, visible_ids, checks or []):
            raise exceptions.PreventUpdate
        return view.to_dict()
