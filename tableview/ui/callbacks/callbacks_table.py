from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping

import dash
from dash import ALL, MATCH, Input, Output, State, exceptions

from tableview.core.pagination import paginate
from tableview.core.selection import SelectAllState, SelectionSnapshot
from tableview.core.state import TableView
from tableview.ui.callbacks.callbacks_utils import remote_round_trip, triggered_control, try_load_view
from tableview.ui.helpers import (
    changes_query,
    footer_text,
    local_result,
    local_rows,
    reduce_view,
    selection_state,
)
from tableview.ui.ids import IDs
from tableview.ui.layout.build_table_card import (
    SELECT_ALL_GLYPHS,
    build_filter_chips,
    build_page_buttons,
    build_rows,
    bulk_bar_style,
    sort_label,
)
from tableview.ui.layout.build_toolbar import HIDDEN

if TYPE_CHECKING:
    from tableview.ui.config import AppConfig

logger = logging.getLogger(__name__)

P = IDs.Pattern

CLICK_CONTROLS = (
    P.SORT,
    P.PAGE,
    P.PREV,
    P.NEXT,
    P.FILTER_ADD,
    P.FILTER_CLEAR,
    P.FILTER_REMOVE,
    P.FILTER_TOGGLE,
)


def _match(kind: str, **keys: Any) -> Dict[str, Any]:
    return {"type": kind, "table": MATCH, **keys}


def register_table_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # Controls -> TableView (store)
    # ---------------------------------------------------------
    @app.callback(
        Output(_match(P.STATE), "data", allow_duplicate=True),
        Output(_match(P.REMOTE_BODY), "data", allow_duplicate=True),
        Input(_match(P.SEARCH), "value"),
        Input(_match(P.SORT, column=ALL), "n_clicks"),
        Input(_match(P.PAGE, page=ALL), "n_clicks"),
        Input(_match(P.PREV), "n_clicks"),
        Input(_match(P.NEXT), "n_clicks"),
        Input(_match(P.PAGE_SIZE), "value"),
        Input(_match(P.FILTER_ADD), "n_clicks"),
        Input(_match(P.FILTER_CLEAR), "n_clicks"),
        Input(_match(P.FILTER_REMOVE, index=ALL), "n_clicks"),
        Input(_match(P.FILTER_TOGGLE), "n_clicks"),
        Input(_match(P.COLUMNS), "value"),
        State(_match(P.FILTER_COLUMN), "value"),
        State(_match(P.FILTER_OPERATOR), "value"),
        State(_match(P.FILTER_VALUE), "value"),
        State(_match(P.FILTER_LOGIC), "value"),
        State(_match(P.STATE), "data"),
        prevent_initial_call=True,
    )
    def on_table_control(
        search,
        _sort_clicks,
        _page_clicks,
        _prev_clicks,
        _next_clicks,
        page_size,
        _add_clicks,
        _clear_clicks,
        _remove_clicks,
        _toggle_clicks,
        visible_columns,
        filter_column,
        filter_operator,
        filter_value,
        filter_logic,
        state,
    ):
        trigger = triggered_control(CLICK_CONTROLS)
        table_id = trigger["table"]
        view = try_load_view(ctx, table_id, state)
        if view is None:
            raise exceptions.PreventUpdate

        options = ctx.options_for(table_id)
        value = {P.SEARCH: search, P.PAGE_SIZE: page_size, P.COLUMNS: visible_columns}.get(trigger["type"])
        form = {
            "column": filter_column,
            "operator": filter_operator,
            "value": filter_value,
            "logic": filter_logic,
        }
        column_keys = [c.key for c in options.columns]

        def mutate(target: TableView) -> bool:
            return reduce_view(target, trigger, value, form, column_keys)

        if not view.is_remote or not changes_query(trigger):
            if not mutate(view):
                raise exceptions.PreventUpdate
            if not view.is_remote:
                local_result(view, ctx.snapshots[table_id])
            return view.to_dict(), dash.no_update

        # Probe on a copy first so an unchanged control costs no request
        if not mutate(TableView.from_dict(view.to_dict())):
            raise exceptions.PreventUpdate

        rows = remote_round_trip(ctx, view, mutate)
        if rows is None:
            raise exceptions.PreventUpdate

        logger.debug(
            "Remote table updated",
            extra={"table_id": table_id, "control": trigger["type"], "rows": len(rows)},
        )
        return view.to_dict(), rows

    # ---------------------------------------------------------
    # TableView (store) -> table projection
    # ---------------------------------------------------------
    @app.callback(
        Output(_match(P.BODY), "children"),
        Output(_match(P.FOOTER_INFO), "children"),
        Output(_match(P.PAGINATION), "children"),
        Output(_match(P.PREV), "disabled"),
        Output(_match(P.NEXT), "disabled"),
        Output(_match(P.SORT, column=ALL), "children"),
        Output(_match(P.HEADER, column=ALL), "style"),
        Output(_match(P.SELECT_ALL), "children"),
        Output(_match(P.BULK_BAR), "style"),
        Output(_match(P.BULK_COUNT), "children"),
        Output(_match(P.BULK_ACTION, action=ALL), "disabled"),
        Output(_match(P.FILTER_LIST), "children"),
        Output(_match(P.FILTER_PANEL), "is_open"),
        Input(_match(P.STATE), "data"),
        Input(_match(P.REMOTE_BODY), "data"),
        State(_match(P.SORT, column=ALL), "id"),
        State(_match(P.HEADER, column=ALL), "id"),
        State(_match(P.BULK_ACTION, action=ALL), "id"),
        State(_match(P.STATE), "id"),
    )
    def render_table(state, remote_rows, sort_ids, header_ids, action_ids, store_id):
        table_id = store_id["table"]
        view = try_load_view(ctx, table_id, state)
        if view is None:
            raise exceptions.PreventUpdate

        projection = project_table(ctx, view, remote_rows or [])
        options = ctx.options_for(table_id)
        columns = {c.key: c for c in options.columns}
        snapshot = projection["selection"]
        window = projection["window"]

        return (
            build_rows(projection["rows"], options, view.selected_ids, view.hidden_columns),
            footer_text(window),
            build_page_buttons(table_id, window),
            not window.prev_enabled,
            not window.next_enabled,
            [sort_label(columns[i["column"]], view.sort_column, view.sort_direction) for i in sort_ids],
            [HIDDEN if i["column"] in view.hidden_columns else {} for i in header_ids],
            SELECT_ALL_GLYPHS[snapshot.select_all],
            bulk_bar_style(snapshot.count),
            str(snapshot.count),
            [i["action"] not in snapshot.enabled_actions for i in action_ids],
            build_filter_chips(table_id, view.filter_conditions, options.columns),
            "filters" in view.open_panels,
        )


def project_table(ctx: AppConfig, view: TableView, remote_rows: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Visible rows, footer window and selection state of one table.

    Bulk-action eligibility looks selected rows up in the whole dataset for
    local tables and among the on-screen rows for remote ones.
    """
    options = ctx.options_for(view.table_id)
    if view.is_remote:
        rows = [dict(r) for r in remote_rows]
        window = paginate(view, view.total_rows, window_rows=len(rows))
        attributes = {r["id"]: r.get("attributes") or {} for r in rows}
    else:
        snapshot = ctx.snapshots[view.table_id]
        result = local_result(view, snapshot)
        rows = local_rows(result)
        window = result.window
        attributes = {}
        for row_id in view.selected_ids:
            attrs = snapshot.attributes_of(row_id)
            if attrs is not None:
                attributes[row_id] = attrs

    visible_ids = [r["id"] for r in rows] if options.selectable else []
    selection = selection_state(view, visible_ids, options.bulk_actions, attributes)
    if not options.selectable:
        selection = SelectionSnapshot(count=0, select_all=SelectAllState.NONE)
    return {"rows": rows, "window": window, "selection": selection}
