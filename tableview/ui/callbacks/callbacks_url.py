from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import dash
from dash import ALL, Input, Output, State, exceptions

from tableview.services.history import QUERY_KEYS, to_query
from tableview.ui.callbacks.callbacks_utils import remote_round_trip, try_load_view
from tableview.ui.helpers import local_result, restore_from_search
from tableview.ui.ids import IDs

if TYPE_CHECKING:
    from tableview.ui.config import AppConfig

logger = logging.getLogger(__name__)

P = IDs.Pattern

# replaceState only: reloading reproduces the view, history length is untouched
_MIRROR_JS = """
function(params) {
    if (params === null || params === undefined) {
        return window.dash_clientside.no_update;
    }
    const keys = %s;
    const search = new URLSearchParams(window.location.search);
    keys.forEach(function(k) { search.delete(k); });
    Object.keys(params).forEach(function(k) { search.set(k, params[k]); });
    const qs = search.toString();
    const current = window.location.pathname + window.location.search + window.location.hash;
    const next = window.location.pathname + (qs ? "?" + qs : "") + window.location.hash;
    if (next !== current) {
        window.history.replaceState(window.history.state, "", next);
    }
    return qs;
}
""" % json.dumps(list(QUERY_KEYS))


def register_url_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # Page load: address bar -> views, first remote fetch
    # ---------------------------------------------------------
    @app.callback(
        Output({"type": P.STATE, "table": ALL}, "data", allow_duplicate=True),
        Output({"type": P.REMOTE_BODY, "table": ALL}, "data", allow_duplicate=True),
        Output({"type": P.SEARCH, "table": ALL}, "value"),
        Output({"type": P.PAGE_SIZE, "table": ALL}, "value"),
        Input(IDs.Control.LOCATION, "search"),
        State({"type": P.STATE, "table": ALL}, "data"),
        State({"type": P.STATE, "table": ALL}, "id"),
        prevent_initial_call="initial_duplicate",
    )
    def on_location(search, states, state_ids):
        new_states, bodies, searches, sizes = [], [], [], []
        restored_table = ctx.address_bar_table

        for data, store_id in zip(states, state_ids):
            table_id = store_id["table"]
            view = try_load_view(ctx, table_id, data)
            if view is None:
                new_states.append(dash.no_update)
                bodies.append(dash.no_update)
                searches.append(dash.no_update)
                sizes.append(dash.no_update)
                continue

            if table_id == restored_table and restore_from_search(view, search):
                logger.info("View restored from address bar", extra={"table_id": table_id, "search": search})

            body = dash.no_update
            if view.is_remote:
                rows = remote_round_trip(ctx, view)
                if rows is not None:
                    body = rows
            else:
                local_result(view, ctx.snapshots[table_id])

            new_states.append(view.to_dict())
            bodies.append(body)
            searches.append(view.search_term)
            sizes.append(view.page_size)

        if not new_states:
            raise exceptions.PreventUpdate
        return new_states, bodies, searches, sizes

    # ---------------------------------------------------------
    # View -> address bar (server computes params, browser replaces)
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Store.URL_QUERY, "data"),
        Input({"type": P.STATE, "table": ALL}, "data"),
        State({"type": P.STATE, "table": ALL}, "id"),
        prevent_initial_call=True,
    )
    def on_view_changed(states, state_ids):
        table_id = ctx.address_bar_table
        for data, store_id in zip(states, state_ids):
            if store_id["table"] != table_id:
                continue
            view = try_load_view(ctx, table_id, data)
            if view is None:
                break
            return to_query(view)
        raise exceptions.PreventUpdate

    app.clientside_callback(
        _MIRROR_JS,
        Output(IDs.Store.URL_MIRROR_ACK, "data"),
        Input(IDs.Store.URL_QUERY, "data"),
        prevent_initial_call=True,
    )
