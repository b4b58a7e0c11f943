from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

import dash
from dash import exceptions

from tableview.core.registry import StateRegistry
from tableview.core.state import TableView
from tableview.services.remote_sync import RemoteSyncAdapter
from tableview.ui.helpers import load_view, local_result, rows_from_response

if TYPE_CHECKING:
    from tableview.ui.config import AppConfig

logger = logging.getLogger(__name__)


def triggered_control(click_types: Sequence[str] = ()) -> Dict[str, Any]:
    """
    The pattern-matching id that fired the callback. Clicks are only real
    when n_clicks is truthy; freshly rendered buttons report None.
    """
    trigger = dash.ctx.triggered_id
    if not isinstance(trigger, dict):
        raise exceptions.PreventUpdate
    if trigger.get("type") in click_types:
        fired = dash.ctx.triggered[0].get("value") if dash.ctx.triggered else None
        if not fired:
            raise exceptions.PreventUpdate
    return dict(trigger)


def try_load_view(ctx: AppConfig, table_id: str, data: object) -> Optional[TableView]:
    if table_id not in ctx.options:
        return None
    try:
        return load_view(data if isinstance(data, dict) else None, ctx.options_for(table_id))
    except (KeyError, TypeError, ValueError):
        logger.exception("Invalid table state", extra={"table_id": table_id})
        return None


def session_adapter(ctx: AppConfig) -> RemoteSyncAdapter:
    """
    A remote adapter for one callback. Each browser session owns its views in
    dcc.Store, so registry and request sequence numbers live only as long as
    the callback; the render client (connection pool) is shared.
    """
    return RemoteSyncAdapter(StateRegistry(), ctx.render_client)


def remote_round_trip(
        ctx: AppConfig,
        view: TableView,
        mutate: Optional[Callable[[TableView], Any]] = None,
) -> Optional[List[Dict[str, Any]]]:
    """
    Mutate and sync a remote view. Returns the new on-screen rows, or None
    when the request failed (view restored) or was superseded.
    """
    endpoints = ctx.options_for(view.table_id).endpoints
    if endpoints is None or ctx.render_client is None:
        logger.warning("Remote table without endpoints", extra={"table_id": view.table_id})
        return None
    result = session_adapter(ctx).fetch(view, endpoints, mutate)
    if not result.applied:
        return None
    return rows_from_response(view.table_id, result.response)


def reload_table(ctx: AppConfig, view: TableView) -> Optional[List[Dict[str, Any]]]:
    """Re-read a table after an action; local tables just re-run their query."""
    if not view.is_remote:
        local_result(view, ctx.snapshots[view.table_id])
        return None
    endpoints = ctx.options_for(view.table_id).endpoints
    if endpoints is None or ctx.render_client is None:
        return None
    result = session_adapter(ctx).reload(view, endpoints)
    if not result.applied:
        return None
    return rows_from_response(view.table_id, result.response)
