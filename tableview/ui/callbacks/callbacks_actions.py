from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import dash
from dash import ALL, Input, Output, State, exceptions

from tableview.core.registry import StateRegistry
from tableview.core.selection import BulkAction, SelectionTracker
from tableview.core.state import TableView
from tableview.services.actions import ActionService, RowAction
from tableview.services.collaborators import InMemoryDialog, InMemoryDrawer
from tableview.ui.callbacks.callbacks_utils import reload_table, triggered_control, try_load_view
from tableview.ui.ids import IDs

if TYPE_CHECKING:
    from tableview.ui.config import AppConfig

logger = logging.getLogger(__name__)

P = IDs.Pattern
C = IDs.Control

_BUTTON_COLORS = {"danger": "danger", "warning": "warning", "primary": "primary"}


class _ActionSession:
    """
    One request's worth of action plumbing around a store-held TableView:
    an ActionService wired to in-memory dialog/drawer collaborators, whose
    state the callbacks then project into the modal and offcanvas.
    """

    def __init__(self, ctx: AppConfig, view: TableView):
        self.ctx = ctx
        self.view = view
        self.rows: Optional[List[Dict[str, Any]]] = None

        registry = StateRegistry()
        registry.adopt(view)
        self.dialog = InMemoryDialog()
        self.drawer = InMemoryDrawer()
        self.service = ActionService(
            client=ctx.render_client,
            dialog=self.dialog,
            selection=SelectionTracker(registry),
            refresh=self._refresh,
            drawer=self.drawer,
        )

    def _refresh(self, table_id: str) -> None:
        self.rows = reload_table(self.ctx, self.view)


def find_bulk_action(ctx: AppConfig, table_id: str, name: str) -> Optional[BulkAction]:
    for action in ctx.options_for(table_id).bulk_actions:
        if action.name == name:
            return action
    return None


def find_row_action(ctx: AppConfig, table_id: str, kind: str) -> Optional[RowAction]:
    for action in ctx.options_for(table_id).row_actions:
        if action.kind == kind:
            return action
    return None


def _views_by_table(states: List[Any], ids: List[Dict[str, Any]]) -> Dict[str, Tuple[int, Any]]:
    return {i["table"]: (idx, states[idx]) for idx, i in enumerate(ids)}


def register_action_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # Bulk / row button -> confirm modal or edit drawer
    # ---------------------------------------------------------
    @app.callback(
        Output(C.CONFIRM_MODAL, "is_open"),
        Output(C.CONFIRM_TITLE, "children"),
        Output(C.CONFIRM_BODY, "children"),
        Output(C.CONFIRM_OK, "children"),
        Output(C.CONFIRM_OK, "color"),
        Output(IDs.Store.PENDING_ACTION, "data"),
        Output(C.DRAWER, "is_open"),
        Output(C.DRAWER, "title"),
        Output(C.DRAWER_FRAME, "src"),
        Input({"type": P.BULK_ACTION, "table": ALL, "action": ALL}, "n_clicks"),
        Input({"type": P.ROW_ACTION, "table": ALL, "row": ALL, "action": ALL}, "n_clicks"),
        State({"type": P.STATE, "table": ALL}, "data"),
        State({"type": P.STATE, "table": ALL}, "id"),
        prevent_initial_call=True,
    )
    def on_action_requested(_bulk_clicks, _row_clicks, states, state_ids):
        trigger = triggered_control((P.BULK_ACTION, P.ROW_ACTION))
        table_id = trigger["table"]
        stores = _views_by_table(states, state_ids)
        if table_id not in stores:
            raise exceptions.PreventUpdate
        view = try_load_view(ctx, table_id, stores[table_id][1])
        if view is None:
            raise exceptions.PreventUpdate
        session = _ActionSession(ctx, view)

        if trigger["type"] == P.BULK_ACTION:
            action = find_bulk_action(ctx, table_id, trigger["action"])
            if action is None or not session.service.request_bulk(table_id, action):
                raise exceptions.PreventUpdate
            pending = {
                "kind": "bulk",
                "table": table_id,
                "action": action.name,
                "ids": sorted(view.selected_ids),
            }
        else:
            action = find_row_action(ctx, table_id, trigger["action"])
            if action is None or not session.service.request_row(table_id, action, trigger["row"]):
                raise exceptions.PreventUpdate
            if session.drawer.is_open:
                return (
                    False,
                    dash.no_update,
                    dash.no_update,
                    dash.no_update,
                    dash.no_update,
                    None,
                    True,
                    session.drawer.title,
                    session.drawer.url,
                )
            pending = {
                "kind": "row",
                "table": table_id,
                "action": action.kind,
                "url": action.url_for(trigger["row"]),
            }

        request = session.dialog.current
        assert request is not None
        return (
            True,
            request.title,
            request.message,
            request.confirm_label,
            _BUTTON_COLORS.get(request.variant, "primary"),
            pending,
            False,
            dash.no_update,
            dash.no_update,
        )

    # ---------------------------------------------------------
    # Confirm / cancel -> POST, refresh, close
    # ---------------------------------------------------------
    @app.callback(
        Output(C.CONFIRM_MODAL, "is_open", allow_duplicate=True),
        Output(IDs.Store.PENDING_ACTION, "data", allow_duplicate=True),
        Output(C.ACTION_STATUS, "children"),
        Output(C.ACTION_STATUS, "color"),
        Output(C.ACTION_STATUS, "is_open"),
        Output({"type": P.STATE, "table": ALL}, "data", allow_duplicate=True),
        Output({"type": P.REMOTE_BODY, "table": ALL}, "data", allow_duplicate=True),
        Input(C.CONFIRM_OK, "n_clicks"),
        Input(C.CONFIRM_CANCEL, "n_clicks"),
        State(IDs.Store.PENDING_ACTION, "data"),
        State({"type": P.STATE, "table": ALL}, "data"),
        State({"type": P.STATE, "table": ALL}, "id"),
        prevent_initial_call=True,
    )
    def on_action_confirmed(ok_clicks, cancel_clicks, pending, states, state_ids):
        untouched = [dash.no_update] * len(state_ids)
        if dash.ctx.triggered_id == C.CONFIRM_CANCEL or not pending:
            return False, None, dash.no_update, dash.no_update, dash.no_update, untouched, untouched
        if not ok_clicks:
            raise exceptions.PreventUpdate

        table_id = pending.get("table")
        stores = _views_by_table(states, state_ids)
        view = try_load_view(ctx, table_id, stores[table_id][1]) if table_id in stores else None
        if view is None:
            return False, None, "Table is no longer available", "warning", True, untouched, untouched

        session = _ActionSession(ctx, view)
        if pending.get("kind") == "bulk":
            action = find_bulk_action(ctx, table_id, pending.get("action", ""))
            ok = action is not None and session.service.execute_bulk(table_id, action, pending.get("ids") or [])
            label = action.label if action is not None else pending.get("action")
        else:
            row_action = find_row_action(ctx, table_id, pending.get("action", ""))
            ok = row_action is not None and session.service.execute_row(table_id, row_action, pending.get("url", ""))
            label = row_action.label if row_action is not None else pending.get("action")

        if not ok:
            return False, None, f"{label} failed", "danger", True, untouched, untouched

        index = stores[table_id][0]
        new_states = list(untouched)
        new_states[index] = view.to_dict()
        new_bodies = list(untouched)
        if session.rows is not None:
            new_bodies[index] = session.rows
        return False, None, f"{label} completed", "success", True, new_states, new_bodies
