from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import dcc, html

from tableview.core.state import Mode, TableView
from tableview.ui.config import AppConfig
from tableview.ui.helpers import local_result, new_view
from tableview.ui.ids import IDs
from tableview.ui.layout.build_navbar import build_navbar
from tableview.ui.layout.build_table_card import build_table_card


def build_layout(ctx: AppConfig):
    gc = ctx.global_config
    navbar = build_navbar(gc, len(ctx.table_ids))

    cards = []
    for table_id in ctx.table_ids:
        options = ctx.options_for(table_id)
        search_debounce = gc.remote_search_wait if options.mode is Mode.REMOTE else gc.local_search_wait
        cards.append(
            build_table_card(
                options,
                title=ctx.tables[table_id].title if table_id in ctx.tables else table_id,
                view=_initial_view(ctx, table_id),
                page_size_options=gc.page_size_options,
                search_debounce=search_debounce,
            )
        )

    if not cards:
        cards = [dbc.Card(dbc.CardBody("No tables configured."), className="mt-3")]

    return dbc.Container(
        fluid=True,
        className="tv-root",
        children=[
            navbar,

            # App-level stores
            dcc.Location(id=IDs.Control.LOCATION, refresh=False),
            dcc.Store(id=IDs.Store.URL_QUERY),
            dcc.Store(id=IDs.Store.URL_MIRROR_ACK),
            dcc.Store(id=IDs.Store.PENDING_ACTION),

            dbc.Alert(
                id=IDs.Control.ACTION_STATUS,
                is_open=False,
                dismissable=True,
                duration=6000,
                className="mt-3",
            ),

            html.Div(cards, className="mt-3"),

            _build_confirm_modal(),
            _build_drawer(),
        ],
    )


def _initial_view(ctx: AppConfig, table_id: str) -> TableView:
    view = new_view(ctx.options_for(table_id))
    if not view.is_remote:
        local_result(view, ctx.snapshots[table_id])
    return view


def _build_confirm_modal() -> dbc.Modal:
    return dbc.Modal(
        [
            dbc.ModalHeader(dbc.ModalTitle("Confirm Action", id=IDs.Control.CONFIRM_TITLE)),
            dbc.ModalBody(id=IDs.Control.CONFIRM_BODY),
            dbc.ModalFooter(
                [
                    dbc.Button("Cancel", id=IDs.Control.CONFIRM_CANCEL, color="secondary", outline=True),
                    dbc.Button("Confirm", id=IDs.Control.CONFIRM_OK, color="primary"),
                ]
            ),
        ],
        id=IDs.Control.CONFIRM_MODAL,
        is_open=False,
        centered=True,
    )


def _build_drawer() -> dbc.Offcanvas:
    return dbc.Offcanvas(
        html.Iframe(id=IDs.Control.DRAWER_FRAME, style={"width": "100%", "height": "100%", "border": "0"}),
        id=IDs.Control.DRAWER,
        title="Edit",
        placement="end",
        is_open=False,
        style={"width": "40rem"},
    )
