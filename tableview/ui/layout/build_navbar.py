from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import html

from tableview.config.model import GlobalConfig
from tableview.ui.ids import IDs


def build_navbar(global_config: GlobalConfig, n_tables: int) -> dbc.Navbar:
    title = getattr(global_config, "ui_title", "Tables")
    subtitle = f"{n_tables} table{'s' if n_tables != 1 else ''} configured"

    return dbc.Navbar(
        dbc.Container(
            fluid=True,
            children=[
                html.Div(
                    [
                        html.H2(title, className="mb-0"),
                        html.Small(
                            subtitle,
                            className="text-muted",
                            id=IDs.Control.NAVBAR_SUBTITLE,
                        ),
                    ],
                    className="d-flex flex-column justify-content-center",
                ),
            ],
        ),
        dark=False,
        className="shadow-sm tv-navbar",
    )
