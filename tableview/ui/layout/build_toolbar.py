from __future__ import annotations

from typing import List

import dash_bootstrap_components as dbc
from dash import dcc, html

from tableview.core.filters import Connector, FilterOperator
from tableview.core.state import TableView
from tableview.services.table_controller import TableOptions
from tableview.ui.ids import IDs, table_component_id

P = IDs.Pattern

HIDDEN = {"display": "none"}
BULK_BAR_VISIBLE = {"display": "flex", "alignItems": "center"}

OPERATOR_LABELS = {
    FilterOperator.CONTAINS: "contains",
    FilterOperator.EQUALS: "equals",
    FilterOperator.STARTS_WITH: "starts with",
    FilterOperator.ENDS_WITH: "ends with",
    FilterOperator.NOT_EQUALS: "does not equal",
    FilterOperator.IS_EMPTY: "is empty",
    FilterOperator.IS_NOT_EMPTY: "is not empty",
}


def build_toolbar(options: TableOptions, view: TableView, search_debounce: float) -> html.Div:
    """Search box plus the filter and column panels of one table."""
    tid = options.table_id
    column_options = [{"label": c.label, "value": c.key} for c in options.columns]

    return html.Div(
        [
            dbc.Row(
                [
                    dbc.Col(
                        dcc.Input(
                            id=table_component_id(P.SEARCH, tid),
                            type="search",
                            value=view.search_term,
                            placeholder="Search...",
                            debounce=search_debounce,
                            className="form-control",
                        ),
                        md=6,
                    ),
                    dbc.Col(
                        dbc.Button(
                            "Filters",
                            id=table_component_id(P.FILTER_TOGGLE, tid),
                            color="secondary",
                            outline=True,
                            size="sm",
                        ),
                        width="auto",
                        className="ms-auto",
                    ),
                ],
                className="g-2 align-items-center",
            ),
            dbc.Collapse(
                _build_filter_panel(tid, column_options),
                id=table_component_id(P.FILTER_PANEL, tid),
                is_open="filters" in view.open_panels,
            ),
            html.Div(
                [
                    html.Label("Columns", className="form-label me-2"),
                    dcc.Checklist(
                        id=table_component_id(P.COLUMNS, tid),
                        options=column_options,
                        value=[c.key for c in options.columns if c.key not in view.hidden_columns],
                        inline=True,
                        inputClassName="me-1",
                        labelClassName="me-3",
                    ),
                ],
                className="d-flex align-items-center mt-2 small",
            ),
        ],
        className="table-toolbar mb-2",
    )


def _build_filter_panel(tid: str, column_options: List[dict]) -> dbc.Card:
    operator_options = [{"label": label, "value": op.value} for op, label in OPERATOR_LABELS.items()]
    logic_options = [{"label": c.value, "value": c.value} for c in Connector]

    return dbc.Card(
        dbc.CardBody(
            [
                dbc.Row(
                    [
                        dbc.Col(
                            dcc.Dropdown(
                                id=table_component_id(P.FILTER_LOGIC, tid),
                                options=logic_options,
                                value=Connector.AND.value,
                                clearable=False,
                            ),
                            md=2,
                        ),
                        dbc.Col(
                            dcc.Dropdown(
                                id=table_component_id(P.FILTER_COLUMN, tid),
                                options=column_options,
                                placeholder="Column",
                            ),
                            md=3,
                        ),
                        dbc.Col(
                            dcc.Dropdown(
                                id=table_component_id(P.FILTER_OPERATOR, tid),
                                options=operator_options,
                                value=FilterOperator.CONTAINS.value,
                                clearable=False,
                            ),
                            md=3,
                        ),
                        dbc.Col(
                            dcc.Input(
                                id=table_component_id(P.FILTER_VALUE, tid),
                                type="text",
                                placeholder="Value",
                                className="form-control",
                            ),
                            md=4,
                        ),
                    ],
                    className="g-2 filter-row",
                ),
                html.Div(
                    [
                        dbc.Button(
                            "Add filter",
                            id=table_component_id(P.FILTER_ADD, tid),
                            color="primary",
                            size="sm",
                            className="me-2",
                        ),
                        dbc.Button(
                            "Clear all",
                            id=table_component_id(P.FILTER_CLEAR, tid),
                            color="link",
                            size="sm",
                        ),
                    ],
                    className="mt-2",
                ),
                html.Div(id=table_component_id(P.FILTER_LIST, tid), className="mt-2"),
            ]
        ),
        className="mt-2 filter-panel",
    )


def build_bulk_toolbar(options: TableOptions) -> html.Div:
    """Hidden until at least one row is selected."""
    tid = options.table_id
    buttons = [
        dbc.Button(
            action.label or action.name,
            id=table_component_id(P.BULK_ACTION, tid, action=action.name),
            color=_button_color(action.variant),
            size="sm",
            className="me-2",
        )
        for action in options.bulk_actions
    ]

    return html.Div(
        [
            html.Span(
                [html.Span("0", id=table_component_id(P.BULK_COUNT, tid)), " selected"],
                className="me-3 fw-semibold",
            ),
            *buttons,
            dbc.Button(
                "Cancel",
                id=table_component_id(P.BULK_CANCEL, tid),
                color="link",
                size="sm",
            ),
        ],
        id=table_component_id(P.BULK_BAR, tid),
        className="bulk-actions-toolbar mb-2",
        style=HIDDEN,
    )


def _button_color(variant: str) -> str:
    return {"danger": "danger", "warning": "warning", "primary": "primary"}.get(variant, "secondary")
