from __future__ import annotations

from typing import Any, Collection, Dict, List, Optional, Sequence

import dash_bootstrap_components as dbc
from dash import dcc, html

from tableview.core.filters import FilterCondition
from tableview.core.pagination import ELLIPSIS, PageWindow
from tableview.core.rows import Column
from tableview.core.selection import SelectAllState
from tableview.core.state import SortDirection, TableView
from tableview.dom.anchors import Anchors
from tableview.services.actions import RowAction
from tableview.services.table_controller import TableOptions
from tableview.ui.ids import IDs, table_component_id
from tableview.ui.layout.build_toolbar import (
    BULK_BAR_VISIBLE,
    HIDDEN,
    OPERATOR_LABELS,
    build_bulk_toolbar,
    build_toolbar,
)

P = IDs.Pattern

SELECT_ALL_GLYPHS = {
    SelectAllState.NONE: "☐",
    SelectAllState.SOME: "⊟",
    SelectAllState.ALL: "☑",
}


def build_table_card(
        options: TableOptions,
        title: str,
        view: TableView,
        page_size_options: Sequence[int],
        search_debounce: float,
) -> dbc.Card:
    tid = options.table_id

    return dbc.Card(
        [
            dbc.CardHeader(title, className="fw-semibold"),
            dbc.CardBody(
                [
                    dcc.Store(id=table_component_id(P.STATE, tid), data=view.to_dict()),
                    dcc.Store(id=table_component_id(P.REMOTE_BODY, tid), data=[]),

                    build_toolbar(options, view, search_debounce),
                    build_bulk_toolbar(options),

                    html.Div(
                        dbc.Table(
                            [
                                html.Thead(build_header(options)),
                                html.Tbody(id=table_component_id(P.BODY, tid)),
                            ],
                            className="data-table",
                            hover=True,
                            size="sm",
                        ),
                        className="table-responsive",
                    ),

                    build_footer(options, view, page_size_options),
                ]
            ),
        ],
        id=Anchors.card(tid),
        className=f"{Anchors.Class.CARD} mb-4",
    )


# -----------------------------------------------------------------------------
# Header
# -----------------------------------------------------------------------------
def build_header(options: TableOptions) -> html.Tr:
    tid = options.table_id
    # select-all is always present so per-table callbacks can match it
    cells = [
        html.Th(
            html.Button(
                SELECT_ALL_GLYPHS[SelectAllState.NONE],
                id=table_component_id(P.SELECT_ALL, tid),
                className="btn btn-link p-0 select-all-checkbox",
                title="Select all on this page",
            ),
            style={"width": "2rem"} if options.selectable else HIDDEN,
        )
    ]
    for column in options.columns:
        if column.sortable:
            label: Any = html.Button(
                column.label,
                id=table_component_id(P.SORT, tid, column=column.key),
                className="btn btn-link p-0 sortable",
            )
        else:
            label = column.label
        cells.append(html.Th(label, id=table_component_id(P.HEADER, tid, column=column.key)))
    if options.row_actions:
        cells.append(html.Th(""))
    return html.Tr(cells)


def sort_label(column: Column, sort_column: Optional[str], direction: SortDirection) -> str:
    if column.key != sort_column:
        return column.label
    return f"{column.label} {'▲' if direction is SortDirection.ASC else '▼'}"


# -----------------------------------------------------------------------------
# Body
# -----------------------------------------------------------------------------
def build_rows(
        rows: Sequence[Dict[str, Any]],
        options: TableOptions,
        selected_ids: Collection[str],
        hidden_columns: Collection[str],
) -> List[html.Tr]:
    tid = options.table_id
    visible = [c for c in options.columns if c.key not in hidden_columns]
    n_cols = len(visible) + int(options.selectable) + int(bool(options.row_actions))

    if not rows:
        return [html.Tr(html.Td("No matching records", colSpan=max(n_cols, 1), className="text-muted text-center"))]

    out = []
    for row in rows:
        row_id = row["id"]
        cells = []
        if options.selectable:
            cells.append(
                html.Td(
                    dbc.Checkbox(
                        id=table_component_id(P.ROW_CHECK, tid, row=row_id),
                        value=row_id in selected_ids,
                    ),
                    className="row-checkbox",
                )
            )
        for column in visible:
            value = row["cells"].get(column.key)
            cells.append(html.Td("" if value is None else str(value)))
        if options.row_actions:
            cells.append(html.Td(_row_action_buttons(tid, row_id, options.row_actions), className="text-end"))
        out.append(html.Tr(cells, className="selected" if row_id in selected_ids else None))
    return out


def _row_action_buttons(tid: str, row_id: str, actions: Sequence[RowAction]) -> List[dbc.Button]:
    return [
        dbc.Button(
            action.label or action.kind.title(),
            id=table_component_id(P.ROW_ACTION, tid, row=row_id, action=action.kind),
            color="danger" if action.variant == "danger" else "secondary",
            outline=True,
            size="sm",
            className="ms-1 action-btn",
        )
        for action in actions
    ]


# -----------------------------------------------------------------------------
# Footer
# -----------------------------------------------------------------------------
def build_footer(options: TableOptions, view: TableView, page_size_options: Sequence[int]) -> html.Div:
    tid = options.table_id
    sizes = sorted(set(page_size_options) | {view.page_size})

    return html.Div(
        [
            html.Small(id=table_component_id(P.FOOTER_INFO, tid), className="text-muted me-3"),
            dcc.Dropdown(
                id=table_component_id(P.PAGE_SIZE, tid),
                options=[{"label": f"{n} / page", "value": n} for n in sizes],
                value=view.page_size,
                clearable=False,
                style={"width": "8rem"},
                className="me-auto",
            ),
            dbc.ButtonGroup(
                [
                    dbc.Button("Previous", id=table_component_id(P.PREV, tid), outline=True, size="sm"),
                    html.Span(id=table_component_id(P.PAGINATION, tid), className="d-inline-flex"),
                    dbc.Button("Next", id=table_component_id(P.NEXT, tid), outline=True, size="sm"),
                ],
            ),
        ],
        id=Anchors.footer(tid),
        className="d-flex align-items-center table-footer",
    )


def build_page_buttons(tid: str, window: PageWindow) -> List[Any]:
    """Numbered buttons for offset tables; cursor tables only get prev/next."""
    buttons = []
    for item in window.pages:
        if item == ELLIPSIS:
            buttons.append(dbc.Button(ELLIPSIS, disabled=True, outline=True, size="sm", className="pagination-ellipsis"))
            continue
        buttons.append(
            dbc.Button(
                str(item),
                id=table_component_id(P.PAGE, tid, page=item),
                outline=item != window.page,
                active=item == window.page,
                size="sm",
                className="pagination-page",
            )
        )
    return buttons


# -----------------------------------------------------------------------------
# Active filters
# -----------------------------------------------------------------------------
def build_filter_chips(tid: str, conditions: Sequence[FilterCondition], columns: Sequence[Column]) -> List[Any]:
    labels = {c.key: c.label for c in columns}
    chips = []
    for index, cond in enumerate(conditions):
        text = f"{labels.get(cond.column, cond.column)} {OPERATOR_LABELS[cond.operator]}"
        if cond.value is not None:
            text += f" \"{cond.value}\""
        if cond.connector is not None:
            text = f"{cond.connector.value} {text}"
        chips.append(
            dbc.Badge(
                [
                    text,
                    html.Button(
                        "×",
                        id=table_component_id(P.FILTER_REMOVE, tid, index=index),
                        className="btn btn-link btn-sm text-white ms-2 p-0",
                        title="Remove filter",
                    ),
                ],
                color="info",
                className="me-2 filter-chip",
            )
        )
    return chips


def bulk_bar_style(count: int) -> Dict[str, str]:
    return BULK_BAR_VISIBLE if count > 0 else HIDDEN
