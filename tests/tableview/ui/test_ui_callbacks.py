from __future__ import annotations

import json
from pathlib import Path

import httpx

from tableview.config.loader import load_tables
from tableview.config.model import GlobalConfig
from tableview.core.pagination import go_to_page
from tableview.core.rows import Column, RowSnapshot
from tableview.core.selection import BulkAction, SelectAllState
from tableview.core.state import Mode, TableView
from tableview.services.remote_sync import RemoteEndpoints
from tableview.services.render_client import RenderClient
from tableview.services.table_controller import TableOptions
from tableview.ui.callbacks.callbacks_selection import apply_selection_event
from tableview.ui.callbacks.callbacks_table import project_table
from tableview.ui.callbacks.callbacks_utils import reload_table, remote_round_trip
from tableview.ui.config import AppConfig
from tableview.ui.dash_app import build_app_config
from tableview.ui.ids import IDs
from tableview.ui.layout.build_layout import build_layout

P = IDs.Pattern

DELETE = BulkAction(name="delete", requires_attr="deletable", endpoint="/orders/delete")


def _make_ctx(handler=None):
    client = RenderClient(
        client=httpx.Client(
            transport=httpx.MockTransport(handler or (lambda request: httpx.Response(500))),
            base_url="http://render",
        )
    )
    ctx = AppConfig(config_root=Path("."), global_config=GlobalConfig())
    ctx.render_client = client

    ctx.table_ids = ["orders", "customers"]
    ctx.options["orders"] = TableOptions(
        table_id="orders",
        page_size=2,
        columns=[Column(key="customer", label="Customer")],
        bulk_actions=[DELETE],
    )
    ctx.snapshots["orders"] = RowSnapshot.from_records(
        [
            {"id": "1", "customer": "Acme", "deletable": "true"},
            {"id": "2", "customer": "Globex", "deletable": "false"},
            {"id": "3", "customer": "Initech", "deletable": "true"},
        ]
    )
    ctx.options["customers"] = TableOptions(
        table_id="customers",
        mode=Mode.REMOTE,
        columns=[Column(key="name", label="Name")],
        bulk_actions=[DELETE],
        endpoints=RemoteEndpoints(url="/customers", body_url="/customers/body"),
        sync_address_bar=True,
    )
    return ctx


def _patch(rows, page=1):
    trs = "".join(
        f'<tr data-id="{row_id}" data-deletable="{flag}"><td data-column="name">{row_id}</td></tr>'
        for row_id, flag in rows
    )
    return (
        f'<div id="customers-meta" data-current-page="{page}" data-total-rows="{len(rows)}"></div>'
        f'<tbody id="customers-body">{trs}</tbody>'
    )


# -----------------------------------------------------------------------------
# Selection events
# -----------------------------------------------------------------------------
def test_select_all_toggles_visible_rows():
    view = TableView(table_id="orders", selected_ids={"9"})
    trigger = {"type": P.SELECT_ALL, "table": "orders"}

    assert apply_selection_event(view, trigger, ["1", "2"], []) is True
    assert view.selected_ids == {"1", "2", "9"}

    assert apply_selection_event(view, trigger, ["1", "2"], []) is True
    assert view.selected_ids == {"9"}


def test_checkbox_event_merges_with_other_pages():
    view = TableView(table_id="orders", selected_ids={"9", "1"})
    trigger = {"type": P.ROW_CHECK, "table": "orders", "row": "2"}

    assert apply_selection_event(view, trigger, ["1", "2"], [False, True]) is True
    assert view.selected_ids == {"9", "2"}
    assert apply_selection_event(view, trigger, ["1", "2"], [False, True]) is False


def test_cancel_clears_selection():
    view = TableView(table_id="orders", selected_ids={"1"})
    assert apply_selection_event(view, {"type": P.BULK_CANCEL, "table": "orders"}, [], []) is True
    assert view.selected_ids == set()


# -----------------------------------------------------------------------------
# Projection
# -----------------------------------------------------------------------------
def test_local_projection_looks_up_whole_dataset():
    ctx = _make_ctx()
    view = TableView(table_id="orders", page_size=2, selected_ids={"1", "3"})

    projection = project_table(ctx, view, [])

    assert [r["id"] for r in projection["rows"]] == ["1", "2"]
    assert projection["window"].total == 3
    # row 3 is on page 2 but still counts for the conditional action
    assert projection["selection"].enabled_actions == ("delete",)
    assert projection["selection"].select_all is SelectAllState.SOME

    view.selected_ids.add("2")
    assert project_table(ctx, view, [])["selection"].disabled_actions == ("delete",)


def test_remote_projection_uses_on_screen_rows():
    ctx = _make_ctx()
    view = TableView(table_id="customers", mode=Mode.REMOTE, total_rows=2, selected_ids={"a", "zz"})
    rows = [{"id": "a", "attributes": {"deletable": "true"}, "cells": {"name": "A"}}]

    projection = project_table(ctx, view, rows)

    assert projection["window"].total == 2
    assert projection["rows"] == rows
    # "zz" is not on screen, so it counts as non-matching
    assert projection["selection"].disabled_actions == ("delete",)


def test_remote_round_trip_returns_rows():
    ctx = _make_ctx(lambda request: httpx.Response(200, text=_patch([("a", "true"), ("b", "false")])))
    view = TableView(table_id="customers", mode=Mode.REMOTE)

    rows = remote_round_trip(ctx, view)

    assert [r["id"] for r in rows] == ["a", "b"]
    assert rows[1]["attributes"] == {"deletable": "false"}
    assert view.total_rows == 2


def test_remote_round_trip_failure_keeps_view():
    ctx = _make_ctx()
    view = TableView(table_id="customers", mode=Mode.REMOTE)

    def search(v):
        v.search_term = "acme"

    assert remote_round_trip(ctx, view, search) is None
    assert view.search_term == ""


def test_concurrent_sessions_do_not_supersede_each_other():
    other_session = TableView(table_id="customers", mode=Mode.REMOTE)
    seen = {}

    def handler(request):
        page = request.url.params.get("page", "1")
        if page == "2" and "other" not in seen:
            # a second browser session pages the same table mid-request
            seen["other"] = remote_round_trip(ctx, other_session, lambda v: go_to_page(v, 3))
        return httpx.Response(200, text=_patch([(f"p{page}", "true")], page=page))

    ctx = _make_ctx(handler)
    view = TableView(table_id="customers", mode=Mode.REMOTE)

    rows = remote_round_trip(ctx, view, lambda v: go_to_page(v, 2))

    assert [r["id"] for r in rows] == ["p2"]
    assert [r["id"] for r in seen["other"]] == ["p3"]
    assert view.page == 2
    assert other_session.page == 3


def test_reload_local_table_requeries():
    ctx = _make_ctx()
    view = TableView(table_id="orders", page_size=2)

    assert reload_table(ctx, view) is None
    assert view.total_rows == 3


# -----------------------------------------------------------------------------
# App wiring
# -----------------------------------------------------------------------------
def _write_config(root: Path) -> None:
    (root / "tables").mkdir(parents=True)
    (root / "global.json").write_text(json.dumps({"ui_title": "Desk", "data_root": "."}))
    (root / "orders.csv").write_text("id,customer\n1,Acme\n2,Globex\n")
    (root / "tables" / "orders.json").write_text(
        json.dumps({"data": "orders.csv", "columns": [{"key": "customer", "label": "Customer"}]})
    )
    (root / "tables" / "gone.json").write_text(json.dumps({"data": "missing.csv"}))


def test_build_app_config_skips_unloadable_tables(tmp_path):
    _write_config(tmp_path)

    ctx = build_app_config(tmp_path, load_tables(tmp_path))

    assert ctx.table_ids == ["orders"]
    assert len(ctx.snapshots["orders"]) == 2
    assert ctx.address_bar_table is None
    assert build_layout(ctx) is not None
