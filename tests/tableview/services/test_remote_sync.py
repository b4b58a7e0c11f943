import httpx

from tableview.core.filters import FilterCondition, FilterOperator, append_condition, clear_filters, decode_filters
from tableview.core.pagination import go_to_page
from tableview.core.query import set_search
from tableview.core.registry import StateRegistry
from tableview.core.state import CursorDirection, CursorPosition, Mode, OffsetPosition, SortDirection, TableView
from tableview.dom.document import Document
from tableview.services.history import AddressBar, HistorySynchronizer
from tableview.services.remote_sync import (
    FullReplacement,
    PaginationMeta,
    RemoteEndpoints,
    RemoteSyncAdapter,
    SyncStatus,
    TargetedPatch,
    build_params,
    parse_response,
)
from tableview.services.render_client import RenderClient

ENDPOINTS = RemoteEndpoints(url="/orders/table", body_url="/orders/body", refresh_url="/orders/refresh")


def _patch(page=1, total=130, rows=("1", "2")):
    trs = "".join(f'<tr data-id="{r}"><td data-column="customer">c{r}</td></tr>' for r in rows)
    return (
        f'<div id="orders-meta" data-current-page="{page}" data-page-size="25" data-total-rows="{total}"></div>'
        f'<tbody id="orders-body">{trs}</tbody>'
        f'<div id="orders-footer" hx-swap-oob="true"><span id="orders-total">{total}</span></div>'
    )


def _card(page=1, total=130):
    return (
        f'<div id="orders-card" class="table-card" data-current-page="{page}" data-total-rows="{total}">'
        '<table class="data-table"><tbody id="orders-body"><tr data-id="full"><td>full</td></tr></tbody></table>'
        '<div id="orders-footer"></div></div>'
    )


def _make_adapter(handler, document=None, history=None, view=None):
    registry = StateRegistry()
    registry.adopt(view or TableView(table_id="orders", mode=Mode.REMOTE))
    client = RenderClient(client=httpx.Client(transport=httpx.MockTransport(handler), base_url="http://render"))
    adapter = RemoteSyncAdapter(registry, client, document=document, history=history)
    adapter.register("orders", ENDPOINTS)
    return adapter, registry


def _recorder(responses):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status, body = responses[request.url.path]
        return httpx.Response(status, text=body)

    return handler, calls


# -----------------------------------------------------------------------------
# Parameters
# -----------------------------------------------------------------------------
def test_defaults_are_omitted():
    assert build_params(TableView(table_id="orders", mode=Mode.REMOTE)) == {}


def test_offset_params():
    view = TableView(
        table_id="orders",
        mode=Mode.REMOTE,
        position=OffsetPosition(page=3),
        page_size=50,
        search_term="acme",
        sort_column="total",
        sort_direction=SortDirection.DESC,
        filter_conditions=[FilterCondition(column="status", operator=FilterOperator.EQUALS, value="paid")],
    )

    params = build_params(view)

    assert params["page"] == "3"
    assert params["size"] == "50"
    assert params["search"] == "acme"
    assert (params["sort"], params["dir"]) == ("total", "desc")
    assert decode_filters(params["filters"]) == view.filter_conditions


def test_cursor_params_never_send_page():
    view = TableView(
        table_id="orders",
        mode=Mode.REMOTE,
        position=CursorPosition(token="abc", direction=CursorDirection.NEXT),
    )

    assert build_params(view) == {"cursor": "abc", "curdir": "next"}


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
def test_parse_targeted_patch_strips_oob_marker():
    response = parse_response("orders", _patch(page=2))

    assert isinstance(response, TargetedPatch)
    assert response.meta.current_page == 2
    assert response.meta.total_rows == 130
    assert "hx-swap-oob" not in response.footer
    assert 'data-id="1"' in response.body


def test_parse_full_replacement():
    response = parse_response("orders", _card(total=7))
    assert isinstance(response, FullReplacement)
    assert response.meta.total_rows == 7


def test_meta_applies_cursor_fields():
    view = TableView(table_id="orders", mode=Mode.REMOTE, position=CursorPosition())
    meta = PaginationMeta.from_attrs(
        {"data-has-next": "true", "data-has-prev": "false", "data-next-cursor": "n2", "data-total-rows": "x"}
    )

    meta.apply(view)

    assert view.position.has_next is True
    assert view.position.has_prev is False
    assert view.position.next_cursor == "n2"
    assert view.total_rows == 0


# -----------------------------------------------------------------------------
# Sync flow
# -----------------------------------------------------------------------------
def test_targeted_patch_updates_view_and_address_bar():
    handler, calls = _recorder({"/orders/body": (200, _patch(page=2))})
    history = HistorySynchronizer(AddressBar("/orders?tab=open"))
    adapter, registry = _make_adapter(handler, history=history)

    result = adapter.sync("orders", lambda v: go_to_page(v, 2))

    assert result.status is SyncStatus.APPLIED
    assert result.targeted
    assert registry.get("orders").page == 2
    assert registry.get("orders").total_rows == 130
    assert calls[0].url.params["page"] == "2"
    assert calls[0].headers["HX-Request"] == "true"
    assert history.address_bar.url == "/orders?tab=open&page=2"
    assert history.address_bar.length == 1


def test_failed_patch_falls_back_to_full_replacement():
    handler, calls = _recorder({"/orders/body": (500, "boom"), "/orders/table": (200, _card(page=2))})
    doc = Document(_card())
    adapter, registry = _make_adapter(handler, document=doc)

    result = adapter.sync("orders", lambda v: go_to_page(v, 2))

    assert result.status is SyncStatus.APPLIED
    assert isinstance(result.response, FullReplacement)
    assert [c.url.path for c in calls] == ["/orders/body", "/orders/table"]
    assert calls[0].url.params == calls[1].url.params
    assert doc.get("orders-card")["data-current-page"] == "2"


def test_total_failure_restores_previous_view():
    handler, _ = _recorder({"/orders/body": (500, ""), "/orders/table": (503, "")})
    history = HistorySynchronizer(AddressBar("/orders"))
    adapter, registry = _make_adapter(handler, history=history)

    result = adapter.sync("orders", lambda v: set_search(v, "acme"))

    assert result.status is SyncStatus.FAILED
    assert registry.get("orders").search_term == ""
    assert history.address_bar.url == "/orders"


def test_patch_without_meta_carrier_falls_back():
    handler, calls = _recorder({"/orders/body": (200, "<tbody></tbody>"), "/orders/table": (200, _card(total=3))})
    adapter, registry = _make_adapter(handler)

    result = adapter.sync("orders")

    assert result.applied
    assert len(calls) == 2
    assert registry.get("orders").total_rows == 3


def test_stale_response_is_discarded():
    handler, _ = _recorder({})
    adapter, registry = _make_adapter(handler)

    first = adapter.prepare("orders", lambda v: go_to_page(v, 2))
    second = adapter.prepare("orders", lambda v: go_to_page(v, 3))

    assert adapter.complete(first, _patch(page=2)).status is SyncStatus.STALE
    assert registry.get("orders").page == 3
    assert adapter.complete(second, _patch(page=3)).status is SyncStatus.APPLIED
    assert second.sequence == adapter.latest_sequence("orders") == 2


def test_failure_of_superseded_request_keeps_newer_view():
    handler, _ = _recorder({})
    adapter, registry = _make_adapter(handler)

    first = adapter.prepare("orders", lambda v: go_to_page(v, 2))
    adapter.prepare("orders", lambda v: go_to_page(v, 3))

    result = adapter.fail(first, RuntimeError("timeout"))

    assert result.status is SyncStatus.STALE
    assert registry.get("orders").page == 3


def test_targeted_patch_is_written_into_document():
    handler, _ = _recorder({"/orders/body": (200, _patch(rows=("7", "8")))})
    doc = Document(_card(total=5))
    adapter, _ = _make_adapter(handler, document=doc)

    adapter.sync("orders")

    assert [tr["data-id"] for tr in doc.select("#orders-body tr")] == ["7", "8"]
    assert doc.get("orders-total").get_text() == "130"
    assert doc.get("orders-card")["data-total-rows"] == "130"


def test_refresh_uses_refresh_url():
    handler, calls = _recorder({"/orders/refresh": (200, _card())})
    adapter, _ = _make_adapter(handler)

    assert adapter.refresh("orders").applied
    assert calls[0].url.path == "/orders/refresh"


def test_unknown_table_is_skipped():
    adapter, _ = _make_adapter(_recorder({})[0])
    assert adapter.sync("customers").status is SyncStatus.SKIPPED


def test_fetch_adopts_caller_view():
    handler, _ = _recorder({"/orders/body": (200, _patch(page=4))})
    adapter, registry = _make_adapter(handler)
    view = TableView(table_id="orders", mode=Mode.REMOTE)

    result = adapter.fetch(view, ENDPOINTS, lambda v: go_to_page(v, 4))

    assert result.applied
    assert registry.get("orders") is view
    assert view.page == 4


def test_cleared_filters_are_omitted_from_next_request():
    handler, calls = _recorder({"/orders/body": (200, _patch())})
    adapter, _ = _make_adapter(handler)
    paid = FilterCondition(column="status", operator=FilterOperator.EQUALS, value="paid")

    adapter.sync("orders", lambda v: append_condition(v, paid))
    adapter.sync("orders", clear_filters)

    assert "filters" in calls[0].url.params
    assert "filters" not in calls[-1].url.params
