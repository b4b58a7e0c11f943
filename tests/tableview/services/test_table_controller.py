from tableview.core.filters import FilterCondition, FilterOperator
from tableview.core.rows import Column, RowSnapshot
from tableview.dom.document import Document
from tableview.dom.reconciler import Reconciler
from tableview.services.table_controller import TableController, TableOptions

CARD = (
    '<div id="orders-card" class="table-card">'
    '<input id="orders-search" class="toolbar-search-input" value=""/>'
    '<table class="data-table"><thead><tr>'
    '<th><input type="checkbox" class="select-all-checkbox"/></th>'
    '<th class="sortable" data-sort="customer">Customer</th>'
    '<th class="sortable" data-sort="total">Total</th>'
    "</tr></thead>"
    '<tbody id="orders-body"></tbody></table>'
    '<div id="orders-footer">'
    '<span id="orders-start"></span><span id="orders-end"></span><span id="orders-total"></span>'
    '<div class="footer-pagination">'
    '<button class="pagination-prev"></button><button class="pagination-next"></button>'
    "</div></div></div>"
)


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _make_controller(n_rows=12, clock=None, markup=CARD):
    doc = Document(markup)
    controller = TableController(doc, clock=clock or _FakeClock())
    controller.configure(
        TableOptions(table_id="orders", page_size=5, columns=[Column(key="customer"), Column(key="total")])
    )
    controller.set_rows(
        "orders",
        RowSnapshot.from_records(
            {"id": i, "customer": f"Customer {i:02d}", "total": i * 10} for i in range(1, n_rows + 1)
        ),
    )
    controller.initialize("orders")
    return controller, doc


def _row_ids(doc):
    return [tr["data-id"] for tr in doc.select("#orders-body tr[data-id]")]


def test_initial_render():
    controller, doc = _make_controller()

    assert _row_ids(doc) == ["1", "2", "3", "4", "5"]
    assert doc.get("orders-start").get_text() == "1"
    assert doc.get("orders-end").get_text() == "5"
    assert doc.get("orders-total").get_text() == "12"
    assert [b.get_text() for b in doc.select(".pagination-page")] == ["1", "2", "3"]


def test_footer_and_header_clicks():
    controller, doc = _make_controller()

    doc.click(doc.select_one(".pagination-next"))
    assert _row_ids(doc) == ["6", "7", "8", "9", "10"]

    doc.click(doc.select_one('.pagination-page[data-page="3"]'))
    assert _row_ids(doc) == ["11", "12"]
    assert doc.select_one(".pagination-next").has_attr("disabled")

    total_header = doc.select_one('th[data-sort="total"]')
    doc.click(total_header)
    doc.click(doc.select_one('th[data-sort="total"]'))

    assert _row_ids(doc)[0] == "12"
    assert controller.registry.get("orders").page == 1
    assert "sort-desc" in doc.select_one('th[data-sort="total"]')["class"]


def test_search_is_debounced():
    clock = _FakeClock()
    controller, doc = _make_controller(clock=clock)

    doc.set_value("orders-search", "customer 1")
    assert controller.poll() == 0
    assert len(_row_ids(doc)) == 5

    clock.now = 1.0
    assert controller.poll() == 1
    assert _row_ids(doc) == ["10", "11", "12"]


def test_reinitialising_never_stacks_listeners():
    controller, doc = _make_controller()
    before = doc.listener_count()

    for _ in range(3):
        controller.initialize("orders")

    assert doc.listener_count() == before
    assert doc.listener_count("orders-body", "change") == 1
    assert controller.subscriptions.count("orders", "selection") == 1


def test_row_selection_enables_bulk_mode_once():
    controller, doc = _make_controller()
    changes = []
    controller.selection.on_change("orders", lambda table_id, ids: changes.append(set(ids)))
    controller.initialize("orders")
    controller.initialize("orders")

    checkbox = doc.select_one('.row-select-checkbox[data-row-id="2"]')
    doc.set_checked(checkbox, True)

    assert changes == [{"2"}]
    assert doc.get("orders-card")["data-bulk-mode"] == "true"
    assert doc.select_one(".select-all-checkbox")["data-indeterminate"] == "true"

    doc.set_checked(doc.select_one(".select-all-checkbox"), True)
    assert controller.selection.selected("orders") == {"1", "2", "3", "4", "5"}


def test_state_survives_replaced_markup():
    controller, doc = _make_controller()
    reconciler = Reconciler(doc, controller)
    reconciler.start()

    doc.click(doc.select_one(".pagination-next"))
    doc.set_checked(doc.select_one('.row-select-checkbox[data-row-id="7"]'), True)

    doc.replace_outer("orders-card", CARD)

    view = controller.registry.get("orders")
    assert view.page == 2
    assert view.selected_ids == {"7"}
    assert _row_ids(doc) == ["6", "7", "8", "9", "10"]
    assert doc.select_one('.row-select-checkbox[data-row-id="7"]').has_attr("checked")
    assert doc.listener_count("orders-body", "change") == 1
    assert not controller.subscriptions.has_dead("orders")


def test_poll_fallback_reinitialises_unannounced_replacement():
    controller, doc = _make_controller()
    reconciler = Reconciler(doc, controller)

    doc.replace_outer("orders-card", CARD, notify=False)
    assert controller.subscriptions.has_dead("orders")

    assert reconciler.tick(force=True) == ["orders"]
    assert not controller.subscriptions.has_dead("orders")
    assert reconciler.tick() == []


def test_set_rows_prunes_vanished_selection():
    controller, _ = _make_controller()
    controller.selection.set_many("orders", ["1", "12"], True)

    controller.set_rows("orders", RowSnapshot.from_records([{"id": 1, "customer": "x", "total": 1}]))

    assert controller.selection.selected("orders") == {"1"}


def test_options_from_card_attributes():
    doc = Document(
        '<div id="customers-card" class="table-card" data-server-pagination="true" data-pagination-mode="cursor"'
        ' data-page-size="abc" data-pagination-url="/customers" data-sync-url="false" data-bulk-enabled="false"></div>'
    )
    options = TableOptions.from_card("customers", doc.get("customers-card"))

    assert options.mode.value == "remote"
    assert options.pagination_mode.value == "cursor"
    assert options.page_size == 25
    assert options.endpoints.url == "/customers"
    assert options.sync_address_bar is False
    assert options.selectable is False


def test_malformed_page_button_is_ignored():
    controller, doc = _make_controller()
    button = doc.select_one('.pagination-page[data-page="2"]')
    button["data-page"] = "two"

    doc.click(button)

    assert controller.registry.get("orders").page == 1
    assert _row_ids(doc) == ["1", "2", "3", "4", "5"]


def test_malformed_filter_removal_is_ignored():
    markup = CARD.replace(
        "</div></div></div>",
        '</div></div><div id="orders-filters"><button data-remove-filter="first">x</button></div></div>',
    )
    controller, doc = _make_controller(markup=markup)
    controller.append_filter("orders", FilterCondition(column="customer", operator=FilterOperator.CONTAINS, value="1"))

    doc.click(doc.select_one("[data-remove-filter]"))

    assert len(controller.registry.get("orders").filter_conditions) == 1
