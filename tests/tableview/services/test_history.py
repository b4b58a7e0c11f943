from tableview.core.filters import FilterCondition, FilterOperator
from tableview.core.state import CursorPosition, Mode, OffsetPosition, SortDirection, TableView
from tableview.services.history import AddressBar, HistorySynchronizer, from_query, to_query, with_query


def _make_view(**kwargs):
    return TableView(table_id="orders", **kwargs)


def test_to_query_only_carries_non_defaults():
    assert to_query(_make_view()) == {}

    view = _make_view(position=OffsetPosition(page=2), page_size=10, search_term="acme", sort_column="total")
    assert to_query(view) == {"page": "2", "size": "10", "search": "acme", "sort": "total"}

    view.sort_direction = SortDirection.DESC
    assert to_query(view)["dir"] == "desc"


def test_cursor_views_never_carry_page():
    view = _make_view(mode=Mode.REMOTE, position=CursorPosition(token="abc"))
    assert "page" not in to_query(view)


def test_from_query_ignores_garbage():
    view = _make_view()

    applied = from_query(view, {"page": "zero", "size": "-4", "filters": "%%%", "dir": "sideways", "sort": "total"})

    assert applied is True
    assert view.page == 1
    assert view.page_size == 25
    assert view.filter_conditions == []
    assert (view.sort_column, view.sort_direction) == ("total", SortDirection.ASC)


def test_query_round_trip_through_address_bar():
    view = _make_view(
        position=OffsetPosition(page=3),
        page_size=50,
        search_term="acme",
        sort_column="created",
        sort_direction=SortDirection.DESC,
        filter_conditions=[FilterCondition(column="status", operator=FilterOperator.EQUALS, value="paid")],
    )
    bar = AddressBar("/orders")
    HistorySynchronizer(bar).mirror(view)

    restored = _make_view()
    assert HistorySynchronizer(bar).restore(restored) is True

    assert to_query(restored) == to_query(view)
    assert restored.filter_conditions == view.filter_conditions


def test_mirror_replaces_instead_of_pushing():
    bar = AddressBar("/orders?tab=open#top")
    sync = HistorySynchronizer(bar)
    view = _make_view()

    for page in (2, 3, 4):
        view.page = page
        sync.mirror(view)

    assert bar.length == 1
    assert bar.url == "/orders?tab=open&page=4#top"

    view.page = 1
    sync.mirror(view)
    assert bar.url == "/orders?tab=open#top"


def test_with_query_keeps_unrelated_keys():
    assert with_query("/x?page=9&lang=en", {"search": "a b"}) == "/x?lang=en&search=a+b"
