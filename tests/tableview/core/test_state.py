import pytest

from tableview.core.filters import Connector, FilterCondition, FilterOperator
from tableview.core.state import (
    CursorDirection,
    CursorPosition,
    Mode,
    OffsetPosition,
    PaginationMode,
    SortDirection,
    TableView,
)


def _make_view(**kwargs):
    defaults = dict(
        table_id="orders",
        page_size=10,
        sort_column="total",
        sort_direction=SortDirection.DESC,
        search_term="acme",
        filter_conditions=[
            FilterCondition(column="status", operator=FilterOperator.EQUALS, value="paid"),
            FilterCondition(column="note", operator=FilterOperator.IS_EMPTY, connector=Connector.OR),
        ],
        selected_ids={"3", "1"},
        hidden_columns={"created"},
        open_panels={"filters"},
    )
    defaults.update(kwargs)
    return TableView(**defaults)


def test_dict_round_trip_offset():
    view = _make_view(position=OffsetPosition(page=4))
    data = view.to_dict()

    assert data["selected_ids"] == ["1", "3"]
    assert data["position"] == {"mode": "offset", "page": 4}
    assert TableView.from_dict(data) == view


def test_dict_round_trip_cursor():
    position = CursorPosition(token="abc", direction=CursorDirection.NEXT, next_cursor="def", has_next=True)
    view = _make_view(mode=Mode.REMOTE, position=position)

    restored = TableView.from_dict(view.to_dict())

    assert restored.pagination_mode is PaginationMode.CURSOR
    assert restored.position == position
    assert restored.page == 1


def test_cursor_requires_remote_mode():
    with pytest.raises(ValueError):
        TableView(table_id="orders", position=CursorPosition())


def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        TableView(table_id="orders", page_size=0)


def test_page_setter_rejects_cursor_position():
    view = TableView(table_id="orders", mode=Mode.REMOTE, position=CursorPosition(token="x"))
    with pytest.raises(TypeError):
        view.page = 2
    view.reset_position()
    assert view.position == CursorPosition()


def test_query_snapshot_restores_query_but_not_selection():
    view = _make_view(position=OffsetPosition(page=2))
    saved = view.query_snapshot()

    view.page = 7
    view.page_size = 50
    view.search_term = "other"
    view.filter_conditions = []
    view.selected_ids.add("9")

    view.restore_query(saved)

    assert view.page == 2
    assert view.page_size == 10
    assert view.search_term == "acme"
    assert len(view.filter_conditions) == 2
    assert view.selected_ids == {"1", "3", "9"}


def test_sort_direction_parse_falls_back():
    assert SortDirection.parse("DESC") is SortDirection.DESC
    assert SortDirection.parse("sideways") is SortDirection.ASC
    assert SortDirection.parse(None, SortDirection.DESC) is SortDirection.DESC
