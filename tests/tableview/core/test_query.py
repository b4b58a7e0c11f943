import pytest

from tableview.core.filters import FilterCondition, FilterOperator, append_condition
from tableview.core.query import matches_search, run_query, set_search
from tableview.core.rows import Row, RowSnapshot
from tableview.core.state import Mode, OffsetPosition, SortDirection, TableView


def _make_snapshot(n=30):
    statuses = ["paid", "open", "void"]
    return RowSnapshot.from_records(
        {"id": i, "customer": f"Customer {i:02d}", "status": statuses[i % 3], "total": i * 10}
        for i in range(1, n + 1)
    )


def test_search_matches_any_attribute_case_insensitively():
    row = Row(id="1", attributes={"customer": "Acme Ltd", "total": 42})
    assert matches_search(row, "  acme ")
    assert matches_search(row, "42")
    assert not matches_search(row, "globex")
    assert matches_search(row, "")


def test_run_query_filters_sorts_and_slices():
    snapshot = _make_snapshot()
    view = TableView(table_id="orders", page_size=5)
    append_condition(view, FilterCondition(column="status", operator=FilterOperator.EQUALS, value="PAID"))
    view.sort_column = "total"
    view.sort_direction = SortDirection.DESC

    result = run_query(snapshot, view)

    assert result.filtered_count == 10
    assert view.total_rows == 10
    assert result.row_ids == ("30", "27", "24", "21", "18")
    assert all(not row.filter_hidden for row in result.rows)
    assert snapshot.get("1").filter_hidden is True


def test_run_query_clamps_page_after_filtering():
    snapshot = _make_snapshot()
    view = TableView(table_id="orders", page_size=5, position=OffsetPosition(page=6))

    assert set_search(view, "customer 1") is True
    view.page = 6
    result = run_query(snapshot, view)

    # customers 01..09 don't match "customer 1", 10..19 do
    assert result.filtered_count == 10
    assert view.page == 2
    assert result.row_ids == ("15", "16", "17", "18", "19")


def test_set_search_is_noop_for_same_term():
    view = TableView(table_id="orders", position=OffsetPosition(page=3))
    assert set_search(view, " acme ") is True
    assert view.page == 1
    view.page = 2
    assert set_search(view, "acme") is False
    assert view.page == 2


def test_remote_table_cannot_be_queried_locally():
    view = TableView(table_id="orders", mode=Mode.REMOTE)
    with pytest.raises(ValueError):
        run_query(_make_snapshot(), view)


def test_snapshot_rejects_duplicate_ids():
    with pytest.raises(ValueError):
        RowSnapshot([Row(id="1"), Row(id="1")])
