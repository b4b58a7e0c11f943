from __future__ import annotations

__all__ = ["Anchors"]


class Anchors:
    """
    Stable id / class scheme shared by the engines, the remote render service
    and the markup projection.
    """

    class Class:
        CARD = "table-card"
        DATA_TABLE = "data-table"
        SORTABLE = "sortable"
        ROW_CHECKBOX = "row-select-checkbox"
        SELECT_ALL = "select-all-checkbox"
        SEARCH_INPUT = "toolbar-search-input"
        TOOLBAR_DROPDOWN = "toolbar-dropdown"
        TOOLBAR_BUTTON = "toolbar-btn"
        BULK_TOOLBAR = "table-bulk-toolbar"
        SELECTED_COUNT = "selected-count"
        FOOTER_PAGINATION = "footer-pagination"
        PAGE_BUTTON = "pagination-page"
        PREV = "pagination-prev"
        NEXT = "pagination-next"
        ELLIPSIS = "ellipsis"
        ENTRIES = "entries-selector"
        FILTER_APPLY = "filter-apply"
        FILTER_CLEAR = "filter-clear"
        COLUMN_TOGGLE = "column-toggle"
        ACTION_BUTTON = "action-btn"

    class Action:
        CANCEL_SELECTION = "cancel-selection"
        SELECT_ALL = "select-all"

    @staticmethod
    def card(table_id: str) -> str:
        return f"{table_id}-card"

    @staticmethod
    def body(table_id: str) -> str:
        return f"{table_id}-body"

    @staticmethod
    def footer(table_id: str) -> str:
        return f"{table_id}-footer"

    @staticmethod
    def meta(table_id: str) -> str:
        return f"{table_id}-meta"

    @staticmethod
    def bulk_toolbar(table_id: str) -> str:
        return f"{table_id}-bulk"

    @staticmethod
    def search(table_id: str) -> str:
        return f"{table_id}-search"

    @staticmethod
    def filter_panel(table_id: str) -> str:
        return f"{table_id}-filters"

    @staticmethod
    def start(table_id: str) -> str:
        return f"{table_id}-start"

    @staticmethod
    def end(table_id: str) -> str:
        return f"{table_id}-end"

    @staticmethod
    def total(table_id: str) -> str:
        return f"{table_id}-total"

    @staticmethod
    def table_id_of(element_id: str) -> str:
        """'orders-card' / 'orders-footer' -> 'orders'."""
        for suffix in ("-card", "-body", "-footer", "-meta", "-toolbar", "-bulk", "-filters"):
            if element_id.endswith(suffix):
                return element_id[: -len(suffix)]
        return element_id
