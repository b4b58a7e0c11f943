from __future__ import annotations

from typing import Any, Dict

__all__ = ["IDs", "table_component_id"]


class IDs:
    class Store:
        URL_QUERY = "url-query"
        URL_MIRROR_ACK = "url-mirror-ack"
        PENDING_ACTION = "pending-action"

    class Control:
        LOCATION = "location"
        NAVBAR_SUBTITLE = "navbar-subtitle"

        CONFIRM_MODAL = "confirm-modal"
        CONFIRM_TITLE = "confirm-title"
        CONFIRM_BODY = "confirm-body"
        CONFIRM_OK = "confirm-ok"
        CONFIRM_CANCEL = "confirm-cancel"
        ACTION_STATUS = "action-status"

        DRAWER = "edit-drawer"
        DRAWER_FRAME = "edit-drawer-frame"

    class Pattern:
        # pattern-matching "type" strings, keyed by {"table": table_id, ...}
        STATE = "tv-state"
        REMOTE_BODY = "tv-remote-body"

        SEARCH = "tv-search"
        SORT = "tv-sort"
        PAGE = "tv-page"
        PREV = "tv-prev"
        NEXT = "tv-next"
        PAGE_SIZE = "tv-page-size"

        FILTER_COLUMN = "tv-filter-column"
        FILTER_OPERATOR = "tv-filter-operator"
        FILTER_VALUE = "tv-filter-value"
        FILTER_LOGIC = "tv-filter-logic"
        FILTER_ADD = "tv-filter-add"
        FILTER_CLEAR = "tv-filter-clear"
        FILTER_REMOVE = "tv-filter-remove"
        FILTER_LIST = "tv-filter-list"
        FILTER_PANEL = "tv-filter-panel"
        FILTER_TOGGLE = "tv-filter-toggle"

        COLUMNS = "tv-columns"

        ROW_CHECK = "tv-row-check"
        SELECT_ALL = "tv-select-all"
        BULK_BAR = "tv-bulk-bar"
        BULK_COUNT = "tv-bulk-count"
        BULK_ACTION = "tv-bulk-action"
        BULK_CANCEL = "tv-bulk-cancel"
        ROW_ACTION = "tv-row-action"

        HEADER = "tv-header"
        BODY = "tv-body"
        FOOTER_INFO = "tv-footer-info"
        PAGINATION = "tv-pagination"


def table_component_id(kind: str, table_id: Any, **keys: Any) -> Dict[str, Any]:
    """Pattern-matching id of a per-table component."""
    return {"type": kind, "table": table_id, **keys}
