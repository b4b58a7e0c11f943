from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from tableview.core.filters import decode_filters, encode_filters
from tableview.core.state import DEFAULT_PAGE_SIZE, OffsetPosition, SortDirection, TableView

logger = logging.getLogger(__name__)

QUERY_KEYS = ("page", "size", "search", "sort", "dir", "filters")


# -----------------------------------------------------------------------------
# TableView <-> address bar parameters
# -----------------------------------------------------------------------------
def to_query(view: TableView) -> Dict[str, str]:
    """Non-default view fields as address bar parameters."""
    params: Dict[str, str] = {}
    if isinstance(view.position, OffsetPosition) and view.page > 1:
        params["page"] = str(view.page)
    if view.page_size != DEFAULT_PAGE_SIZE:
        params["size"] = str(view.page_size)
    if view.search_term:
        params["search"] = view.search_term
    if view.sort_column:
        params["sort"] = view.sort_column
        if view.sort_direction is not SortDirection.ASC:
            params["dir"] = view.sort_direction.value
    encoded = encode_filters(view.filter_conditions)
    if encoded:
        params["filters"] = encoded
    return params


def _positive_int(raw: Optional[str]) -> Optional[int]:
    try:
        value = int(raw) if raw is not None else None
    except ValueError:
        return None
    return value if value is not None and value >= 1 else None


def from_query(view: TableView, params: Mapping[str, str]) -> bool:
    """
    Apply address bar parameters to a TableView. Unparseable values are
    ignored. Returns True if anything was read.
    """
    applied = False

    size = _positive_int(params.get("size"))
    if size is not None:
        view.page_size = size
        applied = True

    search = (params.get("search") or "").strip()
    if search:
        view.search_term = search
        applied = True

    sort = params.get("sort")
    if sort:
        view.sort_column = sort
        view.sort_direction = SortDirection.parse(params.get("dir"))
        applied = True

    if params.get("filters"):
        conditions = decode_filters(params["filters"])
        if conditions:
            view.filter_conditions = conditions
            applied = True

    page = _positive_int(params.get("page"))
    if page is not None and isinstance(view.position, OffsetPosition):
        view.page = page
        applied = True

    return applied


# -----------------------------------------------------------------------------
# Address bar
# -----------------------------------------------------------------------------
class AddressBar:
    """
    In-memory browser location and history stack.

    `replace_state` rewrites the current entry in place; `push_state` adds an
    entry. The view-state mirror only ever replaces.
    """

    def __init__(self, url: str = "/"):
        self.entries: List[str] = [url]

    @property
    def url(self) -> str:
        return self.entries[-1]

    @property
    def length(self) -> int:
        return len(self.entries)

    @property
    def params(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query))

    def replace_state(self, url: str) -> None:
        self.entries[-1] = url

    def push_state(self, url: str) -> None:
        self.entries.append(url)


def with_query(url: str, params: Mapping[str, str]) -> str:
    """`url` with its query replaced by `params`, unrelated keys preserved."""
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query) if k not in QUERY_KEYS]
    query = urlencode(kept + list(params.items()))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class HistorySynchronizer:
    def __init__(self, address_bar: AddressBar):
        self.address_bar = address_bar

    def mirror(self, view: TableView) -> str:
        url = with_query(self.address_bar.url, to_query(view))
        if url != self.address_bar.url:
            self.address_bar.replace_state(url)
            logger.debug("Address bar updated", extra={"table_id": view.table_id, "url": url})
        return url

    def restore(self, view: TableView) -> bool:
        return from_query(view, self.address_bar.params)
