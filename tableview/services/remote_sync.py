from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from bs4 import Tag

from tableview.core.exceptions import MalformedResponseError, RemoteSyncError
from tableview.core.filters import encode_filters
from tableview.core.registry import StateRegistry
from tableview.core.rows import is_true
from tableview.core.state import (
    DEFAULT_PAGE_SIZE,
    CursorPosition,
    OffsetPosition,
    SortDirection,
    TableView,
)
from tableview.dom.anchors import Anchors
from tableview.dom.document import Document, parse_fragment

from .history import HistorySynchronizer
from .render_client import RenderClient

logger = logging.getLogger(__name__)

Mutation = Callable[[TableView], Any]


# -----------------------------------------------------------------------------
# Request parameters
# -----------------------------------------------------------------------------
def build_params(view: TableView) -> Dict[str, str]:
    """
    Query parameters for the render service. Offset tables send `page`,
    cursor tables send `cursor`/`curdir`, never both. Values equal to their
    default are omitted, and so is an empty filter list.
    """
    params: Dict[str, str] = {}
    position = view.position

    if isinstance(position, OffsetPosition):
        if position.page > 1:
            params["page"] = str(position.page)
    if view.page_size != DEFAULT_PAGE_SIZE:
        params["size"] = str(view.page_size)
    if isinstance(position, CursorPosition) and position.token:
        params["cursor"] = position.token
        if position.direction is not None:
            params["curdir"] = position.direction.value

    if view.search_term:
        params["search"] = view.search_term
    if view.sort_column:
        params["sort"] = view.sort_column
    if view.sort_direction is not SortDirection.ASC:
        params["dir"] = view.sort_direction.value

    filters = encode_filters(view.filter_conditions)
    if filters:
        params["filters"] = filters
    return params


# -----------------------------------------------------------------------------
# Response shapes
# -----------------------------------------------------------------------------
META_ATTRIBUTES = (
    "data-current-page",
    "data-page-size",
    "data-total-rows",
    "data-search",
    "data-sort-column",
    "data-sort-direction",
    "data-has-next",
    "data-has-prev",
    "data-next-cursor",
    "data-prev-cursor",
)


def _int_or_none(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class PaginationMeta:
    """
    Authoritative pagination fields reported by the render service. A field
    is None when the response did not carry it.
    """

    current_page: Optional[int] = None
    page_size: Optional[int] = None
    total_rows: Optional[int] = None
    search: Optional[str] = None
    sort_column: Optional[str] = None
    sort_direction: Optional[str] = None
    has_next: Optional[bool] = None
    has_prev: Optional[bool] = None
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    raw: Dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def from_attrs(cls, attrs: Mapping[str, Any]) -> PaginationMeta:
        raw = {name: str(attrs[name]) for name in META_ATTRIBUTES if name in attrs}

        def flag(name: str) -> Optional[bool]:
            return is_true(raw[name]) if name in raw else None

        return cls(
            current_page=_int_or_none(raw.get("data-current-page")),
            page_size=_int_or_none(raw.get("data-page-size")),
            total_rows=_int_or_none(raw.get("data-total-rows")),
            search=raw.get("data-search"),
            sort_column=raw.get("data-sort-column"),
            sort_direction=raw.get("data-sort-direction"),
            has_next=flag("data-has-next"),
            has_prev=flag("data-has-prev"),
            next_cursor=raw.get("data-next-cursor"),
            prev_cursor=raw.get("data-prev-cursor"),
            raw=raw,
        )

    def apply(self, view: TableView) -> None:
        """Write every reported field back into the TableView."""
        if self.page_size is not None and self.page_size >= 1:
            view.page_size = self.page_size
        if self.total_rows is not None:
            view.total_rows = max(self.total_rows, 0)
        if self.search is not None:
            view.search_term = self.search
        if self.sort_column is not None:
            view.sort_column = self.sort_column or None
        if self.sort_direction:
            view.sort_direction = SortDirection.parse(self.sort_direction, view.sort_direction)

        position = view.position
        if isinstance(position, OffsetPosition):
            if self.current_page is not None and self.current_page >= 1:
                position.page = self.current_page
        else:
            if self.has_next is not None:
                position.has_next = self.has_next
            if self.has_prev is not None:
                position.has_prev = self.has_prev
            if self.next_cursor is not None:
                position.next_cursor = self.next_cursor or None
            if self.prev_cursor is not None:
                position.prev_cursor = self.prev_cursor or None

    def copy_to(self, card: Tag) -> None:
        for name, value in self.raw.items():
            card[name] = value


@dataclass(frozen=True)
class TargetedPatch:
    body: str
    footer: Optional[str]
    meta: PaginationMeta


@dataclass(frozen=True)
class FullReplacement:
    card: str
    meta: PaginationMeta


Response = Union[TargetedPatch, FullReplacement]


def parse_response(table_id: str, markup: str) -> Response:
    """
    Classify a render service document. A document with the meta carrier is
    a targeted patch (body rows, footer, meta); one without it must contain
    the whole card.
    """
    soup = parse_fragment(markup)
    meta_el = soup.find(id=Anchors.meta(table_id))

    if meta_el is None:
        card = soup.find(id=Anchors.card(table_id))
        if card is None:
            raise MalformedResponseError(f"Response for '{table_id}' has neither meta carrier nor card")
        return FullReplacement(card=str(card), meta=PaginationMeta.from_attrs(card.attrs))

    body = soup.find(id=Anchors.body(table_id))
    if body is None:
        raise MalformedResponseError(f"Targeted patch for '{table_id}' has no body")
    footer = soup.find(id=Anchors.footer(table_id))
    if footer is not None and footer.has_attr("hx-swap-oob"):
        del footer["hx-swap-oob"]
    return TargetedPatch(
        body=body.decode_contents(),
        footer=str(footer) if footer is not None else None,
        meta=PaginationMeta.from_attrs(meta_el.attrs),
    )


# -----------------------------------------------------------------------------
# Adapter
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class RemoteEndpoints:
    url: str
    body_url: Optional[str] = None
    refresh_url: Optional[str] = None
    sync_address_bar: bool = True

    @classmethod
    def from_card(cls, card: Tag) -> Optional[RemoteEndpoints]:
        url = card.get("data-pagination-url")
        if not url:
            return None
        return cls(
            url=url,
            body_url=card.get("data-pagination-body-url") or None,
            refresh_url=card.get("data-refresh-url") or None,
            sync_address_bar=card.get("data-sync-url", "true") != "false",
        )


class SyncStatus(str, Enum):
    APPLIED = "applied"
    STALE = "stale"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PendingRequest:
    table_id: str
    sequence: int
    url: str
    params: Dict[str, str]
    targeted: bool
    saved: Dict[str, Any] = field(compare=False, repr=False)


@dataclass(frozen=True)
class SyncResult:
    table_id: str
    status: SyncStatus
    sequence: int = 0
    response: Optional[Response] = None
    error: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status is SyncStatus.APPLIED

    @property
    def targeted(self) -> bool:
        return isinstance(self.response, TargetedPatch)


class RemoteSyncAdapter:
    """
    Turns a view-state change of a remote table into a render service
    request and applies the answer.

    Flow for `sync`:
    - snapshot the query fields, apply the mutation, issue the next request
      sequence number for the table
    - try the targeted patch (body URL); on any failure fall back to a full
      card replacement, logged
    - if that fails too, restore the snapshot so the TableView matches the
      markup still on screen
    - responses that are not for the latest sequence number are dropped
    - after a successful apply the address bar mirrors the final parameters

    Document writes use notify=False; the caller re-attaches its listeners.
    Without a document (`fetch`) the parsed response is returned to the caller.
    """

    def __init__(
            self,
            registry: StateRegistry,
            client: RenderClient,
            document: Optional[Document] = None,
            history: Optional[HistorySynchronizer] = None,
    ):
        self.registry = registry
        self.client = client
        self.document = document
        self.history = history
        self._endpoints: Dict[str, RemoteEndpoints] = {}
        self._issued: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Endpoints and sequence numbers
    # ------------------------------------------------------------------
    def register(self, table_id: str, endpoints: RemoteEndpoints) -> None:
        self._endpoints[table_id] = endpoints

    def endpoints(self, table_id: str) -> Optional[RemoteEndpoints]:
        found = self._endpoints.get(table_id)
        if found is None and self.document is not None:
            card = self.document.get(Anchors.card(table_id))
            if card is not None:
                found = RemoteEndpoints.from_card(card)
                if found is not None:
                    self._endpoints[table_id] = found
        return found

    def latest_sequence(self, table_id: str) -> int:
        return self._issued.get(table_id, 0)

    def is_current(self, pending: PendingRequest) -> bool:
        return pending.sequence == self.latest_sequence(pending.table_id)

    # ------------------------------------------------------------------
    # Request / response halves
    # ------------------------------------------------------------------
    def prepare(
            self,
            table_id: str,
            mutate: Optional[Mutation] = None,
            full: bool = False,
    ) -> Optional[PendingRequest]:
        view = self.registry.get(table_id)
        endpoints = self.endpoints(table_id)
        if view is None or endpoints is None:
            logger.warning("No remote endpoints for table", extra={"table_id": table_id})
            return None

        saved = view.query_snapshot()
        if mutate is not None:
            mutate(view)

        sequence = self._issued.get(table_id, 0) + 1
        self._issued[table_id] = sequence
        targeted = bool(endpoints.body_url) and not full
        return PendingRequest(
            table_id=table_id,
            sequence=sequence,
            url=endpoints.body_url if targeted else endpoints.url,
            params=build_params(view),
            targeted=targeted,
            saved=saved,
        )

    def complete(self, pending: PendingRequest, markup: str) -> SyncResult:
        """Apply a response; raises MalformedResponseError for unusable ones."""
        if not self.is_current(pending):
            logger.info(
                "Discarding stale response",
                extra={
                    "table_id": pending.table_id,
                    "sequence": pending.sequence,
                    "latest": self.latest_sequence(pending.table_id),
                },
            )
            return SyncResult(pending.table_id, SyncStatus.STALE, pending.sequence)

        response = parse_response(pending.table_id, markup)
        if pending.targeted and not isinstance(response, TargetedPatch):
            raise MalformedResponseError(f"Body endpoint for '{pending.table_id}' returned no meta carrier")

        view = self.registry.get_or_create(pending.table_id)
        if self.document is not None:
            self._apply_to_document(pending.table_id, response)
        response.meta.apply(view)

        endpoints = self.endpoints(pending.table_id)
        if self.history is not None and endpoints is not None and endpoints.sync_address_bar:
            self.history.mirror(view)

        logger.debug(
            "Remote response applied",
            extra={
                "table_id": pending.table_id,
                "sequence": pending.sequence,
                "kind": "patch" if isinstance(response, TargetedPatch) else "full",
            },
        )
        return SyncResult(pending.table_id, SyncStatus.APPLIED, pending.sequence, response)

    def fail(self, pending: PendingRequest, error: Exception) -> SyncResult:
        # superseded: the newer request owns the view
        if not self.is_current(pending):
            logger.info(
                "Ignoring failure of superseded request",
                extra={
                    "table_id": pending.table_id,
                    "sequence": pending.sequence,
                    "latest": self.latest_sequence(pending.table_id),
                    "error": str(error),
                },
            )
            return SyncResult(pending.table_id, SyncStatus.STALE, pending.sequence, error=str(error))

        view = self.registry.get(pending.table_id)
        if view is not None:
            view.restore_query(pending.saved)
        logger.error(
            "Remote sync failed, previous view restored",
            extra={"table_id": pending.table_id, "sequence": pending.sequence, "error": str(error)},
        )
        return SyncResult(pending.table_id, SyncStatus.FAILED, pending.sequence, error=str(error))

    def _apply_to_document(self, table_id: str, response: Response) -> None:
        doc = self.document
        assert doc is not None
        if isinstance(response, FullReplacement):
            if doc.replace_outer(Anchors.card(table_id), response.card, notify=False) is None:
                raise MalformedResponseError(f"Card '{Anchors.card(table_id)}' is not in the document")
            return

        if doc.get(Anchors.body(table_id)) is None:
            raise MalformedResponseError(f"Body '{Anchors.body(table_id)}' is not in the document")
        doc.replace_inner(Anchors.body(table_id), response.body, notify=False)
        if response.footer is not None and doc.get(Anchors.footer(table_id)) is not None:
            doc.replace_outer(Anchors.footer(table_id), response.footer, notify=False)
        card = doc.get(Anchors.card(table_id))
        if card is not None:
            response.meta.copy_to(card)

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------
    def _run(self, pending: PendingRequest) -> SyncResult:
        html = self.client.fetch(pending.url, pending.params)
        return self.complete(pending, html)

    def sync(self, table_id: str, mutate: Optional[Mutation] = None, full: bool = False) -> SyncResult:
        pending = self.prepare(table_id, mutate, full=full)
        if pending is None:
            return SyncResult(table_id, SyncStatus.SKIPPED)

        try:
            return self._run(pending)
        except RemoteSyncError as exc:
            if not pending.targeted:
                return self.fail(pending, exc)
            logger.warning(
                "Targeted patch failed, falling back to full replacement",
                extra={"table_id": table_id, "sequence": pending.sequence, "error": str(exc)},
            )

        endpoints = self.endpoints(table_id)
        assert endpoints is not None
        fallback = PendingRequest(
            table_id=table_id,
            sequence=pending.sequence,
            url=endpoints.url,
            params=pending.params,
            targeted=False,
            saved=pending.saved,
        )
        try:
            return self._run(fallback)
        except RemoteSyncError as exc:
            return self.fail(fallback, exc)

    def refresh(self, table_id: str) -> SyncResult:
        """Full card reload with the current view, e.g. after an action."""
        endpoints = self.endpoints(table_id)
        if endpoints is None or not endpoints.refresh_url:
            return self.sync(table_id, full=True)

        pending = self.prepare(table_id, full=True)
        if pending is None:
            return SyncResult(table_id, SyncStatus.SKIPPED)
        refresh = PendingRequest(
            table_id=table_id,
            sequence=pending.sequence,
            url=endpoints.refresh_url,
            params=pending.params,
            targeted=False,
            saved=pending.saved,
        )
        try:
            return self._run(refresh)
        except RemoteSyncError as exc:
            return self.fail(refresh, exc)

    def fetch(
            self,
            view: TableView,
            endpoints: RemoteEndpoints,
            mutate: Optional[Mutation] = None,
            full: bool = False,
    ) -> SyncResult:
        """
        Document-less round trip for a TableView owned by the caller (the
        Dash front-end keeps it in a store). Same fallback and restore rules.
        """
        self._endpoints[view.table_id] = endpoints
        self.registry.adopt(view)
        return self.sync(view.table_id, mutate, full=full)

    def reload(self, view: TableView, endpoints: RemoteEndpoints) -> SyncResult:
        """Document-less `refresh` for a caller-owned TableView."""
        self._endpoints[view.table_id] = endpoints
        self.registry.adopt(view)
        return self.refresh(view.table_id)
