from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Set

from bs4 import Tag

from tableview.config.model import TableConfig
from tableview.core import filters as filter_engine
from tableview.core import pagination, query, sorting
from tableview.core.debounce import Debouncer
from tableview.core.filters import VALUELESS_OPERATORS, Connector, FilterCondition, FilterOperator
from tableview.core.registry import StateRegistry
from tableview.core.rows import Column, RowSnapshot
from tableview.core.selection import BulkAction, SelectionTracker
from tableview.core.state import (
    DEFAULT_PAGE_SIZE,
    CursorPosition,
    Mode,
    OffsetPosition,
    PaginationMode,
    SortDirection,
    TableView,
)
from tableview.core.subscriptions import Subscription, SubscriptionRegistry
from tableview.dom import render
from tableview.dom.anchors import Anchors
from tableview.dom.document import DomEvent, Document, closest, has_class, is_checked

from .actions import ActionService, RowAction, row_action_from_button
from .history import HistorySynchronizer
from .remote_sync import PaginationMeta, RemoteEndpoints, RemoteSyncAdapter, SyncStatus

logger = logging.getLogger(__name__)

LOCAL_SEARCH_WAIT = 0.2
REMOTE_SEARCH_WAIT = 0.3


def _parse_index(raw: object) -> Optional[int]:
    """Integer from a server-rendered data attribute, None when malformed."""
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


@dataclass
class TableOptions:
    """
    Static description of one table. Built from a TableConfig, or read from
    the card's data attributes when the table was only found in markup.
    """

    table_id: str
    mode: Mode = Mode.LOCAL
    pagination_mode: PaginationMode = PaginationMode.OFFSET
    page_size: int = DEFAULT_PAGE_SIZE
    columns: List[Column] = field(default_factory=list)
    default_sort: Optional[str] = None
    default_direction: SortDirection = SortDirection.ASC
    bulk_actions: List[BulkAction] = field(default_factory=list)
    row_actions: List[RowAction] = field(default_factory=list)
    endpoints: Optional[RemoteEndpoints] = None
    sync_address_bar: bool = False
    selectable: bool = True

    def new_position(self):
        if self.mode is Mode.REMOTE and self.pagination_mode is PaginationMode.CURSOR:
            return CursorPosition()
        return OffsetPosition()

    @classmethod
    def from_config(cls, cfg: TableConfig, default_page_size: int = DEFAULT_PAGE_SIZE) -> TableOptions:
        endpoints = None
        if cfg.mode is Mode.REMOTE and cfg.url:
            endpoints = RemoteEndpoints(
                url=cfg.url,
                body_url=cfg.body_url,
                refresh_url=cfg.refresh_url,
                sync_address_bar=cfg.sync_address_bar,
            )
        return cls(
            table_id=cfg.id,
            mode=cfg.mode,
            pagination_mode=cfg.pagination_mode,
            page_size=cfg.page_size or default_page_size,
            columns=cfg.columns,
            default_sort=cfg.default_sort,
            default_direction=cfg.default_direction,
            bulk_actions=cfg.bulk_actions,
            row_actions=[RowAction.from_dict(a) for a in cfg.row_actions],
            endpoints=endpoints,
            sync_address_bar=cfg.sync_address_bar,
        )

    @classmethod
    def from_card(cls, table_id: str, card: Tag) -> TableOptions:
        remote = card.get("data-server-pagination") == "true"
        try:
            pagination_mode = PaginationMode(card.get("data-pagination-mode", "offset"))
        except ValueError:
            pagination_mode = PaginationMode.OFFSET
        try:
            page_size = max(int(card.get("data-page-size", DEFAULT_PAGE_SIZE)), 1)
        except ValueError:
            page_size = DEFAULT_PAGE_SIZE

        endpoints = RemoteEndpoints.from_card(card) if remote else None
        return cls(
            table_id=table_id,
            mode=Mode.REMOTE if remote else Mode.LOCAL,
            pagination_mode=pagination_mode if remote else PaginationMode.OFFSET,
            page_size=page_size,
            default_sort=card.get("data-default-sort") or None,
            default_direction=SortDirection.parse(card.get("data-default-dir")),
            endpoints=endpoints,
            sync_address_bar=endpoints.sync_address_bar if endpoints else False,
            selectable=card.get("data-bulk-enabled", "true") != "false",
        )


class TableController:
    """
    Wires the engines of every table to a Document.

    `initialize(table_id)` is safe to call any number of times. It reuses
    the table's TableView, tears down the previous subscription set of each
    scope before attaching a new one, and re-projects the view into the
    current markup. Local tables re-render from their row snapshot; remote
    tables delegate every query-shape change to the RemoteSyncAdapter.
    """

    def __init__(
            self,
            document: Document,
            registry: Optional[StateRegistry] = None,
            remote: Optional[RemoteSyncAdapter] = None,
            history: Optional[HistorySynchronizer] = None,
            actions: Optional[ActionService] = None,
            local_search_wait: float = LOCAL_SEARCH_WAIT,
            remote_search_wait: float = REMOTE_SEARCH_WAIT,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.document = document
        self.registry = registry if registry is not None else StateRegistry()
        self.remote = remote
        self.history = history
        self.actions = actions
        self.selection = SelectionTracker(self.registry)
        self.subscriptions = SubscriptionRegistry()

        self.local_search_wait = local_search_wait
        self.remote_search_wait = remote_search_wait
        self._clock = clock

        self._options: Dict[str, TableOptions] = {}
        self._snapshots: Dict[str, RowSnapshot] = {}
        self._bodies: Dict[str, Tag] = {}
        self._debouncers: Dict[str, Debouncer] = {}
        self._initialized: Set[str] = set()
        self._markup_backed: Set[str] = set()

    # ------------------------------------------------------------------
    # Table set-up
    # ------------------------------------------------------------------
    def configure(self, options: TableOptions) -> None:
        self._options[options.table_id] = options
        if options.endpoints is not None and self.remote is not None:
            self.remote.register(options.table_id, options.endpoints)

    def options(self, table_id: str) -> Optional[TableOptions]:
        return self._options.get(table_id)

    def table_ids(self) -> List[str]:
        return [table_id for table_id in self.registry if table_id in self._initialized]

    def snapshot(self, table_id: str) -> Optional[RowSnapshot]:
        return self._snapshots.get(table_id)

    def set_rows(self, table_id: str, snapshot: RowSnapshot) -> None:
        """Replace a local table's dataset and re-render it."""
        self._snapshots[table_id] = snapshot
        self._markup_backed.discard(table_id)
        if table_id in self.registry:
            self.selection.prune(table_id, snapshot.ids())
        if table_id in self._initialized:
            self.render(table_id)

    def initialize_all(self) -> List[str]:
        found = []
        for card in self.document.select(f".{Anchors.Class.CARD}[id]"):
            table_id = Anchors.table_id_of(card["id"])
            if self.initialize(table_id):
                found.append(table_id)
        return found

    def initialize(self, table_id: str) -> bool:
        card = self.document.get(Anchors.card(table_id))
        if card is None:
            logger.debug("No card in document, init skipped", extra={"table_id": table_id})
            return False

        options = self._options.get(table_id)
        if options is None:
            options = TableOptions.from_card(table_id, card)
            self.configure(options)

        view = self.registry.get_or_create(
            table_id,
            mode=options.mode,
            position=options.new_position(),
            page_size=options.page_size,
        )

        first = table_id not in self._initialized
        if first:
            self._first_load(view, options, card)
            self._initialized.add(table_id)

        if not view.is_remote:
            self._sync_snapshot(table_id)

        self._attach(table_id)

        if view.is_remote:
            self._decorate(table_id)
        else:
            self.render(table_id)

        logger.debug(
            "Table initialised",
            extra={"table_id": table_id, "first": first, "subscriptions": self.subscriptions.count(table_id)},
        )
        return True

    def _first_load(self, view: TableView, options: TableOptions, card: Tag) -> None:
        sorting.apply_default_sort(view, options.default_sort, options.default_direction)
        if self.history is not None and options.sync_address_bar:
            self.history.restore(view)
        if view.is_remote:
            PaginationMeta.from_attrs(card.attrs).apply(view)

    def _sync_snapshot(self, table_id: str) -> None:
        """
        Read the row snapshot from the body markup on first sight, and again
        when a markup-backed table had its body replaced from outside.
        """
        body = self.document.get(Anchors.body(table_id))
        if body is None:
            self._snapshots.setdefault(table_id, RowSnapshot())
            return
        replaced = self._bodies.get(table_id) is not body
        if table_id not in self._snapshots or (replaced and table_id in self._markup_backed):
            snapshot = render.snapshot_from_markup(body)
            self._snapshots[table_id] = snapshot
            self._markup_backed.add(table_id)
            self.selection.prune(table_id, snapshot.ids())
        self._bodies[table_id] = body

    def discard(self, table_id: str) -> None:
        self.subscriptions.teardown(table_id)
        self.selection.discard(table_id)
        self.registry.discard(table_id)
        debouncer = self._debouncers.pop(table_id, None)
        if debouncer is not None:
            debouncer.cancel()
        for store in (self._options, self._snapshots, self._bodies):
            store.pop(table_id, None)
        self._initialized.discard(table_id)
        self._markup_backed.discard(table_id)

    # ------------------------------------------------------------------
    # Element lookup
    # ------------------------------------------------------------------
    def _card(self, table_id: str) -> Optional[Tag]:
        return self.document.get(Anchors.card(table_id))

    def _table(self, table_id: str) -> Optional[Tag]:
        card = self._card(table_id)
        if card is None:
            return None
        return card.select_one(f"table.{Anchors.Class.DATA_TABLE}") or card.find("table")

    def _bulk_toolbar(self, table_id: str) -> Optional[Tag]:
        found = self.document.get(Anchors.bulk_toolbar(table_id))
        if found is None:
            card = self._card(table_id)
            found = card.select_one(f".{Anchors.Class.BULK_TOOLBAR}") if card is not None else None
        return found

    def _search_input(self, table_id: str) -> Optional[Tag]:
        found = self.document.get(Anchors.search(table_id))
        if found is None:
            card = self._card(table_id)
            found = card.select_one(f".{Anchors.Class.SEARCH_INPUT}") if card is not None else None
        return found

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def _attach(self, table_id: str) -> None:
        doc = self.document
        card = self._card(table_id)
        table = self._table(table_id)
        footer = doc.get(Anchors.footer(table_id))
        body = doc.get(Anchors.body(table_id))
        toolbar = self._bulk_toolbar(table_id)
        search = self._search_input(table_id)
        filter_panel = doc.get(Anchors.filter_panel(table_id))

        def bind(tag: Optional[Tag], event_type: str, handler: Callable[[DomEvent], None]) -> List[Subscription]:
            return [doc.on(tag, event_type, handler)] if tag is not None else []

        self.subscriptions.replace(
            table_id, "search",
            lambda: bind(search, "input", lambda e: self._on_search_input(table_id, e)),
        )
        self.subscriptions.replace(
            table_id, "sort",
            lambda: [
                doc.on(th, "click", lambda e, column=th["data-sort"]: self.toggle_sort(table_id, column))
                for th in (table.select(f"th.{Anchors.Class.SORTABLE}[data-sort]") if table is not None else [])
            ],
        )
        self.subscriptions.replace(
            table_id, "footer",
            lambda: bind(footer, "click", lambda e: self._on_footer_click(table_id, e))
            + bind(footer, "change", lambda e: self._on_footer_change(table_id, e)),
        )
        self.subscriptions.replace(
            table_id, "filters",
            lambda: bind(filter_panel, "click", lambda e: self._on_filter_click(table_id, e)),
        )
        self.subscriptions.replace(
            table_id, "columns",
            lambda: bind(card, "change", lambda e: self._on_column_toggle(table_id, e)),
        )
        self.subscriptions.replace(
            table_id, "panels",
            lambda: [
                doc.on(dropdown, "click", lambda e, panel=dropdown["data-panel"]: self._on_panel_click(table_id, panel, e))
                for dropdown in (card.select(f".{Anchors.Class.TOOLBAR_DROPDOWN}[data-panel]") if card is not None else [])
            ],
        )
        self.subscriptions.replace(
            table_id, "rows",
            lambda: bind(body, "change", lambda e: self._on_row_change(table_id, e))
            + bind(body, "click", lambda e: self._on_row_click(table_id, e)),
        )
        select_all = table.select_one(f".{Anchors.Class.SELECT_ALL}") if table is not None else None
        self.subscriptions.replace(
            table_id, "select-all",
            lambda: bind(select_all, "change", lambda e: self._on_select_all(table_id, e)),
        )
        self.subscriptions.replace(
            table_id, "bulk",
            lambda: bind(toolbar, "click", lambda e: self._on_bulk_click(table_id, e)),
        )
        self.subscriptions.replace(
            table_id, "selection",
            lambda: [self.selection.on_change(table_id, self._on_selection_changed)],
        )

    # ------------------------------------------------------------------
    # Query-shape changes and navigation
    # ------------------------------------------------------------------
    def _change(self, table_id: str, mutate: Callable[[TableView], Any]) -> bool:
        view = self.registry.get(table_id)
        if view is None:
            return False

        if not view.is_remote:
            mutate(view)
            self.render(table_id)
            return True

        if self.remote is None:
            logger.warning("Remote table without sync adapter", extra={"table_id": table_id})
            return False

        result = self.remote.sync(table_id, mutate)
        if result.status is SyncStatus.APPLIED:
            self.initialize(table_id)
        elif result.status is SyncStatus.FAILED:
            self._decorate(table_id)
        return result.applied

    def set_search(self, table_id: str, term: str) -> bool:
        view = self.registry.get(table_id)
        if view is None or (term or "").strip() == view.search_term:
            return False
        return self._change(table_id, lambda v: query.set_search(v, term))

    def toggle_sort(self, table_id: str, column: str) -> bool:
        return self._change(table_id, lambda v: sorting.toggle_sort(v, column))

    def go_to_page(self, table_id: str, page: int) -> bool:
        return self._change(table_id, lambda v: pagination.go_to_page(v, page))

    def next_page(self, table_id: str) -> bool:
        view = self.registry.get(table_id)
        if view is None or not self._can_move(view, forward=True):
            return False
        return self._change(table_id, pagination.next_page)

    def prev_page(self, table_id: str) -> bool:
        view = self.registry.get(table_id)
        if view is None or not self._can_move(view, forward=False):
            return False
        return self._change(table_id, pagination.prev_page)

    @staticmethod
    def _can_move(view: TableView, forward: bool) -> bool:
        position = view.position
        if isinstance(position, CursorPosition):
            return position.has_next if forward else position.has_prev
        if forward:
            return view.page < pagination.total_pages(view.total_rows, view.page_size)
        return view.page > 1

    def set_page_size(self, table_id: str, page_size: int) -> bool:
        return self._change(table_id, lambda v: pagination.set_page_size(v, page_size))

    def apply_filters(self, table_id: str, conditions: List[FilterCondition]) -> bool:
        return self._change(table_id, lambda v: filter_engine.apply_filters(v, conditions))

    def append_filter(self, table_id: str, condition: FilterCondition) -> bool:
        return self._change(table_id, lambda v: filter_engine.append_condition(v, condition))

    def remove_filter(self, table_id: str, index: int) -> bool:
        view = self.registry.get(table_id)
        if view is None or not 0 <= index < len(view.filter_conditions):
            return False
        return self._change(table_id, lambda v: filter_engine.remove_condition(v, index))

    def clear_filters(self, table_id: str) -> bool:
        return self._change(table_id, filter_engine.clear_filters)

    def set_column_hidden(self, table_id: str, column: str, hidden: bool) -> None:
        view = self.registry.get(table_id)
        table = self._table(table_id)
        if view is None:
            return
        if hidden:
            view.hidden_columns.add(column)
        else:
            view.hidden_columns.discard(column)
        if table is not None:
            render.apply_column_visibility(table, view.hidden_columns)

    def toggle_panel(self, table_id: str, panel: str) -> bool:
        view = self.registry.get(table_id)
        if view is None:
            return False
        if panel in view.open_panels:
            view.open_panels.discard(panel)
        else:
            view.open_panels.add(panel)
        self.sync_panels(table_id)
        return panel in view.open_panels

    def sync_panels(self, table_id: str) -> None:
        view = self.registry.get(table_id)
        card = self._card(table_id)
        if view is None or card is None:
            return
        for dropdown in card.select(f".{Anchors.Class.TOOLBAR_DROPDOWN}[data-panel]"):
            render.set_panel_open(dropdown, dropdown["data-panel"] in view.open_panels)

    def refresh(self, table_id: str) -> None:
        """Reload after an action: full card from the service, or a local re-render."""
        view = self.registry.get(table_id)
        if view is None:
            return
        endpoints = self.remote.endpoints(table_id) if self.remote is not None else None
        if endpoints is None:
            self.render(table_id)
            return
        result = self.remote.refresh(table_id)
        if result.applied:
            self.initialize(table_id)

    def poll(self) -> int:
        """Host timer tick: fire due debounced searches."""
        return sum(1 for debouncer in list(self._debouncers.values()) if debouncer.poll())

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------
    def render(self, table_id: str) -> Optional[query.QueryResult]:
        """Re-project a local table: rows, footer, header state and selection."""
        view = self.registry.get(table_id)
        options = self._options.get(table_id)
        if view is None or options is None or view.is_remote:
            return None

        snapshot = self._snapshots.setdefault(table_id, RowSnapshot())
        result = query.run_query(snapshot, view)

        body = self.document.get(Anchors.body(table_id))
        if body is not None:
            columns = options.columns or render.columns_from_markup(self._table(table_id) or body)
            markup = render.render_rows(
                result.rows,
                columns,
                selected_ids=view.selected_ids,
                hidden_columns=view.hidden_columns,
                selectable=options.selectable,
            )
            self.document.replace_inner(Anchors.body(table_id), markup, notify=False)
            self._bodies[table_id] = body

        footer = self.document.get(Anchors.footer(table_id))
        if footer is not None:
            render.update_footer(footer, table_id, result.window, view.page_size)

        self._decorate(table_id)
        if self.history is not None and options.sync_address_bar:
            self.history.mirror(view)
        return result

    def _decorate(self, table_id: str) -> None:
        view = self.registry.get(table_id)
        table = self._table(table_id)
        if view is None:
            return
        if table is not None:
            render.update_sort_indicators(table, view.sort_column, view.sort_direction)
            render.apply_column_visibility(table, view.hidden_columns)
        self.sync_panels(table_id)
        self.refresh_selection_ui(table_id)

    def _lookup(self, table_id: str) -> Callable[[str], Optional[Mapping[str, Any]]]:
        view = self.registry.get(table_id)
        if view is not None and not view.is_remote:
            snapshot = self._snapshots.get(table_id, RowSnapshot())
            return snapshot.attributes_of
        body = self.document.get(Anchors.body(table_id))
        on_screen = render.snapshot_from_markup(body) if body is not None else RowSnapshot()
        return on_screen.attributes_of

    def bulk_actions(self, table_id: str) -> List[BulkAction]:
        options = self._options.get(table_id)
        if options is not None and options.bulk_actions:
            return list(options.bulk_actions)
        toolbar = self._bulk_toolbar(table_id)
        return render.bulk_actions_from_markup(toolbar) if toolbar is not None else []

    def checkable_ids(self, table_id: str) -> List[str]:
        table = self._table(table_id)
        if table is None:
            return []
        return [
            cb["data-row-id"]
            for cb in table.select(f".{Anchors.Class.ROW_CHECKBOX}[data-row-id]")
            if not cb.has_attr("disabled")
        ]

    def refresh_selection_ui(self, table_id: str) -> None:
        card = self._card(table_id)
        table = self._table(table_id)
        if card is None or table is None:
            return
        snapshot = self.selection.snapshot(
            table_id,
            self.checkable_ids(table_id),
            self._lookup(table_id),
            self.bulk_actions(table_id),
        )
        render.update_selection_ui(
            card,
            table,
            self._bulk_toolbar(table_id),
            snapshot,
            self.selection.selected(table_id),
        )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _debouncer(self, table_id: str) -> Debouncer:
        view = self.registry.get_or_create(table_id)
        wait = self.remote_search_wait if view.is_remote else self.local_search_wait
        debouncer = self._debouncers.get(table_id)
        if debouncer is None:
            debouncer = Debouncer(lambda term: self.set_search(table_id, term), wait, clock=self._clock)
            self._debouncers[table_id] = debouncer
        debouncer.wait = wait
        return debouncer

    def _on_search_input(self, table_id: str, event: DomEvent) -> None:
        value = event.detail.get("value", event.target.get("value", ""))
        self._debouncer(table_id).call(value)

    def _on_footer_click(self, table_id: str, event: DomEvent) -> None:
        button = closest(event.target, lambda t: t.name == "button")
        if button is None or button.has_attr("disabled"):
            return
        if has_class(button, Anchors.Class.PREV):
            self.prev_page(table_id)
        elif has_class(button, Anchors.Class.NEXT):
            self.next_page(table_id)
        elif has_class(button, Anchors.Class.PAGE_BUTTON) and button.get("data-page"):
            page = _parse_index(button["data-page"])
            if page is None:
                logger.warning("Ignoring page button", extra={"table_id": table_id, "value": button["data-page"]})
                return
            self.go_to_page(table_id, page)

    def _on_footer_change(self, table_id: str, event: DomEvent) -> None:
        if not has_class(event.target, Anchors.Class.ENTRIES):
            return
        raw = event.detail.get("value", render.field_value(event.target))
        try:
            size = int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring page size", extra={"table_id": table_id, "value": raw})
            return
        if size >= 1:
            self.set_page_size(table_id, size)

    def _on_filter_click(self, table_id: str, event: DomEvent) -> None:
        target = event.target
        remove = closest(target, lambda t: t.has_attr("data-remove-filter"))
        if remove is not None:
            index = _parse_index(remove["data-remove-filter"])
            if index is None:
                logger.warning(
                    "Ignoring filter removal", extra={"table_id": table_id, "value": remove["data-remove-filter"]}
                )
                return
            self.remove_filter(table_id, index)
        elif closest(target, lambda t: has_class(t, Anchors.Class.FILTER_APPLY)) is not None:
            self.apply_filters(table_id, self.read_filter_form(table_id))
        elif closest(target, lambda t: has_class(t, Anchors.Class.FILTER_CLEAR)) is not None:
            self.clear_filters(table_id)

    def read_filter_form(self, table_id: str) -> List[FilterCondition]:
        """Conditions currently entered in the filter panel's `.filter-row` lines."""
        panel = self.document.get(Anchors.filter_panel(table_id))
        if panel is None:
            return []
        conditions: List[FilterCondition] = []
        for line in panel.select(".filter-row"):
            column = render.field_value(line.select_one("[name=column]"))
            raw_operator = render.field_value(line.select_one("[name=operator]"))
            if not column or not raw_operator:
                continue
            try:
                operator = FilterOperator(raw_operator)
                logic = render.field_value(line.select_one("[name=logic]"))
                conditions.append(
                    FilterCondition(
                        column=column,
                        operator=operator,
                        value=None if operator in VALUELESS_OPERATORS else render.field_value(line.select_one("[name=value]")),
                        connector=Connector.parse(logic) if logic and conditions else None,
                    )
                )
            except ValueError as exc:
                logger.warning("Skipping invalid filter row", extra={"table_id": table_id, "error": str(exc)})
        return conditions

    def _on_column_toggle(self, table_id: str, event: DomEvent) -> None:
        target = event.target
        if not has_class(target, Anchors.Class.COLUMN_TOGGLE) or not target.get("data-column"):
            return
        self.set_column_hidden(table_id, target["data-column"], not is_checked(target))

    def _on_panel_click(self, table_id: str, panel: str, event: DomEvent) -> None:
        if closest(event.target, lambda t: has_class(t, Anchors.Class.TOOLBAR_BUTTON)) is not None:
            self.toggle_panel(table_id, panel)

    def _on_row_change(self, table_id: str, event: DomEvent) -> None:
        target = event.target
        if has_class(target, Anchors.Class.ROW_CHECKBOX) and target.get("data-row-id"):
            self.selection.toggle(table_id, target["data-row-id"], is_checked(target))

    def _on_row_click(self, table_id: str, event: DomEvent) -> None:
        button = closest(event.target, lambda t: has_class(t, Anchors.Class.ACTION_BUTTON) and t.has_attr("data-action"))
        if button is None:
            return
        if self.actions is None:
            logger.warning("Row action without action service", extra={"table_id": table_id})
            return
        row_id = button.get("data-id")
        if row_id is None:
            tr = closest(button, lambda t: t.name == "tr" and t.has_attr("data-id"))
            row_id = tr["data-id"] if tr is not None else None
        action = self._row_action(table_id, button)
        if action is None or row_id is None:
            logger.warning(
                "Row action button is missing its url or row id",
                extra={"table_id": table_id, "action": button.get("data-action")},
            )
            return
        self.actions.request_row(table_id, action, str(row_id), button.get("data-item-name", "this item"))

    def _row_action(self, table_id: str, button: Tag) -> Optional[RowAction]:
        options = self._options.get(table_id)
        kind = button.get("data-action")
        if options is not None:
            for action in options.row_actions:
                if action.kind == kind:
                    return action
        return row_action_from_button(button)

    def _on_select_all(self, table_id: str, event: DomEvent) -> None:
        checked = is_checked(event.target)
        self.selection.set_many(table_id, self.checkable_ids(table_id), checked)

    def _on_bulk_click(self, table_id: str, event: DomEvent) -> None:
        target = event.target
        control = closest(target, lambda t: t.has_attr("data-action") or t.has_attr("data-bulk-action"))
        if control is None or control.has_attr("disabled"):
            return
        if control.get("data-action") == Anchors.Action.CANCEL_SELECTION:
            self.selection.clear(table_id)
            return
        if control.get("data-action") == Anchors.Action.SELECT_ALL:
            self.selection.select_all_visible(table_id, self.checkable_ids(table_id))
            return

        name = control.get("data-bulk-action")
        action = next((a for a in self.bulk_actions(table_id) if a.name == name), None)
        if action is None:
            return
        if self.actions is None:
            logger.warning("Bulk action without action service", extra={"table_id": table_id, "action": name})
            return
        self.actions.request_bulk(table_id, action)

    def _on_selection_changed(self, table_id: str, selected: FrozenSet[str]) -> None:
        self.refresh_selection_ui(table_id)
