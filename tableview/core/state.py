from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Set, Union

from .filters import FilterCondition

DEFAULT_PAGE_SIZE = 25


class Mode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class PaginationMode(str, Enum):
    OFFSET = "offset"
    CURSOR = "cursor"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: Any, default: SortDirection | None = None) -> SortDirection:
        try:
            return cls(str(raw).lower())
        except ValueError:
            return default if default is not None else cls.ASC


class CursorDirection(str, Enum):
    NEXT = "next"
    PREV = "prev"


@dataclass
class OffsetPosition:
    """Absolute 1-based page number."""

    mode: ClassVar[PaginationMode] = PaginationMode.OFFSET

    page: int = 1


@dataclass
class CursorPosition:
    """
    Cursor window addressed by an opaque continuation token.

    - token / direction: the cursor the current window was requested with
      (None for the first window)
    - next_cursor / prev_cursor: tokens returned by the remote service
    - has_next / has_prev: navigability, as reported by the remote service
    """

    mode: ClassVar[PaginationMode] = PaginationMode.CURSOR

    token: Optional[str] = None
    direction: Optional[CursorDirection] = None
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_next: bool = False
    has_prev: bool = False


Position = Union[OffsetPosition, CursorPosition]


@dataclass
class TableView:
    """
    View state of a single table: pagination, sort, search, filters and
    selection.

    A TableView is created once per table id (see StateRegistry) and is
    mutated in place by the engines. Re-initialising a table must never swap
    the record for a fresh one.

    Fields:

    - mode: local (whole dataset in memory) or remote (paged by a render service)
    - position: OffsetPosition or CursorPosition; cursor is remote-only
    - total_rows: authoritative count (remote) or filtered count (local).
      Advisory only in cursor mode.
    - hidden_columns: column keys the user switched off
    - open_panels: toolbar panels (filters, columns) currently expanded
    """

    table_id: str
    mode: Mode = Mode.LOCAL
    position: Position = field(default_factory=OffsetPosition)
    page_size: int = DEFAULT_PAGE_SIZE
    total_rows: int = 0

    sort_column: Optional[str] = None
    sort_direction: SortDirection = SortDirection.ASC
    search_term: str = ""
    filter_conditions: List[FilterCondition] = field(default_factory=list)

    selected_ids: Set[str] = field(default_factory=set)
    hidden_columns: Set[str] = field(default_factory=set)
    open_panels: Set[str] = field(default_factory=set)

    default_sort_applied: bool = False

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.mode is Mode.LOCAL and isinstance(self.position, CursorPosition):
            raise ValueError("Cursor pagination is only available for remote tables")

    @property
    def pagination_mode(self) -> PaginationMode:
        return self.position.mode

    @property
    def page(self) -> int:
        if isinstance(self.position, OffsetPosition):
            return self.position.page
        return 1

    @page.setter
    def page(self, value: int) -> None:
        if not isinstance(self.position, OffsetPosition):
            raise TypeError("page is not used for cursor pagination")
        self.position.page = int(value)

    @property
    def is_remote(self) -> bool:
        return self.mode is Mode.REMOTE

    def reset_position(self) -> None:
        """Back to the first page (offset) or the first window (cursor)."""
        if isinstance(self.position, OffsetPosition):
            self.position.page = 1
        else:
            self.position = CursorPosition()

    # ------------------------------------------------------------------
    # Save / restore of the query-shaped fields (selection excluded)
    # ------------------------------------------------------------------
    def query_snapshot(self) -> Dict[str, Any]:
        return {
            "position": copy.deepcopy(self.position),
            "page_size": self.page_size,
            "total_rows": self.total_rows,
            "sort_column": self.sort_column,
            "sort_direction": self.sort_direction,
            "search_term": self.search_term,
            "filter_conditions": list(self.filter_conditions),
        }

    def restore_query(self, saved: Dict[str, Any]) -> None:
        self.position = saved["position"]
        self.page_size = saved["page_size"]
        self.total_rows = saved["total_rows"]
        self.sort_column = saved["sort_column"]
        self.sort_direction = saved["sort_direction"]
        self.search_term = saved["search_term"]
        self.filter_conditions = saved["filter_conditions"]

    # ------------------------------------------------------------------
    # JSON-safe serialisation (dcc.Store)
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.position, CursorPosition):
            position = {
                "mode": PaginationMode.CURSOR.value,
                "token": self.position.token,
                "direction": self.position.direction.value if self.position.direction else None,
                "next_cursor": self.position.next_cursor,
                "prev_cursor": self.position.prev_cursor,
                "has_next": self.position.has_next,
                "has_prev": self.position.has_prev,
            }
        else:
            position = {"mode": PaginationMode.OFFSET.value, "page": self.position.page}

        return {
            "table_id": self.table_id,
            "mode": self.mode.value,
            "position": position,
            "page_size": self.page_size,
            "total_rows": self.total_rows,
            "sort_column": self.sort_column,
            "sort_direction": self.sort_direction.value,
            "search_term": self.search_term,
            "filter_conditions": [c.to_dict() for c in self.filter_conditions],
            "selected_ids": sorted(self.selected_ids),
            "hidden_columns": sorted(self.hidden_columns),
            "open_panels": sorted(self.open_panels),
            "default_sort_applied": self.default_sort_applied,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TableView:
        raw_position = data.get("position") or {}
        if raw_position.get("mode") == PaginationMode.CURSOR.value:
            direction = raw_position.get("direction")
            position: Position = CursorPosition(
                token=raw_position.get("token"),
                direction=CursorDirection(direction) if direction else None,
                next_cursor=raw_position.get("next_cursor"),
                prev_cursor=raw_position.get("prev_cursor"),
                has_next=bool(raw_position.get("has_next", False)),
                has_prev=bool(raw_position.get("has_prev", False)),
            )
        else:
            position = OffsetPosition(page=int(raw_position.get("page", 1)))

        return cls(
            table_id=data["table_id"],
            mode=Mode(data.get("mode", Mode.LOCAL.value)),
            position=position,
            page_size=int(data.get("page_size", DEFAULT_PAGE_SIZE)),
            total_rows=int(data.get("total_rows", 0)),
            sort_column=data.get("sort_column"),
            sort_direction=SortDirection.parse(data.get("sort_direction")),
            search_term=data.get("search_term") or "",
            filter_conditions=[
                FilterCondition.from_dict(c) for c in data.get("filter_conditions", [])
            ],
            selected_ids=set(data.get("selected_ids", [])),
            hidden_columns=set(data.get("hidden_columns", [])),
            open_panels=set(data.get("open_panels", [])),
            default_sort_applied=bool(data.get("default_sort_applied", False)),
        )
