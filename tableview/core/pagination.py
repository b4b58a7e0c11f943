from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from .state import CursorDirection, CursorPosition, OffsetPosition

if TYPE_CHECKING:
    from .state import TableView

ELLIPSIS = "..."
MAX_UNCOLLAPSED_PAGES = 7

PageItem = Union[int, str]


def total_pages(total: int, page_size: int) -> int:
    return max(1, math.ceil(max(total, 0) / page_size))


def clamp_page(page: int, total: int, page_size: int) -> int:
    return min(max(int(page), 1), total_pages(total, page_size))


def page_numbers(current: int, n_pages: int) -> List[PageItem]:
    """
    Page-number buttons for the footer.

    Up to 7 pages are all shown. Beyond that: page 1, the last page and the
    window [current-1, current+1], with an ELLIPSIS wherever shown pages are
    not contiguous.
    """
    if n_pages <= MAX_UNCOLLAPSED_PAGES:
        return list(range(1, n_pages + 1))

    current = min(max(current, 1), n_pages)
    shown = sorted({1, n_pages, *range(max(1, current - 1), min(n_pages, current + 1) + 1)})

    items: List[PageItem] = []
    previous: Optional[int] = None
    for page in shown:
        if previous is not None and page - previous > 1:
            items.append(ELLIPSIS)
        items.append(page)
        previous = page
    return items


@dataclass(frozen=True)
class PageWindow:
    """
    Result of paginating a table.

    start/end/total are the 1-based, inclusive numbers shown in the footer
    ("Showing start to end of total"). slice_start/slice_end index into the
    filtered rows (local mode).
    """

    start: int
    end: int
    total: int
    prev_enabled: bool
    next_enabled: bool
    pages: Tuple[PageItem, ...] = ()
    page: Optional[int] = None
    total_pages: Optional[int] = None
    slice_start: int = 0
    slice_end: int = 0


class PaginationStrategy(ABC):
    @abstractmethod
    def window(self, view: TableView, total: int, window_rows: Optional[int] = None) -> PageWindow:
        ...


class OffsetStrategy(PaginationStrategy):
    def window(self, view: TableView, total: int, window_rows: Optional[int] = None) -> PageWindow:
        n_pages = total_pages(total, view.page_size)
        view.page = clamp_page(view.page, total, view.page_size)
        page = view.page

        slice_start = (page - 1) * view.page_size
        slice_end = min(page * view.page_size, total)
        if total <= 0:
            start = end = 0
        else:
            start, end = slice_start + 1, slice_end

        return PageWindow(
            start=start,
            end=end,
            total=max(total, 0),
            prev_enabled=page > 1,
            next_enabled=page < n_pages,
            pages=tuple(page_numbers(page, n_pages)),
            page=page,
            total_pages=n_pages,
            slice_start=slice_start,
            slice_end=max(slice_end, slice_start),
        )


class CursorStrategy(PaginationStrategy):
    """
    Only the remote service knows whether rows exist beyond the current cursor
    window, so navigability comes straight from has_next / has_prev.
    """

    def window(self, view: TableView, total: int, window_rows: Optional[int] = None) -> PageWindow:
        position = view.position
        assert isinstance(position, CursorPosition)
        rows = window_rows if window_rows is not None else min(total, view.page_size)
        return PageWindow(
            start=1 if rows > 0 else 0,
            end=rows,
            total=max(total, 0),
            prev_enabled=position.has_prev,
            next_enabled=position.has_next,
            slice_start=0,
            slice_end=rows,
        )


def strategy_for(view: TableView) -> PaginationStrategy:
    if isinstance(view.position, CursorPosition):
        return CursorStrategy()
    return OffsetStrategy()


def paginate(view: TableView, total: int, window_rows: Optional[int] = None) -> PageWindow:
    return strategy_for(view).window(view, total, window_rows)


# -----------------------------------------------------------------------------
# Navigation (keeps the query shape) and page size (resets it)
# -----------------------------------------------------------------------------
def go_to_page(view: TableView, page: int, total: Optional[int] = None) -> bool:
    if not isinstance(view.position, OffsetPosition):
        return False
    target = int(page)
    if total is not None:
        target = clamp_page(target, total, view.page_size)
    target = max(target, 1)
    moved = target != view.page
    view.page = target
    return moved


def next_page(view: TableView, total: Optional[int] = None) -> bool:
    position = view.position
    if isinstance(position, CursorPosition):
        if not (position.has_next and position.next_cursor):
            return False
        position.token = position.next_cursor
        position.direction = CursorDirection.NEXT
        return True

    known_total = view.total_rows if total is None else total
    if view.page >= total_pages(known_total, view.page_size):
        return False
    view.page += 1
    return True


def prev_page(view: TableView) -> bool:
    position = view.position
    if isinstance(position, CursorPosition):
        if not (position.has_prev and position.prev_cursor):
            return False
        position.token = position.prev_cursor
        position.direction = CursorDirection.PREV
        return True

    if view.page <= 1:
        return False
    view.page -= 1
    return True


def set_page_size(view: TableView, page_size: int) -> None:
    page_size = int(page_size)
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    view.page_size = page_size
    view.reset_position()
