from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from .state import TableView

logger = logging.getLogger(__name__)


class StateRegistry:
    """
    The single owned collection of TableViews, keyed by table id.

    Design Notes:
    - get_or_create returns the existing record for an id, so re-initialising
      a table (e.g. after its markup was replaced) keeps page, page size and
      selection
    - records are mutated in place by the engines and only dropped by discard,
      when a table leaves the page for good
    """

    def __init__(self):
        self._views: Dict[str, TableView] = {}

    def get_or_create(self, table_id: str, **defaults: Any) -> TableView:
        view = self._views.get(table_id)
        if view is None:
            view = TableView(table_id=table_id, **defaults)
            self._views[table_id] = view
            logger.debug("TableView created", extra={"table_id": table_id})
        return view

    def adopt(self, view: TableView) -> TableView:
        """Register a TableView rebuilt elsewhere (e.g. from a dcc.Store) under its id."""
        self._views[view.table_id] = view
        return view

    def get(self, table_id: str) -> Optional[TableView]:
        return self._views.get(table_id)

    def discard(self, table_id: str) -> Optional[TableView]:
        view = self._views.pop(table_id, None)
        if view is not None:
            logger.debug("TableView discarded", extra={"table_id": table_id})
        return view

    def clear(self) -> None:
        self._views.clear()

    def __contains__(self, table_id: object) -> bool:
        return table_id in self._views

    def __iter__(self) -> Iterator[str]:
        return iter(self._views)

    def __len__(self) -> int:
        return len(self._views)
