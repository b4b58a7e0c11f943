from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, List, Optional

from bs4 import Tag

from tableview.core.subscriptions import Subscription

from .anchors import Anchors
from .document import Document

if TYPE_CHECKING:
    from tableview.services.table_controller import TableController

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 2.0


class Reconciler:
    """
    Re-attaches a table's listeners after its markup was replaced.

    The primary signal is the document's "content replaced" notification.
    `tick` is a low-frequency fallback for replacements that were not
    announced: any table with a dead subscription is re-initialised, and
    open toolbar panels are re-synced from the TableView.
    """

    def __init__(
            self,
            document: Document,
            controller: TableController,
            interval: float = DEFAULT_INTERVAL,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.document = document
        self.controller = controller
        self.interval = interval
        self._clock = clock
        self._observer: Optional[Subscription] = None
        self._last_tick: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is None:
            self._observer = self.document.observe(self._on_replaced)

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.unsubscribe()
            self._observer = None

    def _on_replaced(self, element_id: str, tag: Tag) -> None:
        table_id = Anchors.table_id_of(element_id)
        if table_id not in self.controller.registry:
            # A replacement that contains whole cards (e.g. a page region)
            for card in tag.select(f".{Anchors.Class.CARD}[id]"):
                self._reinit(Anchors.table_id_of(card["id"]), reason="replaced")
            return
        self._reinit(table_id, reason="replaced")

    def _reinit(self, table_id: str, reason: str) -> None:
        logger.debug("Re-initialising table", extra={"table_id": table_id, "reason": reason})
        self.controller.initialize(table_id)

    def tick(self, force: bool = False) -> List[str]:
        """Run the fallback check if the interval elapsed. Returns re-initialised ids."""
        now = self._clock()
        if not force and self._last_tick is not None and now - self._last_tick < self.interval:
            return []
        self._last_tick = now

        reinitialised = []
        for table_id in self.controller.table_ids():
            if self.controller.subscriptions.has_dead(table_id):
                self._reinit(table_id, reason="poll")
                reinitialised.append(table_id)
            self.controller.sync_panels(table_id)
        return reinitialised
