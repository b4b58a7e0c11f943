from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Subscription:
    """
    Handle for one attached listener. `unsubscribe` is idempotent.

    `is_alive` lets the owner report a listener whose target disappeared
    (e.g. an element replaced in the document) as inactive.
    """

    def __init__(
            self,
            detach: Callable[[], None],
            is_alive: Optional[Callable[[], bool]] = None,
            label: str = "",
    ):
        self._detach = detach
        self._is_alive = is_alive
        self._detached = False
        self.label = label

    @property
    def active(self) -> bool:
        if self._detached:
            return False
        return self._is_alive() if self._is_alive is not None else True

    def unsubscribe(self) -> None:
        if self._detached:
            return
        self._detached = True
        self._detach()

    def __repr__(self) -> str:
        return f"Subscription({self.label!r}, active={self.active})"


class Listeners:
    """Plain callback list; each `add` returns its own Subscription."""

    def __init__(self):
        self._callbacks: List[Callable[..., None]] = []

    def add(self, callback: Callable[..., None]) -> Subscription:
        self._callbacks.append(callback)

        def detach() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return Subscription(detach, label=getattr(callback, "__name__", "callback"))

    def emit(self, *args, **kwargs) -> None:
        for callback in list(self._callbacks):
            callback(*args, **kwargs)

    def __len__(self) -> int:
        return len(self._callbacks)


class SubscriptionRegistry:
    """
    Per-table, per-scope sets of active subscriptions.

    `replace` is the only way to (re)attach: it detaches the whole previous
    set for (table_id, scope) before building the new one, so repeated
    initialisation never stacks listeners.
    """

    def __init__(self):
        self._sets: Dict[Tuple[str, str], List[Subscription]] = {}

    def replace(
            self,
            table_id: str,
            scope: str,
            attach: Callable[[], Iterable[Subscription]],
    ) -> List[Subscription]:
        detached = self.teardown(table_id, scope)
        subs = list(attach())
        self._sets[(table_id, scope)] = subs
        logger.debug(
            "Subscriptions replaced",
            extra={"table_id": table_id, "scope": scope, "detached": detached, "attached": len(subs)},
        )
        return subs

    def teardown(self, table_id: str, scope: Optional[str] = None) -> int:
        keys = [k for k in self._sets if k[0] == table_id and (scope is None or k[1] == scope)]
        count = 0
        for key in keys:
            for sub in self._sets.pop(key):
                sub.unsubscribe()
                count += 1
        return count

    def subscriptions(self, table_id: str, scope: Optional[str] = None) -> List[Subscription]:
        return [
            sub
            for (tid, sc), subs in self._sets.items()
            if tid == table_id and (scope is None or sc == scope)
            for sub in subs
        ]

    def count(self, table_id: str, scope: Optional[str] = None) -> int:
        return len(self.subscriptions(table_id, scope))

    def has_dead(self, table_id: str) -> bool:
        return any(not sub.active for sub in self.subscriptions(table_id))

    def table_ids(self) -> List[str]:
        return sorted({tid for tid, _ in self._sets})
