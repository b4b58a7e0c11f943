from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional, Tuple


class Debouncer:
    """
    Trailing-edge debounce for a single-threaded host loop.

    `call` records the latest arguments and pushes the deadline back by
    `wait` seconds; the host invokes `poll` on its timer tick and the callback
    fires once the deadline has passed with no newer call.
    """

    def __init__(
            self,
            callback: Callable[..., Any],
            wait: float,
            clock: Callable[[], float] = time.monotonic,
    ):
        self._callback = callback
        self.wait = wait
        self._clock = clock
        self._pending: Optional[Tuple[tuple, Dict[str, Any]]] = None
        self._due = 0.0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        self._pending = (args, kwargs)
        self._due = self._clock() + self.wait

    def poll(self) -> bool:
        if self._pending is None or self._clock() < self._due:
            return False
        return self.flush()

    def flush(self) -> bool:
        if self._pending is None:
            return False
        args, kwargs = self._pending
        self._pending = None
        self._callback(*args, **kwargs)
        return True

    def cancel(self) -> None:
        self._pending = None
