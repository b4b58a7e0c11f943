from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from tableview.core.subscriptions import Listeners, Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmResult:
    success: bool
    url: Optional[str] = None


ConfirmCallback = Callable[[ConfirmResult], None]


class ConfirmDialog(Protocol):
    def open(
            self,
            title: str,
            message: str,
            confirm_label: str = "Confirm",
            variant: str = "default",
            on_result: Optional[ConfirmCallback] = None,
    ) -> None:
        ...

    def close(self) -> None:
        ...


class Drawer(Protocol):
    def open(self, title: str, url: str) -> None:
        ...

    def close(self) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...


# -----------------------------------------------------------------------------
# In-process implementations (headless hosts and tests)
# -----------------------------------------------------------------------------
@dataclass
class DialogRequest:
    title: str
    message: str
    confirm_label: str
    variant: str


class InMemoryDialog:
    """
    Dialog that stays open until `confirm` or `cancel` is called. Each open
    binds a single result callback.
    """

    def __init__(self):
        self.current: Optional[DialogRequest] = None
        self.history: List[DialogRequest] = []
        self._callback: Optional[ConfirmCallback] = None
        self._results = Listeners()

    @property
    def is_open(self) -> bool:
        return self.current is not None

    def on_result(self, callback: ConfirmCallback) -> Subscription:
        return self._results.add(callback)

    def open(
            self,
            title: str,
            message: str,
            confirm_label: str = "Confirm",
            variant: str = "default",
            on_result: Optional[ConfirmCallback] = None,
    ) -> None:
        self.current = DialogRequest(title, message, confirm_label, variant)
        self.history.append(self.current)
        self._callback = on_result

    def close(self) -> None:
        self.current = None
        self._callback = None

    def _resolve(self, result: ConfirmResult) -> None:
        callback = self._callback
        self._callback = None
        if callback is not None:
            callback(result)
        self._results.emit(result)

    def confirm(self, url: Optional[str] = None) -> None:
        self._resolve(ConfirmResult(success=True, url=url))

    def cancel(self) -> None:
        self._resolve(ConfirmResult(success=False))
        self.close()


@dataclass
class InMemoryDrawer:
    title: Optional[str] = None
    url: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.url is not None

    def open(self, title: str, url: str) -> None:
        self.title = title
        self.url = url
        self.errors.clear()

    def close(self) -> None:
        self.title = None
        self.url = None

    def show_error(self, message: str) -> None:
        logger.debug("Drawer error shown", extra={"message": message})
        self.errors.append(message)
