from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .registry import StateRegistry
from .rows import is_true
from .subscriptions import Listeners, Subscription

logger = logging.getLogger(__name__)

RowLookup = Callable[[str], Optional[Mapping[str, Any]]]
SelectionCallback = Callable[[str, FrozenSet[str]], None]


class SelectAllState(str, Enum):
    NONE = "none"
    SOME = "some"
    ALL = "all"


@dataclass(frozen=True)
class BulkAction:
    """
    A bulk-toolbar button.

    - requires_attr: boolean row attribute every selected row must carry
      (e.g. "deletable") for the button to be enabled
    - confirm_message: may contain the {{count}} placeholder
    - extra_params: additional form fields sent with the POST
    """

    name: str
    label: str = ""
    requires_attr: Optional[str] = None
    endpoint: Optional[str] = None
    confirm_title: str = "Confirm Action"
    confirm_message: Optional[str] = None
    extra_params: Dict[str, Any] = field(default_factory=dict, hash=False)
    variant: str = "default"

    def message_for(self, count: int) -> str:
        template = self.confirm_message or f"Are you sure you want to {self.name} {{{{count}}}} item(s)?"
        return template.replace("{{count}}", str(count))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BulkAction:
        return cls(
            name=data["name"],
            label=data.get("label", data["name"].title()),
            requires_attr=data.get("requires_attr"),
            endpoint=data.get("endpoint"),
            confirm_title=data.get("confirm_title", "Confirm Action"),
            confirm_message=data.get("confirm_message"),
            extra_params=dict(data.get("extra_params") or {}),
            variant=data.get("variant", "default"),
        )


@dataclass(frozen=True)
class SelectionSnapshot:
    count: int
    select_all: SelectAllState
    enabled_actions: Tuple[str, ...] = ()
    disabled_actions: Tuple[str, ...] = ()

    @property
    def bulk_mode(self) -> bool:
        return self.count > 0

    @property
    def all_checked(self) -> bool:
        return self.select_all is SelectAllState.ALL

    @property
    def indeterminate(self) -> bool:
        return self.select_all is SelectAllState.SOME


def select_all_state(selected: Iterable[str], checkable_ids: Iterable[str]) -> SelectAllState:
    selected = set(selected)
    checkable = list(checkable_ids)
    checked = [row_id for row_id in checkable if row_id in selected]
    if checkable and len(checked) == len(checkable):
        return SelectAllState.ALL
    if checked:
        return SelectAllState.SOME
    return SelectAllState.NONE


def bulk_action_enabled(action: BulkAction, selected: Iterable[str], lookup: RowLookup) -> bool:
    """
    True when every selected row satisfies the action's required attribute.
    Selected ids without an on-screen row count as non-matching.
    """
    if not action.requires_attr:
        return True
    for row_id in selected:
        attrs = lookup(row_id)
        if attrs is None or not is_true(attrs.get(action.requires_attr)):
            return False
    return True


class SelectionTracker:
    """
    Maintains TableView.selected_ids and notifies change listeners exactly
    once per effective change.
    """

    def __init__(self, registry: StateRegistry):
        self._registry = registry
        self._listeners: Dict[str, Listeners] = {}

    def selected(self, table_id: str) -> Set[str]:
        return set(self._registry.get_or_create(table_id).selected_ids)

    def on_change(self, table_id: str, callback: SelectionCallback) -> Subscription:
        return self._listeners.setdefault(table_id, Listeners()).add(callback)

    def _changed(self, table_id: str) -> None:
        selected = frozenset(self._registry.get_or_create(table_id).selected_ids)
        logger.debug("Selection changed", extra={"table_id": table_id, "count": len(selected)})
        listeners = self._listeners.get(table_id)
        if listeners is not None:
            listeners.emit(table_id, selected)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def toggle(self, table_id: str, row_id: str, checked: bool) -> bool:
        ids = self._registry.get_or_create(table_id).selected_ids
        if checked == (row_id in ids):
            return False
        if checked:
            ids.add(row_id)
        else:
            ids.discard(row_id)
        self._changed(table_id)
        return True

    def select(self, table_id: str, row_id: str) -> bool:
        return self.toggle(table_id, row_id, True)

    def deselect(self, table_id: str, row_id: str) -> bool:
        return self.toggle(table_id, row_id, False)

    def set_many(self, table_id: str, row_ids: Iterable[str], checked: bool) -> bool:
        ids = self._registry.get_or_create(table_id).selected_ids
        before = set(ids)
        if checked:
            ids.update(row_ids)
        else:
            ids.difference_update(row_ids)
        if ids == before:
            return False
        self._changed(table_id)
        return True

    def select_all_visible(self, table_id: str, visible_ids: Iterable[str]) -> bool:
        return self.set_many(table_id, visible_ids, True)

    def clear(self, table_id: str) -> bool:
        ids = self._registry.get_or_create(table_id).selected_ids
        if not ids:
            return False
        ids.clear()
        self._changed(table_id)
        return True

    def prune(self, table_id: str, present_ids: Iterable[str]) -> Set[str]:
        """Drop selected ids that are no longer part of the dataset."""
        ids = self._registry.get_or_create(table_id).selected_ids
        stale = ids - set(present_ids)
        if stale:
            ids.difference_update(stale)
            self._changed(table_id)
        return stale

    def discard(self, table_id: str) -> None:
        self._listeners.pop(table_id, None)

    # ------------------------------------------------------------------
    # Derived UI state
    # ------------------------------------------------------------------
    def snapshot(
            self,
            table_id: str,
            checkable_ids: Iterable[str],
            lookup: RowLookup,
            actions: Iterable[BulkAction] = (),
    ) -> SelectionSnapshot:
        selected = self._registry.get_or_create(table_id).selected_ids
        enabled: List[str] = []
        disabled: List[str] = []
        for action in actions:
            (enabled if bulk_action_enabled(action, selected, lookup) else disabled).append(action.name)
        return SelectionSnapshot(
            count=len(selected),
            select_all=select_all_state(selected, checkable_ids),
            enabled_actions=tuple(enabled),
            disabled_actions=tuple(disabled),
        )
