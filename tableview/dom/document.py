from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup, Tag

from tableview.core.subscriptions import Listeners, Subscription

logger = logging.getLogger(__name__)

PARSER = "html.parser"

Target = Union[Tag, str]
Handler = Callable[["DomEvent"], None]
ReplaceObserver = Callable[[str, Tag], None]


@dataclass
class DomEvent:
    type: str
    target: Tag
    detail: Dict[str, Any] = field(default_factory=dict)
    current: Optional[Tag] = None
    propagation_stopped: bool = False

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass(eq=False)
class _Listener:
    tag: Tag
    type: str
    handler: Handler


def has_class(tag: Tag, name: str) -> bool:
    return name in (tag.get("class") or [])


def closest(tag: Tag, match: Callable[[Tag], bool]) -> Optional[Tag]:
    """Nearest element, starting with `tag` itself, that satisfies `match`."""
    node: Any = tag
    while isinstance(node, Tag) and not isinstance(node, BeautifulSoup):
        if match(node):
            return node
        node = node.parent
    return None


def parse_fragment(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, PARSER)


class Document:
    """
    Markup tree with element-bound listeners.

    Listeners are attached to element objects, not to ids: once an element is
    replaced (by an engine or by an external rendering layer), the listeners
    bound to the old element are gone and have to be re-attached to the new
    one. Replacements made with notify=True are announced to observers, which
    is how the reconciliation pass learns about them.
    """

    def __init__(self, markup: str = ""):
        self.soup = BeautifulSoup(markup, PARSER)
        self._listeners: List[_Listener] = []
        self._observers = Listeners()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get(self, element_id: str) -> Optional[Tag]:
        return self.soup.find(id=element_id)

    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        return (root if root is not None else self.soup).select(selector)

    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        return (root if root is not None else self.soup).select_one(selector)

    def is_attached(self, tag: Tag) -> bool:
        return tag is self.soup or any(parent is self.soup for parent in tag.parents)

    def _resolve(self, target: Target) -> Optional[Tag]:
        return self.get(target) if isinstance(target, str) else target

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def on(self, target: Target, event_type: str, handler: Handler) -> Subscription:
        tag = self._resolve(target)
        if tag is None:
            raise LookupError(f"No element for listener target {target!r}")

        listener = _Listener(tag, event_type, handler)
        self._listeners.append(listener)

        def detach() -> None:
            self._listeners = [entry for entry in self._listeners if entry is not listener]

        return Subscription(
            detach,
            is_alive=lambda: self.is_attached(tag),
            label=f"{tag.name}#{tag.get('id', '')}:{event_type}",
        )

    def dispatch(self, target: Target, event_type: str, **detail: Any) -> DomEvent:
        """
        Fire `event_type` at `target` and bubble it through the ancestors.
        Detached targets receive nothing.
        """
        tag = self._resolve(target)
        if tag is None:
            raise LookupError(f"No element for event target {target!r}")

        event = DomEvent(type=event_type, target=tag, detail=dict(detail))
        if not self.is_attached(tag):
            return event

        path = [tag, *[p for p in tag.parents if not isinstance(p, BeautifulSoup)]]
        for node in path:
            event.current = node
            for listener in list(self._listeners):
                if listener.tag is node and listener.type == event_type:
                    listener.handler(event)
            if event.propagation_stopped:
                break
        return event

    def listener_count(self, target: Optional[Target] = None, event_type: Optional[str] = None) -> int:
        tag = self._resolve(target) if target is not None else None
        return sum(
            1
            for entry in self._listeners
            if (tag is None or entry.tag is tag)
            and (event_type is None or entry.type == event_type)
            and self.is_attached(entry.tag)
        )

    # ------------------------------------------------------------------
    # Input helpers
    # ------------------------------------------------------------------
    def click(self, target: Target, **detail: Any) -> DomEvent:
        return self.dispatch(target, "click", **detail)

    def set_value(self, target: Target, value: str, event_type: str = "input") -> DomEvent:
        tag = self._resolve(target)
        if tag is None:
            raise LookupError(f"No element for {target!r}")
        if tag.name == "select":
            for option in tag.find_all("option"):
                if option.get("value", option.get_text()) == str(value):
                    option["selected"] = "selected"
                elif option.has_attr("selected"):
                    del option["selected"]
        else:
            tag["value"] = str(value)
        return self.dispatch(tag, event_type, value=str(value))

    def set_checked(self, target: Target, checked: bool) -> DomEvent:
        tag = self._resolve(target)
        if tag is None:
            raise LookupError(f"No element for {target!r}")
        set_checked_attr(tag, checked)
        return self.dispatch(tag, "change", checked=checked)

    # ------------------------------------------------------------------
    # Replacement
    # ------------------------------------------------------------------
    def observe(self, callback: ReplaceObserver) -> Subscription:
        """Subscribe to replacements made with notify=True."""
        return self._observers.add(callback)

    def replace_outer(self, element_id: str, markup: str, notify: bool = True) -> Optional[Tag]:
        old = self.get(element_id)
        if old is None:
            return None
        new = parse_fragment(markup).find(True)
        if new is None:
            raise ValueError(f"Replacement markup for '{element_id}' contains no element")
        old.replace_with(new)
        self._after_replace(element_id, new, notify)
        return new

    def replace_inner(self, element_id: str, markup: str, notify: bool = True) -> Optional[Tag]:
        tag = self.get(element_id)
        if tag is None:
            return None
        fragment = parse_fragment(markup)
        tag.clear()
        for child in list(fragment.contents):
            tag.append(child.extract())
        self._after_replace(element_id, tag, notify)
        return tag

    def _after_replace(self, element_id: str, tag: Tag, notify: bool) -> None:
        before = len(self._listeners)
        self._listeners = [entry for entry in self._listeners if self.is_attached(entry.tag)]
        dropped = before - len(self._listeners)
        if dropped:
            logger.debug(
                "Listeners invalidated by replacement",
                extra={"element_id": element_id, "dropped": dropped},
            )
        if notify:
            self._observers.emit(element_id, tag)

    def to_html(self) -> str:
        return str(self.soup)


def set_checked_attr(tag: Tag, checked: bool) -> None:
    if checked:
        tag["checked"] = "checked"
    elif tag.has_attr("checked"):
        del tag["checked"]


def is_checked(tag: Tag) -> bool:
    return tag.has_attr("checked")
