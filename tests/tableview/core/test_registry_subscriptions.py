from tableview.core.registry import StateRegistry
from tableview.core.subscriptions import Listeners, Subscription, SubscriptionRegistry


def _make_listeners(calls, n):
    listeners = Listeners()
    subs = [listeners.add(lambda i=i: calls.append(i)) for i in range(n)]
    return listeners, subs


def test_get_or_create_returns_same_record():
    registry = StateRegistry()
    view = registry.get_or_create("orders", page_size=10)
    view.page = 3
    view.selected_ids.add("7")

    again = registry.get_or_create("orders", page_size=50)

    assert again is view
    assert again.page_size == 10
    assert again.page == 3
    assert again.selected_ids == {"7"}


def test_discard_forgets_the_record():
    registry = StateRegistry()
    registry.get_or_create("orders")
    assert "orders" in registry

    registry.discard("orders")
    assert "orders" not in registry
    assert registry.discard("orders") is None
    assert registry.get_or_create("orders").page == 1


def test_unsubscribe_is_idempotent():
    detached = []
    sub = Subscription(lambda: detached.append(1))

    sub.unsubscribe()
    sub.unsubscribe()

    assert detached == [1]
    assert sub.active is False


def test_subscription_reports_dead_target():
    alive = {"value": True}
    sub = Subscription(lambda: None, is_alive=lambda: alive["value"])
    assert sub.active
    alive["value"] = False
    assert not sub.active


def test_replace_never_stacks_listeners():
    calls = []
    listeners = Listeners()
    registry = SubscriptionRegistry()

    def attach():
        return [listeners.add(lambda: calls.append("search")), listeners.add(lambda: calls.append("sort"))]

    for _ in range(3):
        registry.replace("orders", "controls", attach)

    listeners.emit()

    assert registry.count("orders") == 2
    assert len(listeners) == 2
    assert calls == ["search", "sort"]


def test_teardown_by_scope():
    calls = []
    listeners, subs = _make_listeners(calls, 2)
    registry = SubscriptionRegistry()
    registry.replace("orders", "controls", lambda: subs[:1])
    registry.replace("orders", "selection", lambda: subs[1:])

    assert registry.teardown("orders", "controls") == 1
    listeners.emit()
    assert calls == [1]
    assert registry.table_ids() == ["orders"]

    assert registry.teardown("orders") == 1
    assert registry.table_ids() == []
