from tableview.core.registry import StateRegistry
from tableview.core.selection import (
    BulkAction,
    SelectAllState,
    SelectionTracker,
    bulk_action_enabled,
    select_all_state,
)


def _make_tracker(table_id="users"):
    registry = StateRegistry()
    registry.get_or_create(table_id)
    return registry, SelectionTracker(registry)


def _make_lookup(rows):
    return lambda row_id: rows.get(row_id)


def test_conditional_bulk_action_needs_every_row_flagged():
    rows = {
        "a": {"deletable": "true"},
        "b": {"deletable": "false"},
    }
    delete = BulkAction(name="delete", requires_attr="deletable")
    archive = BulkAction(name="archive")
    _, tracker = _make_tracker()

    tracker.select("users", "a")
    tracker.select("users", "b")
    snapshot = tracker.snapshot("users", ["a", "b"], _make_lookup(rows), [delete, archive])

    assert snapshot.count == 2
    assert snapshot.select_all is SelectAllState.ALL
    assert snapshot.enabled_actions == ("archive",)
    assert snapshot.disabled_actions == ("delete",)

    tracker.deselect("users", "b")
    snapshot = tracker.snapshot("users", ["a", "b"], _make_lookup(rows), [delete, archive])
    assert snapshot.enabled_actions == ("delete", "archive")
    assert snapshot.indeterminate


def test_unknown_selected_row_disables_conditional_action():
    delete = BulkAction(name="delete", requires_attr="deletable")
    lookup = _make_lookup({"a": {"deletable": True}})

    assert bulk_action_enabled(delete, ["a"], lookup) is True
    assert bulk_action_enabled(delete, ["a", "gone"], lookup) is False


def test_select_all_state():
    assert select_all_state([], ["a", "b"]) is SelectAllState.NONE
    assert select_all_state(["a"], ["a", "b"]) is SelectAllState.SOME
    assert select_all_state(["a", "b", "z"], ["a", "b"]) is SelectAllState.ALL
    assert select_all_state(["a"], []) is SelectAllState.NONE


def test_listener_fires_once_per_effective_change():
    _, tracker = _make_tracker()
    seen = []
    tracker.on_change("users", lambda table_id, ids: seen.append(sorted(ids)))

    assert tracker.select("users", "a") is True
    assert tracker.select("users", "a") is False
    assert tracker.select_all_visible("users", ["a", "b"]) is True
    assert tracker.select_all_visible("users", ["a", "b"]) is False
    assert tracker.clear("users") is True
    assert tracker.clear("users") is False

    assert seen == [["a"], ["a", "b"], []]


def test_unsubscribed_listener_is_silent():
    _, tracker = _make_tracker()
    seen = []
    sub = tracker.on_change("users", lambda table_id, ids: seen.append(ids))
    sub.unsubscribe()

    tracker.select("users", "a")
    assert seen == []
    assert sub.active is False


def test_prune_drops_ids_missing_from_dataset():
    registry, tracker = _make_tracker()
    tracker.set_many("users", ["a", "b", "c"], True)

    stale = tracker.prune("users", ["a", "c", "d"])

    assert stale == {"b"}
    assert registry.get("users").selected_ids == {"a", "c"}


def test_message_for_replaces_count_placeholder():
    action = BulkAction(name="delete", confirm_message="Delete {{count}} orders?")
    assert action.message_for(3) == "Delete 3 orders?"
    assert BulkAction(name="archive").message_for(2) == "Are you sure you want to archive 2 item(s)?"


def test_bulk_action_from_dict_defaults():
    action = BulkAction.from_dict({"name": "archive"})
    assert action.label == "Archive"
    assert action.confirm_title == "Confirm Action"
    assert action.extra_params == {}
