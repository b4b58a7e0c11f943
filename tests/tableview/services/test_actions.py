from urllib.parse import parse_qs

import httpx

from tableview.core.registry import StateRegistry
from tableview.core.selection import BulkAction, SelectionTracker
from tableview.services.actions import ActionService, RowAction
from tableview.services.collaborators import InMemoryDialog, InMemoryDrawer
from tableview.services.render_client import RenderClient, form_pairs

DELETE = BulkAction(
    name="delete",
    label="Delete",
    endpoint="/orders/bulk-delete",
    confirm_message="Delete {{count}} orders?",
    extra_params={"reason": "cleanup"},
    variant="danger",
)


def _make_service(status=200, selected=("2", "1")):
    posted = []

    def handler(request: httpx.Request) -> httpx.Response:
        posted.append((request.url.path, request.url.params, parse_qs(request.content.decode())))
        return httpx.Response(status, text="" if status < 400 else "Not allowed")

    registry = StateRegistry()
    registry.get_or_create("orders").selected_ids.update(selected)
    refreshed = []
    dialog = InMemoryDialog()
    drawer = InMemoryDrawer()
    service = ActionService(
        client=RenderClient(client=httpx.Client(transport=httpx.MockTransport(handler), base_url="http://render")),
        dialog=dialog,
        selection=SelectionTracker(registry),
        refresh=refreshed.append,
        drawer=drawer,
    )
    return service, registry, dialog, drawer, posted, refreshed


def test_confirmed_bulk_action_posts_clears_and_refreshes():
    service, registry, dialog, _, posted, refreshed = _make_service()

    assert service.request_bulk("orders", DELETE) is True
    assert dialog.current.message == "Delete 2 orders?"
    assert dialog.current.variant == "danger"

    dialog.confirm()

    path, _, form = posted[0]
    assert path == "/orders/bulk-delete"
    assert form == {"id": ["1", "2"], "reason": ["cleanup"]}
    assert registry.get("orders").selected_ids == set()
    assert refreshed == ["orders"]
    assert not dialog.is_open


def test_failed_bulk_action_still_closes_dialog():
    service, registry, dialog, _, posted, refreshed = _make_service(status=500)

    service.request_bulk("orders", DELETE)
    dialog.confirm()

    assert len(posted) == 1
    assert not dialog.is_open
    assert refreshed == []
    assert registry.get("orders").selected_ids == {"1", "2"}


def test_cancelled_bulk_action_posts_nothing():
    service, _, dialog, _, posted, _ = _make_service()

    service.request_bulk("orders", DELETE)
    dialog.cancel()

    assert posted == []
    assert not dialog.is_open


def test_bulk_action_needs_selection_and_endpoint():
    service, _, dialog, _, _, _ = _make_service(selected=())
    assert service.request_bulk("orders", DELETE) is False

    service, _, dialog, _, _, _ = _make_service()
    assert service.request_bulk("orders", BulkAction(name="archive")) is False
    assert not dialog.is_open


def test_row_delete_is_confirmed_then_posted():
    service, _, dialog, _, posted, refreshed = _make_service()
    action = RowAction.from_dict({"kind": "delete", "url": "/orders/delete"})

    service.request_row("orders", action, "7", "order #7")
    assert dialog.current.title == "Confirm Delete"
    assert dialog.current.message == "Are you sure you want to delete order #7?"
    assert dialog.current.variant == "danger"

    dialog.confirm()

    path, params, _ = posted[0]
    assert path == "/orders/delete"
    assert params["id"] == "7"
    assert refreshed == ["orders"]


def test_edit_opens_drawer():
    service, _, dialog, drawer, posted, refreshed = _make_service()
    action = RowAction.from_dict({"kind": "edit", "url": "/orders/edit?tab=main", "drawer_title": "Edit order"})

    assert service.request_row("orders", action, "7") is True

    assert drawer.is_open
    assert drawer.title == "Edit order"
    assert drawer.url == "/orders/edit?tab=main&id=7"
    assert not dialog.is_open
    assert posted == []

    service.drawer_submitted("orders", success=False, message="Name is required")
    assert drawer.errors == ["Name is required"]
    assert drawer.is_open

    service.drawer_submitted("orders", success=True)
    assert not drawer.is_open
    assert refreshed == ["orders"]


def test_form_pairs_repeat_ids():
    assert form_pairs(["a", 2], {"hard": True}) == {"id": ["a", "2"], "hard": ["True"]}
