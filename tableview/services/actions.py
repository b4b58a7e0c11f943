from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from bs4 import Tag

from tableview.core.exceptions import ActionError
from tableview.core.selection import BulkAction, SelectionTracker

from .collaborators import ConfirmDialog, ConfirmResult, Drawer
from .render_client import RenderClient

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[str], Any]

_DEFAULT_VARIANTS: Dict[str, str] = {"delete": "danger", "deactivate": "warning", "activate": "primary"}


@dataclass(frozen=True)
class RowAction:
    """
    Per-row action button.

    `edit` opens the drawer at `url?id=`; every other kind (delete,
    deactivate, activate, ...) is confirmed through the dialog and POSTed.
    """

    kind: str
    url: str
    label: str = ""
    confirm_title: Optional[str] = None
    confirm_message: Optional[str] = None
    drawer_title: str = "Edit"
    variant: str = "default"

    @property
    def opens_drawer(self) -> bool:
        return self.kind == "edit"

    def url_for(self, row_id: str) -> str:
        return self.url + ("&" if "?" in self.url else "?") + f"id={row_id}"

    def title(self) -> str:
        return self.confirm_title or f"Confirm {self.kind.title()}"

    def message_for(self, item_name: str) -> str:
        return self.confirm_message or f"Are you sure you want to {self.kind} {item_name}?"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RowAction:
        kind = data["kind"]
        return cls(
            kind=kind,
            url=data["url"],
            label=data.get("label", kind.title()),
            confirm_title=data.get("confirm_title"),
            confirm_message=data.get("confirm_message"),
            drawer_title=data.get("drawer_title", "Edit"),
            variant=data.get("variant", _DEFAULT_VARIANTS.get(kind, "default")),
        )


def row_action_from_button(btn: Tag) -> Optional[RowAction]:
    """RowAction declared by an `.action-btn[data-action]` element, or None when incomplete."""
    kind = btn.get("data-action")
    url = btn.get(f"data-{kind}-url") if kind else None
    if not kind or not url:
        return None
    return RowAction(
        kind=kind,
        url=url,
        label=btn.get_text(strip=True) or kind.title(),
        confirm_title=btn.get("data-confirm-title") or None,
        confirm_message=btn.get("data-confirm-message") or None,
        drawer_title=btn.get("data-drawer-title") or "Edit",
        variant=_DEFAULT_VARIANTS.get(kind, "default"),
    )


class ActionService:
    """
    Bulk and row actions: confirmation through the dialog, POST through the
    render client, table refresh on success.

    Failures are logged and leave the table untouched; the dialog is closed
    either way.
    """

    def __init__(
            self,
            client: RenderClient,
            dialog: ConfirmDialog,
            selection: SelectionTracker,
            refresh: RefreshCallback,
            drawer: Optional[Drawer] = None,
    ):
        self.client = client
        self.dialog = dialog
        self.selection = selection
        self.refresh = refresh
        self.drawer = drawer

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------
    def request_bulk(self, table_id: str, action: BulkAction) -> bool:
        """Open the confirmation dialog for `action` over the current selection."""
        selected = sorted(self.selection.selected(table_id))
        if not selected:
            logger.debug("Bulk action ignored, nothing selected", extra={"table_id": table_id})
            return False
        if not action.endpoint:
            logger.info(
                "Bulk action has no endpoint configured",
                extra={"table_id": table_id, "action": action.name},
            )
            return False

        def on_result(result: ConfirmResult) -> None:
            if result.success:
                self.execute_bulk(table_id, action, selected)
            else:
                self.dialog.close()

        self.dialog.open(
            title=action.confirm_title,
            message=action.message_for(len(selected)),
            confirm_label=action.label or action.name,
            variant=action.variant,
            on_result=on_result,
        )
        return True

    def execute_bulk(self, table_id: str, action: BulkAction, ids: Sequence[str]) -> bool:
        try:
            self.client.post(action.endpoint or "", ids, action.extra_params)
        except ActionError as exc:
            logger.error(
                "Bulk action failed",
                extra={"table_id": table_id, "action": action.name, "count": len(ids), "error": str(exc)},
            )
            return False
        finally:
            self.dialog.close()

        logger.info(
            "Bulk action completed",
            extra={"table_id": table_id, "action": action.name, "count": len(ids)},
        )
        self.selection.clear(table_id)
        self.refresh(table_id)
        return True

    # ------------------------------------------------------------------
    # Row
    # ------------------------------------------------------------------
    def request_row(self, table_id: str, action: RowAction, row_id: str, item_name: str = "this item") -> bool:
        url = action.url_for(row_id)
        if action.opens_drawer:
            if self.drawer is None:
                logger.warning("No drawer available for edit action", extra={"table_id": table_id})
                return False
            self.drawer.open(action.drawer_title, url)
            return True

        def on_result(result: ConfirmResult) -> None:
            if result.success:
                self.execute_row(table_id, action, result.url or url)
            else:
                self.dialog.close()

        self.dialog.open(
            title=action.title(),
            message=action.message_for(item_name),
            confirm_label=action.label or action.kind.title(),
            variant=action.variant,
            on_result=on_result,
        )
        return True

    def execute_row(self, table_id: str, action: RowAction, url: str) -> bool:
        try:
            self.client.post(url)
        except ActionError as exc:
            logger.error(
                "Row action failed",
                extra={"table_id": table_id, "action": action.kind, "url": url, "error": str(exc)},
            )
            return False
        finally:
            self.dialog.close()

        self.refresh(table_id)
        return True

    def drawer_submitted(self, table_id: str, success: bool, message: str = "") -> None:
        """Result of the form inside the drawer: refresh on success, error in place otherwise."""
        if self.drawer is None:
            return
        if success:
            self.drawer.close()
            self.refresh(table_id)
        else:
            logger.warning("Drawer submission failed", extra={"table_id": table_id, "error": message})
            self.drawer.show_error(message or "Action failed")
