from __future__ import annotations

import json
import logging
from html import escape
from typing import Any, Collection, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from tableview.core.pagination import ELLIPSIS, PageWindow
from tableview.core.rows import Column, Row, RowSnapshot
from tableview.core.selection import BulkAction, SelectionSnapshot
from tableview.core.state import SortDirection

from .anchors import Anchors
from .document import PARSER, has_class, parse_fragment, set_checked_attr

logger = logging.getLogger(__name__)

_factory = BeautifulSoup("", PARSER)


# -----------------------------------------------------------------------------
# Small element helpers
# -----------------------------------------------------------------------------
def toggle_class(tag: Tag, name: str, on: bool) -> None:
    classes = [c for c in (tag.get("class") or []) if c != name]
    if on:
        classes.append(name)
    if classes:
        tag["class"] = classes
    elif tag.has_attr("class"):
        del tag["class"]


def set_hidden(tag: Tag, hidden: bool) -> None:
    if hidden:
        tag["style"] = "display: none"
    elif tag.has_attr("style"):
        del tag["style"]


def set_disabled(tag: Tag, disabled: bool) -> None:
    if disabled:
        tag["disabled"] = "disabled"
    elif tag.has_attr("disabled"):
        del tag["disabled"]


def set_text(tag: Optional[Tag], value: Any) -> None:
    if tag is not None:
        tag.string = str(value)


# -----------------------------------------------------------------------------
# Reading server-rendered markup
# -----------------------------------------------------------------------------
def _data_key(attr: str) -> str:
    return attr[len("data-"):].replace("-", "_")


def row_attributes(tr: Tag) -> Dict[str, str]:
    return {
        _data_key(name): value
        for name, value in tr.attrs.items()
        if name.startswith("data-") and name != "data-id"
    }


def snapshot_from_markup(tbody: Tag) -> RowSnapshot:
    """Typed snapshot of the `<tr data-id>` rows of a server-rendered body."""
    return RowSnapshot(
        Row(id=str(tr["data-id"]), attributes=row_attributes(tr), markup=str(tr))
        for tr in tbody.select("tr[data-id]")
    )


def columns_from_markup(table: Tag) -> List[Column]:
    columns = []
    for th in table.select("thead th[data-sort]"):
        label_el = th.select_one(".column-label")
        label = (label_el or th).get_text(strip=True)
        columns.append(Column(key=th["data-sort"], label=label, sortable=has_class(th, Anchors.Class.SORTABLE)))
    return columns


# -----------------------------------------------------------------------------
# Row projection
# -----------------------------------------------------------------------------
def _generated_row(row: Row, columns: Iterable[Column], selectable: bool) -> str:
    data_attrs = "".join(
        f' data-{escape(key.replace("_", "-"))}="{escape(str(value))}"'
        for key, value in row.attributes.items()
        if value is not None
    )
    cells = []
    if selectable:
        cells.append(
            '<td class="row-checkbox">'
            f'<input type="checkbox" class="{Anchors.Class.ROW_CHECKBOX}" data-row-id="{escape(row.id)}"/>'
            "</td>"
        )
    for column in columns:
        value = row.attributes.get(column.key)
        cells.append(f'<td data-column="{escape(column.key)}">{escape("" if value is None else str(value))}</td>')
    return f'<tr data-id="{escape(row.id)}"{data_attrs}>{"".join(cells)}</tr>'


def render_rows(
        rows: Iterable[Row],
        columns: Iterable[Column],
        selected_ids: Collection[str] = (),
        hidden_columns: Collection[str] = (),
        selectable: bool = True,
) -> str:
    """
    Markup for the visible rows, in order. Rows read from a document keep
    their original markup; others are generated from their attributes.
    """
    columns = list(columns)
    fragment = parse_fragment(
        "".join(row.markup or _generated_row(row, columns, selectable) for row in rows)
    )
    for tr in fragment.select("tr[data-id]"):
        selected = tr["data-id"] in selected_ids
        toggle_class(tr, "selected", selected)
        checkbox = tr.select_one(f".{Anchors.Class.ROW_CHECKBOX}")
        if checkbox is not None:
            set_checked_attr(checkbox, selected)
        for cell in tr.select("td[data-column]"):
            set_hidden(cell, cell["data-column"] in hidden_columns)
    return str(fragment)


def apply_column_visibility(table: Tag, hidden_columns: Collection[str]) -> None:
    for th in table.select("thead th[data-sort]"):
        set_hidden(th, th["data-sort"] in hidden_columns)
    for td in table.select("td[data-column]"):
        set_hidden(td, td["data-column"] in hidden_columns)


# -----------------------------------------------------------------------------
# Footer, header and toolbar state
# -----------------------------------------------------------------------------
def update_footer(footer: Tag, table_id: str, window: PageWindow, page_size: int) -> None:
    set_text(footer.select_one(f"#{Anchors.start(table_id)}"), window.start)
    set_text(footer.select_one(f"#{Anchors.end(table_id)}"), window.end)
    set_text(footer.select_one(f"#{Anchors.total(table_id)}"), window.total)

    prev_btn = footer.select_one(f".{Anchors.Class.PREV}")
    next_btn = footer.select_one(f".{Anchors.Class.NEXT}")
    if prev_btn is not None:
        set_disabled(prev_btn, not window.prev_enabled)
    if next_btn is not None:
        set_disabled(next_btn, not window.next_enabled)

    entries = footer.select_one(f".{Anchors.Class.ENTRIES}")
    if entries is not None:
        for option in entries.find_all("option"):
            if option.get("value") == str(page_size):
                option["selected"] = "selected"
            elif option.has_attr("selected"):
                del option["selected"]

    container = footer.select_one(f".{Anchors.Class.FOOTER_PAGINATION}")
    if container is None:
        return
    for old in container.select(f".{Anchors.Class.PAGE_BUTTON}"):
        old.extract()

    for item in window.pages:
        btn = _factory.new_tag("button", attrs={"type": "button", "data-table": table_id})
        if item == ELLIPSIS:
            btn["class"] = [Anchors.Class.PAGE_BUTTON, Anchors.Class.ELLIPSIS]
            btn["disabled"] = "disabled"
        else:
            btn["class"] = [Anchors.Class.PAGE_BUTTON]
            btn["data-page"] = str(item)
            if item == window.page:
                btn["class"].append("active")
        btn.string = str(item)
        if next_btn is not None and next_btn.parent is container:
            next_btn.insert_before(btn)
        else:
            container.append(btn)


def update_sort_indicators(table: Tag, column: Optional[str], direction: SortDirection) -> None:
    for th in table.select(f"thead th.{Anchors.Class.SORTABLE}"):
        toggle_class(th, "sort-asc", False)
        toggle_class(th, "sort-desc", False)
        if column is not None and th.get("data-sort") == column:
            toggle_class(th, f"sort-{direction.value}", True)


def update_selection_ui(
        card: Tag,
        table: Tag,
        bulk_toolbar: Optional[Tag],
        snapshot: SelectionSnapshot,
        selected_ids: Collection[str],
) -> None:
    card["data-bulk-mode"] = "true" if snapshot.bulk_mode else "false"

    for checkbox in table.select(f".{Anchors.Class.ROW_CHECKBOX}"):
        selected = checkbox.get("data-row-id") in selected_ids
        set_checked_attr(checkbox, selected)
        tr = checkbox.find_parent("tr")
        if tr is not None:
            toggle_class(tr, "selected", selected)

    select_all = table.select_one(f".{Anchors.Class.SELECT_ALL}")
    if select_all is not None:
        set_checked_attr(select_all, snapshot.all_checked)
        select_all["data-indeterminate"] = "true" if snapshot.indeterminate else "false"

    if bulk_toolbar is None:
        return
    set_text(bulk_toolbar.select_one(f".{Anchors.Class.SELECTED_COUNT}"), snapshot.count)
    for btn in bulk_toolbar.select("[data-bulk-action]"):
        disabled = btn["data-bulk-action"] in snapshot.disabled_actions
        set_hidden(btn, disabled)
        set_disabled(btn, disabled)


def set_panel_open(dropdown: Tag, is_open: bool) -> None:
    toggle_class(dropdown, "open", is_open)
    button = dropdown.select_one(f".{Anchors.Class.TOOLBAR_BUTTON}")
    if button is not None:
        button["aria-expanded"] = "true" if is_open else "false"


# -----------------------------------------------------------------------------
# Toolbar markup readers
# -----------------------------------------------------------------------------
_VARIANT_CLASSES = {
    "bulk-action-danger": "danger",
    "bulk-action-primary": "primary",
    "bulk-action-warning": "warning",
}


def field_value(tag: Optional[Tag]) -> str:
    """Current value of an input or select element ('' when absent)."""
    if tag is None:
        return ""
    if tag.name == "select":
        options = tag.find_all("option")
        chosen = next((o for o in options if o.has_attr("selected")), options[0] if options else None)
        if chosen is None:
            return ""
        return str(chosen.get("value", chosen.get_text(strip=True)))
    return str(tag.get("value", ""))


def bulk_actions_from_markup(toolbar: Tag) -> List[BulkAction]:
    actions = []
    for btn in toolbar.select("[data-bulk-action]"):
        extra: Dict[str, Any] = {}
        raw_extra = btn.get("data-extra-params")
        if raw_extra:
            try:
                extra = json.loads(raw_extra)
            except ValueError:
                logger.error("Unreadable data-extra-params", extra={"action": btn["data-bulk-action"]})
        if not isinstance(extra, dict):
            extra = {}
        variant = next(
            (v for cls, v in _VARIANT_CLASSES.items() if has_class(btn, cls)),
            "default",
        )
        label_el = btn.find("span")
        actions.append(
            BulkAction(
                name=btn["data-bulk-action"],
                label=(label_el or btn).get_text(strip=True),
                requires_attr=btn.get("data-requires-attr") or None,
                endpoint=btn.get("data-endpoint") or None,
                confirm_title=btn.get("data-confirm-title") or "Confirm Action",
                confirm_message=btn.get("data-confirm-message") or None,
                extra_params=extra,
                variant=variant,
            )
        )
    return actions
