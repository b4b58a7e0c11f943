import pytest

from tableview.dom.document import Document, closest, has_class, is_checked


def _make_document():
    return Document(
        '<div id="orders-card" class="table-card">'
        '<div id="orders-toolbar"><input id="orders-search" value=""/>'
        '<select id="size"><option value="10">10</option><option value="25" selected>25</option></select>'
        "</div>"
        '<table><tbody id="orders-body"><tr data-id="1"><td><input id="c1" type="checkbox"/></td></tr></tbody></table>'
        "</div>"
    )


def test_events_bubble_to_ancestors():
    doc = _make_document()
    seen = []
    doc.on("orders-card", "click", lambda e: seen.append(("card", e.target["id"])))
    doc.on("c1", "click", lambda e: seen.append(("checkbox", e.current["id"])))

    doc.click("c1")

    assert seen == [("checkbox", "c1"), ("card", "c1")]


def test_stop_propagation():
    doc = _make_document()
    seen = []
    doc.on("orders-card", "click", lambda e: seen.append("card"))
    doc.on("c1", "click", lambda e: e.stop_propagation())

    doc.click("c1")

    assert seen == []


def test_replacement_drops_listeners_of_old_elements():
    doc = _make_document()
    replaced = []
    doc.observe(lambda element_id, tag: replaced.append(element_id))
    sub = doc.on("c1", "change", lambda e: None)
    assert doc.listener_count() == 1

    doc.replace_inner("orders-body", '<tr data-id="2"><td><input id="c2" type="checkbox"/></td></tr>')

    assert doc.listener_count() == 0
    assert sub.active is False
    assert replaced == ["orders-body"]
    assert doc.get("c1") is None
    assert doc.get("c2") is not None


def test_silent_replacement_is_not_announced():
    doc = _make_document()
    replaced = []
    doc.observe(lambda element_id, tag: replaced.append(element_id))

    new = doc.replace_outer("orders-toolbar", '<div id="orders-toolbar"></div>', notify=False)

    assert replaced == []
    assert new is doc.get("orders-toolbar")
    assert doc.replace_outer("missing", "<div></div>") is None


def test_replace_outer_requires_an_element():
    doc = _make_document()
    with pytest.raises(ValueError):
        doc.replace_outer("orders-toolbar", "just text")


def test_input_helpers_update_markup():
    doc = _make_document()
    values = []
    doc.on("orders-search", "input", lambda e: values.append(e.detail["value"]))

    doc.set_value("orders-search", "acme")
    doc.set_value("size", "10", event_type="change")
    doc.set_checked("c1", True)

    assert values == ["acme"]
    assert doc.get("orders-search")["value"] == "acme"
    assert doc.get("size").find("option", value="10").has_attr("selected")
    assert not doc.get("size").find("option", value="25").has_attr("selected")
    assert is_checked(doc.get("c1"))


def test_unknown_targets_raise():
    doc = _make_document()
    with pytest.raises(LookupError):
        doc.on("nope", "click", lambda e: None)
    with pytest.raises(LookupError):
        doc.click("nope")


def test_closest_and_has_class():
    doc = _make_document()
    checkbox = doc.get("c1")

    card = closest(checkbox, lambda tag: has_class(tag, "table-card"))

    assert card is doc.get("orders-card")
    assert closest(checkbox, lambda tag: tag.name == "form") is None
