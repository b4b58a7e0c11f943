import json

import pytest

from tableview.config.loader import load_global_config, load_tables
from tableview.core.exceptions import ConfigError
from tableview.core.state import Mode, SortDirection


def _write(path, payload):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))


def _make_root(tmp_path, tables):
    _write(tmp_path / "global.json", {"ui_title": "Desk", "data_root": "data", "default_page_size": 10})
    for name, payload in tables.items():
        _write(tmp_path / "tables" / name, payload)
    _write(tmp_path / "data" / "orders.csv", "id,customer,deletable\n1,Acme,true\n2,,false\n")
    return tmp_path


def test_load_valid_tables(tmp_path):
    root = _make_root(
        tmp_path,
        {
            "orders.json": {
                "data": "orders.csv",
                "default_sort": {"column": "customer", "direction": "desc"},
                "bulk_actions": [{"name": "delete", "requires_attr": "deletable"}],
            },
            "customers.json": {"mode": "remote", "url": "/customers", "pagination_mode": "cursor"},
        },
    )

    cfg = load_tables(root)

    assert cfg.ui_title == "Desk"
    assert cfg.data_root == (root / "data").resolve()
    assert [t.id for t in cfg.tables] == ["customers", "orders"]
    customers, orders = cfg.tables
    assert customers.mode is Mode.REMOTE
    assert customers.sync_address_bar is True
    assert orders.sync_address_bar is False
    assert orders.default_direction is SortDirection.DESC
    assert orders.bulk_actions[0].requires_attr == "deletable"


def test_invalid_tables_are_skipped(tmp_path):
    root = _make_root(
        tmp_path,
        {
            "broken.json": "{not json",
            "cursor.json": {"data": "orders.csv", "pagination_mode": "cursor"},
            "nourl.json": {"mode": "remote"},
            "orders.json": {"data": "orders.csv"},
        },
    )

    assert [t.id for t in load_global_config(root).tables] == ["orders"]


def test_missing_global_json(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_global_config(tmp_path)


def test_no_usable_tables(tmp_path):
    root = _make_root(tmp_path, {"nourl.json": {"mode": "remote"}})
    with pytest.raises(RuntimeError):
        load_tables(root)


def test_duplicate_ids(tmp_path):
    root = _make_root(
        tmp_path,
        {"a.json": {"id": "orders", "data": "orders.csv"}, "b.json": {"id": "orders", "data": "orders.csv"}},
    )
    with pytest.raises(ConfigError):
        load_tables(root)


def test_load_rows_reads_csv_as_text(tmp_path):
    root = _make_root(tmp_path, {"orders.json": {"data": "orders.csv"}})
    cfg = load_tables(root)

    snapshot = cfg.tables[0].load_rows(cfg.data_root)

    assert snapshot.ids() == ["1", "2"]
    assert snapshot.get("2").attributes["customer"] == ""
    assert snapshot.get("1").flag("deletable") is True


def test_load_rows_missing_file(tmp_path):
    root = _make_root(tmp_path, {"orders.json": {"data": "missing.csv"}})
    cfg = load_tables(root)
    with pytest.raises(ConfigError):
        cfg.tables[0].load_rows(cfg.data_root)
