from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from tableview.config.model import GlobalConfig, TableConfig
from tableview.core.exceptions import ConfigError

logger = logging.getLogger(__name__)


def _resolve_data_root(root: Path, raw: Optional[str]) -> Optional[Path]:
    # Absolute paths as-is, relative ones against the config directory
    if raw is None:
        return None
    path = Path(raw)
    return path if path.is_absolute() else (root / path).resolve()


def load_global_config(root: Path) -> GlobalConfig:
    """
    Load configuration from a directory using the multi-file layout.

    Expected structure:

        root/
            global.json
            tables/
                orders.json
                users.json
                ...

    Table files that cannot be parsed or fail validation are skipped with an
    error log; the rest are returned in file-name order.

    :param root: Directory containing 'global.json' and optionally 'tables/'.
    :return: A GlobalConfig instance.
    :raises FileNotFoundError: if global.json does not exist.
    :raises ConfigError: if global.json is not valid JSON.
    """
    logger.info("Loading global config", extra={"config_root": str(root)})

    global_path = root / "global.json"
    if not global_path.is_file():
        raise FileNotFoundError(f"File not found at {global_path}")

    try:
        with global_path.open() as f:
            raw_global = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {global_path}: {e}") from e

    tables: List[TableConfig] = []
    tables_dir = root / "tables"
    if tables_dir.is_dir():
        for idx, config_file in enumerate(sorted(tables_dir.glob("*.json"))):
            try:
                with config_file.open() as f:
                    raw = json.load(f)
                table = TableConfig.from_raw(raw, source_path=config_file, index=idx)
                table.validate()
            except (json.JSONDecodeError, ConfigError) as e:
                logger.error(
                    "Skipping table due to config error",
                    extra={"path": str(config_file), "error": str(e)},
                )
                continue
            tables.append(table)

    return GlobalConfig(
        ui_title=raw_global.get("ui_title", "Tables"),
        default_page_size=int(raw_global.get("default_page_size", 25)),
        page_size_options=[int(n) for n in raw_global.get("page_size_options", [10, 25, 50, 100])],
        local_search_debounce_ms=int(raw_global.get("local_search_debounce_ms", 200)),
        remote_search_debounce_ms=int(raw_global.get("remote_search_debounce_ms", 300)),
        reconcile_interval_ms=int(raw_global.get("reconcile_interval_ms", 2000)),
        data_root=_resolve_data_root(root, raw_global.get("data_root")),
        tables=tables,
    )


def load_tables(root: Path) -> GlobalConfig:
    """
    Main entrypoint used by the app: load the config and insist on at least
    one usable table.

    :raises RuntimeError: if no valid tables are configured.
    """
    global_config = load_global_config(root)

    logger.info(
        "Tables loaded from config root",
        extra={
            "config_root": str(root),
            "n_tables": len(global_config.tables),
            "table_ids": [t.id for t in global_config.tables],
        },
    )

    if not global_config.tables:
        raise RuntimeError(f"No valid tables could be loaded from config root: {root}")

    ids = [t.id for t in global_config.tables]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate table ids in {root}: {', '.join(duplicates)}")

    return global_config
