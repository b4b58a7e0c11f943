from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import dash_bootstrap_components as dbc
from dash import Dash

from tableview.config.loader import load_tables
from tableview.config.model import GlobalConfig
from tableview.core.exceptions import ConfigError
from tableview.core.state import Mode
from tableview.services.render_client import RenderClient
from tableview.services.table_controller import TableOptions
from tableview.ui.callbacks.callbacks_actions import register_action_callbacks
from tableview.ui.callbacks.callbacks_selection import register_selection_callbacks
from tableview.ui.callbacks.callbacks_table import register_table_callbacks
from tableview.ui.callbacks.callbacks_url import register_url_callbacks
from tableview.ui.layout.build_layout import build_layout

from .config import AppConfig

logger = logging.getLogger(__name__)


def build_app_config(
        config_root: Path,
        global_config: GlobalConfig,
        render_client: Optional[RenderClient] = None,
) -> AppConfig:
    """
    Resolve every configured table into TableOptions and, for local tables,
    a row snapshot. Tables whose data cannot be loaded are skipped.
    """
    ctx = AppConfig(config_root=config_root, global_config=global_config)

    for cfg in global_config.tables:
        try:
            snapshot = cfg.load_rows(global_config.data_root) if cfg.mode is Mode.LOCAL else None
        except (ConfigError, OSError, ValueError):
            logger.exception("Skipping table, data could not be loaded", extra={"table_id": cfg.id})
            continue

        ctx.table_ids.append(cfg.id)
        ctx.tables[cfg.id] = cfg
        ctx.options[cfg.id] = TableOptions.from_config(cfg, global_config.default_page_size)
        if snapshot is not None:
            ctx.snapshots[cfg.id] = snapshot
            logger.info("Local table loaded", extra={"table_id": cfg.id, "n_rows": len(snapshot)})

    ctx.render_client = render_client or RenderClient(base_url=os.getenv("TABLEVIEW_RENDER_URL", ""))
    ctx.validate()
    return ctx


def create_dash_app(config_root: Path | str | None = None) -> Dash:
    config_root = Path(config_root or os.getenv("TABLEVIEW_CONFIG", "config"))

    # 1) Load Config
    global_config = load_tables(config_root)

    # 2) App Context
    ctx = build_app_config(config_root, global_config)
    if not ctx.table_ids:
        raise RuntimeError(f"No table could be loaded from config root: {config_root}")

    app = Dash(
        __name__,
        external_stylesheets=[dbc.themes.FLATLY],
        suppress_callback_exceptions=True,
    )
    app.title = getattr(global_config, "ui_title", "Tables")

    app.layout = build_layout(ctx)

    # Register callbacks
    register_url_callbacks(app, ctx)
    register_table_callbacks(app, ctx)
    register_selection_callbacks(app, ctx)
    register_action_callbacks(app, ctx)

    logger.info("Dash app created", extra={"config_root": str(config_root), "table_ids": ctx.table_ids})
    return app
