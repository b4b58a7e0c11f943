from __future__ import annotations

import logging
import os
from typing import Optional, Union

from pythonjsonlogger import jsonlogger

LOG_FORMAT_ENV = "TABLEVIEW_LOG_FORMAT"
RECORD_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
        level: Union[int, str] = logging.INFO,
        force_format: Optional[str] = None,
) -> None:
    """
    Install a single root handler for the app.

    Output is JSON lines by default (structured `extra={...}` fields land as
    top-level keys) or plain text for local development.

    Format selection:
        1) force_format ("json" or "plain") when given
        2) env var TABLEVIEW_LOG_FORMAT
        3) "json"
    """
    format_mode = (force_format or os.getenv(LOG_FORMAT_ENV, "json")).lower()

    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    if format_mode == "plain":
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    else:
        handler.setFormatter(jsonlogger.JsonFormatter(RECORD_FORMAT))

    # one handler only, repeated calls must not duplicate output
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))
