"""Process-wide logging for bot processes and the operator CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from core.io.dirs import ensure_dir

from .paths import APP_LOG_FILE

_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


def _resolve_level(level: Union[str, int, None]) -> int:
    if isinstance(level, int):
        return level
    text = str(level or "").strip()
    if text.isdigit():
        return int(text)
    named = logging.getLevelName(text.upper())
    return named if isinstance(named, int) else logging.INFO


def _file_handler(path: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        path, encoding="utf-8", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_app_logging(
    level: Union[str, int] = "INFO", log_file: Optional[Path] = None
) -> None:
    """Configure process-wide logging once; later calls only adjust the level.

    Decision lines (``spotalloc.decisions``) propagate to the same handlers, so
    the app log interleaves them with lock and state events.
    """
    global _configured
    target = log_file or APP_LOG_FILE
    ensure_dir(target.parent)
    resolved = _resolve_level(level)
    root = logging.getLogger()
    if not _configured:
        for existing in list(root.handlers):
            root.removeHandler(existing)
            existing.close()
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_file_handler(target))
        root.addHandler(console)
        _configured = True
    root.setLevel(resolved)
    for handler in root.handlers:
        handler.setLevel(resolved)
