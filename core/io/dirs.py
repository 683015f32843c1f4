"""Directory creation for state and log locations.

``SPOTALLOC_AUTO_CREATE_DIRS`` (default true) allows creating missing
directories; ``SPOTALLOC_DIR_MODE`` (octal, default 0750) sets their mode on
POSIX. A first-time creation logs one line:

  created dir path=/abs/path mode=0750 component=core.io created=true
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = ["DirectoryCreationError", "dir_mode_from_env", "ensure_dir"]

DEFAULT_DIR_MODE = 0o750


class DirectoryCreationError(RuntimeError):
    """A required directory is missing and cannot be created."""


def _auto_create_enabled() -> bool:
    raw = (os.getenv("SPOTALLOC_AUTO_CREATE_DIRS") or "").strip().lower()
    return raw not in {"0", "false", "f", "no", "n", "off"}


def dir_mode_from_env() -> int:
    raw = (os.getenv("SPOTALLOC_DIR_MODE") or "").strip().lower()
    if not raw:
        return DEFAULT_DIR_MODE
    try:
        return int(raw.removeprefix("0o"), 8)
    except ValueError as exc:
        raise DirectoryCreationError(f"invalid POSIX mode literal: {raw!r}") from exc


def ensure_dir(path: Path | str, create: bool | None = None) -> Path:
    """Return *path* resolved, creating it when allowed."""

    resolved = Path(path).expanduser().resolve()
    if resolved.is_dir():
        return resolved
    if resolved.exists():
        raise DirectoryCreationError(f"expected directory path={resolved} but found file")

    if not (_auto_create_enabled() if create is None else create):
        raise DirectoryCreationError(
            f"auto-create disabled path={resolved} hint='set SPOTALLOC_AUTO_CREATE_DIRS=true or create manually'"
        )

    mode = dir_mode_from_env()
    try:
        resolved.mkdir(parents=True)
    except FileExistsError:
        # Another bot process created it first.
        return resolved
    except OSError as exc:
        raise DirectoryCreationError(
            f"failed to create directory path={resolved} reason={exc.strerror}"
        ) from exc

    if os.name != "nt":
        os.chmod(resolved, mode)
    logger.info("created dir path=%s mode=%04o component=core.io created=true", resolved, mode)
    return resolved
