"""Crash-safe replacement of JSON state documents.

Bot processes read the shared state files concurrently, so a document is never
rewritten in place: the payload goes to a hidden sibling, is fsynced, and is
then renamed over the target. Readers see either the old or the new document.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

from .dirs import ensure_dir

logger = logging.getLogger(__name__)

__all__ = ["AtomicWriteError", "atomic_write_json"]


class AtomicWriteError(RuntimeError):
    """The new document could not be swapped into place."""


def _sync_parent(directory: Path) -> None:
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("directory fsync unsupported path=%s", directory)
    finally:
        os.close(fd)


def atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    """Write *payload* as indented, key-sorted JSON and swap it into *path*.

    The temporary file is removed on every failure. A failed rename raises
    :class:`AtomicWriteError` and leaves any previous document untouched.
    """

    directory = ensure_dir(path.parent)
    text = json.dumps(dict(payload), indent=2, sort_keys=True) + "\n"
    fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise AtomicWriteError(f"state write failed path={path}: {exc}") from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _sync_parent(directory)
