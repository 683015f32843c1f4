"""Bounded-wait exclusive file lock shared by cooperating processes.

The lock is a POSIX advisory ``flock`` on a dedicated lock file. Acquisition is
attempted non-blocking and retried until a deadline, so a stuck holder can never
stall a caller indefinitely. Each acquisition opens its own file description,
which makes the lock exclusive between threads of one process as well as
between processes.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .dirs import ensure_dir

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 0.01


class LockTimeout(TimeoutError):
    """Raised when the lock cannot be acquired before the deadline."""

    def __init__(self, path: Path, timeout_s: float) -> None:
        super().__init__(f"lock not acquired path={path} timeout_s={timeout_s}")
        self.path = path
        self.timeout_s = timeout_s


def _try_lock(fd: int) -> bool:
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


@contextmanager
def exclusive_lock(
    path: Path,
    timeout_s: float,
    *,
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
) -> Iterator[float]:
    """Hold an exclusive lock on *path* for the duration of the block.

    Yields the number of seconds spent waiting. ``timeout_s <= 0`` means a
    single attempt. Raises :class:`LockTimeout` when the deadline passes.
    """

    ensure_dir(path.parent)
    fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o640)
    started = time.monotonic()
    deadline = started + max(timeout_s, 0.0)
    try:
        while not _try_lock(fd):
            now = time.monotonic()
            if now >= deadline:
                logger.warning(
                    "lock_timeout path=%s waited_s=%.3f", path, now - started
                )
                raise LockTimeout(path, timeout_s)
            time.sleep(min(poll_interval_s, deadline - now))
        waited = time.monotonic() - started
        try:
            yield waited
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


__all__ = ["exclusive_lock", "LockTimeout", "DEFAULT_POLL_INTERVAL_S"]
