from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from core.io.file_lock import LockTimeout, exclusive_lock

__all__ = ["AllocationGuard", "LockTimeout"]

logger = logging.getLogger(__name__)


class AllocationGuard:
    """Single global critical section around allocation state.

    Every bot shares one lock file, so there is no per-asset lock ordering to
    get wrong. Waiting is bounded by ``timeout_s``; on expiry
    :class:`LockTimeout` is raised and the caller blocks the signal.
    """

    def __init__(self, lock_file: Path, timeout_s: float = 5.0) -> None:
        self.lock_file = lock_file
        self.timeout_s = float(timeout_s)

    @contextmanager
    def critical_section(self) -> Iterator[None]:
        with exclusive_lock(self.lock_file, self.timeout_s) as waited:
            logger.debug("guard_acquired path=%s waited_s=%.3f", self.lock_file, waited)
            yield
