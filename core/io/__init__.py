"""I/O helpers for resilient filesystem operations."""

from .atomic_write import AtomicWriteError, atomic_write_json
from .dirs import ensure_dir
from .file_lock import LockTimeout, exclusive_lock

__all__ = [
    "AtomicWriteError",
    "atomic_write_json",
    "ensure_dir",
    "exclusive_lock",
    "LockTimeout",
]
