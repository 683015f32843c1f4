import os
import socket
import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure the project root is on sys.path so `import spotalloc` works in tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_ALLOCATOR_ENV = (
    "LOG_LEVEL",
    "ALLOC_STATE_DIR",
    "ALLOC_TARGETS_FILE",
    "ALLOC_BOTS_FILE",
    "ALLOC_DECISION_LOG",
    "MIN_USDC_RESERVE",
    "MIN_ORDER_USDC",
    "ALLOC_LOCK_TIMEOUT_S",
    "ALLOC_EXCLUDE_CASH",
    "ALLOC_ENFORCE_BOT_CAPS",
    "SPOTALLOC_AUTO_CREATE_DIRS",
    "SPOTALLOC_DIR_MODE",
)


class NetworkAccessError(RuntimeError):
    """Raised when a test attempts to open an outbound socket."""


@pytest.fixture(autouse=True)
def _isolate_allocator_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer .env values from leaking into settings under test."""

    for name in _ALLOCATOR_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("spotalloc.config.load_dotenv", lambda *_a, **_k: False)


@pytest.fixture(scope="session", autouse=True)
def _block_outbound_sockets() -> Generator[None, None, None]:
    """Guard the test suite against unintended outbound network calls."""

    original_create_connection = socket.create_connection

    def guarded_create_connection(*args: object, **kwargs: object) -> socket.socket:  # type: ignore[override]
        raise NetworkAccessError(
            f"Outbound network disabled during tests: attempted create_connection to {args[0]}"
        )

    setattr(socket, "create_connection", guarded_create_connection)
    os.environ.setdefault("SPOTALLOC_DISABLE_NETWORK", "1")
    try:
        yield
    finally:
        setattr(socket, "create_connection", original_create_connection)
