from __future__ import annotations

from pathlib import Path
from urllib.parse import quote

PROJECT_ROOT = Path(__file__).resolve().parents[1]

STATE_DIR = PROJECT_ROOT / "state"
LOGS_DIR = PROJECT_ROOT / "logs"
APP_LOG_FILE = LOGS_DIR / "app.log"
DECISION_LOG_FILE = LOGS_DIR / "decisions.jsonl"

TARGETS_FILE = PROJECT_ROOT / "targets.yaml"
BOTS_FILE = PROJECT_ROOT / "bots.json"

PORTFOLIO_STATE_NAME = "portfolio-state.json"
LOCK_FILE_NAME = "portfolio-state.lock"


def bot_file_token(bot_id: str) -> str:
    """Reversible file-name form of a bot id; plain ids such as ``mfi-4h`` pass through."""
    return quote(bot_id, safe="-_.")


def portfolio_state_path(state_dir: Path) -> Path:
    return state_dir / PORTFOLIO_STATE_NAME


def bot_state_path(state_dir: Path, bot_id: str) -> Path:
    """Return the per-bot counter file, ``state-{botId}.json``."""
    return state_dir / f"state-{bot_file_token(bot_id)}.json"


def lock_path(state_dir: Path) -> Path:
    return state_dir / LOCK_FILE_NAME
