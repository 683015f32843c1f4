"""Persistence of the shared wallet state and per-bot counters.

``portfolio-state.json`` holds idle cash and quantities for the whole wallet;
``state-{botId}.json`` holds each bot's deployed-capital counter. Callers must
hold the allocation lock around any read-modify-write of either file.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Protocol

from core.io.atomic_write import atomic_write_json
from core.io.dirs import ensure_dir

from ..paths import bot_state_path, portfolio_state_path
from .errors import StateStoreError
from .types import BotLedger, PortfolioState, canonical_symbol

__all__ = ["StateStore", "JsonStateStore"]


class StateStore(Protocol):
    def read_portfolio(self) -> PortfolioState: ...

    def write_portfolio(self, state: PortfolioState) -> None: ...

    def read_ledger(self, bot_id: str) -> BotLedger: ...

    def write_ledger(self, ledger: BotLedger) -> None: ...


def _read_json(path: Path) -> Dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise StateStoreError(f"unreadable state file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise StateStoreError(f"state file {path} must hold a JSON object")
    return data


class JsonStateStore:
    """File-backed :class:`StateStore` using atomic replace on every write."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = ensure_dir(state_dir)

    @property
    def portfolio_path(self) -> Path:
        return portfolio_state_path(self.state_dir)

    def ledger_path(self, bot_id: str) -> Path:
        return bot_state_path(self.state_dir, bot_id)

    def read_portfolio(self) -> PortfolioState:
        data = _read_json(self.portfolio_path)
        if data is None:
            return PortfolioState()
        try:
            return PortfolioState(
                idle_cash_usdc=float(data.get("idle_cash_usdc", 0.0)),
                quantities={
                    canonical_symbol(k): float(v)
                    for k, v in (data.get("quantities") or {}).items()
                },
                updated_ms=int(data.get("updated_ms", 0)),
            )
        except (TypeError, ValueError, AttributeError) as exc:
            raise StateStoreError(f"malformed portfolio state: {exc}") from exc

    def write_portfolio(self, state: PortfolioState) -> None:
        atomic_write_json(self.portfolio_path, asdict(state))

    def read_ledger(self, bot_id: str) -> BotLedger:
        data = _read_json(self.ledger_path(bot_id))
        if data is None:
            return BotLedger(bot_id=bot_id)
        try:
            return BotLedger(
                bot_id=bot_id,
                deployed_usdc=float(data.get("deployed_usdc", 0.0)),
                updated_ms=int(data.get("updated_ms", 0)),
            )
        except (TypeError, ValueError) as exc:
            raise StateStoreError(f"malformed bot state for {bot_id}: {exc}") from exc

    def write_ledger(self, ledger: BotLedger) -> None:
        atomic_write_json(self.ledger_path(ledger.bot_id), asdict(ledger))
