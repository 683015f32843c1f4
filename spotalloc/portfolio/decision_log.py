"""Append-only audit trail of every allocation decision."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from core.io.dirs import ensure_dir

from .types import BuyRequest, GateDecision

__all__ = [
    "DECISION_COLUMNS",
    "decision_event",
    "DecisionLogger",
    "load_decisions",
    "summarize_decisions",
]

logger = logging.getLogger("spotalloc.decisions")

DECISION_COLUMNS = [
    "ts_ms",
    "bot_id",
    "asset",
    "strategy",
    "signal_type",
    "signal_timestamp_ms",
    "requested_usdc",
    "approved_usdc",
    "decision",
    "reason",
    "current_weight",
    "target_weight",
    "max_weight",
    "headroom_usdc",
    "available_cash_usdc",
    "total_value_usdc",
]


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(float(value), 8)


def decision_event(
    decision: GateDecision, request: BuyRequest, *, ts_ms: int
) -> Dict[str, Any]:
    return {
        "ts_ms": ts_ms,
        "bot_id": request.bot_id,
        "asset": request.asset_symbol,
        "strategy": request.strategy,
        "signal_type": request.signal_type,
        "signal_timestamp_ms": request.signal_timestamp_ms,
        "requested_usdc": _round(request.requested_usdc),
        "approved_usdc": _round(decision.approved_usdc),
        "decision": "ALLOWED" if decision.allowed else "BLOCKED",
        "reason": decision.reason.value,
        "current_weight": _round(decision.current_weight),
        "target_weight": _round(decision.target_weight),
        "max_weight": _round(decision.max_weight),
        "headroom_usdc": _round(decision.headroom_usdc),
        "available_cash_usdc": _round(decision.available_cash_usdc),
        "total_value_usdc": _round(decision.total_value_usdc),
    }


def _now_ms() -> int:
    return int(time.time() * 1000)


def _append_line(path: Path, event: Dict[str, Any]) -> None:
    ensure_dir(path.parent)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(event, sort_keys=True) + "\n")
        fh.flush()
        os.fsync(fh.fileno())


class DecisionLogger:
    """Records decisions to a JSONL file and the ``spotalloc.decisions`` logger.

    :meth:`record` never raises: a failed write is reported through the logger
    and the decision already made stands.
    """

    def __init__(
        self,
        path: Path | None,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.path = path
        self._clock = clock

    def record(self, decision: GateDecision, request: BuyRequest) -> None:
        try:
            event = decision_event(decision, request, ts_ms=self._clock())
            logger.info(
                "allocation_decision %s",
                " ".join(f"{key}={value}" for key, value in event.items()),
            )
            if self.path is not None:
                _append_line(self.path, event)
        except Exception:
            logger.exception(
                "decision_log_write_failed bot_id=%s asset=%s reason=%s",
                request.bot_id,
                request.asset_symbol,
                decision.reason.value,
            )


def load_decisions(path: Path) -> pd.DataFrame:
    """Read the decision log into a frame, skipping unparseable lines."""

    rows: List[Dict[str, Any]] = []
    skipped = 0
    if path.exists():
        with path.open("r", encoding="utf-8") as fh:
            for line in fh:
                text = line.strip()
                if not text:
                    continue
                try:
                    rows.append(json.loads(text))
                except json.JSONDecodeError:
                    skipped += 1
    if skipped:
        logger.warning("decision_log_skipped_lines path=%s count=%d", path, skipped)
    frame = pd.DataFrame(rows, columns=DECISION_COLUMNS)
    frame["ts"] = pd.to_datetime(frame["ts_ms"], unit="ms", utc=True)
    return frame


def summarize_decisions(frame: pd.DataFrame) -> pd.DataFrame:
    """Count decisions and approved USDC per bot, asset and reason."""

    if frame.empty:
        return pd.DataFrame(columns=["bot_id", "asset", "reason", "count", "approved_usdc"])
    grouped = frame.groupby(["bot_id", "asset", "reason"], sort=True).agg(
        count=("reason", "size"),
        approved_usdc=("approved_usdc", "sum"),
    )
    return grouped.reset_index()
