from __future__ import annotations

from pathlib import Path

import pytest

from spotalloc.portfolio.allocator import Allocator
from spotalloc.portfolio.decision_log import DecisionLogger
from spotalloc.portfolio.guard import AllocationGuard
from spotalloc.portfolio.registry import TargetRegistry
from spotalloc.portfolio.state import JsonStateStore
from spotalloc.portfolio.types import (
    AssetTarget,
    GateLimits,
    Holding,
    PortfolioSnapshot,
    PortfolioState,
)

FIXED_MS = 1_700_000_000_000


def _snapshot(cash: float, **values: float) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        idle_cash_usdc=cash,
        holdings={sym: Holding(quantity=v, mark_price=1.0) for sym, v in values.items()},
        timestamp_ms=FIXED_MS,
    )


@pytest.fixture
def snapshot():
    """Factory for snapshots whose holdings are given as USDC values at price 1."""
    return _snapshot


@pytest.fixture
def registry() -> TargetRegistry:
    return TargetRegistry(
        [
            AssetTarget("BTC", 0.40, band_width=0.05),
            AssetTarget("ETH", 0.30, band_width=0.05),
            AssetTarget("SOL", 0.10, band_width=0.02, enabled=False),
        ]
    )


@pytest.fixture
def limits() -> GateLimits:
    return GateLimits(safety_reserve_usdc=50.0, min_order_usdc=10.0)


@pytest.fixture
def store(tmp_path: Path) -> JsonStateStore:
    store = JsonStateStore(tmp_path / "state")
    # $10,000 wallet: $6,000 idle cash and $4,000 of BTC (weight 0.40).
    store.write_portfolio(
        PortfolioState(idle_cash_usdc=6_000.0, quantities={"BTC": 0.1}, updated_ms=FIXED_MS)
    )
    return store


@pytest.fixture
def decision_path(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "decisions.jsonl"


@pytest.fixture
def allocator(
    store: JsonStateStore,
    registry: TargetRegistry,
    limits: GateLimits,
    decision_path: Path,
) -> Allocator:
    return Allocator(
        store=store,
        registry=registry,
        guard=AllocationGuard(store.state_dir / "portfolio-state.lock", timeout_s=5.0),
        limits=limits,
        decision_logger=DecisionLogger(decision_path, clock=lambda: FIXED_MS),
        clock=lambda: FIXED_MS,
    )
