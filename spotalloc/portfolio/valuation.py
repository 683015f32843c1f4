"""Mark-to-market valuation of a portfolio snapshot."""

from __future__ import annotations

from typing import Mapping

import numpy as np
import pandas as pd

from .errors import InvalidSnapshot
from .types import Holding, PortfolioSnapshot, PortfolioState, canonical_symbol

__all__ = [
    "compute_total_value",
    "holding_value",
    "current_weight",
    "portfolio_weights",
    "build_snapshot",
]


def _check_amount(label: str, value: float) -> None:
    if not np.isfinite(value) or value < 0.0:
        raise InvalidSnapshot(f"{label} must be finite and >= 0, got {value!r}")


def _validate(snapshot: PortfolioSnapshot) -> None:
    _check_amount("idle_cash_usdc", snapshot.idle_cash_usdc)
    for symbol, holding in snapshot.holdings.items():
        _check_amount(f"{symbol}.quantity", holding.quantity)
        _check_amount(f"{symbol}.mark_price", holding.mark_price)


def compute_total_value(snapshot: PortfolioSnapshot, *, exclude_cash: bool = False) -> float:
    """Idle cash plus the marked value of every holding.

    Holdings of assets with zero target weight still count, otherwise drift on
    the remaining assets would be understated. ``exclude_cash`` drops idle cash
    from the denominator.
    """

    _validate(snapshot)
    invested = float(sum(h.value for h in snapshot.holdings.values()))
    if exclude_cash:
        return invested
    return float(snapshot.idle_cash_usdc) + invested


def holding_value(snapshot: PortfolioSnapshot, symbol: str) -> float:
    holding = snapshot.holdings.get(canonical_symbol(symbol))
    if holding is None:
        return 0.0
    return float(holding.value)


def current_weight(
    snapshot: PortfolioSnapshot, symbol: str, *, exclude_cash: bool = False
) -> float:
    """Return ``holding value / total value`` (0.0 for an empty portfolio)."""

    total = compute_total_value(snapshot, exclude_cash=exclude_cash)
    if total <= 0.0:
        return 0.0
    return holding_value(snapshot, symbol) / total


def portfolio_weights(
    snapshot: PortfolioSnapshot, *, exclude_cash: bool = False
) -> pd.Series:
    """Weights of every holding (plus idle cash unless excluded), by symbol."""

    total = compute_total_value(snapshot, exclude_cash=exclude_cash)
    values = {symbol: h.value for symbol, h in snapshot.holdings.items()}
    if not exclude_cash:
        values["USDC"] = float(snapshot.idle_cash_usdc)
    series = pd.Series(values, dtype=float, name="weight").sort_index()
    if total <= 0.0:
        return series * 0.0
    return series / total


def build_snapshot(
    state: PortfolioState,
    prices: Mapping[str, float],
    *,
    timestamp_ms: int,
) -> PortfolioSnapshot:
    """Join persisted quantities with current mark prices.

    Raises :class:`InvalidSnapshot` when a non-zero holding has no price.
    """

    marks = {canonical_symbol(k): float(v) for k, v in prices.items()}
    holdings = {}
    for symbol, quantity in state.quantities.items():
        key = canonical_symbol(symbol)
        if quantity == 0.0:
            continue
        if key not in marks:
            raise InvalidSnapshot(f"no mark price for held asset {key}")
        holdings[key] = Holding(quantity=float(quantity), mark_price=marks[key])
    return PortfolioSnapshot(
        idle_cash_usdc=float(state.idle_cash_usdc),
        holdings=holdings,
        timestamp_ms=timestamp_ms,
    )
