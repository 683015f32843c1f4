import math

import pandas as pd
import pytest

from spotalloc.portfolio.errors import InvalidSnapshot
from spotalloc.portfolio.types import Holding, PortfolioSnapshot, PortfolioState
from spotalloc.portfolio.valuation import (
    build_snapshot,
    compute_total_value,
    current_weight,
    portfolio_weights,
)


def test_total_value_sums_cash_and_marked_holdings():
    snap = PortfolioSnapshot(
        idle_cash_usdc=1_000.0,
        holdings={"BTC": Holding(0.05, 40_000.0), "ETH": Holding(2.0, 2_500.0)},
    )
    assert compute_total_value(snap) == pytest.approx(8_000.0)
    assert compute_total_value(snap, exclude_cash=True) == pytest.approx(7_000.0)


def test_total_value_counts_assets_without_targets(snapshot):
    snap = snapshot(500.0, BTC=400.0, DOGE=100.0)
    assert compute_total_value(snap) == pytest.approx(1_000.0)


@pytest.mark.parametrize("cash", [-1.0, math.nan, math.inf])
def test_invalid_cash_raises(cash):
    with pytest.raises(InvalidSnapshot):
        compute_total_value(PortfolioSnapshot(idle_cash_usdc=cash))


def test_negative_holding_raises():
    snap = PortfolioSnapshot(idle_cash_usdc=10.0, holdings={"BTC": Holding(-1.0, 10.0)})
    with pytest.raises(InvalidSnapshot):
        compute_total_value(snap)


def test_current_weight_of_empty_portfolio_is_zero():
    assert current_weight(PortfolioSnapshot(idle_cash_usdc=0.0), "BTC") == 0.0


def test_current_weight_is_case_insensitive(snapshot):
    snap = snapshot(6_000.0, BTC=4_000.0)
    assert current_weight(snap, "btc") == pytest.approx(0.40)


def test_portfolio_weights_includes_cash_row(snapshot):
    weights = portfolio_weights(snapshot(6_000.0, BTC=3_000.0, ETH=1_000.0))
    assert isinstance(weights, pd.Series)
    assert weights.index.tolist() == ["BTC", "ETH", "USDC"]
    assert weights.sum() == pytest.approx(1.0)
    assert weights.loc["USDC"] == pytest.approx(0.60)


def test_portfolio_weights_without_cash(snapshot):
    weights = portfolio_weights(snapshot(6_000.0, BTC=3_000.0, ETH=1_000.0), exclude_cash=True)
    assert "USDC" not in weights.index
    assert weights.loc["BTC"] == pytest.approx(0.75)


def test_build_snapshot_marks_quantities_and_skips_zero():
    state = PortfolioState(idle_cash_usdc=100.0, quantities={"btc": 0.5, "ETH": 0.0})
    snap = build_snapshot(state, {"BTC": 40_000.0}, timestamp_ms=7)
    assert set(snap.holdings) == {"BTC"}
    assert snap.holdings["BTC"].value == pytest.approx(20_000.0)
    assert snap.timestamp_ms == 7


def test_build_snapshot_missing_price_raises():
    state = PortfolioState(idle_cash_usdc=100.0, quantities={"ETH": 1.0})
    with pytest.raises(InvalidSnapshot, match="ETH"):
        build_snapshot(state, {"BTC": 40_000.0}, timestamp_ms=0)
