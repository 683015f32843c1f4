import pytest

from spotalloc.portfolio.sizing import compute_headroom, size_order
from spotalloc.portfolio.types import BuyRequest, GateLimits

FIXED_MS = 1_700_000_000_000


def _request(usdc: float) -> BuyRequest:
    return BuyRequest("BTC", "bot-a", usdc, FIXED_MS)


def test_headroom_is_distance_to_max_weight(registry, snapshot):
    band = registry.get_band("BTC")
    assert compute_headroom(band, snapshot(6_000.0, BTC=4_000.0)) == pytest.approx(500.0)


def test_headroom_never_negative(registry, snapshot):
    band = registry.get_band("BTC")
    assert compute_headroom(band, snapshot(4_000.0, BTC=6_000.0)) == 0.0


def test_headroom_ignores_other_assets_history(registry, snapshot):
    band = registry.get_band("BTC")
    alone = compute_headroom(band, snapshot(6_000.0, BTC=4_000.0))
    mixed = compute_headroom(band, snapshot(3_000.0, BTC=4_000.0, ETH=3_000.0))
    assert alone == pytest.approx(mixed)


@pytest.mark.parametrize(
    "requested, expected",
    [(200.0, 200.0), (800.0, 500.0)],
)
def test_approved_is_min_of_requested_and_headroom(
    registry, limits, snapshot, requested, expected
):
    result = size_order(
        _request(requested), snapshot(6_000.0, BTC=4_000.0), registry.get_band("BTC"), limits=limits
    )
    assert result.approved_usdc == pytest.approx(expected)
    assert result.requested_usdc == requested


def test_approved_capped_by_available_cash(registry, limits, snapshot):
    result = size_order(
        _request(400.0), snapshot(150.0, ETH=850.0), registry.get_band("BTC"), limits=limits
    )
    assert result.available_cash_usdc == pytest.approx(100.0)
    assert result.approved_usdc == pytest.approx(100.0)


def test_dust_below_minimum_is_zero(registry, snapshot):
    limits = GateLimits(safety_reserve_usdc=0.0, min_order_usdc=10.0)
    # headroom 0.45 * 10000 - 4495 = 5
    result = size_order(
        _request(200.0), snapshot(5_505.0, BTC=4_495.0), registry.get_band("BTC"), limits=limits
    )
    assert result.approved_usdc == 0.0
    assert result.below_minimum


def test_more_headroom_never_approves_less(registry, limits, snapshot):
    band = registry.get_band("BTC")
    approvals = [
        size_order(_request(300.0), snapshot(10_000.0 - held, BTC=held), band, limits=limits).approved_usdc
        for held in (4_400.0, 4_300.0, 4_200.0, 4_000.0, 3_000.0)
    ]
    assert approvals == sorted(approvals)


def test_headroom_with_nothing_invested_is_idle_cash(registry, snapshot):
    band = registry.get_band("BTC")
    assert compute_headroom(band, snapshot(2_000.0), exclude_cash=True) == pytest.approx(2_000.0)
    assert compute_headroom(band, snapshot(0.0), exclude_cash=True) == 0.0
