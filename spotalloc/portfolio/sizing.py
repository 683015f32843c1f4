"""Headroom-capped sizing of approved buys."""

from __future__ import annotations

from dataclasses import dataclass

from .types import AssetBand, BuyRequest, GateLimits, PortfolioSnapshot
from .valuation import compute_total_value, holding_value

__all__ = ["SizingResult", "compute_headroom", "size_order"]


@dataclass(frozen=True, slots=True)
class SizingResult:
    """Approved amount plus the three caps it was clamped against."""

    approved_usdc: float
    requested_usdc: float
    headroom_usdc: float
    available_cash_usdc: float

    @property
    def below_minimum(self) -> bool:
        return self.approved_usdc <= 0.0


def compute_headroom(
    band: AssetBand, snapshot: PortfolioSnapshot, *, exclude_cash: bool = False
) -> float:
    """USDC that can be added before the asset reaches its max weight.

    Depends only on this asset's value and total portfolio value, never on
    other assets' signal history.
    """

    total = compute_total_value(snapshot, exclude_cash=exclude_cash)
    if total <= 0.0:
        # Nothing invested yet and cash excluded: only idle cash bounds the buy.
        return max(0.0, float(snapshot.idle_cash_usdc))
    return max(0.0, band.max_weight * total - holding_value(snapshot, band.symbol))


def size_order(
    request: BuyRequest,
    snapshot: PortfolioSnapshot,
    band: AssetBand,
    *,
    limits: GateLimits,
) -> SizingResult:
    """Return ``min(requested, headroom, available cash)`` or zero for dust."""

    headroom = compute_headroom(band, snapshot, exclude_cash=limits.exclude_cash_from_total)
    available = max(0.0, limits.available_cash(snapshot))
    approved = min(request.requested_usdc, headroom, available)
    if approved < limits.min_order_usdc or approved <= 0.0:
        approved = 0.0
    return SizingResult(
        approved_usdc=approved,
        requested_usdc=request.requested_usdc,
        headroom_usdc=headroom,
        available_cash_usdc=available,
    )
