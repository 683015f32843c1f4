from __future__ import annotations

from typing import AbstractSet, Optional

from .registry import TargetRegistry
from .sizing import compute_headroom, size_order
from .types import (
    BotCapConfig,
    BuyRequest,
    DecisionReason,
    GateDecision,
    GateLimits,
    PortfolioSnapshot,
)
from .valuation import compute_total_value, holding_value

__all__ = ["evaluate", "blocked_concurrent"]

_EPS = 1e-9


def _blocked(reason: DecisionReason, **context: Optional[float]) -> GateDecision:
    return GateDecision(False, 0.0, reason, **context)


def evaluate(
    request: BuyRequest,
    snapshot: PortfolioSnapshot,
    bot_cap: BotCapConfig | None,
    *,
    registry: TargetRegistry,
    limits: GateLimits,
    bot_deployed_usdc: float = 0.0,
    bot_assets: AbstractSet[str] | None = None,
) -> GateDecision:
    """Decide whether a buy may proceed and how much it may spend.

    Checks run in a fixed order and the first failure wins: asset enabled,
    weight strictly under the band maximum, cash above the safety reserve,
    bot cap, then minimum order size. Unregistered assets raise
    :class:`UnknownAsset`; malformed snapshots raise :class:`InvalidSnapshot`.
    The function is pure and performs no I/O.
    """

    band = registry.get_band(request.asset_symbol)
    context = {"target_weight": band.target_weight, "max_weight": band.max_weight}

    if not band.enabled or (bot_assets is not None and band.symbol not in bot_assets):
        return _blocked(DecisionReason.BLOCKED_ASSET_DISABLED, **context)

    total = compute_total_value(snapshot, exclude_cash=limits.exclude_cash_from_total)
    value = holding_value(snapshot, band.symbol)
    weight = value / total if total > 0.0 else 0.0
    headroom = compute_headroom(band, snapshot, exclude_cash=limits.exclude_cash_from_total)
    available = limits.available_cash(snapshot)
    context.update(
        current_weight=weight,
        headroom_usdc=headroom,
        available_cash_usdc=available,
        total_value_usdc=total,
    )

    # Sitting exactly on the maximum counts as over band.
    if weight >= band.max_weight - _EPS:
        return _blocked(DecisionReason.BLOCKED_OVER_BAND, **context)

    if available <= _EPS:
        return _blocked(DecisionReason.BLOCKED_RESERVE, **context)

    if bot_cap is not None:
        cap = bot_cap.limit_usdc(total)
        if bot_deployed_usdc + request.requested_usdc > cap + _EPS:
            return _blocked(DecisionReason.BLOCKED_BOT_CAP, **context)

    sizing = size_order(request, snapshot, band, limits=limits)
    if sizing.below_minimum:
        return _blocked(DecisionReason.BLOCKED_BELOW_MIN_SIZE, **context)

    return GateDecision(True, sizing.approved_usdc, DecisionReason.ALLOWED, **context)


def blocked_concurrent(
    request: BuyRequest, registry: TargetRegistry
) -> GateDecision:
    """Decision for a request whose critical section could not be entered."""

    band = registry.get_band(request.asset_symbol)
    return _blocked(
        DecisionReason.BLOCKED_CONCURRENT_UPDATE,
        target_weight=band.target_weight,
        max_weight=band.max_weight,
    )
