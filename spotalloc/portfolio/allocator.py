"""Read-decide-commit transaction that strategy processes call per signal.

Each call to :meth:`Allocator.decide` runs inside the global critical section:
the portfolio state is read, a snapshot is marked at the supplied prices, the
gate evaluates the request and, when allowed, the intended spend is committed
to the state store before the lock is released. The next request therefore
sees cash and holdings already reduced by every earlier approval.

After the broker executes, :meth:`Allocator.settle` folds the actual fill
back in; :meth:`Allocator.release` undoes an intent the broker never filled.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import replace
from typing import Callable, Mapping, Optional, Protocol, Tuple, Union

from .decision_log import DecisionLogger
from .errors import InvalidSnapshot
from .gate import blocked_concurrent, evaluate
from .guard import AllocationGuard, LockTimeout
from .registry import RegistryHandle, TargetRegistry
from .state import StateStore
from .types import (
    BotLedger,
    BotProfile,
    BuyRequest,
    Fill,
    GateDecision,
    GateLimits,
    PortfolioState,
    canonical_symbol,
)
from .valuation import build_snapshot

__all__ = ["PriceSource", "Broker", "Allocator", "resolve_prices"]

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    def prices(self) -> Mapping[str, float]: ...


class Broker(Protocol):
    def buy(self, symbol: str, usdc: float) -> Fill: ...


Prices = Union[Mapping[str, float], PriceSource]


def resolve_prices(source: Prices) -> dict[str, float]:
    raw = source if isinstance(source, Mapping) else source.prices()
    return {canonical_symbol(k): float(v) for k, v in raw.items()}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _intent_price(request: BuyRequest, marks: Mapping[str, float]) -> float:
    price = marks.get(request.asset_symbol)
    if price is None or not math.isfinite(price) or price <= 0.0:
        raise InvalidSnapshot(f"no usable mark price for {request.asset_symbol}")
    return price


class Allocator:
    def __init__(
        self,
        *,
        store: StateStore,
        registry: RegistryHandle | TargetRegistry,
        guard: AllocationGuard,
        limits: GateLimits,
        decision_logger: DecisionLogger,
        bots: Mapping[str, BotProfile] | None = None,
        enforce_bot_caps: bool = False,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if isinstance(registry, TargetRegistry):
            registry = RegistryHandle(registry)
        self.store = store
        self.registry = registry
        self.guard = guard
        self.limits = limits
        self.decision_logger = decision_logger
        self.bots = dict(bots or {})
        self.enforce_bot_caps = enforce_bot_caps
        self._clock = clock

    def decide(self, request: BuyRequest, prices: Prices) -> GateDecision:
        """Evaluate and, when allowed, commit the buy intent atomically.

        A lock timeout yields ``BLOCKED_CONCURRENT_UPDATE``. Integration errors
        (unknown asset, invalid snapshot, unreadable or unwritable state)
        propagate after the lock is released, with the stored state unchanged.
        """

        registry = self.registry.current()
        profile = self.bots.get(request.bot_id)
        bot_cap = profile.cap if profile is not None and self.enforce_bot_caps else None
        bot_assets = profile.enabled_assets if profile is not None and profile.enabled_assets else None
        if profile is not None and not request.strategy:
            request = replace(request, strategy=profile.strategy)
        marks = resolve_prices(prices)

        try:
            registry.get_band(request.asset_symbol)
            price = _intent_price(request, marks)
            with self.guard.critical_section():
                state = self.store.read_portfolio()
                ledger = self.store.read_ledger(request.bot_id)
                snapshot = build_snapshot(state, marks, timestamp_ms=self._clock())
                decision = evaluate(
                    request,
                    snapshot,
                    bot_cap,
                    registry=registry,
                    limits=self.limits,
                    bot_deployed_usdc=ledger.deployed_usdc,
                    bot_assets=bot_assets,
                )
                if decision.allowed:
                    spent = decision.approved_usdc
                    self._write_pair(
                        state,
                        ledger,
                        quantity_delta=spent / price,
                        cash_delta=-spent,
                        asset=request.asset_symbol,
                    )
        except LockTimeout:
            decision = blocked_concurrent(request, registry)
        except Exception as exc:
            logger.error(
                "allocation_error bot_id=%s asset=%s error=%s",
                request.bot_id,
                request.asset_symbol,
                exc,
            )
            raise

        self.decision_logger.record(decision, request)
        return decision

    def _write_pair(
        self,
        state: PortfolioState,
        ledger: BotLedger,
        *,
        quantity_delta: float,
        cash_delta: float,
        asset: str,
    ) -> None:
        """Persist wallet and bot counter together, restoring the wallet if the counter fails."""

        now = self._clock()
        quantities = dict(state.quantities)
        quantities[asset] = max(0.0, quantities.get(asset, 0.0) + quantity_delta)
        updated_state = PortfolioState(
            idle_cash_usdc=state.idle_cash_usdc + cash_delta,
            quantities=quantities,
            updated_ms=now,
        )
        updated_ledger = BotLedger(
            bot_id=ledger.bot_id,
            deployed_usdc=max(0.0, ledger.deployed_usdc - cash_delta),
            updated_ms=now,
        )
        self.store.write_portfolio(updated_state)
        try:
            self.store.write_ledger(updated_ledger)
        except Exception:
            logger.error(
                "ledger_write_failed bot_id=%s restoring portfolio state", ledger.bot_id
            )
            self.store.write_portfolio(state)
            raise

    def _adjust(
        self,
        request: BuyRequest,
        *,
        quantity_delta: float,
        cash_delta: float,
    ) -> None:
        # Retries until the lock is acquired: a committed intent is always compensated.
        attempts = 0
        while True:
            attempts += 1
            try:
                with self.guard.critical_section():
                    self._write_pair(
                        self.store.read_portfolio(),
                        self.store.read_ledger(request.bot_id),
                        quantity_delta=quantity_delta,
                        cash_delta=cash_delta,
                        asset=request.asset_symbol,
                    )
                return
            except LockTimeout:
                logger.warning(
                    "allocation_adjust_waiting bot_id=%s asset=%s attempt=%d",
                    request.bot_id,
                    request.asset_symbol,
                    attempts,
                )

    def settle(
        self,
        request: BuyRequest,
        decision: GateDecision,
        fill: Fill,
        *,
        intent_price: float,
    ) -> None:
        """Replace the committed intent with the broker's actual fill."""

        intended_qty = decision.approved_usdc / intent_price
        self._adjust(
            request,
            quantity_delta=fill.quantity - intended_qty,
            cash_delta=decision.approved_usdc - fill.cost_usdc,
        )
        logger.info(
            "allocation_settled bot_id=%s asset=%s approved_usdc=%.2f cost_usdc=%.2f qty=%.8f",
            request.bot_id,
            request.asset_symbol,
            decision.approved_usdc,
            fill.cost_usdc,
            fill.quantity,
        )

    def release(
        self, request: BuyRequest, decision: GateDecision, *, intent_price: float
    ) -> None:
        """Undo a committed intent that was never executed."""

        self._adjust(
            request,
            quantity_delta=-decision.approved_usdc / intent_price,
            cash_delta=decision.approved_usdc,
        )
        logger.warning(
            "allocation_released bot_id=%s asset=%s approved_usdc=%.2f",
            request.bot_id,
            request.asset_symbol,
            decision.approved_usdc,
        )

    def run_signal(
        self, request: BuyRequest, prices: Prices, broker: Broker
    ) -> Tuple[GateDecision, Optional[Fill]]:
        """Decide, execute through *broker*, and settle the fill.

        A broker failure releases the committed intent and re-raises the
        broker's exception; if the release itself fails, that error is chained
        as the cause.
        """

        marks = resolve_prices(prices)
        decision = self.decide(request, marks)
        if not decision.allowed:
            return decision, None
        intent_price = marks[request.asset_symbol]
        try:
            fill = broker.buy(request.asset_symbol, decision.approved_usdc)
        except Exception as exc:
            logger.exception(
                "broker_buy_failed bot_id=%s asset=%s usdc=%.2f",
                request.bot_id,
                request.asset_symbol,
                decision.approved_usdc,
            )
            try:
                self.release(request, decision, intent_price=intent_price)
            except Exception as release_exc:
                logger.exception(
                    "allocation_release_failed bot_id=%s asset=%s usdc=%.2f",
                    request.bot_id,
                    request.asset_symbol,
                    decision.approved_usdc,
                )
                raise exc from release_exc
            raise
        self.settle(request, decision, fill, intent_price=intent_price)
        return decision, fill
