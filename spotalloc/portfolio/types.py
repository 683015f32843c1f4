"""Value types shared by the allocation gate, sizer and guard.

Requests are buy-only: there is no sell request type, so no caller
can route a forced sell through the allocator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional

from .errors import ConfigError

__all__ = [
    "DEFAULT_BAND_WIDTH",
    "canonical_symbol",
    "DecisionReason",
    "AssetTarget",
    "AssetBand",
    "Holding",
    "PortfolioSnapshot",
    "PortfolioState",
    "BotCapConfig",
    "BotProfile",
    "BotLedger",
    "BuyRequest",
    "GateDecision",
    "Fill",
    "GateLimits",
]

DEFAULT_BAND_WIDTH = 0.05


def canonical_symbol(symbol: str) -> str:
    return str(symbol).strip().upper()


class DecisionReason(str, Enum):
    """Outcome of one gate evaluation."""

    ALLOWED = "ALLOWED"
    BLOCKED_ASSET_DISABLED = "BLOCKED_ASSET_DISABLED"
    BLOCKED_OVER_BAND = "BLOCKED_OVER_BAND"
    BLOCKED_RESERVE = "BLOCKED_RESERVE"
    BLOCKED_BOT_CAP = "BLOCKED_BOT_CAP"
    BLOCKED_BELOW_MIN_SIZE = "BLOCKED_BELOW_MIN_SIZE"
    BLOCKED_CONCURRENT_UPDATE = "BLOCKED_CONCURRENT_UPDATE"


def _unit_interval(name: str, value: float) -> float:
    number = float(value)
    if not math.isfinite(number) or number < 0.0 or number > 1.0:
        raise ConfigError(f"{name} must be within [0, 1], got {value!r}")
    return number


@dataclass(frozen=True, slots=True)
class AssetTarget:
    """Configured target weight and drift band for one tradable asset."""

    symbol: str
    target_weight: float
    band_width: float = DEFAULT_BAND_WIDTH
    enabled: bool = True

    def __post_init__(self) -> None:
        symbol = canonical_symbol(self.symbol)
        if not symbol:
            raise ConfigError("asset symbol must be non-empty")
        object.__setattr__(self, "symbol", symbol)
        object.__setattr__(
            self, "target_weight", _unit_interval("target_weight", self.target_weight)
        )
        object.__setattr__(
            self, "band_width", _unit_interval("band_width", self.band_width)
        )


@dataclass(frozen=True, slots=True)
class AssetBand:
    """Resolved weight band, as returned by the registry."""

    symbol: str
    target_weight: float
    min_weight: float
    max_weight: float
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class Holding:
    quantity: float
    mark_price: float

    @property
    def value(self) -> float:
        return self.quantity * self.mark_price


@dataclass(frozen=True, slots=True)
class PortfolioSnapshot:
    """Point-in-time view of idle cash and marked holdings.

    Built fresh for each decision and never cached across decisions.
    """

    idle_cash_usdc: float
    holdings: Mapping[str, Holding] = field(default_factory=dict)
    timestamp_ms: int = 0

    def __post_init__(self) -> None:
        frozen = {canonical_symbol(k): v for k, v in self.holdings.items()}
        object.__setattr__(self, "holdings", MappingProxyType(frozen))


@dataclass(slots=True)
class PortfolioState:
    """Persisted wallet state: idle cash plus quantities (no prices)."""

    idle_cash_usdc: float = 0.0
    quantities: Dict[str, float] = field(default_factory=dict)
    updated_ms: int = 0


@dataclass(frozen=True, slots=True)
class BotCapConfig:
    """Testing-phase ceiling for one bot; exactly one limit must be set."""

    bot_id: str
    max_deployed_usdc: Optional[float] = None
    max_portfolio_pct: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.max_deployed_usdc is None) == (self.max_portfolio_pct is None):
            raise ConfigError(
                f"bot {self.bot_id!r}: set exactly one of max_deployed_usdc or max_portfolio_pct"
            )
        if self.max_deployed_usdc is not None and not self.max_deployed_usdc > 0:
            raise ConfigError(f"bot {self.bot_id!r}: max_deployed_usdc must be positive")
        if self.max_portfolio_pct is not None and not 0.0 < self.max_portfolio_pct <= 1.0:
            raise ConfigError(f"bot {self.bot_id!r}: max_portfolio_pct must be in (0, 1]")

    def limit_usdc(self, total_value_usdc: float) -> float:
        if self.max_portfolio_pct is None:
            return float(self.max_deployed_usdc or 0.0)
        return float(self.max_portfolio_pct) * total_value_usdc


@dataclass(frozen=True, slots=True)
class BotProfile:
    """One entry of the bots file."""

    bot_id: str
    name: str = ""
    indicator: str = ""
    timeframe: str = ""
    enabled_assets: FrozenSet[str] = frozenset()
    cap: Optional[BotCapConfig] = None

    @property
    def strategy(self) -> str:
        return f"{self.indicator}/{self.timeframe}".strip("/")


@dataclass(slots=True)
class BotLedger:
    """Per-bot deployed-capital counter persisted as ``state-{botId}.json``."""

    bot_id: str
    deployed_usdc: float = 0.0
    updated_ms: int = 0


@dataclass(frozen=True, slots=True)
class BuyRequest:
    """A strategy's request to spend USDC on one asset."""

    asset_symbol: str
    bot_id: str
    requested_usdc: float
    signal_timestamp_ms: int
    strategy: str = ""
    signal_type: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_symbol", canonical_symbol(self.asset_symbol))
        requested = float(self.requested_usdc)
        if not math.isfinite(requested) or requested < 0.0:
            raise ValueError(f"requested_usdc must be finite and >= 0, got {requested!r}")
        object.__setattr__(self, "requested_usdc", requested)


@dataclass(frozen=True, slots=True)
class GateDecision:
    """Immutable outcome of one allocation decision."""

    allowed: bool
    approved_usdc: float
    reason: DecisionReason
    current_weight: Optional[float] = None
    target_weight: Optional[float] = None
    max_weight: Optional[float] = None
    headroom_usdc: Optional[float] = None
    available_cash_usdc: Optional[float] = None
    total_value_usdc: Optional[float] = None

    def __bool__(self) -> bool:  # pragma: no cover - convenience
        return self.allowed


@dataclass(frozen=True, slots=True)
class Fill:
    """Execution report returned by the broker for an approved buy."""

    quantity: float
    price: float
    fee_usdc: float = 0.0

    @property
    def cost_usdc(self) -> float:
        return self.quantity * self.price + self.fee_usdc


@dataclass(frozen=True, slots=True)
class GateLimits:
    """Numeric knobs shared by the gate and the sizer."""

    safety_reserve_usdc: float = 50.0
    min_order_usdc: float = 10.0
    exclude_cash_from_total: bool = False

    def available_cash(self, snapshot: PortfolioSnapshot) -> float:
        return float(snapshot.idle_cash_usdc) - float(self.safety_reserve_usdc)
