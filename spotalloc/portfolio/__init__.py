"""Target-weight, band-limited, buy-only allocation across concurrent bots."""

from .allocator import Allocator, Broker, PriceSource, resolve_prices
from .bots import load_bot_profiles, profiles_from_list
from .decision_log import DecisionLogger, load_decisions, summarize_decisions
from .errors import (
    AllocationError,
    ConfigError,
    InvalidSnapshot,
    StateStoreError,
    UnknownAsset,
)
from .gate import evaluate
from .guard import AllocationGuard, LockTimeout
from .registry import RegistryHandle, TargetRegistry, load_registry, registry_from_mapping
from .sizing import SizingResult, compute_headroom, size_order
from .state import JsonStateStore, StateStore
from .types import (
    AssetBand,
    AssetTarget,
    BotCapConfig,
    BotLedger,
    BotProfile,
    BuyRequest,
    DecisionReason,
    Fill,
    GateDecision,
    GateLimits,
    Holding,
    PortfolioSnapshot,
    PortfolioState,
)
from .valuation import (
    build_snapshot,
    compute_total_value,
    current_weight,
    holding_value,
    portfolio_weights,
)

__all__ = [
    "Allocator",
    "Broker",
    "PriceSource",
    "resolve_prices",
    "load_bot_profiles",
    "profiles_from_list",
    "DecisionLogger",
    "load_decisions",
    "summarize_decisions",
    "AllocationError",
    "ConfigError",
    "InvalidSnapshot",
    "StateStoreError",
    "UnknownAsset",
    "evaluate",
    "AllocationGuard",
    "LockTimeout",
    "RegistryHandle",
    "TargetRegistry",
    "load_registry",
    "registry_from_mapping",
    "SizingResult",
    "compute_headroom",
    "size_order",
    "JsonStateStore",
    "StateStore",
    "AssetBand",
    "AssetTarget",
    "BotCapConfig",
    "BotLedger",
    "BotProfile",
    "BuyRequest",
    "DecisionReason",
    "Fill",
    "GateDecision",
    "GateLimits",
    "Holding",
    "PortfolioSnapshot",
    "PortfolioState",
    "build_snapshot",
    "compute_total_value",
    "current_weight",
    "holding_value",
    "portfolio_weights",
]
