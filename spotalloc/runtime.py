"""Wire an :class:`Allocator` from resolved settings."""

from __future__ import annotations

import logging

from .config import Settings
from .paths import lock_path
from .portfolio.allocator import Allocator
from .portfolio.bots import load_bot_profiles
from .portfolio.decision_log import DecisionLogger
from .portfolio.guard import AllocationGuard
from .portfolio.registry import RegistryHandle, load_registry
from .portfolio.state import JsonStateStore

logger = logging.getLogger(__name__)


def build_allocator(settings: Settings) -> Allocator:
    """Load targets and bots as complete sets and assemble the allocator."""

    registry = load_registry(settings.targets_file)
    bots = load_bot_profiles(settings.bots_file)
    store = JsonStateStore(settings.state_dir)
    guard = AllocationGuard(lock_path(store.state_dir), settings.lock_timeout_s)
    logger.info(
        "allocator_ready assets=%d bots=%d bot_caps=%s exclude_cash=%s",
        len(registry),
        len(bots),
        settings.enforce_bot_caps,
        settings.exclude_cash_from_total,
    )
    return Allocator(
        store=store,
        registry=RegistryHandle(registry),
        guard=guard,
        limits=settings.gate_limits(),
        decision_logger=DecisionLogger(settings.decision_log_file),
        bots=bots,
        enforce_bot_caps=settings.enforce_bot_caps,
    )
