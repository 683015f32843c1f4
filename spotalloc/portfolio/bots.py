"""Bot profiles read from the shared ``bots.json`` file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from .errors import ConfigError
from .schema import BOTS_SCHEMA, load_document, validate_document
from .types import BotCapConfig, BotProfile, canonical_symbol

__all__ = ["profiles_from_list", "load_bot_profiles"]

logger = logging.getLogger(__name__)


def _normalize_timeframe(value: str) -> str:
    raw = (value or "").strip().lower()
    return "1d" if raw == "d1" else raw


def _profile(entry: Dict[str, Any]) -> BotProfile:
    bot_id = entry["id"]
    cap = None
    if "maxDeployedUsdc" in entry or "maxPortfolioPct" in entry:
        cap = BotCapConfig(
            bot_id=bot_id,
            max_deployed_usdc=entry.get("maxDeployedUsdc"),
            max_portfolio_pct=entry.get("maxPortfolioPct"),
        )
    return BotProfile(
        bot_id=bot_id,
        name=entry.get("name", ""),
        indicator=entry.get("indicator", "").strip().lower(),
        timeframe=_normalize_timeframe(entry.get("timeframe", "")),
        enabled_assets=frozenset(
            canonical_symbol(s) for s in entry.get("enabledAssets", [])
        ),
        cap=cap,
    )


def profiles_from_list(data: Sequence[Dict[str, Any]]) -> Dict[str, BotProfile]:
    validate_document(data, BOTS_SCHEMA, "bots config")
    profiles: Dict[str, BotProfile] = {}
    for entry in data:
        profile = _profile(entry)
        if profile.bot_id in profiles:
            raise ConfigError(f"duplicate bot id: {profile.bot_id}")
        profiles[profile.bot_id] = profile
    return profiles


def load_bot_profiles(path: Path) -> Dict[str, BotProfile]:
    """Load every bot profile, or an empty mapping when the file is absent."""

    if not path.exists():
        logger.warning("bots_file_missing path=%s", path)
        return {}
    profiles = profiles_from_list(load_document(path))
    logger.info("bots_loaded path=%s bots=%s", path, ",".join(sorted(profiles)))
    return profiles
