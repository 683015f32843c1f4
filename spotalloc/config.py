# spotalloc/config.py
# =============================================================================
# Purpose:
#   Centralize runtime configuration for the allocator. Values typically come
#   from the shared .env file every bot process loads, with defaults that fail
#   closed (bot caps off, reserve held back).
#
# Summary:
#   - Defines a Settings dataclass for strongly-typed config
#   - Loads environment variables via python-dotenv
#   - Exposes load_settings() for consumers (bots / CLI / tests)
# =============================================================================
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Mapping, Tuple, overload

from dotenv import load_dotenv

from .paths import BOTS_FILE, DECISION_LOG_FILE, STATE_DIR, TARGETS_FILE
from .portfolio.types import GateLimits

_LOGGER = logging.getLogger("spotalloc.config")

_TRUE_LITERALS = {"1", "true", "t", "yes", "y", "on"}
_FALSE_LITERALS = {"0", "false", "f", "no", "n", "off"}


@dataclass
class Settings:
    """Strongly-typed container for config values."""

    log_level: str = "INFO"
    state_dir: Path = STATE_DIR
    targets_file: Path = TARGETS_FILE
    bots_file: Path = BOTS_FILE
    decision_log_file: Path = DECISION_LOG_FILE
    safety_reserve_usdc: float = 50.0
    min_order_usdc: float = 10.0
    lock_timeout_s: float = 5.0
    exclude_cash_from_total: bool = False
    enforce_bot_caps: bool = False

    def gate_limits(self) -> GateLimits:
        return GateLimits(
            safety_reserve_usdc=self.safety_reserve_usdc,
            min_order_usdc=self.min_order_usdc,
            exclude_cash_from_total=self.exclude_cash_from_total,
        )


@dataclass(frozen=True)
class _FieldSpec:
    env: str
    default: Any
    coerce: Callable[[Any, Any], Tuple[Any, bool]]


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _pick_precedence(
    cli_value: Any, env_value: Any, default_value: Any
) -> Tuple[Any, str]:
    if not _is_missing(cli_value):
        return cli_value, "cli"
    if not _is_missing(env_value):
        return env_value, "env"
    return default_value, "default"


def _level_coercer(value: Any, default: Any) -> Tuple[str, bool]:
    if value is None:
        return default, False
    text = str(value).strip().upper()
    if not isinstance(getattr(logging, text, None), int):
        return default, False
    return text, True


def _path_coercer(value: Any, default: Any) -> Tuple[Path, bool]:
    if value is None:
        return Path(default), False
    text = str(value).strip()
    if not text:
        return Path(default), False
    return Path(text).expanduser(), True


def _non_negative_float(value: Any, default: Any) -> Tuple[float, bool]:
    if value is None:
        return float(default), False
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return float(default), False
    if number != number or number < 0.0:
        return float(default), False
    return number, True


def _bool_coercer(value: Any, default: Any) -> Tuple[bool, bool]:
    if isinstance(value, bool):
        return value, True
    if value is None:
        return bool(default), False
    lowered = str(value).strip().lower()
    if lowered in _TRUE_LITERALS:
        return True, True
    if lowered in _FALSE_LITERALS:
        return False, True
    return bool(default), False


_FIELD_SPECS: Dict[str, _FieldSpec] = {
    "log_level": _FieldSpec("LOG_LEVEL", "INFO", _level_coercer),
    "state_dir": _FieldSpec("ALLOC_STATE_DIR", STATE_DIR, _path_coercer),
    "targets_file": _FieldSpec("ALLOC_TARGETS_FILE", TARGETS_FILE, _path_coercer),
    "bots_file": _FieldSpec("ALLOC_BOTS_FILE", BOTS_FILE, _path_coercer),
    "decision_log_file": _FieldSpec(
        "ALLOC_DECISION_LOG", DECISION_LOG_FILE, _path_coercer
    ),
    "safety_reserve_usdc": _FieldSpec("MIN_USDC_RESERVE", 50.0, _non_negative_float),
    "min_order_usdc": _FieldSpec("MIN_ORDER_USDC", 10.0, _non_negative_float),
    "lock_timeout_s": _FieldSpec("ALLOC_LOCK_TIMEOUT_S", 5.0, _non_negative_float),
    "exclude_cash_from_total": _FieldSpec("ALLOC_EXCLUDE_CASH", False, _bool_coercer),
    "enforce_bot_caps": _FieldSpec("ALLOC_ENFORCE_BOT_CAPS", False, _bool_coercer),
}


@overload
def load_settings(
    *,
    cli_overrides: Mapping[str, Any] | None = None,
    env_policy: Mapping[str, bool] | None = None,
    include_sources: Literal[True],
    logger: logging.Logger | None = None,
    dotenv_path: Path | None = None,
) -> Tuple[Settings, Dict[str, str]]: ...


@overload
def load_settings(
    *,
    cli_overrides: Mapping[str, Any] | None = None,
    env_policy: Mapping[str, bool] | None = None,
    include_sources: Literal[False] = False,
    logger: logging.Logger | None = None,
    dotenv_path: Path | None = None,
) -> Settings: ...


def load_settings(
    *,
    cli_overrides: Mapping[str, Any] | None = None,
    env_policy: Mapping[str, bool] | None = None,
    include_sources: bool = False,
    logger: logging.Logger | None = None,
    dotenv_path: Path | None = None,
) -> Settings | Tuple[Settings, Dict[str, str]]:
    """Resolve settings with deterministic precedence and logging.

    The precedence order is CLI overrides > environment (when permitted) > defaults.
    When ``include_sources`` is true, the function returns a tuple of
    ``(Settings, sources)`` where *sources* maps field names to
    ``{"cli" | "env" | "default"}``.
    """

    load_dotenv(dotenv_path)

    overrides = {
        key: value for key, value in (cli_overrides or {}).items() if value is not None
    }
    env_policy_map = {key: bool(value) for key, value in (env_policy or {}).items()}

    log = logger or _LOGGER
    resolved: Dict[str, Any] = {}
    sources: Dict[str, str] = {}

    for field_name, spec in _FIELD_SPECS.items():
        cli_value = overrides.get(field_name)
        allow_env = env_policy_map.get(field_name, True)
        env_value = os.getenv(spec.env) if allow_env else None

        raw_value, source = _pick_precedence(cli_value, env_value, spec.default)
        coerced, ok = spec.coerce(raw_value, spec.default)
        if not ok:
            if source != "default":
                log.warning(
                    "config_invalid_value key=%s source=%s fallback=%s",
                    field_name,
                    source,
                    spec.default,
                )
            coerced = spec.coerce(spec.default, spec.default)[0]
            source = "default"

        log.info("config_resolved key=%s value=%s source=%s", field_name, coerced, source)
        resolved[field_name] = coerced
        sources[field_name] = source

    settings = Settings(**resolved)
    if include_sources:
        return settings, sources
    return settings
