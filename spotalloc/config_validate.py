"""Validate environment readiness for the allocator."""

from __future__ import annotations

import sys
import tempfile
from typing import List, Tuple

from core.io.dirs import DirectoryCreationError, ensure_dir

from .config import Settings, load_settings
from .paths import lock_path
from .portfolio.bots import load_bot_profiles
from .portfolio.errors import ConfigError
from .portfolio.guard import AllocationGuard, LockTimeout
from .portfolio.registry import load_registry

Check = Tuple[bool, str]


def _check_targets(settings: Settings) -> List[Check]:
    try:
        registry = load_registry(settings.targets_file)
    except ConfigError as exc:
        return [(False, f"targets file invalid -> {exc}")]
    total = sum(t.target_weight for t in registry.targets())
    return [
        (True, f"targets loaded -> {settings.targets_file} ({len(registry)} assets)"),
        (True, f"target weights sum -> {total:.4f}"),
    ]


def _check_bots(settings: Settings) -> List[Check]:
    try:
        bots = load_bot_profiles(settings.bots_file)
    except ConfigError as exc:
        return [(False, f"bots file invalid -> {exc}")]
    capped = sorted(b for b, p in bots.items() if p.cap is not None)
    checks: List[Check] = [(True, f"bots loaded -> {len(bots)} profiles")]
    if settings.enforce_bot_caps:
        checks.append((bool(capped), f"bot caps enforced -> {','.join(capped) or 'none configured'}"))
    return checks


def _check_state_dir(settings: Settings) -> List[Check]:
    try:
        state_dir = ensure_dir(settings.state_dir)
    except DirectoryCreationError as exc:
        return [(False, f"state directory unusable -> {exc}")]
    try:
        with tempfile.NamedTemporaryFile(dir=state_dir):
            pass
        writable = True
    except OSError:
        writable = False
    checks: List[Check] = [(writable, f"state directory writable -> {state_dir}")]
    guard = AllocationGuard(lock_path(state_dir), timeout_s=settings.lock_timeout_s)
    try:
        with guard.critical_section():
            acquired = True
    except LockTimeout:
        acquired = False
    checks.append((acquired, f"allocation lock acquirable -> {guard.lock_file}"))
    return checks


def _check_limits(settings: Settings) -> List[Check]:
    return [
        (True, f"safety reserve -> {settings.safety_reserve_usdc:.2f} USDC"),
        (
            settings.min_order_usdc > 0,
            f"minimum order -> {settings.min_order_usdc:.2f} USDC",
        ),
    ]


def validate_environment(settings: Settings | None = None) -> int:
    """Run all checks and return process exit code."""

    settings = settings or load_settings()
    results: List[Check] = []
    results.extend(_check_targets(settings))
    results.extend(_check_bots(settings))
    results.extend(_check_state_dir(settings))
    results.extend(_check_limits(settings))

    ok = True
    for passed, message in results:
        prefix = "[ OK ]" if passed else "[FAIL]"
        print(f"{prefix} {message}")
        ok = ok and passed
    return 0 if ok else 1


def main() -> None:
    sys.exit(validate_environment())


if __name__ == "__main__":  # pragma: no cover
    main()
