# spotalloc/cli.py
# =============================================================================
# Purpose:
#   Operator commands for the shared allocator: inspect bands against the
#   persisted wallet state, summarise the decision log, and check the runtime
#   environment before bots are started.
#
# Design Philosophy:
#   - Keep CLI thin; allocation logic lives in spotalloc.portfolio.
#   - Read-only: no command here commits or releases capital.
# =============================================================================

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd

from .config import Settings, load_settings
from .config_validate import validate_environment
from .logging_setup import setup_app_logging
from .portfolio.decision_log import load_decisions, summarize_decisions
from .portfolio.errors import AllocationError
from .portfolio.registry import TargetRegistry, load_registry
from .portfolio.sizing import compute_headroom
from .portfolio.state import JsonStateStore
from .portfolio.types import PortfolioSnapshot, canonical_symbol
from .portfolio.valuation import build_snapshot, compute_total_value, current_weight

logger = logging.getLogger(__name__)


def _usage_error(message: str) -> None:
    print(f"error: {message}", file=sys.stderr)
    sys.exit(2)


def parse_prices(tokens: Sequence[str]) -> Dict[str, float]:
    """Parse ``SYMBOL=PRICE`` tokens."""
    prices: Dict[str, float] = {}
    for token in tokens:
        symbol, _, raw = token.partition("=")
        if not symbol.strip() or not raw.strip():
            raise ValueError(f"expected SYMBOL=PRICE, got {token!r}")
        prices[canonical_symbol(symbol)] = float(raw)
    return prices


def band_table(
    registry: TargetRegistry, snapshot: PortfolioSnapshot, *, exclude_cash: bool = False
) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for symbol in registry:
        band = registry.get_band(symbol)
        rows.append(
            {
                "symbol": symbol,
                "enabled": band.enabled,
                "target": band.target_weight,
                "min": band.min_weight,
                "max": band.max_weight,
                "weight": current_weight(snapshot, symbol, exclude_cash=exclude_cash),
                "headroom_usdc": compute_headroom(band, snapshot, exclude_cash=exclude_cash),
            }
        )
    return pd.DataFrame(rows).set_index("symbol")


def cmd_status(args: argparse.Namespace, *, settings: Settings) -> int:
    try:
        prices = parse_prices(args.price or [])
    except ValueError as exc:
        _usage_error(str(exc))
    try:
        registry = load_registry(settings.targets_file)
        state = JsonStateStore(settings.state_dir).read_portfolio()
        snapshot = build_snapshot(state, prices, timestamp_ms=int(time.time() * 1000))
        total = compute_total_value(snapshot, exclude_cash=settings.exclude_cash_from_total)
        table = band_table(registry, snapshot, exclude_cash=settings.exclude_cash_from_total)
    except AllocationError as exc:
        print(f"status unavailable: {exc}", file=sys.stderr)
        return 1
    print(f"idle cash: {snapshot.idle_cash_usdc:,.2f} USDC")
    print(f"total value: {total:,.2f} USDC")
    print(table.to_string(float_format=lambda v: f"{v:,.4f}"))
    return 0


def cmd_decisions(args: argparse.Namespace, *, settings: Settings) -> int:
    path = Path(args.path) if args.path else settings.decision_log_file
    frame = load_decisions(path)
    if frame.empty:
        print(f"no decisions recorded in {path}")
        return 0
    summary = summarize_decisions(frame)
    print(summary.to_string(index=False))
    return 0


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Construct the CLI parser so shim modules can reuse it."""
    parser = argparse.ArgumentParser(
        prog="spotalloc", description="Shared-capital allocator tools"
    )
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("status", help="Show band, weight and headroom per asset")
    p.add_argument(
        "--price",
        action="append",
        metavar="SYMBOL=PRICE",
        help="Mark price for a held asset (repeatable)",
    )

    p = sub.add_parser("decisions", help="Summarise the decision log")
    p.add_argument(
        "--path",
        default=None,
        help=f"Decision log path (default: {settings.decision_log_file})",
    )

    sub.add_parser("check", help="Validate configuration and state directory")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and dispatch to subcommands."""
    settings = load_settings()
    setup_app_logging(settings.log_level)
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if args.command == "status":
        return cmd_status(args, settings=settings)
    if args.command == "decisions":
        return cmd_decisions(args, settings=settings)
    if args.command == "check":
        return validate_environment(settings)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
