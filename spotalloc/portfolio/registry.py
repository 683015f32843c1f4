"""Target weights and drift bands, loaded once as an immutable set."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Tuple

from .errors import ConfigError, UnknownAsset
from .schema import TARGETS_SCHEMA, load_document, validate_document
from .types import DEFAULT_BAND_WIDTH, AssetBand, AssetTarget, canonical_symbol

__all__ = [
    "TargetRegistry",
    "RegistryHandle",
    "registry_from_mapping",
    "load_registry",
]

logger = logging.getLogger(__name__)

_EPS = 1e-9


class TargetRegistry:
    """Read-only registry of :class:`AssetTarget` records keyed by symbol.

    Instances never change after construction; reloading builds a new registry
    and swaps it in through :class:`RegistryHandle`.
    """

    __slots__ = ("_targets",)

    def __init__(self, targets: Iterable[AssetTarget]) -> None:
        table: dict[str, AssetTarget] = {}
        for target in targets:
            if target.symbol in table:
                raise ConfigError(f"duplicate asset target: {target.symbol}")
            table[target.symbol] = target
        total = sum(t.target_weight for t in table.values())
        if total > 1.0 + _EPS:
            raise ConfigError(f"target weights sum to {total:.6f}, must be <= 1")
        self._targets: Mapping[str, AssetTarget] = MappingProxyType(table)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and canonical_symbol(symbol) in self._targets

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._targets))

    def __len__(self) -> int:
        return len(self._targets)

    def get_target(self, symbol: str) -> AssetTarget:
        key = canonical_symbol(symbol)
        try:
            return self._targets[key]
        except KeyError:
            raise UnknownAsset(key) from None

    def get_band(self, symbol: str) -> AssetBand:
        """Return target, min and max weight; unknown symbols raise."""

        target = self.get_target(symbol)
        return AssetBand(
            symbol=target.symbol,
            target_weight=target.target_weight,
            min_weight=max(0.0, target.target_weight - target.band_width),
            max_weight=target.target_weight + target.band_width,
            enabled=target.enabled,
        )

    def targets(self) -> Tuple[AssetTarget, ...]:
        return tuple(self._targets[s] for s in sorted(self._targets))


def registry_from_mapping(data: Mapping[str, Any]) -> TargetRegistry:
    """Validate a targets document and build a registry from it."""

    validate_document(data, TARGETS_SCHEMA, "targets config")
    default_band = float(data.get("default_band_width", DEFAULT_BAND_WIDTH))
    targets = []
    seen: set[str] = set()
    for raw_symbol, entry in data["assets"].items():
        symbol = canonical_symbol(raw_symbol)
        if symbol in seen:
            raise ConfigError(f"duplicate asset target after normalisation: {symbol}")
        seen.add(symbol)
        targets.append(
            AssetTarget(
                symbol=symbol,
                target_weight=float(entry["target_weight"]),
                band_width=float(entry.get("band_width", default_band)),
                enabled=bool(entry.get("enabled", True)),
            )
        )
    return TargetRegistry(targets)


def load_registry(path: Path) -> TargetRegistry:
    registry = registry_from_mapping(load_document(path))
    logger.info("targets_loaded path=%s assets=%s", path, ",".join(registry))
    return registry


class RegistryHandle:
    """Holder that publishes a whole registry at a time.

    Readers call :meth:`current` once per decision and keep using that object;
    :meth:`swap` replaces the reference in one assignment.
    """

    def __init__(self, registry: TargetRegistry) -> None:
        self._registry = registry
        self._swap_lock = threading.Lock()

    def current(self) -> TargetRegistry:
        return self._registry

    def swap(self, registry: TargetRegistry) -> TargetRegistry:
        """Install *registry* and return the one it replaced."""

        with self._swap_lock:
            previous = self._registry
            self._registry = registry
        logger.info(
            "targets_swapped previous=%s current=%s",
            ",".join(previous),
            ",".join(registry),
        )
        return previous

    def reload(self, path: Path) -> TargetRegistry:
        """Load *path* completely, then swap; a bad file leaves the old set."""

        return self.swap(load_registry(path))
