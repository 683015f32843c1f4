from __future__ import annotations

import json
import logging

import pytest

from spotalloc.portfolio.errors import ConfigError, UnknownAsset
from spotalloc.portfolio.registry import (
    RegistryHandle,
    TargetRegistry,
    load_registry,
    registry_from_mapping,
)
from spotalloc.portfolio.types import AssetTarget

TARGETS_YAML = """
default_band_width: 0.05
assets:
  btc:
    target_weight: 0.40
  ETH:
    target_weight: 0.30
    band_width: 0.03
  SOL:
    target_weight: 0.10
    enabled: false
"""


def test_load_registry_from_yaml(tmp_path, caplog):
    path = tmp_path / "targets.yaml"
    path.write_text(TARGETS_YAML, encoding="utf-8")
    caplog.set_level(logging.INFO, logger="spotalloc.portfolio.registry")

    registry = load_registry(path)

    assert list(registry) == ["BTC", "ETH", "SOL"]
    assert "btc" in registry
    assert registry.get_target("ETH").band_width == pytest.approx(0.03)
    assert registry.get_band("SOL").enabled is False
    assert any("targets_loaded" in r.message for r in caplog.records)


def test_load_registry_from_json(tmp_path):
    path = tmp_path / "targets.json"
    path.write_text(json.dumps({"assets": {"WETH": {"target_weight": 0.3}}}), encoding="utf-8")
    registry = load_registry(path)
    band = registry.get_band("WETH")
    assert band.min_weight == pytest.approx(0.25)
    assert band.max_weight == pytest.approx(0.35)


def test_band_min_is_clamped_at_zero():
    registry = TargetRegistry([AssetTarget("JUP", 0.02, band_width=0.05)])
    band = registry.get_band("JUP")
    assert band.min_weight == 0.0
    assert band.max_weight == pytest.approx(0.07)


def test_unknown_asset_raises_key_error():
    registry = TargetRegistry([AssetTarget("BTC", 0.4)])
    with pytest.raises(UnknownAsset) as excinfo:
        registry.get_band("DOGE")
    assert isinstance(excinfo.value, KeyError)
    assert excinfo.value.symbol == "DOGE"


@pytest.mark.parametrize(
    "payload",
    [
        {"assets": {"BTC": {"target_weight": 0.4, "weight": 0.1}}},
        {"assets": {"BTC": {"target_weight": 0.4}}, "extra": True},
        {"assets": {"BTC": {"band_width": 0.05}}},
        {"assets": {"BTC": {"target_weight": 1.5}}},
        {"assets": {}},
    ],
)
def test_invalid_documents_rejected(payload):
    with pytest.raises(ConfigError):
        registry_from_mapping(payload)


def test_weights_summing_above_one_rejected():
    with pytest.raises(ConfigError, match="sum"):
        registry_from_mapping(
            {"assets": {"BTC": {"target_weight": 0.6}, "ETH": {"target_weight": 0.5}}}
        )


def test_duplicate_symbols_after_normalisation_rejected():
    with pytest.raises(ConfigError, match="duplicate"):
        registry_from_mapping(
            {"assets": {"btc": {"target_weight": 0.2}, "BTC": {"target_weight": 0.2}}}
        )


def test_handle_swap_returns_previous():
    first = TargetRegistry([AssetTarget("BTC", 0.4)])
    second = TargetRegistry([AssetTarget("ETH", 0.3)])
    handle = RegistryHandle(first)

    assert handle.swap(second) is first
    assert handle.current() is second


def test_reload_with_bad_file_keeps_previous_registry(tmp_path):
    original = TargetRegistry([AssetTarget("BTC", 0.4)])
    handle = RegistryHandle(original)
    bad = tmp_path / "targets.yaml"
    bad.write_text("assets:\n  BTC:\n    target_weight: 0.4\n    typo: 1\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        handle.reload(bad)

    assert handle.current() is original


def test_reload_installs_complete_set(tmp_path):
    handle = RegistryHandle(TargetRegistry([AssetTarget("BTC", 0.4)]))
    path = tmp_path / "targets.yaml"
    path.write_text(TARGETS_YAML, encoding="utf-8")

    handle.reload(path)

    assert list(handle.current()) == ["BTC", "ETH", "SOL"]
