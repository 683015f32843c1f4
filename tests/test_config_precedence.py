from __future__ import annotations

import logging
from pathlib import Path

import pytest

from spotalloc.config import load_settings
from spotalloc.paths import STATE_DIR


def test_precedence_cli_wins(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="spotalloc.config")
    monkeypatch.setenv("MIN_USDC_RESERVE", "75")

    settings, sources = load_settings(
        cli_overrides={"safety_reserve_usdc": "120"},
        env_policy={"safety_reserve_usdc": True},
        include_sources=True,
    )

    assert settings.safety_reserve_usdc == 120.0
    assert sources["safety_reserve_usdc"] == "cli"
    assert any(
        "config_resolved key=safety_reserve_usdc" in record.message
        and "source=cli" in record.message
        for record in caplog.records
    )


def test_precedence_env_allowed(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="spotalloc.config")
    monkeypatch.setenv("ALLOC_STATE_DIR", "/srv/bots/state")

    settings, sources = load_settings(include_sources=True)

    assert settings.state_dir == Path("/srv/bots/state")
    assert sources["state_dir"] == "env"
    assert any(
        "config_resolved key=state_dir" in record.message and "source=env" in record.message
        for record in caplog.records
    )


def test_precedence_env_blocked(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALLOC_STATE_DIR", "/srv/bots/state")

    settings, sources = load_settings(env_policy={"state_dir": False}, include_sources=True)

    assert settings.state_dir == STATE_DIR
    assert sources["state_dir"] == "default"


def test_defaults_fail_closed() -> None:
    settings = load_settings()

    assert settings.safety_reserve_usdc == 50.0
    assert settings.min_order_usdc == 10.0
    assert settings.enforce_bot_caps is False
    assert settings.exclude_cash_from_total is False
    limits = settings.gate_limits()
    assert limits.safety_reserve_usdc == 50.0
    assert limits.min_order_usdc == 10.0


@pytest.mark.parametrize("raw, expected", [("yes", True), ("0", False), ("ON", True)])
def test_boolean_env_values(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("ALLOC_ENFORCE_BOT_CAPS", raw)
    assert load_settings().enforce_bot_caps is expected


def test_invalid_env_value_falls_back_with_warning(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="spotalloc.config")
    monkeypatch.setenv("MIN_ORDER_USDC", "-5")
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    settings, sources = load_settings(include_sources=True)

    assert settings.min_order_usdc == 10.0
    assert sources["min_order_usdc"] == "default"
    assert settings.log_level == "INFO"
    assert any(
        "config_invalid_value key=min_order_usdc" in record.message
        for record in caplog.records
    )


def test_dotenv_path_is_forwarded(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen = []
    monkeypatch.setattr("spotalloc.config.load_dotenv", lambda path=None: seen.append(path))
    env_file = tmp_path / ".env"

    load_settings(dotenv_path=env_file)

    assert seen == [env_file]
