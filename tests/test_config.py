"""Tests covering environment-driven configuration helpers."""

from __future__ import annotations

import importlib

import pytest

import config


def test_secret_key_generated_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config generates a unique secret key when ``SECRET_KEY`` is absent."""

    monkeypatch.delenv("SECRET_KEY", raising=False)
    first = config._resolve_secret_key()
    second = config._resolve_secret_key()
    assert first
    assert first != second


def test_secret_key_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", "from-env")
    assert config._resolve_secret_key() == "from-env"


@pytest.mark.parametrize(
    "raw,default,expected",
    [
        ("12.5", 5.0, 12.5),
        ("900", 1800, 900),
        ("900.7", 1800, 900),
        ("", 5.0, 5.0),
        (None, 32000, 32000),
    ],
)
def test_resolve_number(monkeypatch: pytest.MonkeyPatch, raw, default, expected) -> None:
    if raw is None:
        monkeypatch.delenv("FREIGHT_TEST_NUMBER", raising=False)
    else:
        monkeypatch.setenv("FREIGHT_TEST_NUMBER", raw)
    value = config._resolve_number("FREIGHT_TEST_NUMBER", default)
    assert value == expected
    assert type(value) is type(default)


def test_resolve_number_logs_invalid_values(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("FREIGHT_TEST_NUMBER", "eight")
    with caplog.at_level("WARNING"):
        assert config._resolve_number("FREIGHT_TEST_NUMBER", 8.0) == 8.0
    assert "FREIGHT_TEST_NUMBER" in caplog.text


def test_ratelimit_storage_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RATELIMIT_STORAGE_URI", raising=False)
    assert config._resolve_ratelimit_storage_uri() == "memory://"
    monkeypatch.setenv("RATELIMIT_STORAGE_URI", "redis://cache:6379/0")
    assert config._resolve_ratelimit_storage_uri() == "redis://cache:6379/0"


def test_config_reads_policy_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reloading :mod:`config` picks up environment overrides."""

    monkeypatch.setenv("SECRET_KEY", "reload-key")
    monkeypatch.setenv("TIED_UP_MARKUP", "3")
    monkeypatch.setenv("PREMIUM_COMPANY_NAME", "Blue Dart")
    monkeypatch.setenv("COMPARE_CACHE_TTL_SECONDS", "60")
    try:
        reloaded = importlib.reload(config)
        assert reloaded.Config.TIED_UP_MARKUP == 3.0
        assert reloaded.Config.PREMIUM_COMPANY_NAME == "Blue Dart"
        assert reloaded.Config.COMPARE_CACHE_TTL_SECONDS == 60
        assert reloaded.Config.RATE_BRACKETS_PATH.endswith("rate_brackets.json")
    finally:
        monkeypatch.undo()
        importlib.reload(config)
