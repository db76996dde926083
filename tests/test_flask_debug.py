"""Tests for the runtime debug flag configuration."""

import pytest

import flask_app


def test_resolve_debug_flag_defaults_false(monkeypatch: pytest.MonkeyPatch) -> None:
    """``FLASK_DEBUG`` missing from the environment disables debug mode by default."""

    monkeypatch.delenv("FLASK_DEBUG", raising=False)
    assert flask_app.resolve_debug_flag() is False


@pytest.mark.parametrize("value", ["1", "true", " Yes ", "on"])
def test_resolve_debug_flag_enabled(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("FLASK_DEBUG", value)
    assert flask_app.resolve_debug_flag() is True


@pytest.mark.parametrize("value", ["0", "off", "maybe"])
def test_resolve_debug_flag_false_when_disabled(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    """Production-style and unrecognised values keep debugging off."""

    monkeypatch.setenv("FLASK_DEBUG", value)
    assert flask_app.resolve_debug_flag() is False
