"""Pytest fixtures for the freight comparison tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from app import create_app, limiter  # noqa: E402
from config import Config  # noqa: E402
from quote.rate_brackets import load_rate_index  # noqa: E402


class FixtureConfig(Config):
    """Deterministic configuration without remote collaborators."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    RATELIMIT_DEFAULT = "1000 per minute"
    COMPARE_RATE_LIMIT = "1000 per minute"
    RATELIMIT_STORAGE_URI = "memory://"
    DISTANCE_SERVICE_URL = ""
    PRICING_SERVICE_URL = ""
    SERVICEABLE_PINCODE_RANGES = "110001-110099,400001-400104"


@pytest.fixture(autouse=True)
def _no_remote_services(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep environment overrides from pointing tests at real services."""

    monkeypatch.delenv("DISTANCE_SERVICE_URL", raising=False)
    monkeypatch.delenv("PRICING_SERVICE_URL", raising=False)


@pytest.fixture
def rate_index():
    """Return the bundled rate bracket index."""

    return load_rate_index()


@pytest.fixture
def app() -> Iterator[Flask]:
    """Yield an application configured with :class:`FixtureConfig`."""

    application = create_app(FixtureConfig)
    limiter.reset()
    yield application
    limiter.reset()


@pytest.fixture
def client(app: Flask) -> Iterator[FlaskClient]:
    """Provide a test client bound to :func:`app`."""

    with app.test_client() as test_client:
        yield test_client
