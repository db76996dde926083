"""Central configuration for the freight comparison Flask application.

Key settings exposed by :class:`Config`:

* ``SECRET_KEY``: Signs the Flask session, which also holds the durable tier
  of the comparison cache. Generated at startup when the ``SECRET_KEY``
  environment variable is missing so each deployment receives a unique value.
* ``DISTANCE_*`` and ``PRICING_*``: Endpoints and timeouts for the remote
  distance and pricing services. Leaving a URL blank skips that service and
  uses the local fallback.
* ``RATE_BRACKETS_PATH``: JSON table of vehicle rate brackets.
* ``COMPARE_CACHE_TTL_SECONDS``: Lifetime of a cached comparison.
* ``PREMIUM_COMPANY_NAME``, ``TIED_UP_MARKUP``, ``REFERENCE_*``,
  ``MIN_SERVICEABLE_WEIGHT_KG`` and ``SERVICEABLE_PINCODE_RANGES``: Pricing
  and ranking policy.
* ``RATELIMIT_*`` and ``COMPARE_RATE_LIMIT``: Configure global and endpoint
  rate limiting enforced by :mod:`flask_limiter`.

All values default to development-friendly settings and can be overridden via
environment variables so each deployment can customize behaviour without
modifying code.
"""

# config.py
import logging
import os
from pathlib import Path
from secrets import token_urlsafe
from typing import Union

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_RATE_BRACKETS_PATH = BASE_DIR / "quote" / "data" / "rate_brackets.json"
DEFAULT_SERVICEABLE_PINCODE_RANGES = (
    "110001-110099,122001-122018,201301-201318,400001-400104,"
    "411001-411062,560001-560300,600001-600130"
)

logger = logging.getLogger("freight_compare.config")


def _resolve_secret_key() -> str:
    """Return a cryptographically strong secret key for Flask sessions."""

    configured = os.getenv("SECRET_KEY")
    if configured:
        return configured

    generated = token_urlsafe(32)
    logger.warning(
        "SECRET_KEY environment variable is not set; generated a one-time key."
    )
    return generated


def _resolve_number(name: str, default: Union[int, float]) -> Union[int, float]:
    """Return the numeric environment value ``name`` or ``default``.

    Values that do not parse are logged and ignored so a typo in one setting
    does not prevent the application from starting. The result keeps the type
    of ``default``.

    Args:
        name: Environment variable to read via :func:`os.getenv`.
        default: Value used when the variable is unset or invalid.

    Returns:
        Union[int, float]: Parsed value converted to ``type(default)``.
    """

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return type(default)(float(raw))
    except ValueError:
        logger.warning("%s=%r is not a number; using %s.", name, raw, default)
        return default


def _resolve_ratelimit_storage_uri() -> str:
    """Determine where :mod:`flask_limiter` persists rate-limit counters.

    The function honours ``RATELIMIT_STORAGE_URI`` and otherwise falls back to
    ``memory://`` which scopes counters to each worker process.

    Returns:
        str: The storage URI consumed by :class:`flask_limiter.Limiter`.
    """

    configured = os.getenv("RATELIMIT_STORAGE_URI")
    if configured:
        return configured
    return "memory://"


class Config:
    SECRET_KEY = _resolve_secret_key()
    DISTANCE_SERVICE_URL = os.getenv("DISTANCE_SERVICE_URL", "")
    DISTANCE_TIMEOUT_SECONDS = _resolve_number("DISTANCE_TIMEOUT_SECONDS", 5.0)
    FALLBACK_DISTANCE_KM = _resolve_number("FALLBACK_DISTANCE_KM", 500.0)
    PRICING_SERVICE_URL = os.getenv("PRICING_SERVICE_URL", "")
    PRICING_TIMEOUT_SECONDS = _resolve_number("PRICING_TIMEOUT_SECONDS", 8.0)
    RATE_BRACKETS_PATH = os.getenv("RATE_BRACKETS_PATH") or str(DEFAULT_RATE_BRACKETS_PATH)
    COMPARE_CACHE_TTL_SECONDS = _resolve_number("COMPARE_CACHE_TTL_SECONDS", 1800)
    PREMIUM_COMPANY_NAME = os.getenv("PREMIUM_COMPANY_NAME", "DP World")
    TIED_UP_MARKUP = _resolve_number("TIED_UP_MARKUP", 5.0)
    REFERENCE_VENDOR_NAME = os.getenv("REFERENCE_VENDOR_NAME", "Ekart")
    REFERENCE_DEFAULT_PRICE = _resolve_number("REFERENCE_DEFAULT_PRICE", 32000)
    MIN_SERVICEABLE_WEIGHT_KG = _resolve_number("MIN_SERVICEABLE_WEIGHT_KG", 500.0)
    SERVICEABLE_PINCODE_RANGES = os.getenv(
        "SERVICEABLE_PINCODE_RANGES", DEFAULT_SERVICEABLE_PINCODE_RANGES
    )
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per day;50 per hour")
    RATELIMIT_STORAGE_URI = _resolve_ratelimit_storage_uri()
    RATELIMIT_HEADERS_ENABLED = os.getenv(
        "RATELIMIT_HEADERS_ENABLED", "true"
    ).lower() in {
        "true",
        "1",
        "yes",
        "y",
    }
    COMPARE_RATE_LIMIT = os.getenv("COMPARE_RATE_LIMIT", "30 per minute")
