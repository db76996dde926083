"""Road distance lookups against the remote distance service.

The service is called once per compare request with a bounded timeout and no
retries. Any failure falls back to :data:`FALLBACK_DISTANCE_KM`.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Union

import requests
from flask import current_app, has_app_context

from quote.utils import sanitize_pincode

FALLBACK_DISTANCE_KM = 500.0
DEFAULT_TIMEOUT_SECONDS = 5.0

logger = logging.getLogger(__name__)


class DistanceLookupError(RuntimeError):
    """Raised when the distance service cannot supply a distance."""


def _config_value(name: str, default: Any = None) -> Any:
    """Return ``name`` from the Flask config, falling back to the environment."""

    if has_app_context():
        value = current_app.config.get(name)
        if value not in (None, ""):
            return value
    return os.getenv(name, default)


def _get_service_url() -> str:
    return (_config_value("DISTANCE_SERVICE_URL", "") or "").strip()


def _get_timeout() -> float:
    raw = _config_value("DISTANCE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    try:
        return float(raw)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_SECONDS


def _get_fallback_km() -> float:
    raw = _config_value("FALLBACK_DISTANCE_KM", FALLBACK_DISTANCE_KM)
    try:
        return float(raw)
    except (TypeError, ValueError):
        return FALLBACK_DISTANCE_KM


def _session() -> requests.Session:
    return requests.Session()


def _extract_km(payload: Any) -> Optional[float]:
    """Return ``distanceKm`` from the top level, ``data`` or ``result``."""

    if not isinstance(payload, dict):
        return None
    for container in (payload, payload.get("data"), payload.get("result")):
        if isinstance(container, dict) and container.get("distanceKm") is not None:
            try:
                km = float(container["distanceKm"])
            except (TypeError, ValueError):
                return None
            return km if km > 0 else None
    return None


def get_distance_km_ex(
    origin_pincode: Union[str, int, None], destination_pincode: Union[str, int, None]
) -> Dict[str, Any]:
    """Return a detailed distance lookup result.

    Returns:
        dict: ``{"ok": bool, "km": float | None, "status": str,
        "error": str | None}``. ``status`` is ``"OK"`` on success and names
        the failure otherwise.
    """

    origin = sanitize_pincode(origin_pincode)
    destination = sanitize_pincode(destination_pincode)
    if not origin or not destination:
        return {"ok": False, "km": None, "status": "INVALID_PINCODE", "error": "Invalid PIN code"}

    url = _get_service_url()
    if not url:
        return {
            "ok": False,
            "km": None,
            "status": "NOT_CONFIGURED",
            "error": "DISTANCE_SERVICE_URL is not set",
        }

    try:
        response = _session().post(
            url,
            json={"fromPincode": origin, "toPincode": destination},
            timeout=_get_timeout(),
        )
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        return {"ok": False, "km": None, "status": "REQUEST_FAILED", "error": str(exc)}
    except ValueError as exc:
        return {"ok": False, "km": None, "status": "INVALID_RESPONSE", "error": str(exc)}

    km = _extract_km(payload)
    if km is None:
        return {
            "ok": False,
            "km": None,
            "status": "NO_DISTANCE",
            "error": "No distance in response",
        }
    return {"ok": True, "km": km, "status": "OK", "error": None}


def require_distance_km(
    origin_pincode: Union[str, int, None], destination_pincode: Union[str, int, None]
) -> float:
    """Return the distance in kilometres or raise :class:`DistanceLookupError`."""

    result = get_distance_km_ex(origin_pincode, destination_pincode)
    if not result["ok"]:
        raise DistanceLookupError(f"{result['status']}: {result['error']}")
    return result["km"]


def get_distance_km(
    origin_pincode: Union[str, int, None], destination_pincode: Union[str, int, None]
) -> float:
    """Return the road distance, or the configured fallback on any failure."""

    try:
        return require_distance_km(origin_pincode, destination_pincode)
    except DistanceLookupError as exc:
        fallback = _get_fallback_km()
        logger.warning("Distance lookup failed (%s); using %s km.", exc, fallback)
        return fallback
