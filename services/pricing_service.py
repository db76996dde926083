"""Client for the authoritative freight pricing service."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional, Tuple

import requests
from flask import current_app, has_app_context

from quote.models import Shipment, VehicleInfo, VehicleLeg, WeightBreakdown, as_number
from quote.pricing import PriceSourceError, ServicePrice

DEFAULT_TIMEOUT_SECONDS = 8.0

logger = logging.getLogger(__name__)


class PricingServiceError(PriceSourceError):
    """Raised for any transport, status, decoding or payload failure."""


def _config_value(name: str, default: Any = None) -> Any:
    if has_app_context():
        value = current_app.config.get(name)
        if value not in (None, ""):
            return value
    return os.getenv(name, default)


def _get_service_url() -> str:
    return (_config_value("PRICING_SERVICE_URL", "") or "").strip()


def _get_timeout() -> float:
    raw = _config_value("PRICING_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    try:
        return float(raw)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_SECONDS


def _session() -> requests.Session:
    return requests.Session()


def _parse_weights(data: Any) -> Optional[WeightBreakdown]:
    if not isinstance(data, Mapping):
        return None
    actual = as_number(data.get("actualWeight"))
    volumetric = as_number(data.get("volumetricWeight"))
    chargeable = as_number(data.get("chargeableWeight"))
    if actual is None and volumetric is None and chargeable is None:
        return None
    actual = actual if actual is not None else (chargeable or 0)
    volumetric = volumetric if volumetric is not None else (chargeable or 0)
    if chargeable is None:
        chargeable = max(actual, volumetric)
    return WeightBreakdown(actual, volumetric, chargeable)


def _parse_legs(rows: Any) -> Optional[Tuple[VehicleLeg, ...]]:
    """Convert ``vehiclePricing`` rows into vehicle legs."""

    if not isinstance(rows, list) or not rows:
        return None
    legs = []
    for number, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            raise PricingServiceError(f"vehiclePricing row {number} is not an object")
        legs.append(
            VehicleLeg(
                sequence_number=number,
                vehicle_type=str(row.get("vehicleType") or ""),
                vehicle_length_ft=as_number(row.get("vehicleLength")) or 0,
                max_capacity_kg=as_number(row.get("maxWeight")) or 0,
                carrying_weight_kg=as_number(row.get("weight")) or 0,
                price_units=as_number(row.get("wheelseyePrice")) or 0,
            )
        )
    return tuple(legs)


def parse_pricing_response(payload: Any) -> ServicePrice:
    """Normalise a pricing service response body.

    Raises:
        PricingServiceError: If the body has no positive ``price``.
    """

    if not isinstance(payload, Mapping):
        raise PricingServiceError("Pricing response is not an object")
    price = as_number(payload.get("price"))
    if price is None or price <= 0:
        raise PricingServiceError("Pricing response has no usable price")

    vehicle = None
    if payload.get("vehicle"):
        length = payload.get("vehicleLength")
        number = as_number(length)
        vehicle = VehicleInfo(
            str(payload["vehicle"]), number if number is not None else (length or "")
        )

    return ServicePrice(
        price=price,
        weights=_parse_weights(payload.get("weightBreakdown")),
        vehicle=vehicle,
        legs=_parse_legs(payload.get("vehiclePricing")),
    )


def fetch_service_price(
    chargeable_weight_kg: float, distance_km: float, shipment: Shipment
) -> ServicePrice:
    """Request the authoritative price for a shipment.

    Makes exactly one ``POST`` with a bounded timeout; there are no retries.

    Args:
        chargeable_weight_kg: Locally resolved chargeable weight.
        distance_km: Road distance between origin and destination.
        shipment: Box groups sent as ``shipment_details``.

    Returns:
        ServicePrice: Price with optional weights, vehicle and legs.

    Raises:
        PricingServiceError: When the service is unconfigured, unreachable or
            answers with anything but a usable price.
    """

    url = _get_service_url()
    if not url:
        raise PricingServiceError("PRICING_SERVICE_URL is not set")

    try:
        response = _session().post(
            url,
            json={
                "chargeableWeight": chargeable_weight_kg,
                "distanceKm": distance_km,
                "shipment_details": shipment.to_list(),
            },
            timeout=_get_timeout(),
        )
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        raise PricingServiceError(f"Pricing request failed: {exc}") from exc
    except ValueError as exc:
        raise PricingServiceError(f"Pricing response is not JSON: {exc}") from exc

    result = parse_pricing_response(payload)
    logger.debug("Pricing service quoted %s for %s kg.", result.price, chargeable_weight_kg)
    return result
