"""End-to-end comparison for one shipment and route.

Ties the pieces together in request order: weights, distance, baseline
pricing, then merging with the vendor quotes supplied by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from quote.aggregation import AggregationPolicy, MergedQuotes, merge_quotes
from quote.models import Quote, Shipment, ShipmentError, WeightBreakdown
from quote.pricing import (
    DEFAULT_REFERENCE_PRICE,
    PricingChain,
    PricingResult,
    Route,
    baseline_quotes,
    placeholder_quote,
    reference_price,
)
from quote.thresholds import check_thresholds
from quote.utils import sanitize_pincode
from quote.weights import DEFAULT_MODE, resolve_weight, shipment_weights, volumetric_divisor

logger = logging.getLogger(__name__)

DistanceLookup = Callable[[str, str], float]


@dataclass(frozen=True)
class CompareRequest:
    """Validated compare parameters."""

    origin: str
    destination: str
    shipment: Shipment
    mode: str = DEFAULT_MODE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompareRequest":
        """Validate raw request data.

        Raises:
            ShipmentError: With every problem found, joined by ``"; "``.
        """

        errors = []
        origin = sanitize_pincode(data.get("fromPincode"))
        if origin is None:
            errors.append("fromPincode must be a 6 digit PIN code.")
        destination = sanitize_pincode(data.get("toPincode"))
        if destination is None:
            errors.append("toPincode must be a 6 digit PIN code.")
        mode = str(data.get("modeoftransport") or DEFAULT_MODE)
        try:
            volumetric_divisor(mode)
        except ShipmentError as exc:
            errors.append(str(exc))
        shipment = None
        boxes = data.get("shipment")
        if not isinstance(boxes, list):
            errors.append("shipment must be a list of box groups.")
        else:
            try:
                shipment = Shipment.from_list(
                    box if isinstance(box, Mapping) else {} for box in boxes
                )
            except ShipmentError as exc:
                errors.append(str(exc))
        if errors:
            raise ShipmentError("; ".join(errors))
        return cls(origin=origin, destination=destination, shipment=shipment, mode=mode)

    def to_params(self) -> Dict[str, Any]:
        return {
            "fromPincode": self.origin,
            "toPincode": self.destination,
            "modeoftransport": self.mode,
            "shipment": self.shipment.to_list(),
        }


@dataclass(frozen=True)
class Comparison:
    """Outcome of :func:`run_comparison` before presentation."""

    request: CompareRequest
    weights: WeightBreakdown
    distance_km: float
    merged: MergedQuotes
    pricing: Optional[PricingResult]
    warning: str = ""


def run_comparison(
    request: CompareRequest,
    *,
    chain: PricingChain,
    distance_lookup: DistanceLookup,
    contracted: Iterable[Quote] = (),
    open_market: Iterable[Quote] = (),
    policy: AggregationPolicy = AggregationPolicy(),
    reference_vendor: str = "Ekart",
) -> Comparison:
    """Price the baselines and merge them with the vendor quotes.

    Args:
        request: Validated compare parameters.
        chain: Pricing fallback chain for the baseline quotes.
        distance_lookup: Returns road kilometres between two PIN codes and
            never raises.
        contracted: Tied-up vendor quotes.
        open_market: Open-market vendor quotes.
        policy: Overlays applied while merging.
        reference_vendor: Vendor whose quote seeds the last pricing tier.
    """

    contracted = list(contracted)
    open_market = list(open_market)
    actual, volumetric = shipment_weights(request.shipment, request.mode)
    weights = resolve_weight(actual, volumetric)
    distance_km = distance_lookup(request.origin, request.destination)
    route = Route(request.origin, request.destination, distance_km)

    pricing = chain.price(
        weights,
        distance_km,
        request.shipment,
        reference=reference_price(contracted + open_market, reference_vendor),
    )
    if pricing is not None:
        weights = pricing.weights

    warning = check_thresholds(weights.chargeable_weight_kg, chain.min_serviceable_kg)
    if warning:
        logger.info(
            "Omitting baselines for %s kg shipment %s -> %s.",
            weights.chargeable_weight_kg,
            request.origin,
            request.destination,
        )
        baselines = ()
    elif pricing is None:
        baselines = None
    else:
        baselines = baseline_quotes(pricing, route)

    merged = merge_quotes(
        contracted,
        open_market,
        baselines,
        request.origin,
        policy,
        placeholder=placeholder_quote(
            route, max(chain.reference_default_price, 0) or DEFAULT_REFERENCE_PRICE
        ),
    )
    return Comparison(
        request=request,
        weights=weights,
        distance_km=distance_km,
        merged=merged,
        pricing=pricing,
        warning=warning,
    )
