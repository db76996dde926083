"""Three-tier pricing for the synthetic baseline quotes.

Tiers are tried in order and the first usable one wins:

1. the authoritative pricing service (injected as ``price_source``);
2. the local :class:`~quote.rate_brackets.RateBracketIndex`;
3. a heuristic on the reference vendor's quote, or a fixed default price.

Every tier yields the same :class:`PricingResult` shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from quote.models import Quote, Shipment, VehicleInfo, VehicleLeg, WeightBreakdown
from quote.rate_brackets import RateBracketIndex
from quote.utils import (
    Number,
    estimate_transit_days,
    format_days,
    round_half_up,
    round_to_nearest_10,
)
from quote.weights import VEHICLE_CAPACITY_KG, leg_count, split_legs, vehicle_for_weight

logger = logging.getLogger(__name__)

EXPEDITED_FACTOR = 1.2
REFERENCE_ECONOMY_FACTOR = 0.95
REFERENCE_EXPEDITED_FACTOR = 1.1
DEFAULT_REFERENCE_PRICE = 32000

GENERIC_BASELINE_NAME = "LOCAL FTL"
CARRIER_BASELINE_NAME = "Wheelseye FTL"
BASELINE_RATING = 4.6

SOURCE_SERVICE = "service"
SOURCE_RATE_TABLE = "rate_table"
SOURCE_REFERENCE = "reference"
SOURCE_DEFAULT = "default"


class PriceSourceError(RuntimeError):
    """Raised by a price source that could not produce a price."""


@dataclass(frozen=True)
class ServicePrice:
    """Normalised answer from the authoritative pricing service."""

    price: Number
    weights: Optional[WeightBreakdown] = None
    vehicle: Optional[VehicleInfo] = None
    legs: Optional[Tuple[VehicleLeg, ...]] = None


PriceSource = Callable[[float, float, Shipment], ServicePrice]


@dataclass(frozen=True)
class PricingResult:
    """Baseline prices for one shipment and route.

    Attributes:
        economy_price: Price of the carrier-specific baseline.
        expedited_price: Price of the generic baseline.
        vehicle: Vehicle label shown on both baselines.
        weights: Weight breakdown the prices were computed for.
        legs: Vehicle legs; their prices sum to ``economy_price``.
        source: Tier that produced the prices.
    """

    economy_price: Number
    expedited_price: Number
    vehicle: VehicleInfo
    weights: WeightBreakdown
    legs: Tuple[VehicleLeg, ...]
    source: str

    @property
    def price(self) -> Number:
        return self.economy_price


def reference_price(quotes: Iterable[Quote], vendor_name: str) -> Optional[Number]:
    """Return the cheapest positive price quoted by ``vendor_name``."""

    wanted = vendor_name.strip().lower()
    prices = [
        quote.total_price
        for quote in quotes
        if quote.company_name.strip().lower() == wanted and quote.total_price > 0
    ]
    return min(prices) if prices else None


class PricingChain:
    """Produce baseline prices with graceful degradation across tiers."""

    def __init__(
        self,
        index: RateBracketIndex,
        price_source: Optional[PriceSource] = None,
        *,
        min_serviceable_kg: float = 500,
        reference_default_price: Number = DEFAULT_REFERENCE_PRICE,
    ):
        self.index = index
        self.price_source = price_source
        self.min_serviceable_kg = min_serviceable_kg
        self.reference_default_price = reference_default_price

    def price(
        self,
        weights: WeightBreakdown,
        distance_km: float,
        shipment: Shipment,
        reference: Optional[Number] = None,
    ) -> Optional[PricingResult]:
        """Return baseline prices, or ``None`` when every tier came up empty.

        Args:
            weights: Locally resolved weight breakdown.
            distance_km: Road distance between origin and destination.
            shipment: Box groups, forwarded to the pricing service.
            reference: Reference vendor price for the last tier, if quoted.
        """

        result = self._from_service(weights, distance_km, shipment)
        if result is None:
            result = self._from_rate_table(weights, distance_km)
        if result is None:
            result = self._from_reference(weights, distance_km, reference)
        if result is None:
            logger.error(
                "No pricing tier produced a baseline for %s kg over %s km.",
                weights.chargeable_weight_kg,
                distance_km,
            )
        return result

    def _from_service(
        self, weights: WeightBreakdown, distance_km: float, shipment: Shipment
    ) -> Optional[PricingResult]:
        if self.price_source is None:
            return None
        try:
            answer = self.price_source(weights.chargeable_weight_kg, distance_km, shipment)
        except PriceSourceError as exc:
            logger.warning("Pricing service unavailable, using rate table: %s", exc)
            return None
        if answer.price <= 0:
            logger.warning("Pricing service returned no price, using rate table.")
            return None

        resolved = answer.weights or weights
        chargeable = resolved.chargeable_weight_kg
        legs = answer.legs or split_legs(self.index, chargeable, distance_km, answer.price)
        return PricingResult(
            economy_price=answer.price,
            expedited_price=round_to_nearest_10(answer.price * EXPEDITED_FACTOR),
            vehicle=answer.vehicle or vehicle_for_weight(self.index, chargeable, distance_km),
            weights=resolved,
            legs=tuple(legs),
            source=SOURCE_SERVICE,
        )

    def _from_rate_table(
        self, weights: WeightBreakdown, distance_km: float
    ) -> Optional[PricingResult]:
        chargeable = weights.chargeable_weight_kg
        if chargeable < self.min_serviceable_kg:
            return None

        if chargeable <= VEHICLE_CAPACITY_KG:
            total = self.index.lookup(chargeable, distance_km).price
        else:
            count = leg_count(chargeable)
            full = self.index.lookup(VEHICLE_CAPACITY_KG, distance_km).price
            remainder = chargeable - VEHICLE_CAPACITY_KG * (count - 1)
            tail = self.index.lookup(remainder, distance_km).price
            total = full * (count - 1) + tail if full > 0 and tail > 0 else 0
        if total <= 0:
            logger.info("Rate table has no price for %s kg over %s km.", chargeable, distance_km)
            return None

        return PricingResult(
            economy_price=total,
            expedited_price=round_to_nearest_10(total * EXPEDITED_FACTOR),
            vehicle=vehicle_for_weight(self.index, chargeable, distance_km),
            weights=weights,
            legs=split_legs(self.index, chargeable, distance_km, total),
            source=SOURCE_RATE_TABLE,
        )

    def _from_reference(
        self, weights: WeightBreakdown, distance_km: float, reference: Optional[Number]
    ) -> Optional[PricingResult]:
        source = SOURCE_REFERENCE
        if reference is None or reference <= 0:
            reference = self.reference_default_price
            source = SOURCE_DEFAULT
        economy = round_to_nearest_10(reference * REFERENCE_ECONOMY_FACTOR)
        if economy <= 0:
            return None
        chargeable = weights.chargeable_weight_kg
        return PricingResult(
            economy_price=economy,
            expedited_price=round_to_nearest_10(reference * REFERENCE_EXPEDITED_FACTOR),
            vehicle=vehicle_for_weight(self.index, chargeable, distance_km),
            weights=weights,
            legs=split_legs(self.index, chargeable, distance_km, economy),
            source=source,
        )


@dataclass(frozen=True)
class Route:
    origin: str
    destination: str
    distance_km: float


def baseline_quotes(result: PricingResult, route: Route) -> Tuple[Quote, Quote]:
    """Return ``(generic, carrier)`` baseline quotes for ``result``.

    The generic baseline carries the expedited price; the carrier baseline
    carries the economy price and the vehicle legs.
    """

    days = estimate_transit_days(route.distance_km)
    details = {
        **result.weights.to_dict(),
        "distance": f"{round_half_up(route.distance_km)} km",
        "originPincode": route.origin,
        "destinationPincode": route.destination,
        "pricingSource": result.source,
    }
    generic = Quote(
        company_name=GENERIC_BASELINE_NAME,
        total_price=result.expedited_price,
        estimated_days=days,
        rating=BASELINE_RATING,
        vehicle=result.vehicle,
        details={**details, "category": GENERIC_BASELINE_NAME},
    )
    carrier = Quote(
        company_name=CARRIER_BASELINE_NAME,
        total_price=result.economy_price,
        estimated_days=days,
        rating=BASELINE_RATING,
        vehicle=result.vehicle,
        legs=result.legs,
        details={**details, "category": CARRIER_BASELINE_NAME},
    )
    return generic, carrier


def placeholder_quote(route: Route, price: Number) -> Quote:
    """Return the stand-in quote used when no baseline could be priced."""

    days = estimate_transit_days(route.distance_km)
    return Quote(
        company_name=GENERIC_BASELINE_NAME,
        total_price=price,
        estimated_days=days,
        rating=BASELINE_RATING,
        message=f"Indicative price only; expect delivery in about {format_days(days)}.",
        details={
            "distance": f"{round_half_up(route.distance_km)} km",
            "originPincode": route.origin,
            "destinationPincode": route.destination,
            "pricingSource": SOURCE_DEFAULT,
            "isPlaceholder": True,
        },
    )
