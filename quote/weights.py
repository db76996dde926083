"""Chargeable weight resolution and vehicle leg decomposition."""

from __future__ import annotations

import math
from typing import Dict, Tuple

from quote.models import Shipment, ShipmentError, VehicleInfo, VehicleLeg, WeightBreakdown
from quote.rate_brackets import RateBracketIndex
from quote.utils import Number, round_half_up

# Payload of the largest vehicle class; heavier shipments need several vehicles.
VEHICLE_CAPACITY_KG = 18000

OVERSIZE_VEHICLE = VehicleInfo("Container 32 ft MXL + Additional Vehicle", "32 ft + Additional")

# Cubic centimetres per chargeable kilogram, by transport mode.
VOLUMETRIC_DIVISORS: Dict[str, int] = {
    "Road": 3500,
    "Rail": 4000,
    "Air": 5000,
    "Ship": 6000,
}
DEFAULT_MODE = "Road"


def volumetric_divisor(mode: str) -> int:
    """Return the divisor for ``mode`` (case-insensitive).

    Raises:
        ShipmentError: If ``mode`` is not a known transport mode.
    """

    for name, divisor in VOLUMETRIC_DIVISORS.items():
        if name.lower() == (mode or "").strip().lower():
            return divisor
    raise ShipmentError(
        f"Unknown transport mode {mode!r}, expected one of "
        + ", ".join(VOLUMETRIC_DIVISORS)
        + "."
    )


def shipment_weights(shipment: Shipment, mode: str = DEFAULT_MODE) -> Tuple[float, float]:
    """Return ``(actual_kg, volumetric_kg)`` totals for ``shipment``."""

    divisor = volumetric_divisor(mode)
    actual = sum(box.count * box.weight_kg for box in shipment.boxes)
    volumetric = sum(
        box.count * box.length_cm * box.width_cm * box.height_cm / divisor
        for box in shipment.boxes
    )
    return actual, volumetric


def resolve_weight(actual_kg: float, volumetric_kg: float) -> WeightBreakdown:
    """Return the weight breakdown with chargeable weight as the larger input."""

    if actual_kg < 0 or volumetric_kg < 0:
        raise ShipmentError("Weights must be non-negative.")
    return WeightBreakdown(
        actual_weight_kg=actual_kg,
        volumetric_weight_kg=volumetric_kg,
        chargeable_weight_kg=max(actual_kg, volumetric_kg),
    )


def vehicle_for_weight(
    index: RateBracketIndex, chargeable_kg: float, distance_km: float
) -> VehicleInfo:
    """Return the vehicle label for ``chargeable_kg`` when no source supplied one."""

    if chargeable_kg > VEHICLE_CAPACITY_KG:
        return OVERSIZE_VEHICLE
    rate = index.lookup(chargeable_kg, distance_km)
    return VehicleInfo(rate.vehicle_type, rate.vehicle_length_ft)


def leg_count(chargeable_kg: float) -> int:
    return max(1, math.ceil(chargeable_kg / VEHICLE_CAPACITY_KG))


def split_legs(
    index: RateBracketIndex,
    chargeable_kg: float,
    distance_km: float,
    total_price: Number,
) -> Tuple[VehicleLeg, ...]:
    """Split a shipment into vehicle legs whose prices sum to ``total_price``.

    Up to :data:`VEHICLE_CAPACITY_KG` the shipment rides one vehicle chosen by
    the rate index. Heavier shipments fill ``n - 1`` full vehicles, each priced
    at its proportional share of ``total_price`` rounded half-up, and put the
    remainder on a last vehicle chosen by the remainder weight. The last leg
    absorbs every rounding difference so the leg prices reconcile exactly.

    Args:
        index: Rate bracket index used to pick vehicle classes.
        chargeable_kg: Chargeable weight of the whole shipment.
        distance_km: Road distance, used to pick the bracket envelope.
        total_price: Authoritative price for the whole shipment.

    Returns:
        Tuple[VehicleLeg, ...]: Legs numbered from 1.
    """

    if chargeable_kg <= VEHICLE_CAPACITY_KG:
        rate = index.lookup(chargeable_kg, distance_km)
        return (
            VehicleLeg(
                sequence_number=1,
                vehicle_type=rate.vehicle_type,
                vehicle_length_ft=rate.vehicle_length_ft,
                max_capacity_kg=rate.max_capacity_kg or VEHICLE_CAPACITY_KG,
                carrying_weight_kg=chargeable_kg,
                price_units=total_price,
            ),
        )

    count = leg_count(chargeable_kg)
    full_rate = index.lookup(VEHICLE_CAPACITY_KG, distance_km)
    full_price = round_half_up(total_price * (VEHICLE_CAPACITY_KG / chargeable_kg))
    legs = [
        VehicleLeg(
            sequence_number=number,
            vehicle_type=full_rate.vehicle_type,
            vehicle_length_ft=full_rate.vehicle_length_ft,
            max_capacity_kg=VEHICLE_CAPACITY_KG,
            carrying_weight_kg=VEHICLE_CAPACITY_KG,
            price_units=full_price,
        )
        for number in range(1, count)
    ]

    remainder_kg = chargeable_kg - VEHICLE_CAPACITY_KG * (count - 1)
    remainder_rate = index.lookup(remainder_kg, distance_km)
    legs.append(
        VehicleLeg(
            sequence_number=count,
            vehicle_type=remainder_rate.vehicle_type,
            vehicle_length_ft=remainder_rate.vehicle_length_ft,
            max_capacity_kg=remainder_rate.max_capacity_kg or VEHICLE_CAPACITY_KG,
            carrying_weight_kg=remainder_kg,
            price_units=total_price - full_price * (count - 1),
        )
    )
    return tuple(legs)
