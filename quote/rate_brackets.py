"""Static vehicle rate brackets and the weight/distance lookup over them.

The bracket table ships as ``quote/data/rate_brackets.json``. Brackets keep
their file order: weight ranges may overlap across distance envelopes and the
first match in table order wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple, Union

Number = Union[int, float]

DEFAULT_DATA_PATH = Path(__file__).resolve().parent / "data" / "rate_brackets.json"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingRow:
    """Price for one distance sub-range of a bracket."""

    min_km: float
    max_km: float
    price: Number

    def contains(self, distance_km: float) -> bool:
        return self.min_km <= distance_km <= self.max_km


@dataclass(frozen=True)
class VehicleBracket:
    """Vehicle class with its weight capacity and distance-tiered prices."""

    vehicle_type: str
    weight_min_kg: float
    weight_max_kg: float
    distance_min_km: float
    distance_max_km: float
    vehicle_length_ft: Number
    pricing_rows: Tuple[PricingRow, ...]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VehicleBracket":
        weight_min, weight_max = data["weightRange"]
        distance_min, distance_max = data["distanceRange"]
        return cls(
            vehicle_type=str(data["vehicleType"]),
            weight_min_kg=weight_min,
            weight_max_kg=weight_max,
            distance_min_km=distance_min,
            distance_max_km=distance_max,
            vehicle_length_ft=data["vehicleLengthFt"],
            pricing_rows=tuple(
                PricingRow(low, high, price) for low, high, price in data["pricing"]
            ),
        )

    def covers_weight(self, weight_kg: float) -> bool:
        return self.weight_min_kg <= weight_kg <= self.weight_max_kg

    def covers_distance(self, distance_km: float) -> bool:
        return self.distance_min_km <= distance_km <= self.distance_max_km

    def price_for(self, distance_km: float) -> Number:
        """Return the row price for ``distance_km``.

        Distances that fall between two rows take the next row up. Distances
        beyond every row are clamped to the row with the largest maximum.
        A bracket without rows prices at ``0``.
        """

        if not self.pricing_rows:
            return 0
        for row in self.pricing_rows:
            if row.contains(distance_km):
                return row.price
        for row in self.pricing_rows:
            if row.max_km >= distance_km:
                return row.price
        farthest = max(self.pricing_rows, key=lambda row: row.max_km)
        return farthest.price


@dataclass(frozen=True)
class RateLookup:
    """Outcome of :meth:`RateBracketIndex.lookup`.

    ``price`` is ``0`` when the index holds no usable data; callers must read
    that as "no data" rather than a free quote.
    """

    price: Number
    vehicle_type: str
    vehicle_length_ft: Number
    max_capacity_kg: float

    @property
    def has_price(self) -> bool:
        return self.price > 0


NO_RATE = RateLookup(price=0, vehicle_type="", vehicle_length_ft=0, max_capacity_kg=0)


class RateBracketIndex:
    """Ordered, immutable collection of :class:`VehicleBracket` records."""

    def __init__(self, brackets: Iterable[VehicleBracket]):
        self._brackets: Tuple[VehicleBracket, ...] = tuple(brackets)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RateBracketIndex":
        return cls(VehicleBracket.from_dict(item) for item in data.get("brackets", []))

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "RateBracketIndex":
        with open(path, encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))

    def __iter__(self) -> Iterator[VehicleBracket]:
        return iter(self._brackets)

    def __len__(self) -> int:
        return len(self._brackets)

    def select_bracket(
        self, weight_kg: float, distance_km: float
    ) -> Optional[VehicleBracket]:
        """Return the bracket used to price ``weight_kg`` over ``distance_km``.

        Preference order:

        1. first bracket covering both the weight and the distance envelope;
        2. first bracket covering the weight alone;
        3. the bracket with the lightest minimum weight.
        """

        if not self._brackets:
            return None
        for bracket in self._brackets:
            if bracket.covers_weight(weight_kg) and bracket.covers_distance(distance_km):
                return bracket
        for bracket in self._brackets:
            if bracket.covers_weight(weight_kg):
                return bracket
        return min(self._brackets, key=lambda bracket: bracket.weight_min_kg)

    def lookup(self, weight_kg: float, distance_km: float) -> RateLookup:
        """Return price and vehicle for ``weight_kg`` travelling ``distance_km``."""

        bracket = self.select_bracket(weight_kg, distance_km)
        if bracket is None:
            logger.warning("Rate bracket index is empty; no local price available.")
            return NO_RATE
        if not bracket.covers_weight(weight_kg):
            logger.info(
                "No bracket covers %s kg; defaulting to %s.",
                weight_kg,
                bracket.vehicle_type,
            )
        return RateLookup(
            price=bracket.price_for(distance_km),
            vehicle_type=bracket.vehicle_type,
            vehicle_length_ft=bracket.vehicle_length_ft,
            max_capacity_kg=bracket.weight_max_kg,
        )


@lru_cache(maxsize=8)
def load_rate_index(path: Optional[str] = None) -> RateBracketIndex:
    """Load and cache the bracket table at ``path``.

    Args:
        path: JSON file to read. ``None`` selects the bundled table.

    Returns:
        RateBracketIndex: Index shared by every caller for the process lifetime.
    """

    source = Path(path) if path else DEFAULT_DATA_PATH
    index = RateBracketIndex.from_json(source)
    logger.info("Loaded %d rate brackets from %s", len(index), source)
    return index
