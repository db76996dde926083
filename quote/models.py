"""Value objects shared by the pricing core.

Every record is a frozen dataclass: quotes are created per compare request,
passed through aggregation and the result cache, and never mutated in place.
Overlays derive new records with :func:`dataclasses.replace`.

The ``to_dict``/``from_dict`` pairs speak the camelCase wire format used by
vendor quote sources and the compare endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from quote.utils import format_days

Number = Union[int, float]

# Quote price is published under four names that must stay identical.
PRICE_FIELDS: Tuple[str, ...] = ("total", "price", "totalCharges", "totalPrice")


class ShipmentError(ValueError):
    """Raised when a shipment or route cannot be priced as submitted."""


def as_number(value: Any) -> Optional[Number]:
    """Return ``value`` as ``int`` when integral, ``float`` otherwise.

    Returns ``None`` for blanks and values that do not parse as numbers.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return int(number) if number.is_integer() else number


TRUE_STRINGS = frozenset({"1", "true", "t", "yes", "y", "on"})


def as_flag(value: Any) -> bool:
    """Return ``value`` as a boolean; strings are true only for words like ``"true"``."""

    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return False


@dataclass(frozen=True)
class BoxSpec:
    """One group of identical boxes in a shipment."""

    count: int
    length_cm: float
    width_cm: float
    height_cm: float
    weight_kg: float

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ShipmentError("Box count must be at least 1.")
        for name in ("length_cm", "width_cm", "height_cm", "weight_kg"):
            if getattr(self, name) < 0:
                label = name.rsplit("_", 1)[0].title()
                raise ShipmentError(f"{label} must be non-negative.")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BoxSpec":
        """Build a box group from ``count/length/width/height/weight`` keys."""

        values: Dict[str, Number] = {}
        for key, attr in (
            ("count", "count"),
            ("length", "length_cm"),
            ("width", "width_cm"),
            ("height", "height_cm"),
            ("weight", "weight_kg"),
        ):
            number = as_number(data.get(key))
            if number is None:
                raise ShipmentError(f"Box {key} is required and must be a number.")
            values[attr] = number
        if not float(values["count"]).is_integer():
            raise ShipmentError("Box count must be a whole number.")
        values["count"] = int(values["count"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Number]:
        return {
            "count": self.count,
            "length": self.length_cm,
            "width": self.width_cm,
            "height": self.height_cm,
            "weight": self.weight_kg,
        }


@dataclass(frozen=True)
class Shipment:
    """Ordered box groups submitted with a compare request.

    Box order is significant: it is part of the cache key.
    """

    boxes: Tuple[BoxSpec, ...]

    def __post_init__(self) -> None:
        if not self.boxes:
            raise ShipmentError("A shipment needs at least one box.")

    @classmethod
    def from_list(cls, items: Iterable[Mapping[str, Any]]) -> "Shipment":
        return cls(tuple(BoxSpec.from_dict(item) for item in items))

    def to_list(self) -> list[Dict[str, Number]]:
        return [box.to_dict() for box in self.boxes]


@dataclass(frozen=True)
class WeightBreakdown:
    """Actual, volumetric and chargeable weight of a shipment in kilograms.

    ``chargeable_weight_kg`` is always the larger of the other two.
    """

    actual_weight_kg: float
    volumetric_weight_kg: float
    chargeable_weight_kg: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "actualWeight": self.actual_weight_kg,
            "volumetricWeight": self.volumetric_weight_kg,
            "chargeableWeight": self.chargeable_weight_kg,
        }


@dataclass(frozen=True)
class VehicleInfo:
    """Vehicle class and length; length is free text for multi-vehicle loads."""

    vehicle_type: str
    vehicle_length_ft: Union[int, float, str]


@dataclass(frozen=True)
class VehicleLeg:
    """One vehicle's share of an oversized shipment."""

    sequence_number: int
    vehicle_type: str
    vehicle_length_ft: Union[int, float]
    max_capacity_kg: float
    carrying_weight_kg: float
    price_units: Number

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequenceNumber": self.sequence_number,
            "vehicleType": self.vehicle_type,
            "vehicleLength": self.vehicle_length_ft,
            "maxCapacity": self.max_capacity_kg,
            "weight": self.carrying_weight_kg,
            "price": self.price_units,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], sequence_number: int) -> "VehicleLeg":
        return cls(
            sequence_number=int(data.get("sequenceNumber") or sequence_number),
            vehicle_type=str(data.get("vehicleType") or ""),
            vehicle_length_ft=as_number(data.get("vehicleLength")) or 0,
            max_capacity_kg=as_number(data.get("maxCapacity")) or 0,
            carrying_weight_kg=as_number(data.get("weight")) or 0,
            price_units=as_number(data.get("price")) or 0,
        )


@dataclass(frozen=True)
class ChargeBreakdown:
    """Optional per-item charges a vendor may itemise alongside the total."""

    base_freight: Optional[Number] = None
    docket_charges: Optional[Number] = None
    fuel_charges: Optional[Number] = None
    min_charges: Optional[Number] = None
    handling_charges: Optional[Number] = None
    rov_charges: Optional[Number] = None
    cod_charges: Optional[Number] = None
    to_pay_charges: Optional[Number] = None
    appointment_charges: Optional[Number] = None
    oda_charges: Optional[Number] = None
    green_tax: Optional[Number] = None
    dacc_charges: Optional[Number] = None
    hamali_charges: Optional[Number] = None
    misc_charges: Optional[Number] = None

    _WIRE_NAMES = MappingProxyType(
        {
            "base_freight": "baseFreight",
            "docket_charges": "docketCharges",
            "fuel_charges": "fuelCharges",
            "min_charges": "minCharges",
            "handling_charges": "handlingCharges",
            "rov_charges": "rovCharges",
            "cod_charges": "codCharges",
            "to_pay_charges": "toPayCharges",
            "appointment_charges": "appointmentCharges",
            "oda_charges": "odaCharges",
            "green_tax": "greenTax",
            "dacc_charges": "daccCharges",
            "hamali_charges": "hamaliCharges",
            "misc_charges": "miscCharges",
        }
    )

    @classmethod
    def wire_names(cls) -> Tuple[str, ...]:
        return tuple(cls._WIRE_NAMES.values())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional["ChargeBreakdown"]:
        """Return the populated charges in ``data`` or ``None`` if there are none."""

        values = {
            attr: as_number(data.get(wire))
            for attr, wire in cls._WIRE_NAMES.items()
        }
        if all(value is None for value in values.values()):
            return None
        return cls(**values)

    def populated(self) -> Dict[str, Number]:
        """Return ``{attribute: value}`` for every charge that is set."""

        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def scaled(self, factor: float, rounder: Callable[[float], Number]) -> "ChargeBreakdown":
        """Return a copy with every populated charge multiplied by ``factor``."""

        return replace(
            self,
            **{name: rounder(value * factor) for name, value in self.populated().items()},
        )

    def to_dict(self) -> Dict[str, Number]:
        return {self._WIRE_NAMES[name]: value for name, value in self.populated().items()}


_CONSUMED_KEYS = frozenset(
    PRICE_FIELDS
    + ChargeBreakdown.wire_names()
    + (
        "companyName",
        "estimatedTime",
        "estimatedDelivery",
        "deliveryTime",
        "isTiedUp",
        "isHidden",
        "rating",
        "vehicle",
        "vehicleType",
        "vehicleLength",
        "legs",
        "message",
    )
)


@dataclass(frozen=True)
class Quote:
    """A priced offer from one company for one compare request.

    Attributes:
        company_name: Vendor display name.
        total_price: Total charge, published under every name in
            :data:`PRICE_FIELDS`.
        estimated_days: Transit time in days, ``None`` when unknown.
        is_tied_up: ``True`` for contracted vendors.
        is_hidden: ``True`` when time and vehicle detail are withheld until
            the user unlocks the quote.
        rating: Vendor rating out of 5, ``None`` when unknown.
        vehicle: Vehicle class assigned to the load, if any.
        legs: Per-vehicle split for oversized loads.
        charges: Itemised charges when the vendor provides them.
        message: Free-text vendor message, e.g. ``"service not available"``.
        details: Opaque vendor fields carried through untouched.
    """

    company_name: str
    total_price: Number
    estimated_days: Optional[Number] = None
    is_tied_up: bool = False
    is_hidden: bool = False
    rating: Optional[float] = None
    vehicle: Optional[VehicleInfo] = None
    legs: Optional[Tuple[VehicleLeg, ...]] = None
    charges: Optional[ChargeBreakdown] = None
    message: str = ""
    details: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def effective_rating(self) -> float:
        """Rating used for filtering and ranking; hidden quotes count as 0."""

        if self.is_hidden or self.rating is None:
            return 0.0
        return float(self.rating)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Quote":
        """Parse a vendor quote in wire format.

        The first populated price field wins in the order ``totalCharges``,
        ``total``, ``totalPrice``, ``price``.
        """

        price: Optional[Number] = None
        for key in ("totalCharges", "total", "totalPrice", "price"):
            price = as_number(data.get(key))
            if price is not None:
                break

        transporter = data.get("transporterData")
        rating = as_number(data.get("rating"))
        if rating is None and isinstance(transporter, Mapping):
            rating = as_number(transporter.get("rating"))

        vehicle = None
        vehicle_type = data.get("vehicle") or data.get("vehicleType")
        if vehicle_type:
            length = data.get("vehicleLength")
            vehicle = VehicleInfo(
                str(vehicle_type),
                as_number(length) if as_number(length) is not None else (length or ""),
            )

        legs = None
        raw_legs = data.get("legs")
        if isinstance(raw_legs, list) and raw_legs:
            legs = tuple(
                VehicleLeg.from_dict(item, index)
                for index, item in enumerate(raw_legs, start=1)
                if isinstance(item, Mapping)
            )

        return cls(
            company_name=str(data.get("companyName") or ""),
            total_price=price if price is not None else 0,
            estimated_days=as_number(data.get("estimatedTime")),
            is_tied_up=as_flag(data.get("isTiedUp")),
            is_hidden=as_flag(data.get("isHidden")),
            rating=float(rating) if rating is not None else None,
            vehicle=vehicle,
            legs=legs,
            charges=ChargeBreakdown.from_dict(data),
            message=str(data.get("message") or ""),
            details={k: v for k, v in data.items() if k not in _CONSUMED_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.details)
        payload["companyName"] = self.company_name
        for key in PRICE_FIELDS:
            payload[key] = self.total_price
        payload["isTiedUp"] = self.is_tied_up
        payload["isHidden"] = self.is_hidden
        payload["message"] = self.message
        if self.estimated_days is not None:
            payload["estimatedTime"] = self.estimated_days
            label = format_days(int(self.estimated_days))
            payload["estimatedDelivery"] = label
            payload["deliveryTime"] = label
        if self.rating is not None:
            transporter = dict(payload.get("transporterData") or {})
            transporter["rating"] = self.rating
            payload["transporterData"] = transporter
        if self.vehicle is not None:
            payload["vehicle"] = self.vehicle.vehicle_type
            payload["vehicleLength"] = self.vehicle.vehicle_length_ft
        if self.legs:
            payload["legs"] = [leg.to_dict() for leg in self.legs]
        if self.charges is not None:
            payload.update(self.charges.to_dict())
        return payload
