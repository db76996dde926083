"""Tests for weight resolution and vehicle leg splitting."""

import pytest

from quote.models import BoxSpec, Shipment, ShipmentError
from quote.weights import (
    OVERSIZE_VEHICLE,
    VEHICLE_CAPACITY_KG,
    resolve_weight,
    shipment_weights,
    split_legs,
    vehicle_for_weight,
)


def test_resolve_weight_takes_larger_value():
    assert resolve_weight(900, 1200).chargeable_weight_kg == 1200
    assert resolve_weight(1500, 1200).chargeable_weight_kg == 1500
    assert resolve_weight(0, 0).chargeable_weight_kg == 0


def test_resolve_weight_rejects_negative():
    with pytest.raises(ShipmentError):
        resolve_weight(-1, 10)


def test_shipment_weights_multiplies_by_count():
    shipment = Shipment((BoxSpec(2, 100, 100, 100, 50), BoxSpec(1, 35, 10, 10, 5)))
    actual, volumetric = shipment_weights(shipment, "Road")
    assert actual == 105
    assert volumetric == pytest.approx(2 * 1_000_000 / 3500 + 3500 / 3500)


def test_shipment_weights_divisor_depends_on_mode():
    shipment = Shipment((BoxSpec(1, 100, 100, 100, 1),))
    assert shipment_weights(shipment, "air")[1] == pytest.approx(200)
    assert shipment_weights(shipment, "Ship")[1] == pytest.approx(1_000_000 / 6000)


def test_shipment_weights_rejects_unknown_mode():
    shipment = Shipment((BoxSpec(1, 1, 1, 1, 1),))
    with pytest.raises(ShipmentError, match="transport mode"):
        shipment_weights(shipment, "Teleport")


def test_single_leg_takes_full_price(rate_index):
    legs = split_legs(rate_index, 900, 100, 4300)
    assert len(legs) == 1
    leg = legs[0]
    assert leg.sequence_number == 1
    assert leg.vehicle_type == "Tata Ace"
    assert leg.carrying_weight_kg == 900
    assert leg.price_units == 4300


def test_oversize_shipment_splits_into_container_and_remainder(rate_index):
    total = 72100 + 35600
    legs = split_legs(rate_index, 25000, 800, total)

    assert [leg.carrying_weight_kg for leg in legs] == [18000, 7000]
    assert [leg.vehicle_type for leg in legs] == ["Container 32 ft MXL", "Eicher 19 ft"]
    assert [leg.sequence_number for leg in legs] == [1, 2]
    assert legs[0].price_units == 77544
    assert legs[1].price_units == 30156
    assert sum(leg.price_units for leg in legs) == total


@pytest.mark.parametrize(
    "weight,total",
    [(18001, 99999), (36000, 150000), (40000, 101), (55555, 123457), (90001, 7)],
)
def test_leg_prices_and_weights_reconcile(rate_index, weight, total):
    legs = split_legs(rate_index, weight, 500, total)
    assert len(legs) == -(-weight // VEHICLE_CAPACITY_KG)
    assert sum(leg.carrying_weight_kg for leg in legs) == weight
    assert sum(leg.price_units for leg in legs) == total
    assert all(leg.carrying_weight_kg == VEHICLE_CAPACITY_KG for leg in legs[:-1])


def test_vehicle_for_weight_labels_oversize_loads(rate_index):
    assert vehicle_for_weight(rate_index, 20000, 100) == OVERSIZE_VEHICLE
    small = vehicle_for_weight(rate_index, 1100, 100)
    assert small.vehicle_type == "Pickup"
    assert small.vehicle_length_ft == 8
