"""Tests for the authoritative pricing client."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from quote.models import BoxSpec, Shipment, VehicleInfo, WeightBreakdown
from services import pricing_service
from services.pricing_service import PricingServiceError, parse_pricing_response

SHIPMENT = Shipment((BoxSpec(2, 100, 80, 60, 450),))


def test_parse_response_with_vehicle_rows() -> None:
    result = parse_pricing_response(
        {
            "price": 107700,
            "vehicle": "Container 32 ft MXL + Additional Vehicle",
            "vehicleLength": "32 ft + Additional",
            "weightBreakdown": {"actualWeight": 25000, "volumetricWeight": 1200},
            "vehiclePricing": [
                {
                    "vehicleType": "Container 32 ft MXL",
                    "vehicleLength": 32,
                    "maxWeight": 18000,
                    "weight": 18000,
                    "wheelseyePrice": 72100,
                },
                {
                    "vehicleType": "Eicher 19 ft",
                    "vehicleLength": 19,
                    "maxWeight": 7000,
                    "weight": 7000,
                    "wheelseyePrice": 35600,
                },
            ],
        }
    )

    assert result.price == 107700
    assert result.vehicle == VehicleInfo(
        "Container 32 ft MXL + Additional Vehicle", "32 ft + Additional"
    )
    assert result.weights == WeightBreakdown(25000, 1200, 25000)
    assert [leg.sequence_number for leg in result.legs] == [1, 2]
    assert [leg.vehicle_type for leg in result.legs] == [
        "Container 32 ft MXL",
        "Eicher 19 ft",
    ]
    assert [leg.price_units for leg in result.legs] == [72100, 35600]
    assert result.legs[1].max_capacity_kg == 7000


def test_parse_response_minimal() -> None:
    result = parse_pricing_response({"price": "4,300"})
    assert result.price == 4300
    assert result.weights is None
    assert result.vehicle is None
    assert result.legs is None


@pytest.mark.parametrize("payload", [{"price": 0}, {"total": 900}, [], "4300"])
def test_parse_response_without_price_raises(payload) -> None:
    with pytest.raises(PricingServiceError):
        parse_pricing_response(payload)


def test_fetch_posts_shipment_with_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(pricing_service, "_get_service_url", lambda: "http://pricing")
    monkeypatch.setattr(pricing_service, "_get_timeout", lambda: 3.0)
    mock_resp = Mock()
    mock_resp.json.return_value = {"price": 9800}
    mock_session = Mock()
    mock_session.post.return_value = mock_resp
    monkeypatch.setattr(pricing_service, "_session", lambda: mock_session)

    result = pricing_service.fetch_service_price(900, 120.5, SHIPMENT)

    assert result.price == 9800
    mock_session.post.assert_called_once_with(
        "http://pricing",
        json={
            "chargeableWeight": 900,
            "distanceKm": 120.5,
            "shipment_details": SHIPMENT.to_list(),
        },
        timeout=3.0,
    )
    mock_resp.raise_for_status.assert_called_once_with()


def test_fetch_wraps_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(pricing_service, "_get_service_url", lambda: "http://pricing")
    mock_session = Mock()
    mock_session.post.side_effect = requests.ConnectionError("refused")
    monkeypatch.setattr(pricing_service, "_session", lambda: mock_session)

    with pytest.raises(PricingServiceError, match="refused"):
        pricing_service.fetch_service_price(900, 100, SHIPMENT)


def test_fetch_wraps_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(pricing_service, "_get_service_url", lambda: "http://pricing")
    mock_resp = Mock()
    mock_resp.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    mock_session = Mock()
    mock_session.post.return_value = mock_resp
    monkeypatch.setattr(pricing_service, "_session", lambda: mock_session)

    with pytest.raises(PricingServiceError, match="503"):
        pricing_service.fetch_service_price(900, 100, SHIPMENT)


def test_fetch_requires_configured_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PRICING_SERVICE_URL", raising=False)
    with pytest.raises(PricingServiceError, match="PRICING_SERVICE_URL"):
        pricing_service.fetch_service_price(900, 100, SHIPMENT)
