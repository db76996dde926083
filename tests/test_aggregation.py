"""Tests for quote merging, filtering and ranking."""

import pytest

from quote.aggregation import (
    AggregationPolicy,
    MergedQuotes,
    QuoteFilters,
    aggregate,
    apply_premium_override,
    is_serviceable,
    merge_quotes,
    parse_pincode_ranges,
    present_quotes,
    rank_quotes,
)
from quote.models import ChargeBreakdown, Quote, ShipmentError

POLICY = AggregationPolicy(serviceable_ranges=((110001, 110099),))


def _baselines():
    return (
        Quote("LOCAL FTL", 5160, estimated_days=1, rating=4.6),
        Quote("Wheelseye FTL", 4300, estimated_days=1, rating=4.6),
    )


def test_premium_company_single_survivor_and_markup():
    contracted = [
        Quote("DP World", 100),
        Quote("DP World", 150),
        Quote("dp world", 80),
        Quote("Safexpress", 200),
        Quote("Rivigo", 300),
    ]
    merged = merge_quotes(contracted, [], (), "110001", POLICY)

    assert sorted(q.total_price for q in merged.visible) == [80, 1000, 1500]
    survivor = next(q for q in merged.visible if q.company_name.lower() == "dp world")
    assert survivor.total_price == 80
    assert survivor.is_tied_up is True
    assert merged.hidden == ()


def test_premium_survivor_from_open_market_is_retagged():
    merged = merge_quotes(
        [Quote("Safexpress", 200)],
        [Quote("DP World", 700), Quote("DP World", 650), Quote("Gati", 400)],
        (),
        "110001",
        POLICY,
    )
    assert [(q.company_name, q.total_price) for q in merged.visible] == [
        ("Safexpress", 1000),
        ("DP World", 650),
    ]
    assert [q.company_name for q in merged.hidden] == ["Gati"]


def test_apply_premium_override_without_premium_quotes():
    quotes = [Quote("Gati", 400)]
    kept, survivor = apply_premium_override(quotes, "DP World")
    assert kept == quotes
    assert survivor is None


def test_markup_scales_populated_charges():
    quote = Quote(
        "Safexpress",
        1234,
        charges=ChargeBreakdown(base_freight=1001, fuel_charges=233),
    )
    merged = merge_quotes([quote], [], (), "110001", POLICY)
    marked = merged.visible[0]
    assert marked.total_price == 6170
    assert marked.charges.base_freight == 5010
    assert marked.charges.fuel_charges == 1170
    assert marked.charges.docket_charges is None


def test_unavailable_quotes_are_dropped():
    merged = merge_quotes(
        [Quote("Safexpress", 0, message="Service not available")],
        [Quote("Gati", 0, message="service not available"), Quote("Rivigo", 900)],
        (),
        "110001",
        POLICY,
    )
    assert merged.visible == ()
    assert [q.company_name for q in merged.hidden] == ["Rivigo"]


def test_carrier_baseline_requires_serviceable_origin():
    inside = merge_quotes([], [], _baselines(), "110005", POLICY)
    outside = merge_quotes([], [], _baselines(), "560001", POLICY)

    assert [q.company_name for q in inside.hidden] == ["LOCAL FTL", "Wheelseye FTL"]
    assert [q.company_name for q in outside.hidden] == ["LOCAL FTL"]


def test_failed_pricing_injects_placeholder():
    placeholder = Quote("LOCAL FTL", 32000, details={"isPlaceholder": True})
    merged = merge_quotes([], [], None, "110001", POLICY, placeholder=placeholder)
    assert len(merged.hidden) == 1
    assert merged.hidden[0].details["isPlaceholder"] is True


def test_failed_pricing_without_placeholder_raises():
    with pytest.raises(ShipmentError):
        merge_quotes([], [], None, "110001", POLICY)


def test_filters_exempt_hidden_quotes_from_time_and_rating():
    merged = MergedQuotes(
        visible=(),
        hidden=(
            Quote("Slow", 500, estimated_days=9, rating=4.0),
            Quote("Low rated", 500, estimated_days=2, rating=2.0),
            Quote("Locked", 500, estimated_days=9, is_hidden=True),
            Quote("Locked pricey", 5000, is_hidden=True),
            Quote("Good", 600, estimated_days=2, rating=4.5),
        ),
    )
    view = present_quotes(merged, QuoteFilters(max_price=1000, max_time=5, min_rating=3))
    assert [q.company_name for q in view.hidden] == ["Locked", "Good"]


def test_rank_by_time_puts_hidden_quotes_last():
    visible = Quote("Visible", 900, estimated_days=7)
    hidden = Quote("Hidden", 100, estimated_days=1, is_hidden=True)
    unknown = Quote("Unknown", 200)
    ranked = rank_quotes([hidden, unknown, visible], "time")
    assert ranked == [visible, unknown, hidden]


def test_rank_by_price_mixes_hidden_quotes():
    quotes = [Quote("B", 300), Quote("A", 100, is_hidden=True), Quote("C", 200)]
    assert [q.company_name for q in rank_quotes(quotes, "price")] == ["A", "C", "B"]


def test_rank_by_rating_descends_with_hidden_last():
    quotes = [
        Quote("Hidden", 1, rating=5.0, is_hidden=True),
        Quote("Mid", 1, rating=3.5),
        Quote("Top", 1, rating=4.8),
    ]
    assert [q.company_name for q in rank_quotes(quotes, "rating")] == [
        "Top",
        "Mid",
        "Hidden",
    ]


def test_rank_rejects_unknown_order():
    with pytest.raises(ShipmentError):
        rank_quotes([], "distance")


def test_highlights_use_unfiltered_pool():
    view = aggregate(
        [Quote("Safexpress", 100, estimated_days=4)],
        [
            Quote("Locked", 150, estimated_days=1, is_hidden=True),
            Quote("Gati", 300, estimated_days=2, rating=4.0),
        ],
        (),
        "110001",
        POLICY,
        filters=QuoteFilters(max_price=400),
    )
    assert view.best_value.company_name == "Locked"
    assert view.fastest.company_name == "Gati"
    assert [q.company_name for q in view.visible] == []


def test_quote_filters_from_mapping():
    filters = QuoteFilters.from_mapping({"maxPrice": "5000", "minRating": "", "maxTime": 4})
    assert filters == QuoteFilters(max_price=5000, max_time=4, min_rating=0)
    with pytest.raises(ShipmentError, match="maxPrice"):
        QuoteFilters.from_mapping({"maxPrice": "cheap"})


def test_parse_pincode_ranges_and_membership():
    ranges = parse_pincode_ranges("110001-110099, 560001 ,400104-400001")
    assert ranges == ((110001, 110099), (560001, 560001), (400001, 400104))
    assert is_serviceable("110050", ranges) is True
    assert is_serviceable(400050, ranges) is True
    assert is_serviceable("560002", ranges) is False
    assert is_serviceable("bad", ranges) is False
    with pytest.raises(ValueError):
        parse_pincode_ranges("110001-abc")


def test_max_time_drops_visible_quotes_without_estimate():
    merged = MergedQuotes(
        visible=(
            Quote("Unknown", 500, is_tied_up=True),
            Quote("Timed", 600, estimated_days=2, is_tied_up=True),
        ),
        hidden=(Quote("Locked", 400, is_hidden=True),),
    )
    view = present_quotes(merged, QuoteFilters(max_time=5))
    assert [q.company_name for q in view.visible] == ["Timed"]
    assert [q.company_name for q in view.hidden] == ["Locked"]
