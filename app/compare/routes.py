"""Routes registered on the compare blueprint.

Routes:
    ``/``: ``POST`` a shipment and route; prices the baselines, merges them
    with the vendor quotes in the body and caches the unfiltered result.
    ``/last``: Re-present the most recent comparison of this session.
    ``/<key>``: Re-present a cached comparison by key.
    ``/form``: Load (``GET``) or merge into (``POST``) the saved form fields.

Filters (``maxPrice``, ``maxTime``, ``minRating``) and ``sortBy`` are applied
whenever a result is presented, never before it is cached.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from flask import Response, current_app, jsonify, request, session

from . import compare_bp
from app import limiter
from quote.aggregation import (
    SORT_OPTIONS,
    SORT_PRICE,
    AggregationPolicy,
    MergedQuotes,
    QuoteFilters,
    parse_pincode_ranges,
    present_quotes,
)
from quote.compare import CompareRequest, run_comparison
from quote.distance import get_distance_km
from quote.models import Quote, ShipmentError
from quote.pricing import PricingChain
from quote.rate_brackets import load_rate_index
from services.compare_cache import CacheEntry, CompareCache, SessionStore, make_key
from services.pricing_service import fetch_service_price

logger = logging.getLogger(__name__)


def _compare_rate_limit_value() -> str:
    """Return the rate limit string applied to :func:`compare` requests.

    Reads :data:`flask.current_app.config['COMPARE_RATE_LIMIT']` and defaults
    to ``"30 per minute"`` when the key is absent or empty.
    """

    value = current_app.config.get("COMPARE_RATE_LIMIT", "30 per minute")
    return str(value or "30 per minute")


def get_compare_cache() -> CompareCache:
    """Return the cache facade for the current request.

    The fast tier is the worker-wide store created by :func:`app.create_app`;
    the durable tier is the caller's Flask session.
    """

    return CompareCache(
        fast=current_app.extensions["compare_cache_store"],
        durable=SessionStore(session),
        ttl_seconds=current_app.config.get("COMPARE_CACHE_TTL_SECONDS", 1800),
    )


def _build_chain() -> PricingChain:
    config = current_app.config
    return PricingChain(
        load_rate_index(config.get("RATE_BRACKETS_PATH")),
        fetch_service_price,
        min_serviceable_kg=config.get("MIN_SERVICEABLE_WEIGHT_KG", 500),
        reference_default_price=config.get("REFERENCE_DEFAULT_PRICE", 32000),
    )


def _policy() -> AggregationPolicy:
    config = current_app.config
    return AggregationPolicy(
        premium_company=config.get("PREMIUM_COMPANY_NAME", "DP World"),
        tied_up_markup=config.get("TIED_UP_MARKUP", 5.0),
        serviceable_ranges=parse_pincode_ranges(
            config.get("SERVICEABLE_PINCODE_RANGES", "")
        ),
    )


def _parse_quotes(data: Mapping[str, Any], field: str) -> List[Quote]:
    """Return the vendor quotes listed under ``field``.

    Raises:
        ShipmentError: If the field is not a list of objects.
    """

    raw = data.get(field) or []
    if not isinstance(raw, list) or not all(isinstance(item, Mapping) for item in raw):
        raise ShipmentError(f"{field} must be a list of quote objects.")
    return [Quote.from_dict(item) for item in raw]


def _error(messages: str, status: int) -> Tuple[Response, int]:
    return jsonify({"errors": messages.split("; ")}), status


def _presentation_options(options: Mapping[str, Any]) -> Tuple[QuoteFilters, str]:
    """Return validated filters and sort order.

    Raises:
        ShipmentError: If a filter is not numeric or ``sortBy`` is unknown.
    """

    filters = QuoteFilters.from_mapping(options)
    sort_by = str(options.get("sortBy") or SORT_PRICE)
    if sort_by not in SORT_OPTIONS:
        raise ShipmentError(f"sortBy must be one of {', '.join(SORT_OPTIONS)}.")
    return filters, sort_by


def _present(
    entry: CacheEntry, filters: QuoteFilters, sort_by: str, cached: bool
) -> Dict[str, Any]:
    """Filter, rank and serialise ``entry``."""

    view = present_quotes(MergedQuotes(entry.visible, entry.hidden), filters, sort_by)
    return {
        "key": entry.key,
        "params": entry.params,
        "createdAt": entry.created_at_ms,
        "cached": cached,
        "sortBy": sort_by,
        "tiedUpResult": [q.to_dict() for q in view.visible],
        "otherResult": [q.to_dict() for q in view.hidden],
        "bestValue": view.best_value.to_dict() if view.best_value else None,
        "fastest": view.fastest.to_dict() if view.fastest else None,
        **dict(entry.extras),
    }


@compare_bp.route("/", methods=["POST"])
@limiter.limit(_compare_rate_limit_value, methods=["POST"])
def compare():
    """Compute, cache and present a comparison for the posted shipment.

    Inputs (JSON body):
        fromPincode, toPincode: Six-digit PIN codes.
        modeoftransport: ``Road`` (default), ``Rail``, ``Air`` or ``Ship``.
        shipment: List of ``{count, length, width, height, weight}`` groups.
        contractedQuotes, openMarketQuotes: Vendor quotes to merge.
        maxPrice, maxTime, minRating, sortBy: Presentation options.

    Returns:
        JSON with ``tiedUpResult`` and ``otherResult`` lists, or ``400`` with
        an ``errors`` list for invalid input.
    """

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Request body must be a JSON object.", 400)
    try:
        compare_request = CompareRequest.from_dict(data)
        contracted = _parse_quotes(data, "contractedQuotes")
        open_market = _parse_quotes(data, "openMarketQuotes")
        filters, sort_by = _presentation_options(data)
    except ShipmentError as exc:
        return _error(str(exc), 400)

    params = compare_request.to_params()
    key = make_key(
        {
            **params,
            "contractedQuotes": [q.to_dict() for q in contracted],
            "openMarketQuotes": [q.to_dict() for q in open_market],
        }
    )
    cache = get_compare_cache()
    form = cache.save_form_snapshot(params)

    entry: Optional[CacheEntry] = cache.read_by_key(key)
    cached = entry is not None
    if entry is None:
        config = current_app.config
        comparison = run_comparison(
            compare_request,
            chain=_build_chain(),
            distance_lookup=get_distance_km,
            contracted=contracted,
            open_market=open_market,
            policy=_policy(),
            reference_vendor=config.get("REFERENCE_VENDOR_NAME", "Ekart"),
        )
        entry = CacheEntry(
            key=key,
            params=params,
            visible=comparison.merged.visible,
            hidden=comparison.merged.hidden,
            created_at_ms=cache.now_ms(),
            form_snapshot=form,
            extras={
                "distanceKm": comparison.distance_km,
                **comparison.weights.to_dict(),
                "pricingSource": comparison.pricing.source if comparison.pricing else None,
                "warning": comparison.warning,
            },
        )
        logger.info(
            "Compared %s -> %s: %d tied-up, %d other quotes.",
            compare_request.origin,
            compare_request.destination,
            len(entry.visible),
            len(entry.hidden),
        )
    else:
        logger.debug("Serving cached comparison %s.", key)

    # A hit keeps its created_at_ms; the write only moves the last key and
    # copies the entry into this session's durable tier.
    cache.write(key, entry)
    return jsonify(_present(entry, filters, sort_by, cached))


def _present_cached(entry: Optional[CacheEntry]):
    if entry is None:
        return _error("No comparison found; it may have expired.", 404)
    try:
        filters, sort_by = _presentation_options(request.args)
    except ShipmentError as exc:
        return _error(str(exc), 400)
    return jsonify(_present(entry, filters, sort_by, cached=True))


@compare_bp.route("/last", methods=["GET"])
def last_comparison():
    """Present the session's most recent comparison with query-string filters."""

    return _present_cached(get_compare_cache().read_last())


@compare_bp.route("/form", methods=["GET", "POST"])
def form_snapshot():
    """Return the saved form fields, merging a posted JSON object first."""

    cache = get_compare_cache()
    if request.method == "POST":
        patch = request.get_json(silent=True)
        if not isinstance(patch, dict):
            return _error("Request body must be a JSON object.", 400)
        return jsonify({"form": cache.save_form_snapshot(patch)})
    return jsonify({"form": cache.load_form_snapshot() or {}})


@compare_bp.route("/<key>", methods=["GET"])
def comparison_by_key(key: str):
    """Present a cached comparison by its key."""

    return _present_cached(get_compare_cache().read_by_key(key))
