"""Merge vendor and baseline quotes into ranked comparison lists.

Merging (:func:`merge_quotes`) applies the business overlays and is done once
per compare request; the result is cached. Presentation
(:func:`present_quotes`) filters, ranks and highlights the cached lists on
every read so the caller can change filters without recomputing prices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from quote.models import Quote, ShipmentError
from quote.utils import round_to_nearest_10, sanitize_pincode

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "service not available"

DEFAULT_SERVICEABLE_RANGES: Tuple[Tuple[int, int], ...] = (
    (110001, 110099),
    (122001, 122018),
    (201301, 201318),
    (400001, 400104),
    (411001, 411062),
    (560001, 560300),
    (600001, 600130),
)

SORT_PRICE = "price"
SORT_TIME = "time"
SORT_RATING = "rating"
SORT_OPTIONS = (SORT_PRICE, SORT_TIME, SORT_RATING)


def parse_pincode_ranges(raw: str) -> Tuple[Tuple[int, int], ...]:
    """Parse ``"110001-110099,400001-400104"`` into inclusive integer ranges.

    A bare code such as ``"560001"`` is a range of one.

    Raises:
        ValueError: If any entry is not ``low-high`` or a single number.
    """

    ranges: List[Tuple[int, int]] = []
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        low, _, high = chunk.partition("-")
        start = int(low.strip())
        end = int(high.strip()) if high.strip() else start
        if end < start:
            start, end = end, start
        ranges.append((start, end))
    return tuple(ranges)


def is_serviceable(pincode: Any, ranges: Iterable[Tuple[int, int]]) -> bool:
    """Return ``True`` when ``pincode`` falls inside any of ``ranges``."""

    code = sanitize_pincode(pincode)
    if code is None:
        return False
    value = int(code)
    return any(low <= value <= high for low, high in ranges)


@dataclass(frozen=True)
class AggregationPolicy:
    """Business overlays applied while merging quotes."""

    premium_company: str = "DP World"
    tied_up_markup: float = 5.0
    serviceable_ranges: Tuple[Tuple[int, int], ...] = DEFAULT_SERVICEABLE_RANGES


@dataclass(frozen=True)
class MergedQuotes:
    """Unfiltered comparison lists.

    ``visible`` holds tied-up quotes shown with full detail; ``hidden`` holds
    the open-market pool, some of whose entries withhold time and vehicle
    detail until unlocked (``Quote.is_hidden``).
    """

    visible: Tuple[Quote, ...]
    hidden: Tuple[Quote, ...]

    @property
    def all_quotes(self) -> Tuple[Quote, ...]:
        return self.visible + self.hidden


def drop_unavailable(quotes: Iterable[Quote]) -> List[Quote]:
    return [q for q in quotes if q.message.strip().lower() != UNAVAILABLE_MESSAGE]


def tag_provenance(quotes: Iterable[Quote], tied_up: bool) -> List[Quote]:
    return [replace(q, is_tied_up=tied_up) for q in quotes]


def apply_premium_override(
    quotes: Sequence[Quote], company: str
) -> Tuple[List[Quote], Optional[Quote]]:
    """Keep only the cheapest quote from ``company`` and mark it tied-up.

    Returns:
        Tuple[List[Quote], Optional[Quote]]: Remaining quotes in input order
        and the survivor, if ``company`` quoted at all.
    """

    wanted = company.strip().lower()
    premium = [q for q in quotes if q.company_name.strip().lower() == wanted]
    if not premium:
        return list(quotes), None
    cheapest = min(premium, key=lambda q: q.total_price)
    survivor = replace(cheapest, is_tied_up=True)
    kept: List[Quote] = []
    for quote in quotes:
        if quote is cheapest:
            kept.append(survivor)
        elif quote.company_name.strip().lower() != wanted:
            kept.append(quote)
    if len(premium) > 1:
        logger.debug("Discarded %d extra %s quotes.", len(premium) - 1, company)
    return kept, survivor


def apply_markup(
    quotes: Iterable[Quote], factor: float, exempt: Optional[Quote] = None
) -> List[Quote]:
    """Multiply tied-up prices and populated charges by ``factor``.

    Each marked-up amount is rounded to the nearest 10. ``exempt`` is left
    untouched.
    """

    marked: List[Quote] = []
    for quote in quotes:
        if not quote.is_tied_up or quote is exempt:
            marked.append(quote)
            continue
        charges = quote.charges.scaled(factor, round_to_nearest_10) if quote.charges else None
        marked.append(
            replace(
                quote,
                total_price=round_to_nearest_10(quote.total_price * factor),
                charges=charges,
            )
        )
    return marked


def merge_quotes(
    contracted: Iterable[Quote],
    open_market: Iterable[Quote],
    baselines: Optional[Sequence[Quote]],
    origin_pincode: Any,
    policy: AggregationPolicy = AggregationPolicy(),
    placeholder: Optional[Quote] = None,
) -> MergedQuotes:
    """Apply the overlays and partition quotes into comparison lists.

    Args:
        contracted: Quotes from tied-up vendors.
        open_market: Quotes from open-market vendors.
        baselines: ``(generic, carrier)`` baseline quotes. An empty sequence
            omits them; ``None`` means pricing failed and ``placeholder`` is
            added instead.
        origin_pincode: Origin PIN code, decides the carrier baseline.
        policy: Overlay settings.
        placeholder: Quote added when ``baselines`` is ``None``.

    Raises:
        ShipmentError: If ``baselines`` is ``None`` and no placeholder is given.
    """

    pool = tag_provenance(drop_unavailable(contracted), True) + tag_provenance(
        drop_unavailable(open_market), False
    )
    pool, survivor = apply_premium_override(pool, policy.premium_company)
    pool = apply_markup(pool, policy.tied_up_markup, exempt=survivor)

    if baselines is None:
        if placeholder is None:
            raise ShipmentError("No baseline quote could be produced.")
        logger.warning("Baseline pricing failed; adding placeholder quote.")
        pool.append(replace(placeholder, is_tied_up=False))
    elif baselines:
        generic, *specific = baselines
        pool.append(replace(generic, is_tied_up=False))
        if specific and is_serviceable(origin_pincode, policy.serviceable_ranges):
            pool.extend(replace(q, is_tied_up=False) for q in specific)

    return MergedQuotes(
        visible=tuple(q for q in pool if q.is_tied_up),
        hidden=tuple(q for q in pool if not q.is_tied_up),
    )


@dataclass(frozen=True)
class QuoteFilters:
    """Caller thresholds applied at presentation time."""

    max_price: float = 10_000_000
    max_time: float = 300
    min_rating: float = 0.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "QuoteFilters":
        """Build filters from request arguments; blanks keep the defaults.

        Raises:
            ShipmentError: If a supplied value is not a number.
        """

        values = {}
        for key, attr in (
            ("maxPrice", "max_price"),
            ("maxTime", "max_time"),
            ("minRating", "min_rating"),
        ):
            raw = data.get(key)
            if raw is None or raw == "":
                continue
            try:
                values[attr] = float(raw)
            except (TypeError, ValueError):
                raise ShipmentError(f"{key} must be a number.") from None
        return cls(**values)

    def allows(self, quote: Quote) -> bool:
        """Return whether ``quote`` passes; a visible quote without an estimate
        fails the time limit."""

        if quote.total_price > self.max_price:
            return False
        if quote.is_hidden:
            return True
        if quote.estimated_days is None or quote.estimated_days > self.max_time:
            return False
        return quote.effective_rating >= self.min_rating


def filter_quotes(quotes: Iterable[Quote], filters: QuoteFilters) -> List[Quote]:
    return [q for q in quotes if filters.allows(q)]


def rank_quotes(quotes: Iterable[Quote], sort_by: str = SORT_PRICE) -> List[Quote]:
    """Return ``quotes`` sorted by ``price``, ``time`` or ``rating``.

    Sorting is stable. Under ``time`` hidden quotes come after every visible
    one and quotes without an estimate follow those with one.

    Raises:
        ShipmentError: If ``sort_by`` is not a known option.
    """

    if sort_by == SORT_PRICE:
        return sorted(quotes, key=lambda q: q.total_price)
    if sort_by == SORT_TIME:
        return sorted(
            quotes,
            key=lambda q: (
                q.is_hidden,
                q.estimated_days is None,
                q.estimated_days or 0,
            ),
        )
    if sort_by == SORT_RATING:
        return sorted(quotes, key=lambda q: -q.effective_rating)
    raise ShipmentError(f"sortBy must be one of {', '.join(SORT_OPTIONS)}.")


def best_value(quotes: Iterable[Quote]) -> Optional[Quote]:
    """Return the cheapest quote, or ``None`` for an empty pool."""

    pool = list(quotes)
    return min(pool, key=lambda q: q.total_price) if pool else None


def fastest(quotes: Iterable[Quote]) -> Optional[Quote]:
    """Return the quickest non-hidden quote with a known estimate."""

    timed = [q for q in quotes if not q.is_hidden and q.estimated_days is not None]
    return min(timed, key=lambda q: q.estimated_days) if timed else None


@dataclass(frozen=True)
class Presentation:
    visible: Tuple[Quote, ...]
    hidden: Tuple[Quote, ...]
    best_value: Optional[Quote]
    fastest: Optional[Quote]


def present_quotes(
    merged: MergedQuotes,
    filters: QuoteFilters = QuoteFilters(),
    sort_by: str = SORT_PRICE,
) -> Presentation:
    """Filter and rank both lists and pick the highlighted quotes.

    Highlights are computed on the unfiltered pool so a filter never moves
    the "best value" badge.
    """

    return Presentation(
        visible=tuple(rank_quotes(filter_quotes(merged.visible, filters), sort_by)),
        hidden=tuple(rank_quotes(filter_quotes(merged.hidden, filters), sort_by)),
        best_value=best_value(merged.all_quotes),
        fastest=fastest(merged.all_quotes),
    )


def aggregate(
    contracted: Iterable[Quote],
    open_market: Iterable[Quote],
    baselines: Optional[Sequence[Quote]],
    origin_pincode: Any,
    policy: AggregationPolicy = AggregationPolicy(),
    filters: QuoteFilters = QuoteFilters(),
    sort_by: str = SORT_PRICE,
    placeholder: Optional[Quote] = None,
) -> Presentation:
    """Merge, filter and rank in one call."""

    merged = merge_quotes(
        contracted, open_market, baselines, origin_pincode, policy, placeholder
    )
    return present_quotes(merged, filters, sort_by)
