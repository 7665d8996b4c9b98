"""Deterministic 1-5 scores for shortlisted offers.

All scores use half-up rounding so 2.5 becomes 3, matching how the scores
are described to users.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from flightchat.types import FlightOffer, UserPreferences

# preferred time -> [start, end) departure hours that score 5
PREFERRED_TIME_WINDOWS = {
    "morning": (6, 11),
    "afternoon": (12, 16),
    "evening": (17, 21),
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def parse_local_time(at: str) -> datetime:
    """Amadeus timestamps are airport-local and normally carry no offset."""
    return datetime.fromisoformat(at.replace("Z", "+00:00"))


def departure_hour(offer: FlightOffer) -> Optional[int]:
    segments = offer.outbound.segments
    if not segments:
        return None
    dt = parse_local_time(segments[0].departure.at)
    # offset-aware stamps are classified on UTC hours
    return (dt.astimezone(timezone.utc) if dt.tzinfo else dt).hour


def layover_hours(offer: FlightOffer) -> float:
    """Sum of gaps between consecutive segments of the outbound itinerary."""
    segments = offer.outbound.segments
    total = 0.0
    for prev, curr in zip(segments, segments[1:]):
        gap = parse_local_time(curr.departure.at) - parse_local_time(prev.arrival.at)
        total += gap.total_seconds() / 3600.0
    return total


def cost_score(price: float, min_price: float, max_price: float) -> int:
    """Cheapest in the batch scores 5, dearest scores 1, linear in between.

    A batch with a single price (zero spread) scores every offer 5.
    """
    spread = max_price - min_price
    if spread <= 0:
        return 5
    normalized = (max_price - price) / spread
    return round_half_up(normalized * 4 + 1)


def convenience_score(offer: FlightOffer, prefs: UserPreferences) -> int:
    score = 0
    factors = 0

    hour = departure_hour(offer)
    if prefs.preferred_time and hour is not None:
        start, end = PREFERRED_TIME_WINDOWS[prefs.preferred_time]
        score += 5 if start <= hour < end else 3
        factors += 1

    if prefs.direct_flight is not None:
        score += 5 if (prefs.direct_flight and offer.is_direct) else 2
        factors += 1

    if offer.outbound.segments:
        layover = layover_hours(offer)
        if layover < 2:
            score += 5
        elif layover < 4:
            score += 3
        else:
            score += 1
        factors += 1

    return round_half_up(score / factors) if factors else 3


def recommendation_score(cost: int, convenience: int,
                         weight_cost: float = 0.5, weight_convenience: float = 0.5) -> int:
    return round_half_up(cost * weight_cost + convenience * weight_convenience)
