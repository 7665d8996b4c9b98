"""Ranking & enrichment: turn fetched offers into the recommendation payload."""

import asyncio
from typing import Any, List, Optional, Sequence

from flightchat.obs.logger import log_event
from flightchat.rank import commentary
from flightchat.rank.scoring import convenience_score, cost_score, recommendation_score
from flightchat.rank.selector import shortlist
from flightchat.search.booking_links import BookingLinkFinder
from flightchat.types import (
    EnhancedFlightOffer,
    FlightOffer,
    FlightResults,
    FlightSearchIntent,
    UserPreferences,
)

DEFAULT_PREFERRED_TIME = "morning"


def default_preferences(intent: FlightSearchIntent) -> UserPreferences:
    return UserPreferences(
        preferred_time=DEFAULT_PREFERRED_TIME,
        direct_flight=intent.preference == "convenience",
    )


def merge_preferences(intent: FlightSearchIntent, explicit: Optional[UserPreferences]) -> UserPreferences:
    """Explicit client-sent preferences override the per-field defaults."""
    base = default_preferences(intent)
    if explicit is None:
        return base
    return base.model_copy(update=explicit.model_dump(exclude_none=True))


class RankingPipeline:
    def __init__(self, booking_links: BookingLinkFinder, shortlist_size: int = 3):
        self.booking_links = booking_links
        self.shortlist_size = shortlist_size

    async def run(self, intent: FlightSearchIntent, offers: Sequence[FlightOffer],
                  origin_code: str, destination_code: str,
                  busiest_period: Optional[List[Any]] = None,
                  preferences: Optional[UserPreferences] = None) -> FlightResults:
        prefs = merge_preferences(intent, preferences)
        selected = shortlist(list(offers), intent.preference, intent.budget, self.shortlist_size)
        log_event(
            "offers_shortlisted",
            fetched=len(offers),
            shortlisted=len(selected),
            preference=intent.preference,
            budget=intent.budget,
        )

        busyness = busiest_period[0] if busiest_period else None
        prices = [o.price.amount for o in selected]
        min_price = min(prices) if prices else 0.0
        max_price = max(prices) if prices else 0.0

        # gather() returns results in submission order, so sort order survives
        enhanced = await asyncio.gather(*[
            self._enrich(o, intent, prefs, origin_code, destination_code, min_price, max_price, busyness)
            for o in selected
        ])
        return FlightResults(flights=list(enhanced), busiest_traveling_period=busiest_period)

    async def _enrich(self, offer: FlightOffer, intent: FlightSearchIntent, prefs: UserPreferences,
                      origin_code: str, destination_code: str,
                      min_price: float, max_price: float, busyness: Any) -> EnhancedFlightOffer:
        link = await self.booking_links.find(offer)

        cost = cost_score(offer.price.amount, min_price, max_price)
        convenience = convenience_score(offer, prefs)
        return EnhancedFlightOffer(
            **offer.model_dump(),
            reasoning=commentary.flight_reasoning(offer, intent.preference, intent.budget, intent.trip_duration),
            family_solo_consideration=commentary.family_solo_consideration(
                offer, intent.adults, intent.children, intent.infants),
            morning_night_comparison=commentary.morning_night_comparison(offer),
            transit_routes=commentary.transit_routes(offer),
            visa_info=commentary.visa_info(origin_code, destination_code, intent.nationality),
            cost_score=cost,
            convenience_score=convenience,
            recommendation_score=recommendation_score(cost, convenience),
            tavily_booking_link=link.url,
            booking_link_status=link.status,
            busyness_info=busyness if isinstance(busyness, dict) else None,
        )
