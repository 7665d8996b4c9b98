from typing import Callable, Dict, List, Optional, Tuple

from flightchat.amadeus.transform import duration_hours
from flightchat.types import FlightOffer


def _by_price(o: FlightOffer) -> Tuple[float, ...]:
    return (o.price.amount,)


def _by_duration(o: FlightOffer) -> Tuple[float, ...]:
    return (duration_hours(o.outbound.duration),)


def _by_stops_then_duration(o: FlightOffer) -> Tuple[float, ...]:
    return (o.stops, duration_hours(o.outbound.duration))


SORT_KEYS: Dict[str, Callable[[FlightOffer], Tuple[float, ...]]] = {
    "cheapest": _by_price,
    "speed": _by_duration,
    "convenience": _by_stops_then_duration,
    "balanced": _by_price,
}


def filter_by_budget(offers: List[FlightOffer], budget: Optional[float]) -> List[FlightOffer]:
    if not budget:
        return list(offers)
    return [o for o in offers if o.price.amount <= budget]


def sort_offers(offers: List[FlightOffer], preference: str) -> List[FlightOffer]:
    # sorted() is stable, so equal keys keep the API's order
    return sorted(offers, key=SORT_KEYS.get(preference, _by_price))


def shortlist(offers: List[FlightOffer], preference: str, budget: Optional[float],
              size: int = 3) -> List[FlightOffer]:
    """Budget filter, preference sort, then the first ``size`` offers."""
    return sort_offers(filter_by_budget(offers, budget), preference)[:size]
