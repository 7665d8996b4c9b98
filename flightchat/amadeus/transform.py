import re
from typing import Any, Dict, List

from pydantic import ValidationError

from flightchat.obs.logger import log_event
from flightchat.types import FlightOffer

_HOURS_RE = re.compile(r"(\d+)H")
_MINUTES_RE = re.compile(r"(\d+)M")


def iso_to_minutes(dur: str) -> int:
    """'PT11H30M' -> 690. Days are not used by Amadeus for itineraries."""
    if not dur:
        return 0
    h = _HOURS_RE.search(dur)
    m = _MINUTES_RE.search(dur)
    return (int(h.group(1)) if h else 0) * 60 + (int(m.group(1)) if m else 0)


def duration_hours(dur: str) -> float:
    """'PT2H30M' -> 2.5"""
    return iso_to_minutes(dur) / 60.0


def from_amadeus(raw_offers: List[Dict[str, Any]]) -> List[FlightOffer]:
    """Reshape raw flight-offers ``data`` entries into FlightOffer records.

    Only the fields the pipeline and client rely on are kept. Entries missing
    a price or with unreadable segments are skipped rather than failing the
    whole search.
    """
    items: List[FlightOffer] = []
    for o in raw_offers:
        price = o.get("price") or {}
        try:
            items.append(FlightOffer.model_validate({
                "price": {"total": price.get("total"), "currency": price.get("currency")},
                "itineraries": o.get("itineraries") or [],
                "numberOfBookableSeats": o.get("numberOfBookableSeats") or 0,
                "lastTicketingDate": o.get("lastTicketingDate"),
                "validatingAirlineCodes": o.get("validatingAirlineCodes") or [],
                "pricingOptions": o.get("pricingOptions") or {},
            }))
        except ValidationError as e:
            log_event("amadeus_offer_skipped", level="WARNING", offer_id=o.get("id"),
                      errors=e.error_count())
    return items
