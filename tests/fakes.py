"""Test doubles for the external services and offer builders."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from flightchat.amadeus.transform import from_amadeus
from flightchat.assistant import FlightAssistant
from flightchat.config import Settings
from flightchat.llm.intent_parser import IntentParser
from flightchat.services import build_assistant
from flightchat.types import BookingLink, FlightOffer

# (from, departs_at, to, arrives_at)
Leg = Tuple[str, str, str, str]


def raw_offer(price: Any, legs: Optional[Sequence[Leg]] = None, duration: str = "PT2H10M",
              seats: int = 9, currency: str = "INR", offer_id: str = "1") -> Dict[str, Any]:
    """A flight-offers ``data`` entry shaped like the Amadeus response."""
    legs = legs or [("DEL", "2025-05-01T07:00:00", "BOM", "2025-05-01T09:10:00")]
    return {
        "type": "flight-offer",
        "id": offer_id,
        "source": "GDS",
        "lastTicketingDate": "2025-04-30",
        "numberOfBookableSeats": seats,
        "itineraries": [{
            "duration": duration,
            "segments": [
                {
                    "departure": {"iataCode": dep, "at": dep_at, "terminal": "3"},
                    "arrival": {"iataCode": arr, "at": arr_at},
                    "carrierCode": "AI",
                    "number": str(100 + i),
                    "duration": "PT1H",
                }
                for i, (dep, dep_at, arr, arr_at) in enumerate(legs)
            ],
        }],
        "price": {"currency": currency, "total": str(price), "base": str(price)},
        "pricingOptions": {"fareType": ["PUBLISHED"], "includedCheckedBagsOnly": True},
        "validatingAirlineCodes": ["AI"],
    }


def offer(price: Any, **kwargs: Any) -> FlightOffer:
    return from_amadeus([raw_offer(price, **kwargs)])[0]


def one_stop_legs(layover_start: str = "2025-05-01T09:00:00",
                  layover_end: str = "2025-05-01T11:30:00") -> List[Leg]:
    return [
        ("DEL", "2025-05-01T06:00:00", "DOH", layover_start),
        ("DOH", layover_end, "BOM", "2025-05-01T14:00:00"),
    ]


class FakeAmadeus:
    """Stands in for AmadeusClient; records calls and replays canned data."""

    def __init__(self, offers: Optional[List[Dict[str, Any]]] = None,
                 locations: Optional[Dict[str, str]] = None,
                 busiest: Any = None, offer_errors: Optional[List[Exception]] = None,
                 location_error: Optional[Exception] = None):
        self.offers = offers or []
        self.locations = locations or {}
        self.busiest = busiest if busiest is not None else []
        self.offer_errors = list(offer_errors or [])
        self.location_error = location_error
        self.calls: Dict[str, int] = {"offers": 0, "locations": 0, "busiest": 0}
        self.last_search: Dict[str, Any] = {}

    async def search_flight_offers(self, origin, destination, departure_date, **kwargs):
        self.calls["offers"] += 1
        self.last_search = {"origin": origin, "destination": destination,
                            "departure_date": departure_date, **kwargs}
        if self.offer_errors:
            raise self.offer_errors.pop(0)
        return self.offers

    async def search_locations(self, keyword, sub_type="AIRPORT,CITY"):
        self.calls["locations"] += 1
        if self.location_error:
            raise self.location_error
        code = self.locations.get(keyword.lower())
        return [{"type": "location", "subType": "CITY", "iataCode": code}] if code else []

    async def busiest_traveling_period(self, origin_city, destination_city, period=None):
        self.calls["busiest"] += 1
        if isinstance(self.busiest, Exception):
            raise self.busiest
        return self.busiest

    async def aclose(self):
        pass


class FakeBookingLinks:
    """Stands in for BookingLinkFinder; ``delays`` maps price -> seconds."""

    def __init__(self, status: str = "found", url: str = "https://booking.example/flight",
                 delays: Optional[Dict[float, float]] = None):
        self.status = status
        self.url = url if status == "found" else ""
        self.delays = delays or {}
        self.seen: List[FlightOffer] = []

    async def find(self, offer: FlightOffer) -> BookingLink:
        await asyncio.sleep(self.delays.get(offer.price.amount, 0))
        self.seen.append(offer)
        return BookingLink(status=self.status, url=self.url)

    async def aclose(self):
        pass


class FailingChatModel(FakeListChatModel):
    """Chat model whose every call fails, as a provider outage would."""

    def _call(self, *args: Any, **kwargs: Any) -> str:
        raise RuntimeError("provider unavailable")


FLIGHT_INTENT = {
    "type": "flight",
    "baseCity": "Delhi",
    "destinationCity": "Mumbai",
    "travelDate": "2025-05-01",
    "returnDate": None,
    "adults": 1,
    "children": 0,
    "infants": 0,
    "preference": "cheapest",
    "budget": None,
    "tripDuration": None,
    "nationality": None,
}

CITY_CODES = {"delhi": "DEL", "mumbai": "BOM"}


def flight_intent_json(**overrides: Any) -> str:
    return json.dumps({**FLIGHT_INTENT, **overrides})


def make_assistant(cache: Any, amadeus: Any, booking_links: Any = None,
                   intent_replies: Sequence[str] = (), text_replies: Sequence[str] = ("ok",),
                   **settings_overrides: Any) -> FlightAssistant:
    parser = IntentParser(
        FakeListChatModel(responses=list(intent_replies) or [flight_intent_json()]),
        FakeListChatModel(responses=list(text_replies)),
    )
    return build_assistant(Settings(**settings_overrides), cache, amadeus,
                           booking_links or FakeBookingLinks(), parser)
