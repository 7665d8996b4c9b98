from typing import Optional

import httpx

from flightchat.obs.logger import log_event
from flightchat.obs.metrics import inc_counter
from flightchat.types import BookingLink, FlightOffer

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


def booking_query(offer: FlightOffer) -> Optional[str]:
    segments = offer.outbound.segments
    if not segments:
        return None
    origin = segments[0].departure.iata_code
    destination = segments[-1].arrival.iata_code
    date = segments[0].departure.at.split("T")[0]
    return f"book flight {origin} to {destination} on {date}"


class BookingLinkFinder:
    """Best-effort booking link for an offer via Tavily web search.

    Never raises. ``unavailable`` means the search could not be made
    (no key, timeout, HTTP error); ``not_found`` means it ran and returned
    nothing usable.
    """

    def __init__(self, api_key: str, timeout_seconds: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def find(self, offer: FlightOffer) -> BookingLink:
        query = booking_query(offer)
        if not self.api_key or not query:
            return BookingLink(status="unavailable")

        try:
            r = await self._http.post(
                TAVILY_SEARCH_URL,
                json={"query": query, "max_results": 3, "search_depth": "basic"},
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            inc_counter("upstream_errors_total", {"service": "tavily", "operation": "search"})
            log_event("booking_link_unavailable", level="WARNING", query=query,
                      error=f"{type(e).__name__}: {e}")
            return BookingLink(status="unavailable")

        for result in data.get("results") or []:
            url = result.get("url")
            if url:
                return BookingLink(status="found", url=url)
        return BookingLink(status="not_found")

    async def aclose(self) -> None:
        await self._http.aclose()
