import re
from typing import Optional

from flightchat.amadeus.client import AmadeusClient
from flightchat.cache.gateway import CacheGateway
from flightchat.errors import AmadeusError
from flightchat.obs.logger import log_event

IATA_CODE_RE = re.compile(r"^[A-Z]{3}$")


class LocationResolver:
    """Map a city name (or an IATA code) to a three-letter location code.

    Lookup order: literal code -> cache -> Amadeus location directory. A
    ``None`` result means "unresolvable city" and is never an error.
    """

    def __init__(self, cache: CacheGateway, amadeus: AmadeusClient, ttl_seconds: int = 86400):
        self.cache = cache
        self.amadeus = amadeus
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def cache_key(location: str) -> str:
        return f"location:iata:{location.lower()}"

    async def resolve(self, location: str) -> Optional[str]:
        if not location:
            return None
        if IATA_CODE_RE.match(location):
            return location

        key = self.cache_key(location)
        cached = await self.cache.get(key)
        if cached:
            return cached

        try:
            candidates = await self.amadeus.search_locations(location, sub_type="AIRPORT,CITY")
        except AmadeusError as e:
            log_event("location_lookup_failed", level="WARNING", location=location,
                      status=e.status_code, error=str(e))
            return None

        code = next((c.get("iataCode") for c in candidates if c.get("iataCode")), None)
        if not code:
            log_event("location_not_found", location=location)
            return None

        await self.cache.set(key, code, expire_seconds=self.ttl_seconds)
        log_event("location_resolved", location=location, code=code)
        return code
