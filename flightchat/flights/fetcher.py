from typing import List, Optional

from pydantic import ValidationError

from flightchat.amadeus.client import AmadeusClient
from flightchat.amadeus.transform import from_amadeus
from flightchat.cache.gateway import CacheGateway
from flightchat.errors import AmadeusError
from flightchat.infrastructure.retry import RetryPolicy
from flightchat.obs.logger import log_event
from flightchat.types import FlightOffer


def rate_limit_policy(max_attempts: int = 3, base_delay: float = 2.0) -> RetryPolicy:
    """Bounded exponential backoff with jitter, applied to HTTP 429 only."""
    return RetryPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        backoff="exponential",
        jitter=True,
        retry_on=lambda e: isinstance(e, AmadeusError) and e.rate_limited,
    )


class FlightOfferFetcher:
    """Fetch normalised offers for one search tuple, memoised in the cache.

    An empty list means "no offers": a genuine zero-result search and an
    upstream failure look the same to callers. Only successful searches are
    cached.
    """

    def __init__(self, cache: CacheGateway, amadeus: AmadeusClient,
                 retry: Optional[RetryPolicy] = None, ttl_seconds: int = 3600,
                 currency: str = "INR", max_results: int = 5):
        self.cache = cache
        self.amadeus = amadeus
        self.retry = retry or rate_limit_policy()
        self.ttl_seconds = ttl_seconds
        self.currency = currency
        self.max_results = max_results

    @staticmethod
    def cache_key(origin: str, destination: str, date: str, adults: int,
                  children: int = 0, infants: int = 0, return_date: Optional[str] = None) -> str:
        key = f"flight:{origin}:{destination}:{date}:{adults}:{children or 0}:{infants or 0}"
        if return_date:
            key += f":{return_date}"
        return key

    async def fetch(self, origin: str, destination: str, date: str, adults: int,
                    children: int = 0, infants: int = 0,
                    return_date: Optional[str] = None) -> List[FlightOffer]:
        key = self.cache_key(origin, destination, date, adults, children, infants, return_date)

        cached = await self.cache.get_json(key)
        if isinstance(cached, list):
            try:
                offers = [FlightOffer.model_validate(o) for o in cached]
            except ValidationError:
                log_event("flight_cache_entry_invalid", level="WARNING", key=key)
            else:
                log_event("flight_cache_hit", key=key, offers=len(offers))
                return offers

        try:
            raw = await self.retry.run(
                lambda: self.amadeus.search_flight_offers(
                    origin, destination, date,
                    adults=adults, children=children, infants=infants,
                    return_date=return_date, currency=self.currency,
                    max_results=self.max_results,
                ),
                name="flight_offers",
            )
        except AmadeusError as e:
            log_event("flight_search_failed", level="ERROR", key=key,
                      status=e.status_code, rate_limited=e.rate_limited, error=str(e))
            return []

        offers = from_amadeus(raw)[: self.max_results]
        await self.cache.set_json(key, [o.to_wire() for o in offers], expire_seconds=self.ttl_seconds)
        log_event("flight_search_complete", key=key, offers=len(offers))
        return offers
