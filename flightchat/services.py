"""Startup wiring: build every long-lived component once per process."""

from dataclasses import dataclass

from flightchat.amadeus.client import AmadeusClient
from flightchat.assistant import FlightAssistant
from flightchat.cache.gateway import CacheGateway
from flightchat.cache.memory import MemoryCache
from flightchat.cache.redis_cache import RedisCache
from flightchat.config import Settings
from flightchat.flights.fetcher import FlightOfferFetcher, rate_limit_policy
from flightchat.iata.resolver import LocationResolver
from flightchat.infrastructure.retry import RetryPolicy
from flightchat.llm.intent_parser import IntentParser
from flightchat.llm.providers import build_intent_llm, build_text_llm
from flightchat.obs.logger import log_event
from flightchat.rank.pipeline import RankingPipeline
from flightchat.search.booking_links import BookingLinkFinder
from flightchat.session.conversation_store import ConversationStore


@dataclass
class Services:
    cache: CacheGateway
    amadeus: AmadeusClient
    booking_links: BookingLinkFinder
    assistant: FlightAssistant

    async def aclose(self) -> None:
        await self.amadeus.aclose()
        await self.booking_links.aclose()
        await self.cache.close()


async def build_cache(settings: Settings) -> CacheGateway:
    """Redis when configured and reachable, otherwise an in-process store."""
    retry = RetryPolicy(
        max_attempts=settings.REDIS_RETRY_ATTEMPTS,
        base_delay=settings.REDIS_RETRY_DELAY_SECONDS,
        backoff="linear",
    )
    if settings.REDIS_URL:
        backend = RedisCache(settings.REDIS_URL)
        if await backend.ping():
            log_event("cache_backend", backend="redis")
            return CacheGateway(backend, retry)
        await backend.close()
        log_event("cache_backend_fallback", level="WARNING", backend="memory",
                  reason="redis unreachable")
    else:
        log_event("cache_backend", backend="memory")
    return CacheGateway(MemoryCache(), retry)


def build_assistant(settings: Settings, cache: CacheGateway, amadeus: AmadeusClient,
                    booking_links: BookingLinkFinder, intent_parser: IntentParser) -> FlightAssistant:
    return FlightAssistant(
        conversations=ConversationStore(cache, ttl_seconds=settings.CHAT_TTL_SECONDS),
        intent_parser=intent_parser,
        resolver=LocationResolver(cache, amadeus, ttl_seconds=settings.LOCATION_TTL_SECONDS),
        fetcher=FlightOfferFetcher(
            cache,
            amadeus,
            retry=rate_limit_policy(settings.AMADEUS_RATE_LIMIT_ATTEMPTS,
                                    settings.AMADEUS_RATE_LIMIT_DELAY_SECONDS),
            ttl_seconds=settings.FLIGHT_CACHE_TTL_SECONDS,
            currency=settings.AMADEUS_CURRENCY,
            max_results=settings.AMADEUS_MAX_OFFERS,
        ),
        amadeus=amadeus,
        pipeline=RankingPipeline(booking_links, shortlist_size=settings.SHORTLIST_SIZE),
        request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )


async def build_services(settings: Settings) -> Services:
    cache = await build_cache(settings)
    amadeus = AmadeusClient(settings.AMADEUS_CLIENT_ID, settings.AMADEUS_CLIENT_SECRET,
                            env=settings.AMADEUS_ENV)
    booking_links = BookingLinkFinder(settings.TAVILY_API_KEY,
                                      timeout_seconds=settings.TAVILY_TIMEOUT_SECONDS)
    intent_parser = IntentParser(
        build_intent_llm(settings),
        build_text_llm(settings),
        default_origin=settings.DEFAULT_ORIGIN,
        default_destination=settings.DEFAULT_DESTINATION,
        days_ahead=settings.DEFAULT_TRAVEL_DAYS_AHEAD,
    )
    assistant = build_assistant(settings, cache, amadeus, booking_links, intent_parser)
    return Services(cache=cache, amadeus=amadeus, booking_links=booking_links, assistant=assistant)
