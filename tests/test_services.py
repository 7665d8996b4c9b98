from flightchat.cache.memory import MemoryCache
from flightchat.config import Settings
from flightchat.services import build_cache, build_services


async def test_memory_cache_when_redis_not_configured():
    gw = await build_cache(Settings(REDIS_URL=""))
    assert isinstance(gw.backend, MemoryCache)
    assert gw.retry.max_attempts == 3
    assert gw.retry.delay_for(1) == 0.5


async def test_build_services_wires_settings():
    settings = Settings(REDIS_URL=None, OPENAI_API_KEY="sk-test", SHORTLIST_SIZE=2,
                        REQUEST_TIMEOUT_SECONDS=12, AMADEUS_CURRENCY="USD")
    services = await build_services(settings)
    try:
        assistant = services.assistant
        assert assistant.request_timeout == 12
        assert assistant.pipeline.shortlist_size == 2
        assert assistant.fetcher.currency == "USD"
        assert assistant.fetcher.retry.max_attempts == 3
        assert assistant.resolver.cache is services.cache
        assert assistant.amadeus is services.amadeus
    finally:
        await services.aclose()
