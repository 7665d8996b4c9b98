import httpx
import pytest

from fakes import FakeAmadeus, raw_offer

from flightchat.amadeus.client import AmadeusClient
from flightchat.errors import AmadeusError
from flightchat.flights.fetcher import FlightOfferFetcher, rate_limit_policy
from flightchat.types import FlightOffer


@pytest.fixture
def policy(no_sleep):
    p = rate_limit_policy(max_attempts=3, base_delay=2.0)
    p._sleep = no_sleep
    return p


def test_cache_key_includes_party_and_return_date():
    key = FlightOfferFetcher.cache_key("DEL", "BOM", "2025-05-01", 2, 1, 0)
    assert key == "flight:DEL:BOM:2025-05-01:2:1:0"
    assert FlightOfferFetcher.cache_key("DEL", "BOM", "2025-05-01", 1, return_date="2025-05-08") \
        == "flight:DEL:BOM:2025-05-01:1:0:0:2025-05-08"


async def test_fetch_normalises_and_caches(cache, policy):
    amadeus = FakeAmadeus(offers=[raw_offer(3000), raw_offer(5000)])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)

    offers = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    assert [o.price.amount for o in offers] == [3000.0, 5000.0]
    assert all(isinstance(o, FlightOffer) for o in offers)
    cached = await cache.get_json("flight:DEL:BOM:2025-05-01:1:0:0")
    assert cached[0]["price"] == {"total": "3000", "currency": "INR"}
    assert cached[0]["itineraries"][0]["segments"][0]["departure"]["iataCode"] == "DEL"


async def test_cache_hit_skips_flight_api(cache, policy):
    amadeus = FakeAmadeus(offers=[raw_offer(3000)])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)

    first = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    second = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    assert amadeus.calls["offers"] == 1
    assert second == first


async def test_passes_party_and_currency_to_api(cache, policy):
    amadeus = FakeAmadeus(offers=[])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy, currency="USD", max_results=4)
    await fetcher.fetch("DEL", "DXB", "2025-05-01", 2, children=1, infants=1, return_date="2025-05-09")
    assert amadeus.last_search == {
        "origin": "DEL", "destination": "DXB", "departure_date": "2025-05-01",
        "adults": 2, "children": 1, "infants": 1, "return_date": "2025-05-09",
        "currency": "USD", "max_results": 4,
    }


async def test_rate_limit_is_retried_then_succeeds(cache, policy, no_sleep):
    amadeus = FakeAmadeus(
        offers=[raw_offer(4200)],
        offer_errors=[AmadeusError("too many", status_code=429)],
    )
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)

    offers = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    assert [o.price.amount for o in offers] == [4200.0]
    assert amadeus.calls["offers"] == 2
    assert len(no_sleep.delays) == 1


async def test_rate_limit_retries_are_bounded(cache, policy, no_sleep):
    amadeus = FakeAmadeus(offer_errors=[AmadeusError("too many", status_code=429)] * 5)
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)

    assert await fetcher.fetch("DEL", "BOM", "2025-05-01", 1) == []
    assert amadeus.calls["offers"] == 3
    assert len(no_sleep.delays) == 2


async def test_upstream_error_returns_empty_and_is_not_cached(cache, policy):
    amadeus = FakeAmadeus(offers=[raw_offer(3000)],
                          offer_errors=[AmadeusError("server error", status_code=500)])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)

    assert await fetcher.fetch("DEL", "BOM", "2025-05-01", 1) == []
    assert amadeus.calls["offers"] == 1
    assert await cache.get("flight:DEL:BOM:2025-05-01:1:0:0") is None

    # the next request goes upstream again
    offers = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    assert len(offers) == 1


async def test_zero_result_search_is_cached(cache, policy):
    amadeus = FakeAmadeus(offers=[])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)
    assert await fetcher.fetch("DEL", "BOM", "2025-05-01", 1) == []
    assert await fetcher.fetch("DEL", "BOM", "2025-05-01", 1) == []
    assert amadeus.calls["offers"] == 1


async def test_invalid_cached_entry_is_refetched(cache, policy):
    await cache.set_json("flight:DEL:BOM:2025-05-01:1:0:0", [{"price": {"total": None}}])
    amadeus = FakeAmadeus(offers=[raw_offer(3000)])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)
    offers = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    assert amadeus.calls["offers"] == 1
    assert offers[0].price.amount == 3000.0


async def test_offers_without_price_are_skipped(cache, policy):
    broken = raw_offer(1000)
    broken["price"] = {}
    amadeus = FakeAmadeus(offers=[broken, raw_offer(2500)])
    fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)
    offers = await fetcher.fetch("DEL", "BOM", "2025-05-01", 1)
    assert [o.price.amount for o in offers] == [2500.0]


async def test_unreadable_upstream_body_returns_empty(cache, policy):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json={"access_token": "T", "expires_in": 1799})
        return httpx.Response(200, text="<html>gateway</html>")

    amadeus = AmadeusClient("id", "secret", transport=httpx.MockTransport(handler))
    try:
        fetcher = FlightOfferFetcher(cache, amadeus, retry=policy)
        assert await fetcher.fetch("DEL", "BOM", "2025-05-01", 1) == []
    finally:
        await amadeus.aclose()
    assert await cache.get("flight:DEL:BOM:2025-05-01:1:0:0") is None
