import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from flightchat.errors import AmadeusError
from flightchat.obs.logger import log_event
from flightchat.obs.metrics import inc_counter, record_timing

SANDBOX_BASE = "https://test.api.amadeus.com"
PRODUCTION_BASE = "https://api.amadeus.com"


def base_url_for(env: str) -> str:
    return PRODUCTION_BASE if env == "production" else SANDBOX_BASE


class AmadeusClient:
    """Async client for the handful of Amadeus Self-Service endpoints we use.

    One instance owns one connection pool and one OAuth token; build it at
    startup and ``aclose()`` it at shutdown.
    """

    def __init__(self, client_id: str, client_secret: str, env: str = "sandbox",
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url_for(env)
        self._token: Optional[str] = None
        self._exp = 0.0
        self._token_lock = asyncio.Lock()
        # Persistent HTTP client with HTTP/2 and sensible timeouts
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            http2=transport is None,
            transport=transport,
            timeout=httpx.Timeout(connect=3.0, read=30.0, write=12.0, pool=12.0),
        )

    async def _get_token(self) -> str:
        async with self._token_lock:
            if self._token and time.time() < self._exp - 60:
                return self._token
            data = {
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            }
            try:
                r = await self._http.post(
                    "/v1/security/oauth2/token",
                    data=data,
                    headers={"Accept": "application/json"},
                )
            except httpx.HTTPError as e:
                raise AmadeusError(f"token request failed: {type(e).__name__}: {e}") from e
            if r.status_code != 200:
                raise AmadeusError("token request rejected", status_code=r.status_code, body=r.text)
            try:
                j = r.json()
                token = j["access_token"]
            except (ValueError, KeyError, TypeError) as e:
                raise AmadeusError("token response unreadable", status_code=r.status_code,
                                   body=r.text[:500]) from e
            self._token = token
            self._exp = time.time() + j.get("expires_in", 1799)
            return self._token

    async def _get(self, path: str, params: Dict[str, Any], operation: str) -> Dict[str, Any]:
        start = time.monotonic()
        for attempt in (1, 2):
            token = await self._get_token()
            try:
                r = await self._http.get(
                    path,
                    params=params,
                    headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                )
            except httpx.HTTPError as e:
                inc_counter("upstream_errors_total", {"service": "amadeus", "operation": operation})
                raise AmadeusError(f"{operation} failed: {type(e).__name__}: {e}") from e

            if r.status_code == 401 and attempt == 1:
                # Token revoked or expired early; refresh once
                self._token = None
                continue
            break

        record_timing("upstream_latency_ms", (time.monotonic() - start) * 1000.0,
                      {"service": "amadeus", "operation": operation})
        if r.status_code != 200:
            inc_counter("upstream_errors_total", {"service": "amadeus", "operation": operation})
            log_event(
                "amadeus_http_error",
                level="WARNING",
                operation=operation,
                status=r.status_code,
                body=r.text[:500],
            )
            raise AmadeusError(f"{operation} returned HTTP {r.status_code}",
                               status_code=r.status_code, body=r.text)
        try:
            body = r.json()
        except ValueError as e:
            inc_counter("upstream_errors_total", {"service": "amadeus", "operation": operation})
            log_event("amadeus_unreadable_body", level="WARNING", operation=operation, body=r.text[:500])
            raise AmadeusError(f"{operation} returned an unreadable body",
                               status_code=r.status_code, body=r.text[:500]) from e
        if not isinstance(body, dict):
            raise AmadeusError(f"{operation} returned an unexpected body", status_code=r.status_code,
                               body=r.text[:500])
        return body

    async def search_flight_offers(self, origin: str, destination: str, departure_date: str,
                                   adults: int = 1, children: int = 0, infants: int = 0,
                                   return_date: Optional[str] = None, currency: str = "INR",
                                   max_results: int = 5) -> List[Dict[str, Any]]:
        """GET /v2/shopping/flight-offers; returns the raw ``data`` list."""
        params: Dict[str, Any] = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date,
            "adults": str(max(1, int(adults))),
            "currencyCode": currency,
            "max": str(max_results),
        }
        if return_date:
            params["returnDate"] = return_date
        if children:
            params["children"] = str(children)
        if infants:
            params["infants"] = str(infants)

        log_event("amadeus_offer_search", origin=origin, destination=destination,
                  departure_date=departure_date, return_date=return_date,
                  adults=adults, children=children, infants=infants)
        body = await self._get("/v2/shopping/flight-offers", params, "flight_offers")
        return body.get("data") or []

    async def search_locations(self, keyword: str, sub_type: str = "AIRPORT,CITY") -> List[Dict[str, Any]]:
        """GET /v1/reference-data/locations; ranked candidates with ``iataCode``."""
        body = await self._get(
            "/v1/reference-data/locations",
            {"keyword": keyword, "subType": sub_type},
            "locations",
        )
        return body.get("data") or []

    async def busiest_traveling_period(self, origin_city: str, destination_city: str,
                                       period: Optional[str] = None) -> List[Dict[str, Any]]:
        """GET /v1/travel/analytics/air-traffic/busiest-period.

        Amadeus keys this analytic on a single city; we ask for traffic
        arriving at the destination over ``period`` (a year, default last year).
        """
        params = {
            "cityCode": destination_city,
            "period": period or str(time.gmtime().tm_year - 1),
            "direction": "ARRIVING",
        }
        log_event("amadeus_busiest_period", origin=origin_city, destination=destination_city,
                  period=params["period"])
        body = await self._get("/v1/travel/analytics/air-traffic/busiest-period", params, "busiest_period")
        return body.get("data") or []

    async def aclose(self) -> None:
        await self._http.aclose()
