"""Per-request bookkeeping for the HTTP app.

Every request gets an id (the caller's ``X-Request-ID`` when supplied),
which is echoed on the response and bound for ``log_event``. Latency and a
``requests_total{route,status}`` counter are recorded once the response is
done, and the context is cleared so ids never leak between requests.
"""

from typing import Any, Awaitable, Callable, Dict, MutableMapping
import time
import uuid

from flightchat.obs.context import clear_context, request_id_var
from flightchat.obs.logger import log_event
from flightchat.obs.metrics import inc_counter, record_timing

Message = MutableMapping[str, Any]
Send = Callable[[Message], Awaitable[None]]

REQUEST_ID_HEADER = b"x-request-id"


def request_id_from(scope: Dict[str, Any]) -> str:
    for name, value in scope.get("headers") or []:
        if name.lower() == REQUEST_ID_HEADER and value:
            return value.decode("latin-1")
    return str(uuid.uuid4())


class ObservabilityMiddleware:
    def __init__(self, app: Any):
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive: Callable, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        req_id = request_id_from(scope)
        request_id_var.set(req_id)
        route = scope.get("path", "")
        started = time.monotonic()
        outcome = {"status": 500}

        async def tagged_send(message: Message) -> None:
            if message.get("type") == "http.response.start":
                outcome["status"] = int(message.get("status", 200))
                message = dict(message)
                message["headers"] = [*(message.get("headers") or []),
                                      (REQUEST_ID_HEADER, req_id.encode("latin-1"))]
            await send(message)

        try:
            await self.app(scope, receive, tagged_send)
        finally:
            self._record(scope.get("method", ""), route, outcome["status"],
                         (time.monotonic() - started) * 1000.0)
            clear_context()

    @staticmethod
    def _record(method: str, route: str, status: int, elapsed_ms: float) -> None:
        record_timing("request_latency_ms", elapsed_ms, {"route": route})
        inc_counter("requests_total", {"route": route, "status": str(status)})
        log_event("request", method=method, route=route, status=status,
                  ms_total=round(elapsed_ms, 2))
