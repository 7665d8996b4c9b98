import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from flightchat.config import settings
from flightchat.obs.context import bind_chat
from flightchat.obs.logger import log_event
from flightchat.obs.metrics import get_metrics_snapshot
from flightchat.obs.middleware import ObservabilityMiddleware
from flightchat.services import Services, build_services
from flightchat.types import UserPreferences

load_dotenv()

REQUIRED_FIELDS = ("message", "chatId", "clientId")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the ASGI app. Pre-built ``services`` are used as-is and not closed."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_event("startup", env=settings.APP_ENV)
        owned = services is None
        app.state.services = services if services is not None else await build_services(settings)
        try:
            yield
        finally:
            if owned:
                await app.state.services.aclose()
            log_event("shutdown")

    app = FastAPI(title="Flight Chat", version="0.1.0", lifespan=lifespan)
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/health")
    async def health(request: Request):
        cache_ok = await request.app.state.services.cache.ping()
        return {"status": "healthy", "service": "flightchat", "cache": "ok" if cache_ok else "degraded"}

    @app.get("/metrics")
    async def metrics():
        return get_metrics_snapshot()

    @app.post("/api")
    async def chat(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or any(body.get(f) in (None, "") for f in REQUIRED_FIELDS):
            return JSONResponse({"error": "Missing required fields"}, status_code=400)

        chat_id = body["chatId"]
        client_id = str(body["clientId"])
        bind_chat(str(chat_id), client_id)
        log_event("chat_message_received", message_length=len(str(body["message"])))

        preferences = None
        if isinstance(body.get("userPreferences"), dict):
            try:
                preferences = UserPreferences.model_validate(body["userPreferences"])
            except ValidationError as e:
                log_event("user_preferences_ignored", level="WARNING", errors=e.error_count())

        assistant = request.app.state.services.assistant
        try:
            reply = await assistant.handle_message(chat_id, str(body["message"]), preferences)
        except asyncio.TimeoutError:
            log_event("chat_timeout", level="ERROR", timeout_s=assistant.request_timeout)
            return JSONResponse({"error": "Request timed out"}, status_code=504)
        except Exception as e:
            log_event("chat_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            return JSONResponse({"error": "Internal server error", "details": str(e)}, status_code=500)

        return {"response": reply}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.APP_ENV == "dev",
        log_level="info"
    )
