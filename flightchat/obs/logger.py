"""Structured JSON logging to stdout.

One event per line, safe for production stdout collectors.
"""

from typing import Any, Dict
from datetime import datetime, timezone
import json

from flightchat.obs.context import request_id_var, chat_id_var, client_id_var


def _redact_client(value: Any) -> Any:
    s = str(value) if value is not None else ""
    if not s:
        return s
    if len(s) <= 4:
        return "***"
    return f"***{s[-4:]}"


def log_event(event: str, **fields: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    payload: Dict[str, Any] = {
        "ts": now,
        "level": fields.pop("level", "INFO"),
        "event": event,
        "request_id": request_id_var.get(),
        "chat_id": chat_id_var.get(),
    }
    if "client_id" not in fields:
        payload["client_id"] = _redact_client(client_id_var.get())

    for k, v in fields.items():
        if k == "client_id":
            payload["client_id"] = _redact_client(v)
        else:
            payload[k] = v

    try:
        print(json.dumps(payload, separators=(",", ":"), default=str))
    except (TypeError, ValueError):
        # Never let a bad field take the request down with it
        print(json.dumps({"ts": now, "level": "ERROR", "event": "log_serialization_failed", "source_event": event}))
