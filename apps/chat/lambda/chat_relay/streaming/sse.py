"""Server-sent event encoding for the relay's outbound stream."""

import json
from datetime import datetime, timezone
from typing import Any

from chat_relay.errors import ChatValidationError, ProviderError, format_error_for_user

DONE_EVENT: dict[str, Any] = {"done": True}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode_sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, separators=(',', ':'), ensure_ascii=False)}\n\n"


def validation_error_event(error: ChatValidationError) -> dict[str, Any]:
    return {**error.to_payload(), "timestamp": utc_timestamp()}


def provider_error_event(error: BaseException, provider: str, model: str) -> dict[str, Any]:
    """Error event for a failed upstream call.

    ``error`` is the classified upstream message, ``message`` the text meant
    for the chat window.
    """
    event: dict[str, Any] = {
        "error": str(error) or type(error).__name__,
        "message": format_error_for_user(error),
        "provider": provider,
        "model": model,
        "timestamp": utc_timestamp(),
    }
    if isinstance(error, ProviderError):
        event["kind"] = error.kind.value
    return event
