"""Input sanitation and request validation shared by the relay and single-shot paths."""

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .constants import CONTROL_CHARACTERS_PATTERN, MAX_MESSAGE_BYTES
from .errors import ChatValidationError
from .schemas import ChatRequest, GenerationConfig

_FIELD_MESSAGES = {
    "temperature": "Temperature must be a number between 0 and 2",
    "maxTokens": "Max tokens must be an integer between 1 and 200000",
    "max_tokens": "Max tokens must be an integer between 1 and 200000",
    "topP": "Top P must be a number between 0 and 1",
    "top_p": "Top P must be a number between 0 and 1",
    "systemPrompt": "System prompt must be a string of at most 4096 characters",
    "system_prompt": "System prompt must be a string of at most 4096 characters",
    "frequencyPenalty": "Frequency penalty must be a number between -2 and 2",
    "frequency_penalty": "Frequency penalty must be a number between -2 and 2",
    "presencePenalty": "Presence penalty must be a number between -2 and 2",
    "presence_penalty": "Presence penalty must be a number between -2 and 2",
}


def sanitize_input(value: Any) -> str:
    """Trim, drop control characters and cap the message at ``MAX_MESSAGE_BYTES`` UTF-8 bytes."""
    if not isinstance(value, str):
        return ""
    cleaned = CONTROL_CHARACTERS_PATTERN.sub("", value.strip())
    encoded = cleaned.encode("utf-8")
    if len(encoded) > MAX_MESSAGE_BYTES:
        # Never split a multi-byte character at the cut.
        cleaned = encoded[:MAX_MESSAGE_BYTES].decode("utf-8", errors="ignore")
    return cleaned


def parse_generation_config(raw: Any) -> GenerationConfig:
    """Validate a config given as a mapping, a JSON string, or nothing."""
    if raw is None or raw == "":
        return GenerationConfig()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ChatValidationError(
                "Invalid configuration",
                "Configuration must be a JSON object",
                errors=[f"Malformed JSON: {e.msg}"],
            ) from e
    if not isinstance(raw, Mapping):
        raise ChatValidationError(
            "Invalid configuration",
            "Configuration must be a JSON object",
            errors=["Configuration must be a JSON object"],
        )

    try:
        return GenerationConfig.model_validate(raw)
    except ValidationError as e:
        errors: list[str] = []
        for detail in e.errors():
            field = str(detail["loc"][0]) if detail["loc"] else "config"
            message = _FIELD_MESSAGES.get(field, f"{field}: {detail['msg']}")
            if message not in errors:
                errors.append(message)
        raise ChatValidationError(
            "Invalid configuration", "Configuration validation failed", errors=errors
        ) from e


def validate_chat_input(
    message: Any,
    provider: Any,
    model: Any,
    config: Any,
    default_models: Mapping[str, str],
) -> ChatRequest:
    """Check a raw chat input in the order the client expects errors.

    ``default_models`` maps every registered provider id to the model used
    when the client does not name one.
    """
    if not message or not isinstance(message, str):
        raise ChatValidationError("Invalid input", "Message is required and must be a string")

    clean_message = sanitize_input(message)
    if not clean_message:
        raise ChatValidationError("Invalid input", "Message cannot be empty")

    if not isinstance(provider, str) or provider not in default_models:
        raise ChatValidationError(
            "Invalid provider",
            f"Provider '{provider}' is not supported",
            available_providers=list(default_models),
        )

    if model is not None and not isinstance(model, str):
        raise ChatValidationError("Invalid input", "Model must be a string")

    generation_config = parse_generation_config(config)
    return ChatRequest(
        message=clean_message,
        provider_id=provider,
        model_id=model or default_models[provider],
        config=generation_config,
    )
