"""Domain-level exceptions for the chat relay."""

import json
from enum import Enum
from typing import Any


class BadRequestError(ValueError):
    """Raised for client-side invalid requests at the domain layer."""


class ChatValidationError(BadRequestError):
    """Request rejected before any provider is contacted.

    Carries the client-facing payload: a short ``error`` title, a human
    ``message`` and optional details (field errors, provider ids).
    """

    def __init__(
        self,
        error: str,
        message: str,
        *,
        errors: list[str] | None = None,
        available_providers: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.errors = errors
        self.available_providers = available_providers

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.errors is not None:
            payload["errors"] = self.errors
        if self.available_providers is not None:
            payload["availableProviders"] = self.available_providers
        return payload


class ProviderNotFoundError(LookupError):
    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider '{provider_id}' not found")
        self.provider_id = provider_id


class ErrorKind(str, Enum):
    AUTHENTICATION_FAILED = "authentication_failed"
    RATE_LIMITED = "rate_limited"
    INVALID_REQUEST = "invalid_request"
    UNREACHABLE = "unreachable"
    UPSTREAM_ERROR = "upstream_error"


class ProviderError(RuntimeError):
    """Classified failure of an upstream LLM call."""

    kind: ErrorKind = ErrorKind.UPSTREAM_ERROR

    def __init__(self, message: str, *, provider: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code


class AuthenticationFailedError(ProviderError):
    kind = ErrorKind.AUTHENTICATION_FAILED


class RateLimitedError(ProviderError):
    kind = ErrorKind.RATE_LIMITED


class InvalidRequestError(ProviderError):
    kind = ErrorKind.INVALID_REQUEST


class ProviderUnreachableError(ProviderError):
    kind = ErrorKind.UNREACHABLE


class UpstreamError(ProviderError):
    kind = ErrorKind.UPSTREAM_ERROR


def extract_error_message(body: bytes | str | None) -> str | None:
    """Pull ``error.message`` (or a string ``error``) out of an upstream error body."""
    if not body:
        return None
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) and message else None
    if isinstance(error, str) and error:
        return error
    return None


def classify_http_error(
    provider: str, display_name: str, status_code: int, body: bytes | str | None
) -> ProviderError:
    upstream_message = extract_error_message(body)
    if status_code == 401:
        return AuthenticationFailedError(
            f"{display_name} API key is invalid or expired",
            provider=provider,
            status_code=status_code,
        )
    if status_code == 429:
        return RateLimitedError(
            f"{display_name} rate limit exceeded. Please wait and try again",
            provider=provider,
            status_code=status_code,
        )
    if status_code == 400:
        return InvalidRequestError(
            upstream_message or f"Invalid request to {display_name} API",
            provider=provider,
            status_code=status_code,
        )
    return UpstreamError(
        f"{display_name} API error ({status_code}): {upstream_message or 'Unknown error'}",
        provider=provider,
        status_code=status_code,
    )


def unreachable_error(provider: str, display_name: str, detail: str = "") -> ProviderUnreachableError:
    message = f"Network error: Unable to connect to {display_name} API"
    if detail:
        message = f"{message} ({detail})"
    return ProviderUnreachableError(message, provider=provider)


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION_FAILED: "Authentication failed. Please check your API key in settings.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    ErrorKind.UNREACHABLE: "Network error. Please check your connection and try again.",
}


def format_error_for_user(error: BaseException) -> str:
    """Turn any failure into text suitable for an error bubble."""
    if isinstance(error, ProviderError) and error.kind in _USER_MESSAGES:
        return _USER_MESSAGES[error.kind]

    message = str(error) or type(error).__name__
    lowered = message.lower()
    if "model" in lowered and "not found" in lowered:
        return "Model not available. Please select a different model."
    if "quota" in lowered or "billing" in lowered:
        return "API quota exceeded. Please check your billing settings."
    if "context" in lowered or "too long" in lowered:
        return "Message too long. Please try a shorter message."
    return f"Error: {message}"
