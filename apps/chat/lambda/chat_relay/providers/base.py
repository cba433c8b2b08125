"""Provider interfaces and shared response models."""

import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

from chat_relay.constants import API_KEY_PATTERNS
from chat_relay.errors import AuthenticationFailedError, ProviderError, format_error_for_user
from chat_relay.provider_registry import MODEL_CATALOGUES, ProviderDescriptor
from chat_relay.schemas import GenerationConfig, ModelInfo, StreamChunk
from chat_relay.settings import ProviderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResponse:
    content: str
    usage: dict[str, Any] | None
    finish_reason: str | None
    provider: str
    model: str


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    response_time_ms: int
    error: str | None = None


class ChatProvider(Protocol):
    descriptor: ProviderDescriptor

    def is_configured(self) -> bool:
        """True when the credential this provider needs is present."""
        ...

    def supports_streaming(self) -> bool: ...

    async def list_models(self) -> list[ModelInfo]: ...

    async def test_connection(
        self, api_key: str | None, model: str | None = None
    ) -> ConnectionTestResult:
        """Probe the upstream with the caller's key. Never raises."""
        ...

    async def send_message(
        self, model: str, message: str, config: GenerationConfig
    ) -> ProviderResponse:
        """Single-shot completion; raises ``ProviderError`` on any failure."""
        ...

    def stream_message(
        self,
        model: str,
        message: str,
        config: GenerationConfig,
        conversation_id: str | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Yield one chunk per non-empty upstream delta, in upstream order.

        The iterator ends exactly once, when the upstream signals completion
        or closes the body. Failures surface as ``ProviderError`` raised from
        iteration, whether or not chunks were already produced.
        """
        ...


class BaseChatProvider:
    """Behaviour common to every adapter; subclasses supply the upstream calls."""

    key_format_hint = ""

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        settings: ProviderSettings,
        timeout_seconds: float,
    ) -> None:
        self.descriptor = descriptor
        self._settings = settings
        self._timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return self.descriptor.id

    @property
    def display_name(self) -> str:
        return self.descriptor.display_name

    def is_configured(self) -> bool:
        return bool(self._settings.api_key)

    def supports_streaming(self) -> bool:
        return self.descriptor.supports_streaming

    async def list_models(self) -> list[ModelInfo]:
        return list(MODEL_CATALOGUES[self.name])

    def stream_message(
        self,
        model: str,
        message: str,
        config: GenerationConfig,
        conversation_id: str | None = None,
    ) -> AsyncIterator[StreamChunk]:
        raise NotImplementedError(f"{type(self).__name__} does not support streaming")

    async def test_connection(
        self, api_key: str | None, model: str | None = None
    ) -> ConnectionTestResult:
        start = time.monotonic()
        error = self._check_key_format(api_key)
        if error is None:
            try:
                await self._probe(api_key, model or self.descriptor.default_model)
            except ProviderError as e:
                error = format_error_for_user(e)
            except Exception as e:
                logger.exception("Connection test failed unexpectedly", extra={"provider": self.name})
                error = format_error_for_user(e)

        return ConnectionTestResult(
            success=error is None,
            response_time_ms=int((time.monotonic() - start) * 1000),
            error=error,
        )

    async def _probe(self, api_key: str | None, model: str) -> None:
        """Issue the cheapest possible authenticated request; raise ``ProviderError`` on failure."""
        raise NotImplementedError

    def _check_key_format(self, api_key: str | None) -> str | None:
        pattern = API_KEY_PATTERNS.get(self.name)
        if pattern is None:
            return None
        if not api_key or not pattern.fullmatch(api_key):
            return f"Invalid {self.display_name} API key format. {self.key_format_hint}".strip()
        return None

    def _require_api_key(self) -> str:
        if not self._settings.api_key:
            raise AuthenticationFailedError(
                f"{self.display_name} API key not configured", provider=self.name
            )
        return self._settings.api_key

    def _log_response(self, response: ProviderResponse, duration_ms: int) -> None:
        usage = response.usage or {}
        logger.info(
            "Chat response generated",
            extra={
                "provider": self.name,
                "model": response.model,
                "duration_ms": duration_ms,
                "usage_prompt_tokens": usage.get("prompt_tokens"),
                "usage_completion_tokens": usage.get("completion_tokens"),
                "response_length": len(response.content),
                "finish_reason": response.finish_reason,
            },
        )
