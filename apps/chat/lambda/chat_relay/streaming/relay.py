"""Per-request streaming relay: validate, dispatch, and re-emit as SSE."""

import asyncio
import logging
import re
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum

from chat_relay.errors import ChatValidationError, ProviderError
from chat_relay.providers.base import ChatProvider
from chat_relay.schemas import ChatInput, ChatRequest, StreamChunk
from chat_relay.validation import validate_chat_input

from .sse import DONE_EVENT, encode_sse, provider_error_event, validation_error_event

logger = logging.getLogger(__name__)

DisconnectProbe = Callable[[], Awaitable[bool]]
Sleep = Callable[[float], Awaitable[None]]

_TOKEN_PATTERN = re.compile(r"\s*\S+(?:\s+$)?")


class RelayState(str, Enum):
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    NATIVE_STREAMING = "native_streaming"
    SIMULATED_STREAMING = "simulated_streaming"
    COMPLETING = "completing"
    ERRORING = "erroring"
    CLOSED = "closed"


def split_tokens(content: str) -> list[str]:
    """Split into whitespace-led tokens: ``"Hello world"`` -> ``["Hello", " world"]``."""
    return _TOKEN_PATTERN.findall(content)


async def _never_disconnected() -> bool:
    return False


@dataclass
class RelayRun:
    """Book-keeping for one relayed request."""

    conversation_id: str
    state: RelayState = RelayState.VALIDATING
    provider: str | None = None
    model: str | None = None
    chunks: int = 0
    client_disconnected: bool = False

    def transition(self, state: RelayState) -> None:
        logger.debug(
            "Relay state change",
            extra={
                "conversation_id": self.conversation_id,
                "from_state": self.state.value,
                "to_state": state.value,
            },
        )
        self.state = state


class StreamRelay:
    """Turns one chat input into an ordered sequence of SSE event strings.

    Every run ends with either exactly one ``{"done": true}`` event or exactly
    one error event; nothing is written once the client has gone away.
    """

    def __init__(
        self,
        providers: Mapping[str, ChatProvider],
        *,
        token_delay_seconds: float,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._providers = providers
        self._default_models = {
            provider_id: provider.descriptor.default_model
            for provider_id, provider in providers.items()
        }
        self._token_delay_seconds = token_delay_seconds
        self._sleep = sleep

    async def relay(
        self,
        chat_input: ChatInput,
        is_disconnected: DisconnectProbe = _never_disconnected,
    ) -> AsyncIterator[str]:
        run = RelayRun(conversation_id=str(uuid.uuid4()))
        start = time.monotonic()
        try:
            try:
                request = validate_chat_input(
                    chat_input.message,
                    chat_input.provider,
                    chat_input.model,
                    chat_input.config,
                    self._default_models,
                )
            except ChatValidationError as e:
                run.transition(RelayState.ERRORING)
                logger.info(
                    "Chat stream rejected",
                    extra={"conversation_id": run.conversation_id, "error": e.error},
                )
                if not await self._client_gone(run, is_disconnected):
                    yield encode_sse(validation_error_event(e))
                return

            run.transition(RelayState.DISPATCHING)
            run.provider = request.provider_id
            run.model = request.model_id
            provider = self._providers[request.provider_id]

            if provider.supports_streaming():
                run.transition(RelayState.NATIVE_STREAMING)
                events = self._native(provider, request, run, is_disconnected)
            else:
                run.transition(RelayState.SIMULATED_STREAMING)
                events = self._simulated(provider, request, run, is_disconnected)

            async with aclosing(events) as stream:
                async for event in stream:
                    yield event
        finally:
            run.transition(RelayState.CLOSED)
            logger.info(
                "Chat stream closed",
                extra={
                    "conversation_id": run.conversation_id,
                    "provider": run.provider,
                    "model": run.model,
                    "chunks": run.chunks,
                    "client_disconnected": run.client_disconnected,
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )

    async def _native(
        self,
        provider: ChatProvider,
        request: ChatRequest,
        run: RelayRun,
        is_disconnected: DisconnectProbe,
    ) -> AsyncIterator[str]:
        upstream = provider.stream_message(
            request.model_id, request.message, request.config, run.conversation_id
        )
        try:
            async with aclosing(upstream) as chunks:
                async for chunk in chunks:
                    if await self._client_gone(run, is_disconnected):
                        return
                    run.chunks += 1
                    yield encode_sse(chunk.to_event())
        except Exception as e:
            async for event in self._fail(e, request, run, is_disconnected):
                yield event
            return

        async for event in self._complete(run, is_disconnected):
            yield event

    async def _simulated(
        self,
        provider: ChatProvider,
        request: ChatRequest,
        run: RelayRun,
        is_disconnected: DisconnectProbe,
    ) -> AsyncIterator[str]:
        # The whole reply is fetched before the first token goes out.
        try:
            response = await provider.send_message(
                request.model_id, request.message, request.config
            )
        except Exception as e:
            async for event in self._fail(e, request, run, is_disconnected):
                yield event
            return

        tokens = split_tokens(response.content)
        for index, token in enumerate(tokens):
            if index:
                await self._sleep(self._token_delay_seconds)
            if await self._client_gone(run, is_disconnected):
                return
            is_last = index == len(tokens) - 1
            chunk = StreamChunk(
                content=token,
                provider=request.provider_id,
                model=request.model_id,
                conversation_id=run.conversation_id,
                usage=response.usage if is_last else None,
                finish_reason=response.finish_reason if is_last else None,
            )
            run.chunks += 1
            yield encode_sse(chunk.to_event())

        async for event in self._complete(run, is_disconnected):
            yield event

    async def _complete(self, run: RelayRun, is_disconnected: DisconnectProbe) -> AsyncIterator[str]:
        run.transition(RelayState.COMPLETING)
        if not await self._client_gone(run, is_disconnected):
            yield encode_sse(DONE_EVENT)

    async def _fail(
        self,
        error: Exception,
        request: ChatRequest,
        run: RelayRun,
        is_disconnected: DisconnectProbe,
    ) -> AsyncIterator[str]:
        run.transition(RelayState.ERRORING)
        if isinstance(error, ProviderError):
            logger.warning(
                "Upstream call failed",
                extra={
                    "conversation_id": run.conversation_id,
                    "provider": request.provider_id,
                    "model": request.model_id,
                    "error_kind": error.kind.value,
                    "status_code": error.status_code,
                    "chunks_before_error": run.chunks,
                },
            )
        else:
            logger.error(
                "Unexpected relay failure",
                exc_info=error,
                extra={"conversation_id": run.conversation_id, "provider": request.provider_id},
            )
        if not await self._client_gone(run, is_disconnected):
            yield encode_sse(provider_error_event(error, request.provider_id, request.model_id))

    async def _client_gone(self, run: RelayRun, is_disconnected: DisconnectProbe) -> bool:
        if await is_disconnected():
            run.client_disconnected = True
            return True
        return False
