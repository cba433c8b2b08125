"""Shared httpx plumbing for adapters that talk to a JSON chat endpoint."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

import httpx

from chat_relay.constants import DONE_SENTINEL, USER_AGENT
from chat_relay.errors import UpstreamError, classify_http_error, unreachable_error
from chat_relay.framing import FrameParser, iter_payloads
from chat_relay.schemas import GenerationConfig, StreamChunk

from .base import BaseChatProvider, ProviderResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamRequest:
    path: str
    body: dict[str, Any] | None = None
    method: str = "POST"
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


class HttpChatProvider(BaseChatProvider):
    """Adapter base for upstreams reached directly over HTTP.

    Subclasses build requests and read responses; this class owns transport,
    timeouts, status classification and stream framing.
    """

    terminal_lines: tuple[str, ...] = (DONE_SENTINEL,)
    unreachable_hint = ""

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=httpx.Timeout(self._timeout_seconds),
            headers={"User-Agent": USER_AGENT, "Content-Type": "application/json"},
        )

    # --- hooks -----------------------------------------------------------

    def _auth_headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    def _completion_request(
        self, model: str, message: str, config: GenerationConfig, *, stream: bool
    ) -> UpstreamRequest:
        raise NotImplementedError

    def _probe_request(self, model: str) -> UpstreamRequest:
        raise NotImplementedError

    def _parse_completion(self, data: dict[str, Any], model: str) -> ProviderResponse:
        raise NotImplementedError

    def _chunk_from_payload(
        self, payload: dict[str, Any], model: str, conversation_id: str | None
    ) -> StreamChunk | None:
        raise NotImplementedError

    def _is_final_payload(self, payload: dict[str, Any]) -> bool:
        return False

    # --- transport -------------------------------------------------------

    async def _execute(self, request: UpstreamRequest, api_key: str) -> httpx.Response:
        try:
            async with self._http_client() as client:
                response = await client.request(
                    request.method,
                    request.path,
                    params=request.params or None,
                    json=request.body,
                    headers={**request.headers, **self._auth_headers(api_key)},
                )
        except httpx.HTTPError as e:
            raise unreachable_error(self.name, self.display_name, self._describe(e)) from e

        if not response.is_success:
            raise classify_http_error(
                self.name, self.display_name, response.status_code, response.content
            )
        return response

    def _describe(self, error: httpx.HTTPError) -> str:
        detail = "timed out" if isinstance(error, httpx.TimeoutException) else type(error).__name__
        if self.unreachable_hint:
            detail = f"{detail}. {self.unreachable_hint}"
        return detail

    async def _probe(self, api_key: str | None, model: str) -> None:
        await self._execute(self._probe_request(model), api_key or "")

    # --- contract --------------------------------------------------------

    async def send_message(
        self, model: str, message: str, config: GenerationConfig
    ) -> ProviderResponse:
        api_key = self._require_api_key()
        request = self._completion_request(model, message, config, stream=False)

        start = time.time()
        response = await self._execute(request, api_key)
        duration_ms = int((time.time() - start) * 1000)

        try:
            result = self._parse_completion(response.json(), model)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamError(
                f"{self.display_name} API returned an unexpected response",
                provider=self.name,
                status_code=response.status_code,
            ) from e

        self._log_response(result, duration_ms)
        return result

    async def stream_message(
        self,
        model: str,
        message: str,
        config: GenerationConfig,
        conversation_id: str | None = None,
    ) -> AsyncIterator[StreamChunk]:
        api_key = self._require_api_key()
        request = self._completion_request(model, message, config, stream=True)
        parser = FrameParser(self.terminal_lines, source=self.name)
        chunk_count = 0
        start = time.time()

        try:
            async with self._http_client() as client:
                async with client.stream(
                    request.method,
                    request.path,
                    params=request.params or None,
                    json=request.body,
                    headers={**request.headers, **self._auth_headers(api_key)},
                ) as response:
                    if not response.is_success:
                        body = await response.aread()
                        raise classify_http_error(
                            self.name, self.display_name, response.status_code, body
                        )

                    async with aclosing(iter_payloads(response.aiter_bytes(), parser)) as payloads:
                        async for payload in payloads:
                            if self._is_final_payload(payload):
                                break
                            chunk = self._chunk_from_payload(payload, model, conversation_id)
                            if chunk is not None:
                                chunk_count += 1
                                yield chunk
        except httpx.HTTPError as e:
            raise unreachable_error(self.name, self.display_name, self._describe(e)) from e
        finally:
            parser.reset()
            logger.info(
                "Upstream stream finished",
                extra={
                    "provider": self.name,
                    "model": model,
                    "conversation_id": conversation_id,
                    "chunks": chunk_count,
                    "discarded_lines": parser.discarded,
                    "duration_ms": int((time.time() - start) * 1000),
                },
            )
