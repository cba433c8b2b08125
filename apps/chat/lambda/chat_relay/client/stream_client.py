"""Consumer of the relay's ``/api/chat/stream`` endpoint."""

import asyncio
import json
import logging
from contextlib import aclosing
from typing import Any

import httpx

from chat_relay.constants import FIRST_EVENT_TIMEOUT_SECONDS, USER_AGENT
from chat_relay.framing import FrameParser, iter_payloads

from .view import ConversationView

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timeout. Please try again."


class RelayStreamClient:
    """Runs one relay stream per user message and renders it into a view.

    Sending a new message cancels the stream still open for the previous
    one; the cancelled task closes its HTTP response on the way out.
    """

    def __init__(
        self,
        base_url: str,
        view: ConversationView,
        *,
        first_event_timeout: float = FIRST_EVENT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._view = view
        self._first_event_timeout = first_event_timeout
        self._transport = transport
        self._task: asyncio.Task[None] | None = None

    @property
    def view(self) -> ConversationView:
        return self._view

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            transport=self._transport,
            timeout=httpx.Timeout(None, connect=self._first_event_timeout),
            headers={"User-Agent": USER_AGENT, "Accept": "text/event-stream"},
        )

    async def send(
        self,
        message: str,
        provider: str,
        model: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> asyncio.Task[None]:
        await self._cancel_running()
        turn = self._view.begin_turn(message)
        params = {"message": message, "provider": provider}
        if model:
            params["model"] = model
        if config:
            params["config"] = json.dumps(config)
        self._task = asyncio.create_task(self._consume(turn, params))
        return self._task

    async def stop(self) -> None:
        """User-initiated stop: keep the partial reply and mark it stopped."""
        turn = self._view.active_turn
        if turn is not None:
            self._view.stop(turn)
        await self._cancel_running()

    async def _cancel_running(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _consume(self, turn: int, params: dict[str, str]) -> None:
        parser = FrameParser(terminal_lines=(), source="relay")
        try:
            async with asyncio.timeout(self._first_event_timeout) as deadline:
                async with self._http_client() as client:
                    async with client.stream("GET", "/api/chat/stream", params=params) as response:
                        if not response.is_success:
                            self._view.fail(
                                turn,
                                f"Connection error: HTTP error! status: {response.status_code}. "
                                "Please try again.",
                            )
                            return

                        async with aclosing(
                            iter_payloads(response.aiter_bytes(), parser)
                        ) as payloads:
                            async for payload in payloads:
                                deadline.reschedule(None)
                                if self._apply(turn, payload):
                                    return
            # Body ended without a terminal event.
            self._view.finish(turn)
        except TimeoutError:
            logger.warning("Relay stream produced no event in time", extra={"turn": turn})
            self._view.fail(turn, TIMEOUT_MESSAGE)
        except httpx.HTTPError as e:
            logger.warning("Relay stream connection failed", extra={"turn": turn, "error": str(e)})
            self._view.fail(turn, f"Connection error: {e}. Please try again.")

    def _apply(self, turn: int, payload: dict[str, Any]) -> bool:
        """Render one event; True when it ends the turn."""
        if payload.get("done") is True:
            self._view.finish(turn)
            return True
        if "error" in payload:
            self._view.fail(turn, str(payload.get("message") or payload["error"]))
            return True
        content = payload.get("content")
        if isinstance(content, str):
            self._view.append_chunk(turn, content)
        return False
