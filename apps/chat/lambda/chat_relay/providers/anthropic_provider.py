"""Anthropic Messages API adapter."""

from typing import Any

from chat_relay.constants import ANTHROPIC_STOP_LINE, ANTHROPIC_VERSION
from chat_relay.errors import UpstreamError
from chat_relay.message_mappers import build_anthropic_body, normalize_usage
from chat_relay.schemas import GenerationConfig, StreamChunk

from .base import ProviderResponse
from .http_provider import HttpChatProvider, UpstreamRequest


class AnthropicChatProvider(HttpChatProvider):
    """Claude Messages API.

    Streams are typed SSE events; only ``text_delta`` blocks carry content and
    ``message_stop`` ends the message.
    """

    terminal_lines = (ANTHROPIC_STOP_LINE,)
    key_format_hint = 'Key should start with "sk-ant-".'

    def _auth_headers(self, api_key: str) -> dict[str, str]:
        return {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}

    def _completion_request(
        self, model: str, message: str, config: GenerationConfig, *, stream: bool
    ) -> UpstreamRequest:
        return UpstreamRequest(
            path="/v1/messages", body=build_anthropic_body(model, message, config, stream=stream)
        )

    def _probe_request(self, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            path="/v1/messages",
            body={"model": model, "messages": [{"role": "user", "content": "test"}], "max_tokens": 1},
        )

    def _parse_completion(self, data: dict[str, Any], model: str) -> ProviderResponse:
        content = "".join(
            block.get("text", "") for block in data["content"] if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return ProviderResponse(
            content=content,
            usage=normalize_usage(usage.get("input_tokens"), usage.get("output_tokens")),
            finish_reason=data.get("stop_reason"),
            provider=self.name,
            model=data.get("model") or model,
        )

    def _is_final_payload(self, payload: dict[str, Any]) -> bool:
        return payload.get("type") == "message_stop"

    def _chunk_from_payload(
        self, payload: dict[str, Any], model: str, conversation_id: str | None
    ) -> StreamChunk | None:
        event_type = payload.get("type")
        if event_type == "error":
            error = payload.get("error") or {}
            detail = error.get("message") if isinstance(error, dict) else None
            raise UpstreamError(
                f"{self.display_name} API error: {detail or 'Unknown error'}",
                provider=self.name,
            )
        if event_type != "content_block_delta":
            return None

        delta = payload.get("delta") or {}
        if delta.get("type") != "text_delta":
            return None
        text = delta.get("text")
        if not isinstance(text, str) or not text:
            return None
        return StreamChunk(
            content=text, provider=self.name, model=model, conversation_id=conversation_id
        )
