"""Adapters for upstreams exposing an OpenAI-style ``/chat/completions`` endpoint."""

from typing import Any

from chat_relay.message_mappers import build_chat_completion_body
from chat_relay.schemas import GenerationConfig, StreamChunk

from .base import ProviderResponse
from .http_provider import HttpChatProvider, UpstreamRequest


class OpenAICompatibleProvider(HttpChatProvider):
    include_penalties = False

    def _completion_request(
        self, model: str, message: str, config: GenerationConfig, *, stream: bool
    ) -> UpstreamRequest:
        return UpstreamRequest(
            path="/chat/completions",
            body=build_chat_completion_body(
                model, message, config, stream=stream, include_penalties=self.include_penalties
            ),
        )

    def _probe_request(self, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            path="/chat/completions",
            body={"model": model, "messages": [{"role": "user", "content": "test"}], "max_tokens": 1},
        )

    def _parse_completion(self, data: dict[str, Any], model: str) -> ProviderResponse:
        choice = data["choices"][0]
        return ProviderResponse(
            content=choice["message"].get("content") or "",
            usage=data.get("usage"),
            finish_reason=choice.get("finish_reason"),
            provider=self.name,
            model=model,
        )

    def _chunk_from_payload(
        self, payload: dict[str, Any], model: str, conversation_id: str | None
    ) -> StreamChunk | None:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        choice = choices[0]
        delta = choice.get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        if not isinstance(content, str) or not content:
            return None
        return StreamChunk(
            content=content,
            provider=self.name,
            model=model,
            conversation_id=conversation_id,
            usage=payload.get("usage"),
            finish_reason=choice.get("finish_reason"),
        )


class GroqChatProvider(OpenAICompatibleProvider):
    key_format_hint = 'Key should start with "gsk_".'


class MistralChatProvider(OpenAICompatibleProvider):
    key_format_hint = "Key should be at least 32 alphanumeric characters."


class XAIChatProvider(OpenAICompatibleProvider):
    key_format_hint = 'Key should start with "xai-".'
