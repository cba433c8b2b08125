"""Google Gemini generateContent adapter."""

from typing import Any

from chat_relay.message_mappers import build_google_body, normalize_usage
from chat_relay.schemas import GenerationConfig, StreamChunk

from .base import ProviderResponse
from .http_provider import HttpChatProvider, UpstreamRequest


def _candidate_text(payload: dict[str, Any]) -> tuple[str, str | None]:
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return "", None
    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    return text, candidate.get("finishReason")


def _usage(payload: dict[str, Any]) -> dict[str, int] | None:
    metadata = payload.get("usageMetadata")
    if not isinstance(metadata, dict):
        return None
    return normalize_usage(
        metadata.get("promptTokenCount"),
        metadata.get("candidatesTokenCount"),
        metadata.get("totalTokenCount"),
    )


class GoogleChatProvider(HttpChatProvider):
    # alt=sse streams end with the response body, not a sentinel line
    terminal_lines = ()
    key_format_hint = 'Key should start with "AIza".'

    def _auth_headers(self, api_key: str) -> dict[str, str]:
        return {"x-goog-api-key": api_key}

    def _completion_request(
        self, model: str, message: str, config: GenerationConfig, *, stream: bool
    ) -> UpstreamRequest:
        if stream:
            return UpstreamRequest(
                path=f"/models/{model}:streamGenerateContent",
                params={"alt": "sse"},
                body=build_google_body(message, config),
            )
        return UpstreamRequest(
            path=f"/models/{model}:generateContent", body=build_google_body(message, config)
        )

    def _probe_request(self, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            path=f"/models/{model}:generateContent",
            body={
                "contents": [{"role": "user", "parts": [{"text": "test"}]}],
                "generationConfig": {"maxOutputTokens": 1},
            },
        )

    def _parse_completion(self, data: dict[str, Any], model: str) -> ProviderResponse:
        if not data.get("candidates"):
            raise ValueError("response has no candidates")
        content, finish_reason = _candidate_text(data)
        return ProviderResponse(
            content=content,
            usage=_usage(data),
            finish_reason=finish_reason,
            provider=self.name,
            model=model,
        )

    def _chunk_from_payload(
        self, payload: dict[str, Any], model: str, conversation_id: str | None
    ) -> StreamChunk | None:
        text, finish_reason = _candidate_text(payload)
        if not text:
            return None
        return StreamChunk(
            content=text,
            provider=self.name,
            model=model,
            conversation_id=conversation_id,
            usage=_usage(payload),
            finish_reason=finish_reason,
        )
