"""Orchestration interfaces for single-shot chat execution."""

from collections.abc import Mapping
from typing import Protocol

from langsmith import traceable

from chat_relay.providers.base import ChatProvider, ProviderResponse
from chat_relay.schemas import ChatRequest


class ChatOrchestrator(Protocol):
    async def run(self, request: ChatRequest) -> ProviderResponse:
        """Execute the chat request using the selected orchestration strategy."""


def resolve_provider(providers: Mapping[str, ChatProvider], provider_id: str) -> ChatProvider:
    provider = providers.get(provider_id)
    if provider is None:
        raise RuntimeError(f"Unsupported provider: {provider_id}")
    return provider


@traceable(run_type="llm", name="chat_relay.send_message")
async def invoke_provider(provider: ChatProvider, request: ChatRequest) -> ProviderResponse:
    return await provider.send_message(request.model_id, request.message, request.config)
