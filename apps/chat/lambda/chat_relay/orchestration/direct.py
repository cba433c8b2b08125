"""Direct provider dispatch orchestration."""

from collections.abc import Mapping

from chat_relay.providers.base import ChatProvider, ProviderResponse
from chat_relay.schemas import ChatRequest

from .base import ChatOrchestrator, invoke_provider, resolve_provider


class DirectChatOrchestrator(ChatOrchestrator):
    def __init__(self, providers: Mapping[str, ChatProvider]) -> None:
        self._providers = providers

    async def run(self, request: ChatRequest) -> ProviderResponse:
        provider = resolve_provider(self._providers, request.provider_id)
        return await invoke_provider(provider, request)
