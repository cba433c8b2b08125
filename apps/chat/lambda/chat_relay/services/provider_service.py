"""Provider catalogue and connection-test use cases."""

import logging
from collections.abc import Mapping

from chat_relay.errors import ProviderNotFoundError
from chat_relay.providers.base import ChatProvider, ConnectionTestResult
from chat_relay.schemas import ModelInfo, ProviderDetail, ProviderSummary

logger = logging.getLogger(__name__)


class ProviderService:
    def __init__(self, providers: Mapping[str, ChatProvider]) -> None:
        self._providers = providers

    def provider_ids(self) -> list[str]:
        return list(self._providers)

    def _get(self, provider_id: str) -> ChatProvider:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    def display_name(self, provider_id: str) -> str:
        return self._get(provider_id).descriptor.display_name

    def requires_api_key(self, provider_id: str) -> bool:
        return self._get(provider_id).descriptor.requires_api_key

    async def _summary_fields(self, provider_id: str, provider: ChatProvider) -> dict:
        descriptor = provider.descriptor
        return {
            "id": provider_id,
            "name": descriptor.display_name,
            "display_name": descriptor.display_name,
            "description": descriptor.description,
            "models": await provider.list_models(),
            "requires_api_key": descriptor.requires_api_key,
            "supports_streaming": provider.supports_streaming(),
            "status": "configured" if provider.is_configured() else "not_configured",
        }

    async def list_providers(self) -> list[ProviderSummary]:
        return [
            ProviderSummary(**await self._summary_fields(provider_id, provider))
            for provider_id, provider in self._providers.items()
        ]

    async def get_provider(self, provider_id: str) -> ProviderDetail:
        provider = self._get(provider_id)
        return ProviderDetail(
            **await self._summary_fields(provider_id, provider),
            base_url=provider.descriptor.base_url,
            documentation=provider.descriptor.documentation_url,
        )

    async def list_models(self, provider_id: str) -> list[ModelInfo]:
        return await self._get(provider_id).list_models()

    async def test_connection(
        self, provider_id: str, api_key: str | None, model: str | None = None
    ) -> ConnectionTestResult:
        provider = self._get(provider_id)
        result = await provider.test_connection(api_key, model)
        logger.info(
            "Provider connection tested",
            extra={
                "provider": provider_id,
                "success": result.success,
                "duration_ms": result.response_time_ms,
            },
        )
        return result
