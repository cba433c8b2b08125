"""Build the immutable provider registry from settings."""

from types import MappingProxyType

from chat_relay.provider_registry import build_descriptors
from chat_relay.settings import RelaySettings

from .anthropic_provider import AnthropicChatProvider
from .base import BaseChatProvider, ChatProvider
from .google_provider import GoogleChatProvider
from .lmstudio_provider import LMStudioChatProvider
from .openai_compatible import GroqChatProvider, MistralChatProvider, XAIChatProvider
from .openai_provider import OpenAIChatProvider

_PROVIDER_CLASSES: dict[str, type[BaseChatProvider]] = {
    "openai": OpenAIChatProvider,
    "anthropic": AnthropicChatProvider,
    "google": GoogleChatProvider,
    "mistral": MistralChatProvider,
    "groq": GroqChatProvider,
    "xai": XAIChatProvider,
}


def build_providers(settings: RelaySettings) -> MappingProxyType[str, ChatProvider]:
    providers: dict[str, ChatProvider] = {}
    for provider_id, descriptor in build_descriptors(settings).items():
        provider_settings = settings.for_provider(provider_id)
        if provider_id == "lmstudio":
            providers[provider_id] = LMStudioChatProvider(
                descriptor,
                provider_settings,
                settings.request_timeout_seconds,
                cache_seconds=settings.model_cache_seconds,
            )
            continue
        providers[provider_id] = _PROVIDER_CLASSES[provider_id](
            descriptor, provider_settings, settings.request_timeout_seconds
        )
    return MappingProxyType(providers)


def default_models(providers: MappingProxyType[str, ChatProvider]) -> dict[str, str]:
    return {provider_id: provider.descriptor.default_model for provider_id, provider in providers.items()}
