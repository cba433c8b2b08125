"""Provider descriptor registry and static model catalogues."""

from dataclasses import dataclass
from types import MappingProxyType

from .constants import ProviderId
from .schemas import ModelInfo
from .settings import RelaySettings


@dataclass(frozen=True)
class ProviderDescriptor:
    id: ProviderId
    display_name: str
    description: str
    base_url: str
    requires_api_key: bool
    supports_streaming: bool
    default_model: str
    documentation_url: str


def _model(model_id: str, display_name: str, context_length: int, multimodal: bool = False) -> ModelInfo:
    return ModelInfo(
        id=model_id,
        display_name=display_name,
        context_length=context_length,
        multimodal=multimodal,
    )


# Descriptor fields other than base_url; base_url comes from settings.
_DESCRIPTOR_FIELDS: dict[str, dict[str, object]] = {
    "openai": {
        "display_name": "OpenAI",
        "description": "OpenAI GPT models including GPT-4o, GPT-4 Turbo, and GPT-3.5 Turbo",
        "requires_api_key": True,
        "supports_streaming": False,
        "default_model": "gpt-4o",
        "documentation_url": "https://platform.openai.com/docs",
    },
    "anthropic": {
        "display_name": "Anthropic",
        "description": "Anthropic Claude models including Claude 3.5 Sonnet and Claude 3 Haiku",
        "requires_api_key": True,
        "supports_streaming": True,
        "default_model": "claude-3-5-sonnet-20241022",
        "documentation_url": "https://docs.anthropic.com",
    },
    "google": {
        "display_name": "Google Gemini",
        "description": "Google Gemini models including Gemini 1.5 Pro and Flash",
        "requires_api_key": True,
        "supports_streaming": True,
        "default_model": "gemini-1.5-flash",
        "documentation_url": "https://ai.google.dev/docs",
    },
    "mistral": {
        "display_name": "Mistral AI",
        "description": "Mistral AI models including Mistral Large and Mixtral",
        "requires_api_key": True,
        "supports_streaming": True,
        "default_model": "mistral-large-latest",
        "documentation_url": "https://docs.mistral.ai",
    },
    "groq": {
        "display_name": "Groq",
        "description": "Groq fast inference for Llama, Mixtral, and Gemma models",
        "requires_api_key": True,
        "supports_streaming": True,
        "default_model": "llama3-70b-8192",
        "documentation_url": "https://console.groq.com/docs",
    },
    "xai": {
        "display_name": "xAI",
        "description": "xAI Grok models",
        "requires_api_key": True,
        "supports_streaming": True,
        "default_model": "grok-beta",
        "documentation_url": "https://docs.x.ai",
    },
    "lmstudio": {
        "display_name": "LM Studio",
        "description": "Local LLM models running in LM Studio with OpenAI-compatible API",
        "requires_api_key": False,
        "supports_streaming": True,
        "default_model": "lmstudio-community/Meta-Llama-3-8B-Instruct",
        "documentation_url": "https://lmstudio.ai/docs",
    },
}

PROVIDER_IDS: tuple[str, ...] = tuple(_DESCRIPTOR_FIELDS)


def build_descriptors(settings: RelaySettings) -> MappingProxyType[str, ProviderDescriptor]:
    return MappingProxyType(
        {
            provider_id: ProviderDescriptor(
                id=provider_id,  # type: ignore[arg-type]
                base_url=settings.for_provider(provider_id).base_url,
                **fields,  # type: ignore[arg-type]
            )
            for provider_id, fields in _DESCRIPTOR_FIELDS.items()
        }
    )


MODEL_CATALOGUES: dict[str, tuple[ModelInfo, ...]] = {
    # --- OpenAI models ---
    "openai": (
        _model("gpt-4o", "GPT-4o", 128_000, multimodal=True),
        _model("gpt-4o-mini", "GPT-4o Mini", 128_000, multimodal=True),
        _model("gpt-4-turbo", "GPT-4 Turbo", 128_000, multimodal=True),
        _model("gpt-4", "GPT-4", 8192),
        _model("gpt-3.5-turbo", "GPT-3.5 Turbo", 16_385),
    ),
    # --- Anthropic models ---
    "anthropic": (
        _model("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", 200_000, multimodal=True),
        _model("claude-3-5-haiku-20241022", "Claude 3.5 Haiku", 200_000, multimodal=True),
        _model("claude-3-opus-20240229", "Claude 3 Opus", 200_000, multimodal=True),
        _model("claude-3-sonnet-20240229", "Claude 3 Sonnet", 200_000, multimodal=True),
        _model("claude-3-haiku-20240307", "Claude 3 Haiku", 200_000, multimodal=True),
    ),
    # --- Google models ---
    "google": (
        _model("gemini-1.5-pro", "Gemini 1.5 Pro", 2_000_000, multimodal=True),
        _model("gemini-1.5-flash", "Gemini 1.5 Flash", 1_000_000, multimodal=True),
        _model("gemini-1.0-pro", "Gemini 1.0 Pro", 30_720),
    ),
    # --- Mistral models ---
    "mistral": (
        _model("mistral-large-latest", "Mistral Large", 128_000),
        _model("mistral-medium", "Mistral Medium", 32_768),
        _model("mistral-small", "Mistral Small", 32_768),
        _model("open-mistral-7b", "Open Mistral 7B", 32_768),
        _model("open-mixtral-8x7b", "Open Mixtral 8x7B", 32_768),
        _model("open-mixtral-8x22b", "Open Mixtral 8x22B", 65_536),
    ),
    # --- Groq models ---
    "groq": (
        _model("llama3-70b-8192", "Llama 3 70B", 8192),
        _model("llama3-8b-8192", "Llama 3 8B", 8192),
        _model("mixtral-8x7b-32768", "Mixtral 8x7B", 32_768),
        _model("gemma-7b-it", "Gemma 7B IT", 8192),
    ),
    # --- xAI models ---
    "xai": (
        _model("grok-beta", "Grok Beta", 131_072),
        _model("grok-2", "Grok 2", 131_072),
        _model("grok-2-mini", "Grok 2 Mini", 131_072),
    ),
    # LM Studio fallback when the local server cannot be reached.
    "lmstudio": (
        _model(
            "lmstudio-community/Meta-Llama-3-8B-Instruct", "Meta-Llama-3-8B-Instruct", 8192
        ),
        _model("TheBloke/Mistral-7B-Instruct-v0.2-GGUF", "Mistral-7B-Instruct-v0.2", 32_768),
        _model("lmstudio-community/Phi-3-mini-4k-instruct", "Phi-3-mini-4k-instruct", 4096),
    ),
}
