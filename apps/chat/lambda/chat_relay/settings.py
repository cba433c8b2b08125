"""Process configuration assembled once at startup."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .constants import (
    DEFAULT_MODEL_CACHE_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_DELAY_SECONDS,
    LMSTUDIO_DEFAULT_API_KEY,
    OrchestratorName,
)

logger = logging.getLogger(__name__)

SecretLookup = Callable[[str], str | None]


@dataclass(frozen=True)
class ProviderSettings:
    base_url: str
    api_key: str | None = None


@dataclass(frozen=True)
class RelaySettings:
    providers: Mapping[str, ProviderSettings]
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    simulated_token_delay_seconds: float = DEFAULT_TOKEN_DELAY_SECONDS
    model_cache_seconds: float = DEFAULT_MODEL_CACHE_SECONDS
    orchestrator: OrchestratorName = "direct"
    langsmith_api_key: str | None = field(default=None, repr=False)

    def for_provider(self, provider_id: str) -> ProviderSettings:
        return self.providers[provider_id]


# provider id -> (API key variable, base URL variable, default base URL)
PROVIDER_ENVIRONMENT: dict[str, tuple[str, str, str]] = {
    "openai": ("OPENAI_API_KEY", "OPENAI_BASE_URL", "https://api.openai.com/v1"),
    "anthropic": ("ANTHROPIC_API_KEY", "ANTHROPIC_BASE_URL", "https://api.anthropic.com"),
    "google": (
        "GOOGLE_API_KEY",
        "GOOGLE_BASE_URL",
        "https://generativelanguage.googleapis.com/v1beta",
    ),
    "mistral": ("MISTRAL_API_KEY", "MISTRAL_BASE_URL", "https://api.mistral.ai/v1"),
    "groq": ("GROQ_API_KEY", "GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
    "xai": ("XAI_API_KEY", "XAI_BASE_URL", "https://api.x.ai/v1"),
    "lmstudio": ("LMSTUDIO_API_KEY", "LMSTUDIO_URL", "http://localhost:1234/v1"),
}


def _read_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _read_orchestrator(environ: Mapping[str, str]) -> OrchestratorName:
    value = environ.get("CHAT_RELAY_ORCHESTRATOR", "direct").strip().lower()
    if value == "direct":
        return "direct"
    if value == "langgraph":
        return "langgraph"
    raise ValueError(f"CHAT_RELAY_ORCHESTRATOR must be 'direct' or 'langgraph', got {value!r}")


def load_settings(
    environ: Mapping[str, str], secret_lookup: SecretLookup | None = None
) -> RelaySettings:
    """Build ``RelaySettings`` from environment-style values.

    ``secret_lookup`` is consulted for API keys absent from ``environ``; it
    receives the parameter suffix (e.g. ``"groq-api-key"``).
    """
    providers: dict[str, ProviderSettings] = {}
    for provider_id, (key_var, url_var, default_url) in PROVIDER_ENVIRONMENT.items():
        api_key = environ.get(key_var) or None
        if api_key is None and secret_lookup is not None:
            api_key = secret_lookup(f"{provider_id}-api-key")
        if provider_id == "lmstudio" and api_key is None:
            api_key = LMSTUDIO_DEFAULT_API_KEY
        base_url = (environ.get(url_var) or default_url).rstrip("/")
        providers[provider_id] = ProviderSettings(base_url=base_url, api_key=api_key)

    langsmith_api_key = environ.get("LANGSMITH_API_KEY") or None
    if langsmith_api_key is None and secret_lookup is not None:
        langsmith_api_key = secret_lookup("langsmith-api-key")

    settings = RelaySettings(
        providers=MappingProxyType(providers),
        request_timeout_seconds=_read_float(
            environ, "CHAT_RELAY_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS
        ),
        simulated_token_delay_seconds=(
            _read_float(environ, "CHAT_RELAY_TOKEN_DELAY_MS", DEFAULT_TOKEN_DELAY_SECONDS * 1000)
            / 1000
        ),
        model_cache_seconds=_read_float(
            environ, "CHAT_RELAY_MODEL_CACHE_SECONDS", DEFAULT_MODEL_CACHE_SECONDS
        ),
        orchestrator=_read_orchestrator(environ),
        langsmith_api_key=langsmith_api_key,
    )
    logger.info(
        "Relay settings loaded",
        extra={
            "configured_providers": sorted(
                provider_id for provider_id, value in providers.items() if value.api_key
            ),
            "orchestrator": settings.orchestrator,
        },
    )
    return settings
