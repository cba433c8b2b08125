"""LM Studio provider: a local OpenAI-compatible server with a live model catalogue."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from chat_relay.constants import LMSTUDIO_DEFAULT_API_KEY
from chat_relay.errors import ProviderError
from chat_relay.provider_registry import MODEL_CATALOGUES, ProviderDescriptor
from chat_relay.schemas import ModelInfo
from chat_relay.settings import ProviderSettings

from .http_provider import UpstreamRequest
from .openai_compatible import OpenAICompatibleProvider

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LENGTH = 8192


@dataclass(frozen=True)
class CachedModels:
    models: tuple[ModelInfo, ...]
    fetched_at: float


class LMStudioChatProvider(OpenAICompatibleProvider):
    """Model list is fetched live and kept for ``cache_seconds``.

    The cache is replaced as a whole on refresh, so concurrent readers see
    either the old or the new snapshot; the last refresh to finish wins.
    A failed fetch serves the built-in defaults and is not cached.
    """

    include_penalties = True
    unreachable_hint = "Please ensure LM Studio is running."

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        settings: ProviderSettings,
        timeout_seconds: float,
        *,
        cache_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(descriptor, settings, timeout_seconds)
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._cache: CachedModels | None = None

    def is_configured(self) -> bool:
        return True

    def _require_api_key(self) -> str:
        return self._settings.api_key or LMSTUDIO_DEFAULT_API_KEY

    def _check_key_format(self, api_key: str | None) -> str | None:
        return None

    def _probe_request(self, model: str) -> UpstreamRequest:
        return UpstreamRequest(path="/models", method="GET")

    async def _probe(self, api_key: str | None, model: str) -> None:
        await self._execute(self._probe_request(model), api_key or self._require_api_key())

    async def list_models(self) -> list[ModelInfo]:
        now = self._clock()
        cached = self._cache
        if cached is not None and now - cached.fetched_at < self._cache_seconds:
            return list(cached.models)

        try:
            response = await self._execute(
                UpstreamRequest(path="/models", method="GET"), self._require_api_key()
            )
            models = parse_model_catalogue(response.json())
        except (ProviderError, ValueError) as e:
            logger.warning(
                "Failed to fetch LM Studio models; serving defaults",
                extra={"provider": self.name, "error": str(e)},
            )
            return list(MODEL_CATALOGUES[self.name])

        self._cache = CachedModels(models=tuple(models), fetched_at=now)
        return models


def parse_model_catalogue(data: Any) -> list[ModelInfo]:
    if not isinstance(data, dict):
        return []
    entries = data.get("data") or data.get("models") or []
    models: list[ModelInfo] = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        model_id = str(entry["id"])
        models.append(
            ModelInfo(
                id=model_id,
                display_name=model_id.split("/")[-1] or model_id,
                context_length=(
                    entry.get("context_length")
                    or entry.get("max_context_length")
                    or DEFAULT_CONTEXT_LENGTH
                ),
                multimodal=bool(entry.get("multimodal", False)),
            )
        )
    return models
