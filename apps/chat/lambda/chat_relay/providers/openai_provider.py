"""OpenAI provider implementation backed by the official SDK."""

import logging
import time

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from chat_relay.constants import USER_AGENT
from chat_relay.errors import UpstreamError, classify_http_error, unreachable_error
from chat_relay.message_mappers import build_chat_completion_body
from chat_relay.schemas import GenerationConfig

from .base import BaseChatProvider, ProviderResponse

logger = logging.getLogger(__name__)


class OpenAIChatProvider(BaseChatProvider):
    """Single-shot completions only; the relay chunks the reply itself."""

    key_format_hint = 'Key should start with "sk-".'

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self._settings.base_url,
            timeout=self._timeout_seconds,
            max_retries=0,
            default_headers={"User-Agent": USER_AGENT},
        )

    async def _create_completion(self, api_key: str, **params):
        try:
            async with self._client(api_key) as client:
                return await client.chat.completions.create(**params)
        except APIConnectionError as e:
            raise unreachable_error(self.name, self.display_name, type(e).__name__) from e
        except APIStatusError as e:
            raise classify_http_error(
                self.name, self.display_name, e.status_code, e.response.content
            ) from e
        except OpenAIError as e:
            raise UpstreamError(
                f"{self.display_name} API error: {e}", provider=self.name
            ) from e

    async def send_message(
        self, model: str, message: str, config: GenerationConfig
    ) -> ProviderResponse:
        api_key = self._require_api_key()
        body = build_chat_completion_body(
            model, message, config, stream=False, include_penalties=True
        )

        start = time.time()
        completion = await self._create_completion(api_key, **body)
        duration_ms = int((time.time() - start) * 1000)

        if not completion.choices:
            raise UpstreamError(
                f"{self.display_name} API returned an unexpected response", provider=self.name
            )
        choice = completion.choices[0]
        result = ProviderResponse(
            content=choice.message.content or "",
            usage=completion.usage.model_dump() if completion.usage else None,
            finish_reason=choice.finish_reason,
            provider=self.name,
            model=completion.model or model,
        )
        self._log_response(result, duration_ms)
        return result

    async def _probe(self, api_key: str | None, model: str) -> None:
        await self._create_completion(
            api_key or "",
            model=model,
            messages=[{"role": "user", "content": "test"}],
            max_tokens=1,
        )
