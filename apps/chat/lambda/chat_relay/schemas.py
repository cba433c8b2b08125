"""Pydantic schemas for the chat relay."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    MAX_MAX_TOKENS,
    MAX_SYSTEM_PROMPT_CHARS,
    MAX_TEMPERATURE,
)


class GenerationConfig(BaseModel):
    """Sampling parameters forwarded to the provider.

    Unknown keys (the browser client also sends ``apiKey``) are ignored.
    Numeric fields are strict: ``"0.7"`` is rejected rather than coerced.
    ``systemPrompt`` may be omitted but not sent as null.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0, le=MAX_TEMPERATURE, strict=True)
    max_tokens: int = Field(
        default=DEFAULT_MAX_TOKENS, alias="maxTokens", ge=1, le=MAX_MAX_TOKENS, strict=True
    )
    top_p: float = Field(default=DEFAULT_TOP_P, alias="topP", ge=0, le=1, strict=True)
    system_prompt: str = Field(
        default=None, alias="systemPrompt", max_length=MAX_SYSTEM_PROMPT_CHARS, strict=True
    )
    frequency_penalty: float = Field(
        default=0.0, alias="frequencyPenalty", ge=-2, le=2, strict=True
    )
    presence_penalty: float = Field(default=0.0, alias="presencePenalty", ge=-2, le=2, strict=True)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str
    provider_id: str = Field(alias="providerId")
    model_id: str = Field(alias="modelId")
    config: GenerationConfig = Field(default_factory=GenerationConfig)


class ChatInput(BaseModel):
    """Raw client input, validated by ``validation.validate_chat_input``."""

    message: Any = None
    provider: Any = DEFAULT_PROVIDER
    model: Any = None
    config: Any = None


class ModelInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    display_name: str = Field(alias="displayName")
    context_length: int = Field(alias="contextLength")
    multimodal: bool = False


class StreamChunk(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content: str
    provider: str
    model: str
    conversation_id: str | None = Field(default=None, alias="conversationId")
    usage: dict[str, Any] | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")

    def to_event(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SendMessageResponse(BaseModel):
    success: bool = True
    response: str
    provider: str
    model: str
    conversation_id: str = Field(serialization_alias="conversationId")
    usage: dict[str, Any] | None = None
    finish_reason: str | None = Field(default=None, serialization_alias="finishReason")
    response_time: int = Field(serialization_alias="responseTime")
    timestamp: str


class ProviderSummary(BaseModel):
    id: str
    name: str
    display_name: str = Field(serialization_alias="displayName")
    description: str
    models: list[ModelInfo]
    requires_api_key: bool = Field(serialization_alias="requiresApiKey")
    supports_streaming: bool = Field(serialization_alias="supportsStreaming")
    status: str


class ProviderDetail(ProviderSummary):
    base_url: str = Field(serialization_alias="baseUrl")
    documentation: str


class ConnectionTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str | None = None
    api_key: str | None = Field(default=None, alias="apiKey")
    model: str | None = None
