"""Conversion helpers between relay requests and provider-specific payloads."""

from typing import Any

from .schemas import GenerationConfig


def build_chat_completion_messages(message: str, config: GenerationConfig) -> list[dict[str, str]]:
    """OpenAI-style ``messages`` array: optional system prompt, then the user turn."""
    messages: list[dict[str, str]] = []
    if config.system_prompt:
        messages.append({"role": "system", "content": config.system_prompt})
    messages.append({"role": "user", "content": message})
    return messages


def build_chat_completion_body(
    model: str,
    message: str,
    config: GenerationConfig,
    *,
    stream: bool,
    include_penalties: bool,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "messages": build_chat_completion_messages(message, config),
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "top_p": config.top_p,
    }
    if include_penalties:
        body["frequency_penalty"] = config.frequency_penalty
        body["presence_penalty"] = config.presence_penalty
    if stream:
        body["stream"] = True
    return body


def build_anthropic_body(
    model: str, message: str, config: GenerationConfig, *, stream: bool
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "messages": [{"role": "user", "content": message}],
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
    }
    if config.system_prompt:
        body["system"] = config.system_prompt
    if stream:
        body["stream"] = True
    return body


def build_google_body(message: str, config: GenerationConfig) -> dict[str, Any]:
    body: dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": message}]}],
        "generationConfig": {
            "temperature": config.temperature,
            "maxOutputTokens": config.max_tokens,
            "topP": config.top_p,
        },
    }
    if config.system_prompt:
        body["systemInstruction"] = {"parts": [{"text": config.system_prompt}]}
    return body


def normalize_usage(
    prompt_tokens: int | None, completion_tokens: int | None, total_tokens: int | None = None
) -> dict[str, int]:
    """Usage record in the chat-completions shape every client already understands."""
    prompt = prompt_tokens or 0
    completion = completion_tokens or 0
    return {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": total_tokens if total_tokens is not None else prompt + completion,
    }
