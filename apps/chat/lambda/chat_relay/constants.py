"""Shared constants and literal types for the chat relay."""

import re
from typing import Literal

ProviderId = Literal["openai", "anthropic", "google", "mistral", "groq", "xai", "lmstudio"]
OrchestratorName = Literal["direct", "langgraph"]

DEFAULT_PROVIDER = "openai"
AWS_REGION = "ap-northeast-1"
LANGSMITH_PROJECT = "chat-relay"
USER_AGENT = "chat-relay/0.1.0"

MAX_MESSAGE_BYTES = 8192
MAX_SYSTEM_PROMPT_CHARS = 4096
CONTROL_CHARACTERS_PATTERN = re.compile(r"[\x00-\x1f\x7f]")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TOP_P = 1.0
MAX_TEMPERATURE = 2.0
MAX_MAX_TOKENS = 200_000

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_TOKEN_DELAY_SECONDS = 0.02
DEFAULT_MODEL_CACHE_SECONDS = 300.0
FIRST_EVENT_TIMEOUT_SECONDS = 30.0

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"
ANTHROPIC_STOP_LINE = "event: message_stop"
ANTHROPIC_VERSION = "2023-06-01"
LMSTUDIO_DEFAULT_API_KEY = "lm-studio"

STREAM_STOPPED_NOTE = "\n\n[Streaming stopped by user]"

API_KEY_PATTERNS: dict[str, re.Pattern[str]] = {
    "openai": re.compile(r"^sk-[A-Za-z0-9_-]{32,}$"),
    "anthropic": re.compile(r"^sk-ant-[A-Za-z0-9_-]{32,}$"),
    "google": re.compile(r"^AIza[A-Za-z0-9_-]{35}$"),
    "mistral": re.compile(r"^[A-Za-z0-9]{32,}$"),
    "groq": re.compile(r"^gsk_[A-Za-z0-9]{52}$"),
    "xai": re.compile(r"^xai-[A-Za-z0-9_-]{32,}$"),
}
