"""Runtime infrastructure helpers for settings, credentials and tracing."""

import logging
import os
from functools import lru_cache
from typing import Any

import boto3
from langsmith.run_trees import get_cached_client

from chat_relay.constants import AWS_REGION, LANGSMITH_PROJECT
from chat_relay.settings import RelaySettings, SecretLookup, load_settings

logger = logging.getLogger(__name__)


def _get_secure_parameter(ssm_client: Any, parameter_name: str) -> str:
    result = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
    value = result["Parameter"].get("Value")
    if not value:
        raise RuntimeError(f"SSM parameter {parameter_name} has no value")
    return value


def _get_optional_secure_parameter(ssm_client: Any, parameter_name: str) -> str | None:
    try:
        return _get_secure_parameter(ssm_client, parameter_name)
    except Exception:
        logger.warning(
            "Optional SSM parameter is unavailable; disabling dependent feature",
            extra={"parameter_name": parameter_name},
            exc_info=True,
        )
        return None


def build_ssm_secret_lookup(prefix: str, region_name: str) -> SecretLookup:
    ssm_client = boto3.client("ssm", region_name=region_name)
    prefix = prefix.rstrip("/")

    def lookup(suffix: str) -> str | None:
        return _get_optional_secure_parameter(ssm_client, f"{prefix}/{suffix}")

    return lookup


@lru_cache(maxsize=1)
def get_relay_settings() -> RelaySettings:
    secret_lookup = None
    ssm_prefix = os.environ.get("CHAT_RELAY_SSM_PREFIX")
    if ssm_prefix:
        secret_lookup = build_ssm_secret_lookup(
            ssm_prefix, os.environ.get("AWS_REGION", AWS_REGION)
        )
    return load_settings(os.environ, secret_lookup)


def _configure_langsmith(langsmith_api_key: str | None) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_API_KEY"] = langsmith_api_key
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    _configure_langsmith(get_relay_settings().langsmith_api_key)


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)
