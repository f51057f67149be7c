from __future__ import annotations

import os
from typing import Optional

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from llm_fanout.clients.base import DEFAULT_MAX_OUTPUT_TOKENS
from llm_fanout.resilience import DEFAULT_MAX_RETRIES

load_dotenv()

logger = structlog.get_logger(__name__)


def env(key: str, default: str | None = None) -> str | None:
    return os.getenv(key, default)


OPENAI_MODEL = "gpt-5.2"
XAI_MODEL = "grok-4-1-fast-reasoning"
ANTHROPIC_MODEL = "claude-sonnet-4-6"
GOOGLE_MODEL = "gemini-3-pro-preview"

PROVIDER_ORDER = ("openai", "xai", "anthropic", "google")

DEFAULT_MODELS = {
    "openai": OPENAI_MODEL,
    "xai": XAI_MODEL,
    "anthropic": ANTHROPIC_MODEL,
    "google": GOOGLE_MODEL,
}

# provider -> env vars checked in order for the key
KEY_ENV_VARS = {
    "openai": ("OPENAI_API_KEY",),
    "xai": ("XAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
}

MODEL_ENV_VARS = {
    "openai": "OPENAI_MODEL",
    "xai": "XAI_MODEL",
    "anthropic": "ANTHROPIC_MODEL",
    "google": "GOOGLE_MODEL",
}


class ProviderSettings(BaseModel):
    provider: str
    api_key: Optional[str] = None
    model: str
    max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, ge=1)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    timeout_s: float = Field(default=60.0, gt=0)


class FanoutConfig(BaseModel):
    """Explicit configuration handed to the orchestrator factory; order is dispatch order."""
    providers: list[ProviderSettings] = Field(default_factory=list)


def _int_env(key: str, default: int) -> int:
    raw = env(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("invalid_env_value", key=key, value=raw, fallback=default)
        return default


def _first_env(keys: tuple[str, ...]) -> str | None:
    for k in keys:
        v = env(k)
        if v:
            return v
    return None


def load_config_from_env(keys: dict[str, str] | None = None) -> FanoutConfig:
    """
    Read provider settings once from the environment.
    Explicit keys override env vars. Missing keys are not an error: the client
    is built but reports itself unconfigured.
    """
    keys = keys or {}
    max_tokens = max(1, _int_env("LLM_FANOUT_MAX_OUTPUT_TOKENS", DEFAULT_MAX_OUTPUT_TOKENS))
    max_retries = max(0, _int_env("LLM_FANOUT_MAX_RETRIES", DEFAULT_MAX_RETRIES))

    providers = []
    for provider in PROVIDER_ORDER:
        providers.append(
            ProviderSettings(
                provider=provider,
                api_key=keys.get(provider) or _first_env(KEY_ENV_VARS[provider]),
                model=env(MODEL_ENV_VARS[provider]) or DEFAULT_MODELS[provider],
                max_output_tokens=max_tokens,
                max_retries=max_retries,
            )
        )
    return FanoutConfig(providers=providers)


LOG_LEVEL = env("LLM_FANOUT_LOG_LEVEL", "WARNING")
LOG_JSON = (env("LLM_FANOUT_LOG_JSON", "") or "").lower() in {"1", "true", "yes"}
