from __future__ import annotations

import httpx

from llm_fanout.clients.anthropic import AnthropicClient
from llm_fanout.clients.base import BaseProviderClient, LLMClient
from llm_fanout.clients.gemini import GeminiClient
from llm_fanout.clients.openai_compat import openai_client, xai_client
from llm_fanout.orchestrator import QueryOrchestrator
from llm_fanout.settings import FanoutConfig, ProviderSettings, load_config_from_env
from llm_fanout.types import QueryResult

_FACTORIES = {
    "openai": openai_client,
    "xai": xai_client,
    "anthropic": AnthropicClient,
    "google": GeminiClient,
}


def build_client(ps: ProviderSettings, *, http_client: httpx.AsyncClient | None = None) -> BaseProviderClient:
    try:
        factory = _FACTORIES[ps.provider]
    except KeyError:
        raise ValueError(f"Unknown provider '{ps.provider}'. Options: {', '.join(_FACTORIES)}") from None
    return factory(
        api_key=ps.api_key,
        model=ps.model,
        max_output_tokens=ps.max_output_tokens,
        max_retries=ps.max_retries,
        timeout_s=ps.timeout_s,
        http_client=http_client,
    )


def build_clients(config: FanoutConfig, *, http_client: httpx.AsyncClient | None = None) -> list[BaseProviderClient]:
    """One client per provider entry, configured or not, in config order."""
    return [build_client(ps, http_client=http_client) for ps in config.providers]


def create_orchestrator(
    clients: list[LLMClient] | None = None,
    *,
    keys: dict[str, str] | None = None,
    config: FanoutConfig | None = None,
) -> QueryOrchestrator:
    """
    Explicit clients win; otherwise build from config, or from the environment
    (with optional per-provider key overrides). Unconfigured clients are dropped.
    """
    if clients is None:
        cfg = config if config is not None else load_config_from_env(keys)
        clients = build_clients(cfg)
    return QueryOrchestrator(clients)


async def ask_all(user_prompt: str, *, system_prompt: str | None = None) -> QueryResult:
    return await create_orchestrator().ask(user_prompt, system_prompt)
