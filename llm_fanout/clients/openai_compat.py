from __future__ import annotations

import structlog

from llm_fanout.clients.base import BaseProviderClient, ProviderReply

logger = structlog.get_logger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
XAI_BASE_URL = "https://api.x.ai/v1"


def _extract_chat_text(resp_json: dict) -> str:
    choices = resp_json.get("choices") or []
    if not choices:
        return ""
    message = (choices[0] or {}).get("message") or {}
    text = message.get("content") or ""
    if text:
        return text
    # reasoning models may spend the budget without emitting content
    if message.get("reasoning_content"):
        return message["reasoning_content"]
    if message.get("refusal"):
        return f"[Refusal] {message['refusal']}"
    return ""


class OpenAICompatibleClient(BaseProviderClient):
    """
    Chat Completions adapter shared by OpenAI and xAI (same wire format,
    different base URL and token-limit field name).
    """

    def __init__(
        self,
        *,
        provider: str,
        vendor: str,
        base_url: str,
        token_limit_field: str = "max_tokens",
        **kwargs,
    ):
        self.provider = provider
        self.vendor = vendor
        self.base_url = base_url.rstrip("/")
        self.token_limit_field = token_limit_field
        super().__init__(**kwargs)

    async def _send(self, prompt: str, system_prompt: str | None) -> ProviderReply:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: dict = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            self.token_limit_field: self.max_output_tokens,
        }

        data = await self._post_json(f"{self.base_url}/chat/completions", headers=headers, payload=payload)
        text = _extract_chat_text(data)
        tokens = (data.get("usage") or {}).get("total_tokens")
        if not text and tokens:
            logger.warning("empty_completion", provider=self.provider, model=self.model, tokens_used=tokens)
        return ProviderReply(text=text, tokens_used=tokens)


def openai_client(*, api_key: str | None, model: str, **kwargs) -> OpenAICompatibleClient:
    return OpenAICompatibleClient(
        provider="openai",
        vendor="OpenAI",
        base_url=OPENAI_BASE_URL,
        token_limit_field="max_completion_tokens",
        api_key=api_key,
        model=model,
        **kwargs,
    )


def xai_client(*, api_key: str | None, model: str, **kwargs) -> OpenAICompatibleClient:
    return OpenAICompatibleClient(
        provider="xai",
        vendor="xAI",
        base_url=XAI_BASE_URL,
        token_limit_field="max_tokens",
        api_key=api_key,
        model=model,
        **kwargs,
    )
