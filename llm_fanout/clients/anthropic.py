from __future__ import annotations

from llm_fanout.clients.base import BaseProviderClient, ProviderReply

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


def _extract_anthropic_text(resp_json: dict) -> str:
    parts = resp_json.get("content", [])
    chunks = [p.get("text", "") for p in parts if p.get("type") == "text"]
    return "\n".join(chunks)


def _anthropic_tokens(resp_json: dict) -> int | None:
    usage = resp_json.get("usage") or {}
    if "input_tokens" not in usage and "output_tokens" not in usage:
        return None
    return int(usage.get("input_tokens", 0)) + int(usage.get("output_tokens", 0))


class AnthropicClient(BaseProviderClient):
    vendor = "Anthropic"
    provider = "anthropic"

    def __init__(self, *, anthropic_version: str = "2023-06-01", **kwargs):
        self.anthropic_version = anthropic_version
        super().__init__(**kwargs)

    async def _send(self, prompt: str, system_prompt: str | None) -> ProviderReply:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.anthropic_version,
            "content-type": "application/json",
        }

        payload: dict = {
            "model": self.model,
            "max_tokens": self.max_output_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt

        data = await self._post_json(ANTHROPIC_URL, headers=headers, payload=payload)
        return ProviderReply(text=_extract_anthropic_text(data), tokens_used=_anthropic_tokens(data))
