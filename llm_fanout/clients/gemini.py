from __future__ import annotations

from llm_fanout.clients.base import BaseProviderClient, ProviderReply

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


def _extract_gemini_text(resp_json: dict) -> str:
    cands = resp_json.get("candidates") or []
    if not cands:
        return ""
    parts = (((cands[0] or {}).get("content") or {}).get("parts")) or []
    chunks = [p.get("text", "") for p in parts if isinstance(p, dict) and "text" in p]
    return "".join(chunks)


class GeminiClient(BaseProviderClient):
    vendor = "Google"
    provider = "google"

    async def _send(self, prompt: str, system_prompt: str | None) -> ProviderReply:
        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"
        params = {"key": self.api_key}
        headers = {"Content-Type": "application/json"}

        payload: dict = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        data = await self._post_json(url, headers=headers, params=params, payload=payload)
        tokens = (data.get("usageMetadata") or {}).get("totalTokenCount")
        return ProviderReply(text=_extract_gemini_text(data), tokens_used=tokens)
