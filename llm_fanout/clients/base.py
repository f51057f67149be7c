from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from llm_fanout.errors import ProviderHTTPError, ProviderNotConfiguredError
from llm_fanout.resilience import DEFAULT_MAX_RETRIES, RetryExecutor
from llm_fanout.types import Response

logger = structlog.get_logger(__name__)

DEFAULT_MAX_OUTPUT_TOKENS = 4096
PLACEHOLDER_KEYS = frozenset({"your_api_key_here"})
CONNECTION_TEST_PROMPT = "Test connection. Respond with: OK"


class LLMClient(ABC):
    """
    Capability contract every provider adapter satisfies.
    query() must always return a Response, never raise.
    """
    name: str
    provider: str

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    async def query(self, prompt: str, system_prompt: str | None = None) -> Response:
        ...

    @abstractmethod
    async def test_connection(self) -> bool:
        ...


@dataclass(frozen=True)
class ProviderReply:
    text: str
    tokens_used: Optional[int] = None


def _error_message(error: BaseException | str | None) -> str:
    if isinstance(error, str):
        return error or "Unknown error occurred"
    if error is None:
        return "Unknown error occurred"
    return str(error) or "Unknown error occurred"


def _error_detail(r: httpx.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return (r.text or "").strip()[:300]
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str):
        return err
    return (r.text or "").strip()[:300]


class BaseProviderClient(LLMClient):
    """
    Shared plumbing for HTTP adapters: config check, retry wrapping,
    error-to-Response translation and the connection probe.
    Subclasses implement _send() for exactly one transport call.
    """
    vendor: str = "Provider"
    provider: str = "unknown"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        max_retries: int | None = None,
        timeout_s: float = 60.0,
        temperature: float = 0.7,
        http_client: httpx.AsyncClient | None = None,
        retry: RetryExecutor | None = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self.name = model
        self.max_output_tokens = max_output_tokens
        self.timeout_s = timeout_s
        self.temperature = temperature
        self._http_client = http_client
        if retry is not None and max_retries is not None:
            raise ValueError("pass either max_retries or retry, not both")
        if retry is None:
            retry = RetryExecutor(DEFAULT_MAX_RETRIES if max_retries is None else max_retries, name=self.name)
        self._retry = retry

    @property
    def max_retries(self) -> int:
        return self._retry.max_retries

    def is_configured(self) -> bool:
        key = self.api_key.strip()
        return bool(key) and key not in PLACEHOLDER_KEYS

    def error_response(self, error: BaseException | str | None, *, latency_ms: int = 0) -> Response:
        return Response(
            model_name=self.name,
            provider=self.provider,
            text="",
            latency_ms=latency_ms,
            error=_error_message(error),
        )

    async def query(self, prompt: str, system_prompt: str | None = None) -> Response:
        if not self.is_configured():
            return self.error_response(ProviderNotConfiguredError(self.vendor))

        t0 = time.perf_counter()
        outcome = await self._retry.execute(lambda: self._send(prompt, system_prompt))
        latency_ms = int((time.perf_counter() - t0) * 1000)

        if not outcome.ok:
            logger.error(
                "provider_query_failed",
                provider=self.provider,
                model=self.model,
                outcome=outcome.kind.value,
                attempts=outcome.attempts,
                error=_error_message(outcome.error),
            )
            return self.error_response(outcome.error, latency_ms=latency_ms)

        reply: ProviderReply = outcome.value  # type: ignore[assignment]
        return Response(
            model_name=self.name,
            provider=self.provider,
            text=reply.text,
            latency_ms=latency_ms,
            tokens_used=reply.tokens_used,
        )

    async def test_connection(self) -> bool:
        try:
            r = await self.query(CONNECTION_TEST_PROMPT)
        except Exception:
            return False
        return r.error is None and "OK" in r.text

    @abstractmethod
    async def _send(self, prompt: str, system_prompt: str | None) -> ProviderReply:
        ...

    async def _post_json(
        self,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict,
        params: dict[str, str] | None = None,
    ) -> Any:
        if self._http_client is not None:
            r = await self._http_client.post(url, headers=headers, params=params, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.post(url, headers=headers, params=params, json=payload)

        if r.status_code >= 400:
            raise ProviderHTTPError(
                r.status_code,
                f"{self.vendor} API error {r.status_code}: {_error_detail(r)}",
                retry_after=r.headers.get("retry-after"),
            )
        return r.json()
