from __future__ import annotations

from typing import Optional


class LLMFanoutError(Exception):
    """Base class for errors raised inside llm_fanout."""


class ProviderHTTPError(LLMFanoutError):
    """
    Non-2xx answer from a provider API.
    Carries the status code and the Retry-After hint (seconds, raw header value)
    so the retry layer can classify it and pick a delay.
    """

    def __init__(self, status_code: int, message: str, *, retry_after: Optional[str] = None):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)


class ProviderNotConfiguredError(LLMFanoutError):
    def __init__(self, vendor: str):
        self.vendor = vendor
        super().__init__(f"{vendor} API key not configured")
