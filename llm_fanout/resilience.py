"""Transient-error classification, backoff policy and the bounded retry loop.

Every provider client owns one ``RetryExecutor`` and runs its single
transport call through it.  The executor never raises for an expected
failure: it hands back a ``RetryOutcome`` saying whether the call
succeeded, failed fatally, or ran out of retries.
"""

from __future__ import annotations

import asyncio
import enum
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import httpx
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 529})

TRANSIENT_PATTERNS = (
    "econnrefused", "connection refused",
    "econnreset", "connection reset",
    "etimedout", "timed out",
    "enotfound", "name or service not known",
    "timeout", "rate limit", "rate_limit", "overloaded",
    "capacity", "network", "socket hang up", "fetch failed",
    "service unavailable", "internal server error",
)

DEFAULT_MAX_RETRIES = 2

BACKOFF_BASE_MS = 1000
BACKOFF_CAP_MS = 10_000
MAX_RETRY_HINT_S = 60


# Classification


def _status_of(error: Any) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_transient_error(error: Any) -> bool:
    """True when the failure is worth retrying (rate limits, overload, network hiccups)."""
    if error is None:
        return False

    status = _status_of(error)
    if status is not None and status in TRANSIENT_STATUS_CODES:
        return True

    # httpx timeouts / connect errors frequently carry an empty message
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return True

    msg = str(error).lower()
    return any(p in msg for p in TRANSIENT_PATTERNS)


# Backoff


def _header(headers: Any, name: str) -> Any:
    if not isinstance(headers, (Mapping, httpx.Headers)):
        return None
    value = headers.get(name)
    if value is None:
        value = headers.get(name.title())
    return value


def _retry_hint(error: Any) -> Any:
    if error is None:
        return None
    hint = getattr(error, "retry_after", None)
    if hint is not None:
        return hint
    hint = _header(getattr(error, "headers", None), "retry-after")
    if hint is not None:
        return hint
    response = getattr(error, "response", None)
    if response is not None:
        return _header(getattr(response, "headers", None), "retry-after")
    return None


def _parse_hint_seconds(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        secs = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(secs) or secs <= 0 or secs > MAX_RETRY_HINT_S:
        return None
    return secs


def retry_delay_ms(attempt: int, error: Any = None) -> int:
    """
    Delay before the next attempt.
    A server Retry-After hint (0 < secs <= 60) wins; otherwise 1s, 2s, 4s, 8s, capped at 10s.
    """
    secs = _parse_hint_seconds(_retry_hint(error))
    if secs is not None:
        return int(secs * 1000)
    return min(BACKOFF_BASE_MS * 2 ** attempt, BACKOFF_CAP_MS)


# Retry loop


class OutcomeKind(str, enum.Enum):
    SUCCESS = "success"
    FATAL = "fatal"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    kind: OutcomeKind
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class RetryExecutor:
    """Runs one async operation with up to ``max_retries`` extra attempts on transient errors."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        name: str = "client",
        classify: Callable[[Any], bool] = is_transient_error,
        delay: Callable[[int, Any], int] = retry_delay_ms,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.name = name
        self._classify = classify
        self._delay = delay
        self._sleep = sleep

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> RetryOutcome[T]:
        attempt = 0
        while True:
            try:
                value = await operation()
                return RetryOutcome(OutcomeKind.SUCCESS, attempts=attempt + 1, value=value)
            except Exception as e:
                transient = self._classify(e)
                if not transient:
                    return RetryOutcome(OutcomeKind.FATAL, attempts=attempt + 1, error=e)
                if attempt >= self.max_retries:
                    if self.max_retries:
                        logger.warning(
                            "retry_gave_up",
                            client=self.name,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                    return RetryOutcome(OutcomeKind.EXHAUSTED, attempts=attempt + 1, error=e)

                delay_ms = self._delay(attempt, e)
                logger.warning(
                    "retry_scheduled",
                    client=self.name,
                    attempt=attempt + 1,
                    max_attempts=self.max_retries + 1,
                    delay_ms=delay_ms,
                    error=str(e),
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1
