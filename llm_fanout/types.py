from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Response:
    """
    One provider's answer to one question.
    error is set iff the call failed; in that case text is "".
    """
    model_name: str
    provider: str
    text: str
    latency_ms: int
    timestamp: datetime = field(default_factory=utc_now)
    tokens_used: Optional[int] = None
    error: Optional[str] = None
    persona: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class QueryResult:
    question: str
    responses: list[Response]
    success_count: int
    error_count: int
    total_latency_ms: int
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ConnectionCheck:
    model_name: str
    provider: str
    ok: bool


@dataclass(frozen=True)
class ClientInfo:
    name: str
    provider: str


@dataclass(frozen=True)
class OrchestratorStatus:
    count: int
    models: list[ClientInfo]


def to_jsonable(x: Any) -> Any:
    """
    Convert results to JSON-serializable structures.
    - dict/list/tuple recursively
    - dataclasses field by field
    - datetimes as ISO-8601 strings
    """
    if x is None or isinstance(x, (str, int, float, bool)):
        return x

    if isinstance(x, datetime):
        return x.isoformat()

    if isinstance(x, dict):
        return {str(k): to_jsonable(v) for k, v in x.items()}

    if isinstance(x, (list, tuple)):
        return [to_jsonable(v) for v in x]

    if is_dataclass(x) and not isinstance(x, type):
        return {f.name: to_jsonable(getattr(x, f.name)) for f in fields(x)}

    return repr(x)
