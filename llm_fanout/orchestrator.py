"""Fan one question out to every configured provider and aggregate the answers."""

from __future__ import annotations

import asyncio
import time
from typing import Iterable

import structlog

from llm_fanout.clients.base import LLMClient
from llm_fanout.types import (
    ClientInfo,
    ConnectionCheck,
    OrchestratorStatus,
    QueryResult,
    Response,
)

logger = structlog.get_logger(__name__)


def _synthetic_error(client: LLMClient, message: str) -> Response:
    return Response(
        model_name=client.name,
        provider=client.provider,
        text="",
        latency_ms=0,
        error=message or "Unknown error",
    )


class QueryOrchestrator:
    """
    Holds the configured clients (construction order is preserved and is the
    order of every result list) and queries them concurrently.
    Neither ask() nor test_connections() raises for a provider failure.
    """

    def __init__(self, clients: Iterable[LLMClient]):
        self._clients: tuple[LLMClient, ...] = tuple(c for c in clients if c.is_configured())

    @property
    def clients(self) -> tuple[LLMClient, ...]:
        return self._clients

    async def ask(
        self,
        question: str,
        system_prompt: str | None = None,
        *,
        timeout: float | None = None,
    ) -> QueryResult:
        """
        Query all clients in parallel with the same question.
        timeout (seconds) is an optional per-client deadline; a client that
        misses it is cancelled and reported as an error response; a client
        that raises TimeoutError on its own is reported with its own message.
        """
        t0 = time.perf_counter()
        logger.info("fanout_started", clients=len(self._clients), timeout=timeout)

        responses = await asyncio.gather(
            *(self._query_one(c, question, system_prompt, timeout) for c in self._clients)
        )

        total_latency_ms = int((time.perf_counter() - t0) * 1000)
        success_count = sum(1 for r in responses if r.error is None)
        result = QueryResult(
            question=question,
            responses=list(responses),
            success_count=success_count,
            error_count=len(responses) - success_count,
            total_latency_ms=total_latency_ms,
        )
        logger.info(
            "fanout_completed",
            success_count=result.success_count,
            error_count=result.error_count,
            total_latency_ms=total_latency_ms,
        )
        return result

    async def _query_one(
        self,
        client: LLMClient,
        question: str,
        system_prompt: str | None,
        timeout: float | None,
    ) -> Response:
        try:
            if timeout is None:
                return await client.query(question, system_prompt)
            return await self._query_with_deadline(client, question, system_prompt, timeout)
        except Exception as e:
            return self._contract_violation(client, e)

    @staticmethod
    async def _query_with_deadline(
        client: LLMClient,
        question: str,
        system_prompt: str | None,
        timeout: float,
    ) -> Response:
        # only the deadline counts as a timeout; a TimeoutError raised by the
        # client itself surfaces through task.result()
        task = asyncio.ensure_future(client.query(question, system_prompt))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.warning("client_timed_out", client=client.name, provider=client.provider, timeout=timeout)
        return _synthetic_error(client, f"{client.name} timed out after {timeout:g}s")

    @staticmethod
    def _contract_violation(client: LLMClient, error: Exception) -> Response:
        logger.error(
            "client_contract_violation",
            client=client.name,
            provider=client.provider,
            error=repr(error),
        )
        return _synthetic_error(client, str(error))

    async def test_connections(self) -> list[ConnectionCheck]:
        async def check(client: LLMClient) -> ConnectionCheck:
            try:
                ok = bool(await client.test_connection())
            except Exception as e:
                logger.warning("connection_test_failed", client=client.name, error=repr(e))
                ok = False
            return ConnectionCheck(model_name=client.name, provider=client.provider, ok=ok)

        return list(await asyncio.gather(*(check(c) for c in self._clients)))

    def get_status(self) -> OrchestratorStatus:
        return OrchestratorStatus(
            count=len(self._clients),
            models=[ClientInfo(name=c.name, provider=c.provider) for c in self._clients],
        )
