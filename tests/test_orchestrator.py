import asyncio

import pytest

from llm_fanout.clients.base import LLMClient
from llm_fanout.orchestrator import QueryOrchestrator
from llm_fanout.runner import create_orchestrator
from llm_fanout.types import ClientInfo, ConnectionCheck, Response


class FakeClient(LLMClient):
    def __init__(self, name, provider, answer="", *, configured=True, delay=0.0, fail_with=None):
        self.name = name
        self.provider = provider
        self.answer = answer
        self.configured = configured
        self.delay = delay
        self.fail_with = fail_with
        self.calls = []
        self.cancelled = False

    def is_configured(self) -> bool:
        return self.configured

    async def query(self, prompt, system_prompt=None):
        self.calls.append((prompt, system_prompt))
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.fail_with is not None:
            # violates the "never raise" contract on purpose
            raise self.fail_with
        return Response(self.name, self.provider, self.answer, latency_ms=50)

    async def test_connection(self) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        return True


class ErrorResponseClient(FakeClient):
    async def query(self, prompt, system_prompt=None):
        self.calls.append((prompt, system_prompt))
        return Response(self.name, self.provider, "", latency_ms=10, error="Invalid API key")


@pytest.mark.asyncio
async def test_two_clients_both_succeed():
    clients = [FakeClient("GPT", "openai", "Use REST"), FakeClient("Claude", "anthropic", "Use GraphQL")]
    q = QueryOrchestrator(clients)
    result = await q.ask("GraphQL vs REST?")

    assert result.question == "GraphQL vs REST?"
    assert len(result.responses) == 2
    assert result.success_count == 2
    assert result.error_count == 0
    assert result.total_latency_ms >= 0
    assert [r.text for r in result.responses] == ["Use REST", "Use GraphQL"]


@pytest.mark.asyncio
async def test_same_question_and_system_prompt_reach_everyone():
    c1 = FakeClient("A", "test", "answer A")
    c2 = FakeClient("B", "test", "answer B")
    await QueryOrchestrator([c1, c2]).ask("test question", "system prompt")
    assert c1.calls == [("test question", "system prompt")]
    assert c2.calls == [("test question", "system prompt")]


@pytest.mark.asyncio
async def test_order_follows_clients_not_completion():
    clients = [
        FakeClient("slow", "a", "1", delay=0.05),
        FakeClient("fast", "b", "2"),
        FakeClient("medium", "c", "3", delay=0.02),
    ]
    result = await QueryOrchestrator(clients).ask("q")
    assert [r.model_name for r in result.responses] == ["slow", "fast", "medium"]


@pytest.mark.asyncio
async def test_raising_client_is_isolated():
    good = FakeClient("Good", "test", "ok")
    bad = FakeClient("Bad", "test", fail_with=RuntimeError("API unavailable"))
    result = await QueryOrchestrator([good, bad]).ask("question")

    assert result.success_count == 1
    assert result.error_count == 1
    assert result.responses[0].error is None
    assert result.responses[0].text == "ok"

    bad_response = result.responses[1]
    assert bad_response.model_name == "Bad"
    assert bad_response.error == "API unavailable"
    assert bad_response.text == ""
    assert bad_response.latency_ms == 0


@pytest.mark.asyncio
async def test_error_responses_are_counted():
    clients = [FakeClient("A", "x", "fine"), ErrorResponseClient("B", "y")]
    result = await QueryOrchestrator(clients).ask("q")
    assert result.success_count + result.error_count == len(result.responses) == 2
    assert result.error_count == 1
    assert result.responses[1].error == "Invalid API key"


@pytest.mark.asyncio
async def test_no_clients_is_not_an_error():
    result = await QueryOrchestrator([]).ask("any question")
    assert result.responses == []
    assert result.success_count == 0
    assert result.error_count == 0


@pytest.mark.asyncio
async def test_unconfigured_clients_are_never_dispatched():
    on = FakeClient("Good", "test", "ok")
    off = FakeClient("Off", "test", "nope", configured=False)
    q = QueryOrchestrator([on, off])

    assert q.get_status().count == 1
    result = await q.ask("q")
    assert len(result.responses) == 1
    assert off.calls == []


@pytest.mark.asyncio
async def test_timeout_cancels_slow_client():
    fast = FakeClient("fast", "a", "done")
    stuck = FakeClient("stuck", "b", "never", delay=30)
    result = await QueryOrchestrator([fast, stuck]).ask("q", timeout=0.05)

    assert result.success_count == 1
    assert result.responses[0].text == "done"
    assert result.responses[1].error == "stuck timed out after 0.05s"
    assert result.responses[1].text == ""
    assert stuck.cancelled is True


@pytest.mark.asyncio
async def test_client_timeout_error_keeps_its_message_under_deadline():
    good = FakeClient("Good", "a", "ok")
    bad = FakeClient("Bad", "b", fail_with=asyncio.TimeoutError("db pool exhausted"))
    result = await QueryOrchestrator([good, bad]).ask("q", timeout=30)

    assert result.success_count == 1
    assert result.responses[1].error == "db pool exhausted"
    assert result.responses[1].latency_ms == 0


@pytest.mark.asyncio
async def test_client_timeout_error_without_deadline():
    bad = FakeClient("Bad", "b", fail_with=TimeoutError("upstream read timed out"))
    result = await QueryOrchestrator([bad]).ask("q")
    assert result.responses[0].error == "upstream read timed out"


def test_get_status_lists_models_in_order():
    q = QueryOrchestrator([
        FakeClient("GPT-5.2", "openai"),
        FakeClient("Claude Sonnet", "anthropic"),
        FakeClient("Grok", "xai"),
    ])
    status = q.get_status()
    assert status.count == 3
    assert status.models == [
        ClientInfo("GPT-5.2", "openai"),
        ClientInfo("Claude Sonnet", "anthropic"),
        ClientInfo("Grok", "xai"),
    ]


@pytest.mark.asyncio
async def test_connections_healthy():
    results = await QueryOrchestrator([FakeClient("GPT", "openai")]).test_connections()
    assert results == [ConnectionCheck(model_name="GPT", provider="openai", ok=True)]


@pytest.mark.asyncio
async def test_connections_throwing_client_is_not_ok():
    q = QueryOrchestrator([
        FakeClient("Bad", "test", fail_with=RuntimeError("boom")),
        FakeClient("Good", "test"),
    ])
    results = await q.test_connections()
    assert [c.ok for c in results] == [False, True]
    assert [c.model_name for c in results] == ["Bad", "Good"]


def test_create_orchestrator_with_explicit_clients():
    client = FakeClient("TestModel", "test", "hello")
    q = create_orchestrator(clients=[client, FakeClient("Off", "test", configured=False)])
    assert isinstance(q, QueryOrchestrator)
    assert q.get_status().models == [ClientInfo("TestModel", "test")]
