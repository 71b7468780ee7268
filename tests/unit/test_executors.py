"""Unit tests for executor adapters."""

import threading

import pytest
from langchain_core.runnables import RunnableLambda

from agentOrchestrator.agents import (
    CallableExecutor,
    Executor,
    RunnableExecutor,
    StepRequest,
    as_executor,
)
from agentOrchestrator.context import ExecutionContext


@pytest.fixture
def request_with_context():
    context = ExecutionContext({"topic": "graphs"})
    context.record_step_result("search", output=["p1"])
    return StepRequest(
        step_id="draft",
        agent="writing-agent",
        action="draft",
        inputs={"style": "IEEE"},
        context=context,
        workflow="paper-writing",
    )


class TestCallableExecutor:

    @pytest.mark.asyncio
    async def test_async_function(self, request_with_context):
        async def draft(request):
            return f"draft of {request.context.get('topic')}"

        assert await CallableExecutor(draft).execute(request_with_context) == "draft of graphs"

    @pytest.mark.asyncio
    async def test_sync_function_runs_off_the_loop(self, request_with_context):
        main_thread = threading.get_ident()
        seen = []

        def draft(request):
            seen.append(threading.get_ident())
            return request.inputs["style"]

        assert await CallableExecutor(draft).execute(request_with_context) == "IEEE"
        assert seen[0] != main_thread


class TestRunnableExecutor:

    @pytest.mark.asyncio
    async def test_runnable_receives_payload(self, request_with_context):
        runnable = RunnableLambda(lambda payload: {
            "inputs": payload["inputs"],
            "previous": payload["previous_results"],
            "input": payload["input"],
        })

        output = await RunnableExecutor(runnable).execute(request_with_context)

        assert output == {
            "inputs": {"style": "IEEE"},
            "previous": {"search": ["p1"]},
            "input": {"topic": "graphs"},
        }

    @pytest.mark.asyncio
    async def test_custom_input_mapper(self, request_with_context):
        runnable = RunnableLambda(lambda text: text.upper())
        executor = RunnableExecutor(runnable, input_mapper=lambda request: request.action)

        assert await executor.execute(request_with_context) == "DRAFT"


class TestAsExecutor:

    def test_runnable_is_wrapped(self):
        assert isinstance(as_executor(RunnableLambda(lambda x: x)), RunnableExecutor)

    def test_executor_passes_through(self):
        class Agent:
            async def execute(self, request):
                return "ok"

        agent = Agent()
        assert as_executor(agent) is agent
        assert isinstance(agent, Executor)

    @pytest.mark.asyncio
    async def test_sync_execute_method_is_wrapped(self, request_with_context):
        main_thread = threading.get_ident()

        class Agent:
            def __init__(self):
                self.threads = []

            def execute(self, request):
                self.threads.append(threading.get_ident())
                return f"done:{request.step_id}"

        agent = Agent()
        executor = as_executor(agent)

        assert isinstance(executor, CallableExecutor)
        assert await executor.execute(request_with_context) == "done:draft"
        assert agent.threads[0] != main_thread

    def test_callable_is_wrapped(self):
        assert isinstance(as_executor(lambda request: None), CallableExecutor)

    def test_rejects_non_executor(self):
        with pytest.raises(TypeError):
            as_executor(42)


def test_request_payload_without_context():
    payload = StepRequest(step_id="s", agent="a", action="run").to_payload()

    assert payload["previous_results"] == {}
    assert "shared" not in payload
