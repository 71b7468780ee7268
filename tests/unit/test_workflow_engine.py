"""Unit tests for WorkflowEngine execution modes."""

import asyncio

import pytest

from agentOrchestrator.context import ExecutionContext
from agentOrchestrator.subagent import SubagentExecutor
from agentOrchestrator.utils.error_handler import (
    CyclicWorkflowError,
    UnknownAgentError,
    WorkflowNotFoundError,
)
from agentOrchestrator.workflow import (
    RunOptions,
    SkipReason,
    Workflow,
    WorkflowEngine,
    WorkflowStep,
    WorkflowType,
)


def sequential(*agents, **kwargs):
    steps = [WorkflowStep(f"s{i + 1}", agent) for i, agent in enumerate(agents)]
    return Workflow("seq", WorkflowType.SEQUENTIAL, steps, **kwargs)


def parallel(*agents, **kwargs):
    steps = [WorkflowStep(f"p{i + 1}", agent) for i, agent in enumerate(agents)]
    return Workflow("par", WorkflowType.PARALLEL, steps, **kwargs)


class TestSequential:

    @pytest.mark.asyncio
    async def test_runs_in_order_and_passes_previous_results(self, engine, make_agent):
        first = make_agent("first", outcomes=["papers"])
        second = make_agent("second")

        result = await engine.execute(sequential("first", "second"))

        assert [r.step_id for r in result.results] == ["s1", "s2"]
        assert result.status == "success"
        assert second.seen_previous == [{"s1": "papers"}]
        assert len(first.calls) == 1

    @pytest.mark.asyncio
    async def test_first_failure_aborts(self, engine, make_agent):
        make_agent("ok")
        make_agent("bad", outcomes=[RuntimeError("boom")])
        third = make_agent("never")

        result = await engine.execute(sequential("ok", "bad", "never"))

        assert [r.step_id for r in result.results] == ["s1"]
        assert [f.step_id for f in result.failures] == ["s2"]
        assert third.calls == []
        assert result.attempted == 2
        assert [(s.step_id, s.reason) for s in result.skipped] == [("s3", SkipReason.ABORTED)]
        assert result.status == "partial"

    @pytest.mark.asyncio
    async def test_continue_on_error(self, engine, make_agent):
        make_agent("ok")
        make_agent("bad", outcomes=[RuntimeError("boom")])
        third = make_agent("after")

        result = await engine.execute(
            sequential("ok", "bad", "after"),
            options=RunOptions(continue_on_error=True),
        )

        assert [r.step_id for r in result.results] == ["s1", "s3"]
        assert [f.step_id for f in result.failures] == ["s2"]
        assert len(third.calls) == 1

    @pytest.mark.asyncio
    async def test_workflow_level_continue_on_error(self, engine, make_agent):
        make_agent("bad", outcomes=[RuntimeError("boom")])
        make_agent("after")

        result = await engine.execute(sequential("bad", "after", continue_on_error=True))

        assert result.attempted == 2


class TestParallel:

    @pytest.mark.asyncio
    async def test_one_of_three_fails(self, engine, make_agent, tracker):
        make_agent("a", delay=0.05)
        make_agent("b", delay=0.05, outcomes=[RuntimeError("down")])
        make_agent("c", delay=0.05)

        result = await engine.execute(parallel("a", "b", "c"))

        assert sorted(r.step_id for r in result.results) == ["p1", "p3"]
        assert [f.step_id for f in result.failures] == ["p2"]
        assert not result.failed
        assert result.status == "partial"
        assert tracker.peak == 3

    @pytest.mark.asyncio
    async def test_failed_only_when_everything_failed(self, engine, make_agent):
        make_agent("a", outcomes=[RuntimeError("x")])
        make_agent("b", outcomes=[RuntimeError("y")])

        result = await engine.execute(parallel("a", "b"))

        assert result.failed
        assert result.status == "failed"

    @pytest.mark.asyncio
    async def test_concurrency_cap(self, engine, make_agent, tracker):
        make_agent("worker", delay=0.02)
        steps = [WorkflowStep(f"w{i}", "worker") for i in range(5)]

        result = await engine.execute(
            Workflow("capped", "parallel", steps),
            options=RunOptions(max_concurrency=2),
        )

        assert len(result.results) == 5
        assert tracker.peak == 2

    @pytest.mark.asyncio
    async def test_results_in_completion_order(self, engine, make_agent):
        make_agent("slow", delay=0.1)
        make_agent("fast", delay=0.01)

        result = await engine.execute(parallel("slow", "fast"))

        assert [r.step_id for r in result.results] == ["p2", "p1"]

    @pytest.mark.asyncio
    async def test_invalid_concurrency_rejected(self, engine, make_agent):
        make_agent("a")
        with pytest.raises(ValueError):
            await engine.execute(parallel("a"), options=RunOptions(max_concurrency=0))


class TestDag:

    @pytest.mark.asyncio
    async def test_failed_dependency_skips_dependent(self, engine, make_agent):
        make_agent("a", outcomes=[RuntimeError("A failed")])
        make_agent("b")
        c = make_agent("c")
        steps = [
            WorkflowStep("A", "a"),
            WorkflowStep("B", "b"),
            WorkflowStep("C", "c", dependencies={"A", "B"}),
        ]

        result = await engine.execute(Workflow("dag", "dag", steps))

        assert [r.step_id for r in result.results] == ["B"]
        assert [f.step_id for f in result.failures] == ["A"]
        assert c.calls == []
        assert len(result.skipped) == 1
        skipped = result.skipped[0]
        assert skipped.step_id == "C"
        assert skipped.reason == SkipReason.DEPENDENCY
        assert skipped.blocked_by == ("A",)

    @pytest.mark.asyncio
    async def test_skip_propagates_transitively(self, engine, make_agent):
        make_agent("a", outcomes=[RuntimeError("x")])
        make_agent("b")
        steps = [
            WorkflowStep("A", "a"),
            WorkflowStep("B", "b", dependencies={"A"}),
            WorkflowStep("C", "b", dependencies={"B"}),
            WorkflowStep("D", "b"),
        ]

        result = await engine.execute(Workflow("chain", "dag", steps))

        assert [r.step_id for r in result.results] == ["D"]
        assert {s.step_id for s in result.skipped} == {"B", "C"}
        assert result.attempted == 2

    @pytest.mark.asyncio
    async def test_dependent_starts_after_dependencies(self, engine, make_agent, tracker):
        make_agent("a", delay=0.02)
        steps = [
            WorkflowStep("left", "a"),
            WorkflowStep("right", "a"),
            WorkflowStep("join", "a", dependencies={"left", "right"}),
        ]

        result = await engine.execute(Workflow("diamond", "dag", steps))

        assert tracker.started[-1] == "join"
        assert result.results[-1].step_id == "join"
        assert tracker.peak == 2

    @pytest.mark.asyncio
    async def test_cyclic_workflow_never_executes(self, engine, make_agent):
        fake = make_agent("a")
        with pytest.raises(CyclicWorkflowError):
            await engine.execute(
                Workflow("loop", "dag", [
                    WorkflowStep("x", "a", dependencies={"y"}),
                    WorkflowStep("y", "a", dependencies={"x"}),
                ])
            )
        assert fake.calls == []


class TestConditional:

    @pytest.mark.asyncio
    async def test_false_condition_skips_step(self, engine, make_agent):
        make_agent("check")
        improve = make_agent("improve")
        make_agent("submit")
        steps = [
            WorkflowStep("check", "check"),
            WorkflowStep("improve", "improve", condition="failed:check"),
            WorkflowStep("submit", "submit", condition="succeeded:check"),
        ]

        result = await engine.execute(Workflow("cond", "conditional", steps))

        assert [r.step_id for r in result.results] == ["check", "submit"]
        assert [(s.step_id, s.reason) for s in result.skipped] == [("improve", SkipReason.CONDITION)]
        assert improve.calls == []

    @pytest.mark.asyncio
    async def test_failure_triggers_recovery_branch(self, engine, make_agent):
        make_agent("check", outcomes=[RuntimeError("quality too low")])
        make_agent("improve")
        steps = [
            WorkflowStep("check", "check"),
            WorkflowStep("improve", "improve", condition="hasFailures"),
        ]

        result = await engine.execute(Workflow("cond", "conditional", steps))

        assert [r.step_id for r in result.results] == ["improve"]
        assert [f.step_id for f in result.failures] == ["check"]

    @pytest.mark.asyncio
    async def test_failed_dependency_skips(self, engine, make_agent):
        make_agent("check", outcomes=[RuntimeError("x")])
        submit = make_agent("submit")
        steps = [
            WorkflowStep("check", "check"),
            WorkflowStep("submit", "submit", dependencies={"check"}),
        ]

        result = await engine.execute(Workflow("cond", "conditional", steps))

        assert result.skipped[0].reason == SkipReason.DEPENDENCY
        assert submit.calls == []

    @pytest.mark.asyncio
    async def test_dependency_skipped_by_condition_skips_dependent(self, engine, make_agent):
        make_agent("improve")
        submit = make_agent("submit")
        steps = [
            WorkflowStep("improve", "improve", condition="hasFailures"),
            WorkflowStep("submit", "submit", dependencies={"improve"}),
        ]

        result = await engine.execute(Workflow("cond", "conditional", steps))

        assert [(s.step_id, s.reason, s.blocked_by) for s in result.skipped] == [
            ("improve", SkipReason.CONDITION, ()),
            ("submit", SkipReason.DEPENDENCY, ("improve",)),
        ]
        assert result.succeeded
        assert submit.calls == []

    @pytest.mark.asyncio
    async def test_condition_reads_shared_data(self, engine, make_agent):
        make_agent("publish")
        steps = [WorkflowStep("publish", "publish", condition="key:approved")]

        approved = await engine.execute(Workflow("c1", "conditional", steps), input_data={"approved": True})
        rejected = await engine.execute(Workflow("c2", "conditional", steps), input_data={"approved": False})

        assert len(approved.results) == 1
        assert rejected.results == []
        assert rejected.skipped[0].reason == SkipReason.CONDITION

    @pytest.mark.asyncio
    async def test_raising_condition_is_a_step_failure(self, engine, make_agent):
        make_agent("a")

        def broken(ctx):
            raise KeyError("missing")

        result = await engine.execute(Workflow("c", "conditional", [WorkflowStep("s", "a", condition=broken)]))

        assert result.failures[0].reason == "condition"
        assert result.results == []

    @pytest.mark.asyncio
    async def test_awaitable_condition_never_runs_step(self, engine, make_agent):
        fake = make_agent("a")

        async def ready(ctx):
            return False

        step = WorkflowStep("s", "a", condition=lambda ctx: ready(ctx))
        result = await engine.execute(Workflow("c", "conditional", [step]))

        assert [(f.step_id, f.reason) for f in result.failures] == [("s", "condition")]
        assert fake.calls == []


class TestCancellation:

    @pytest.mark.asyncio
    async def test_run_timeout_cancels_in_flight_steps(self, engine, make_agent):
        make_agent("fast")
        make_agent("slow", delay=5.0)
        steps = [WorkflowStep("quick", "fast"), WorkflowStep("stuck", "slow"), WorkflowStep("later", "fast")]

        result = await engine.execute(
            Workflow("timed", "sequential", steps),
            options=RunOptions(timeout=0.1),
        )

        assert result.cancelled
        assert result.status == "cancelled"
        assert [r.step_id for r in result.results] == ["quick"]
        assert [(f.step_id, f.reason) for f in result.failures] == [("stuck", "cancelled")]
        assert [(s.step_id, s.reason) for s in result.skipped] == [("later", SkipReason.CANCELLED)]

    @pytest.mark.asyncio
    async def test_cancel_event_abandons_queued_steps(self, engine, make_agent, tracker):
        make_agent("slow", delay=5.0)
        steps = [WorkflowStep(f"s{i}", "slow") for i in range(4)]
        cancel = asyncio.Event()

        async def cancel_soon():
            await asyncio.sleep(0.05)
            cancel.set()

        asyncio.ensure_future(cancel_soon())
        result = await engine.execute(
            Workflow("par", "parallel", steps),
            options=RunOptions(max_concurrency=2, cancel_event=cancel),
        )

        assert result.cancelled
        assert len(result.failures) == 2
        assert all(f.reason == "cancelled" for f in result.failures)
        assert len(result.skipped) == 2
        assert result.attempted == len(tracker.started) == 2

    @pytest.mark.asyncio
    async def test_workflow_timeout_in_dag(self, engine, make_agent):
        make_agent("slow", delay=5.0)
        steps = [WorkflowStep("a", "slow"), WorkflowStep("b", "slow", dependencies={"a"})]

        result = await engine.execute(Workflow("dag", "dag", steps, timeout=0.05))

        assert result.cancelled
        assert [f.step_id for f in result.failures] == ["a"]
        assert [s.step_id for s in result.skipped] == ["b"]

    @pytest.mark.asyncio
    async def test_cancelled_failure_keeps_attempt_count(self, registry, settings, make_agent):
        class StallingSleep:
            """Backoff returns at once until the ``stall_on``-th retry."""

            def __init__(self, stall_on):
                self.calls = 0
                self.stall_on = stall_on

            async def __call__(self, delay):
                self.calls += 1
                await asyncio.sleep(5.0 if self.calls >= self.stall_on else 0)

        fake = make_agent(
            "flaky",
            retry_policy="fixed",
            max_retries=5,
            outcomes=[RuntimeError("one"), RuntimeError("two"), RuntimeError("three")],
        )
        engine = WorkflowEngine(registry, SubagentExecutor(registry, settings, sleep=StallingSleep(3)), settings)

        result = await engine.execute(sequential("flaky"), options=RunOptions(timeout=0.1))

        assert result.cancelled
        assert len(fake.calls) == 3
        assert [(f.reason, f.attempts) for f in result.failures] == [("cancelled", 3)]


class TestContextAndCatalogue:

    @pytest.mark.asyncio
    async def test_owned_context_is_closed_and_snapshotted(self, engine, make_agent):
        make_agent("a", outcomes=["done"])

        result = await engine.execute(sequential("a"), input_data={"topic": "graphs"})

        assert result.context.initial_data == {"topic": "graphs"}
        assert result.context.steps["s1"].output == "done"
        assert engine.contexts.active_runs() == []

    @pytest.mark.asyncio
    async def test_caller_context_stays_open(self, engine, make_agent):
        make_agent("a")
        context = ExecutionContext()

        await engine.execute(sequential("a"), context)

        assert not context.closed
        assert context.step_output("s1") == "a:s1"

    @pytest.mark.asyncio
    async def test_execute_registered_workflow_by_name(self, engine, make_agent):
        make_agent("a")
        engine.register(sequential("a"))

        result = await engine.execute("seq")

        assert result.workflow == "seq"
        assert [w.name for w in engine.list()] == ["seq"]

    @pytest.mark.asyncio
    async def test_unknown_workflow_name(self, engine):
        with pytest.raises(WorkflowNotFoundError):
            await engine.execute("missing")

    @pytest.mark.asyncio
    async def test_unknown_agent_raised_before_execution(self, engine, make_agent):
        fake = make_agent("a")
        with pytest.raises(UnknownAgentError):
            await engine.execute(sequential("a", "ghost"))
        assert fake.calls == []

    def test_register_rejects_unknown_agent(self, engine):
        with pytest.raises(UnknownAgentError):
            engine.register(sequential("ghost"))
        assert engine.get("seq") is None
