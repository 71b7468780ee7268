"""Unit tests for workflow construction, validation and conditions."""

import pytest

from agentOrchestrator.context import ExecutionContext
from agentOrchestrator.utils.error_handler import (
    CyclicWorkflowError,
    UnknownAgentError,
    WorkflowValidationError,
)
from agentOrchestrator.workflow import (
    Workflow,
    WorkflowStep,
    WorkflowType,
    build_steps,
    condition_error,
    evaluate_condition,
    topological_order,
)


class TestConstruction:

    def test_cycle_rejected_at_construction(self):
        steps = [
            WorkflowStep("a", "agent", dependencies={"c"}),
            WorkflowStep("b", "agent", dependencies={"a"}),
            WorkflowStep("c", "agent", dependencies={"b"}),
        ]
        with pytest.raises(CyclicWorkflowError) as exc_info:
            Workflow("loop", WorkflowType.DAG, steps)

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}
        assert "cyclic workflow" in str(exc_info.value)

    def test_self_dependency_is_a_cycle(self):
        with pytest.raises(CyclicWorkflowError):
            Workflow("self", "dag", [WorkflowStep("a", "agent", dependencies="a")])

    def test_unknown_dependency_rejected(self):
        with pytest.raises(WorkflowValidationError, match="unknown step 'ghost'"):
            Workflow("dangling", "dag", [WorkflowStep("a", "agent", dependencies={"ghost"})])

    def test_duplicate_step_ids_rejected(self):
        with pytest.raises(WorkflowValidationError, match="Duplicate step id"):
            Workflow("dupes", "sequential", [WorkflowStep("a", "x"), WorkflowStep("a", "y")])

    def test_empty_workflow_rejected(self):
        with pytest.raises(WorkflowValidationError):
            Workflow("empty", "parallel", [])

    def test_conditional_dependency_must_be_earlier(self):
        steps = [WorkflowStep("a", "x", dependencies={"b"}), WorkflowStep("b", "x")]
        with pytest.raises(WorkflowValidationError, match="later step"):
            Workflow("order", "conditional", steps)

    def test_unknown_condition_rejected(self):
        with pytest.raises(WorkflowValidationError, match="Unknown condition"):
            Workflow("cond", "conditional", [WorkflowStep("a", "x", condition="sometimes")])

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            Workflow("bad", "round-robin", [WorkflowStep("a", "x")])

    def test_build_steps_from_mappings(self):
        steps = build_steps([
            {"id": "search", "agent": "literature-agent", "inputs": {"q": "graphs"}},
            {"id": "draft", "agent": "writing-agent", "dependencies": ["search"]},
        ])

        assert steps[0].inputs["q"] == "graphs"
        assert steps[1].dependencies == frozenset({"search"})
        assert steps[1].name == "draft"

    def test_topological_order(self):
        steps = [
            WorkflowStep("c", "x", dependencies={"a", "b"}),
            WorkflowStep("a", "x"),
            WorkflowStep("b", "x", dependencies={"a"}),
        ]
        assert topological_order(steps) == ["a", "b", "c"]


class TestEngineValidation:

    def test_validate_lists_unknown_agents(self, engine, make_agent):
        make_agent("known")
        workflow = Workflow("wf", "parallel", [WorkflowStep("a", "known"), WorkflowStep("b", "unknown")])

        assert engine.validate(workflow) == ["Step 'b' references unknown agent 'unknown'"]

    def test_ensure_valid_raises_unknown_agent(self, engine):
        workflow = Workflow("wf", "sequential", [WorkflowStep("a", "ghost")])
        with pytest.raises(UnknownAgentError):
            engine.ensure_valid(workflow)


class TestConditions:

    @pytest.fixture
    def context(self):
        context = ExecutionContext({"approved": True})
        context.record_step_result("check", error="quality too low")
        context.record_step_result("search", output=["p"])
        return context

    @pytest.mark.parametrize(
        "condition, expected",
        [
            (None, True),
            ("always", True),
            ("never", False),
            ("hasResults", True),
            ("hasFailures", True),
            ("isFirst", False),
            ("key:approved", True),
            ("key:missing", False),
            ("succeeded:search", True),
            ("failed:check", True),
            ("failed:search", False),
            ("not:failed:check", False),
            ("succeeded:never-ran", False),
        ],
    )
    def test_evaluate(self, context, condition, expected):
        assert evaluate_condition(condition, context) is expected

    def test_callable_condition(self, context):
        assert evaluate_condition(lambda ctx: ctx.get("approved"), context) is True

    def test_is_first_on_fresh_context(self):
        assert evaluate_condition("isFirst", ExecutionContext()) is True

    def test_condition_error(self):
        assert condition_error("key:x") is None
        assert condition_error("key:") is not None
        assert condition_error(42) is not None

    def test_unknown_condition_raises(self, context):
        with pytest.raises(ValueError):
            evaluate_condition("maybe", context)

    def test_async_condition_rejected_at_construction(self):
        async def approved(ctx):
            return ctx.get("approved")

        with pytest.raises(WorkflowValidationError, match="synchronous"):
            Workflow("cond", "conditional", [WorkflowStep("a", "x", condition=approved)])

    def test_awaitable_result_raises(self, context):
        async def approved(ctx):
            return ctx.get("approved")

        with pytest.raises(TypeError, match="synchronous"):
            evaluate_condition(lambda ctx: approved(ctx), context)
