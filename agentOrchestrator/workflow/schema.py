"""Workflow definitions and run results."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from agentOrchestrator.agents.schema import RetryPolicyKind
from agentOrchestrator.utils.error_handler import StepExecutionError

# Terminal step failure recorded in WorkflowResult.failures
StepFailure = StepExecutionError

# Predicate over the run's ExecutionContext
Condition = Union[str, Callable[[Any], bool]]


class WorkflowType(str, Enum):
    """Execution mode of a workflow."""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"
    DAG = "dag"


class SkipReason(str, Enum):
    CONDITION = "condition"    # Predicate evaluated false
    DEPENDENCY = "dependency"  # A prerequisite failed or was itself skipped
    ABORTED = "aborted"        # Sequential run stopped at an earlier failure
    CANCELLED = "cancelled"    # Run cancelled or timed out before the step started


@dataclass(frozen=True)
class WorkflowStep:
    """One unit of work targeting one agent.

    Attributes:
        id: Unique within the workflow
        agent: Target agent name
        action: Action requested from the agent
        inputs: Static inputs handed to the executor
        dependencies: Step ids that must succeed first (DAG / conditional)
        name: Display name (defaults to id)
        condition: Predicate name/expression or callable (conditional mode)
    """

    id: str
    agent: str
    action: str = ""
    inputs: Mapping[str, Any] = field(default_factory=dict)
    dependencies: FrozenSet[str] = field(default_factory=frozenset)
    name: str = ""
    condition: Optional[Condition] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Workflow step id is required")
        if not self.agent:
            raise ValueError(f"Workflow step '{self.id}' has no agent")
        object.__setattr__(self, "inputs", MappingProxyType(dict(self.inputs or {})))
        deps = self.dependencies
        object.__setattr__(self, "dependencies", frozenset([deps] if isinstance(deps, str) else deps or ()))
        if not self.name:
            object.__setattr__(self, "name", self.id)


@dataclass(frozen=True)
class Workflow:
    """Static multi-step plan.

    Structural validation runs at construction: duplicate step ids, dangling
    dependencies and (for DAG workflows) cycles raise before anything executes.

    Attributes:
        name: Workflow name
        type: Execution mode
        steps: Ordered steps
        description: Free-form description
        timeout: Run-level timeout in seconds
        step_timeout / retry_policy / max_retries: Per-step defaults used when
            the agent definition leaves them unset
        max_concurrency: Concurrency cap for parallel / DAG runs
        continue_on_error: Sequential mode keeps going after a failure
    """

    name: str
    type: WorkflowType
    steps: Tuple[WorkflowStep, ...]
    description: str = ""
    timeout: Optional[float] = None
    step_timeout: Optional[float] = None
    retry_policy: Optional[RetryPolicyKind] = None
    max_retries: Optional[int] = None
    max_concurrency: Optional[int] = None
    continue_on_error: Optional[bool] = None

    def __post_init__(self):
        object.__setattr__(self, "type", WorkflowType(self.type))
        object.__setattr__(self, "steps", tuple(self.steps))
        if self.retry_policy is not None:
            object.__setattr__(self, "retry_policy", RetryPolicyKind(self.retry_policy))

        from .validation import validate_structure
        validate_structure(self)

    @property
    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((step for step in self.steps if step.id == step_id), None)

    def agents(self) -> List[str]:
        """Distinct agent names in step order."""
        return list(dict.fromkeys(step.agent for step in self.steps))


@dataclass(frozen=True)
class AgentResult:
    """Successful output of one step."""

    agent: str
    result: Any
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    step_id: Optional[str] = None
    attempts: int = 1
    duration: float = 0.0


@dataclass(frozen=True)
class SkippedStep:
    """A step that was never attempted."""

    step_id: str
    reason: SkipReason
    blocked_by: Tuple[str, ...] = ()


@dataclass
class RunOptions:
    """Run-level overrides (unset fields fall back to workflow, then settings).

    Attributes:
        max_concurrency: Hard cap of simultaneous executor calls
        continue_on_error: Sequential mode keeps going after a failed step
        timeout: Run-level timeout in seconds
        cancel_event: Setting this event cancels the run
    """

    max_concurrency: Optional[int] = None
    continue_on_error: Optional[bool] = None
    timeout: Optional[float] = None
    cancel_event: Optional[asyncio.Event] = None


@dataclass
class WorkflowResult:
    """Aggregate outcome of one workflow run.

    ``len(results) + len(failures)`` equals the number of attempted steps;
    skipped and abandoned steps appear in neither list. Results are in
    completion order.
    """

    results: List[AgentResult]
    failures: List[StepExecutionError]
    execution_time: float
    mode: WorkflowType
    workflow: str = ""
    skipped: List[SkippedStep] = field(default_factory=list)
    cancelled: bool = False
    context: Optional[Any] = None  # ContextSnapshot at the end of the run

    @property
    def attempted(self) -> int:
        return len(self.results) + len(self.failures)

    @property
    def failed(self) -> bool:
        """True when steps were attempted and none of them succeeded."""
        return self.attempted > 0 and not self.results

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        if not self.failures:
            return "success"
        return "failed" if self.failed else "partial"

    def result_for(self, step_id: str) -> Optional[AgentResult]:
        return next((r for r in self.results if r.step_id == step_id), None)

    def failure_for(self, step_id: str) -> Optional[StepExecutionError]:
        return next((f for f in self.failures if f.step_id == step_id), None)

    def outputs(self) -> Dict[str, Any]:
        """step_id -> raw result for successful steps."""
        return {r.step_id: r.result for r in self.results if r.step_id is not None}

    def summary(self) -> str:
        return (
            f"{self.workflow or 'workflow'} [{self.mode.value}] {self.status}: "
            f"{len(self.results)} succeeded, {len(self.failures)} failed, "
            f"{len(self.skipped)} skipped in {self.execution_time:.3f}s"
        )


def build_steps(raw_steps: Iterable[Mapping[str, Any]]) -> List[WorkflowStep]:
    """Create WorkflowSteps from plain mappings (YAML / JSON definitions)."""
    steps = []
    for raw in raw_steps:
        steps.append(
            WorkflowStep(
                id=raw["id"],
                agent=raw["agent"],
                action=raw.get("action", ""),
                inputs=raw.get("inputs") or {},
                dependencies=raw.get("dependencies") or (),
                name=raw.get("name", ""),
                condition=raw.get("condition"),
            )
        )
    return steps
