"""Interfaces consumed by the orchestration core.

Executors are supplied by the skill/agent implementation layer, one per agent
definition. How they compute a result is opaque to the core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agentOrchestrator.context.store import ExecutionContext


@dataclass(frozen=True)
class StepRequest:
    """Task-shaped input handed to an executor for one attempt.

    Attributes:
        step_id: Workflow step identifier
        agent: Target agent name
        action: Action the step asks the agent to perform
        inputs: Static step inputs from the workflow definition
        context: Run-scoped execution context (read/write shared state)
        attempt: 1-based attempt number
        workflow: Name of the workflow being run, if any
    """

    step_id: str
    agent: str
    action: str
    inputs: Mapping[str, Any] = field(default_factory=dict)
    context: Optional["ExecutionContext"] = None
    attempt: int = 1
    workflow: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "inputs", MappingProxyType(dict(self.inputs)))

    @property
    def previous_results(self) -> Dict[str, Any]:
        """Outputs of steps that already completed successfully in this run."""
        if self.context is None:
            return {}
        return self.context.successful_outputs()

    def to_payload(self) -> Dict[str, Any]:
        """Plain-dict rendering for executors that take JSON-like input."""
        payload: Dict[str, Any] = {
            "step_id": self.step_id,
            "agent": self.agent,
            "action": self.action,
            "inputs": dict(self.inputs),
            "attempt": self.attempt,
            "workflow": self.workflow,
            "previous_results": self.previous_results,
        }
        if self.context is not None:
            payload["input"] = self.context.initial_data
            payload["shared"] = self.context.data()
        return payload


@runtime_checkable
class Executor(Protocol):
    """Asynchronous unit that fulfils one step for an agent."""

    async def execute(self, request: StepRequest) -> Any:
        ...
