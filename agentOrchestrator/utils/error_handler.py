"""Unified error types for the orchestrator.

Construction errors (cyclic workflows, unknown agents, no agent available) are
raised to the caller before anything executes. Attempt and step failures are
never raised out of the engine; they are recorded in ``WorkflowResult.failures``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Iterable, Optional


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


# ========== Construction errors ==========


class WorkflowValidationError(OrchestratorError):
    """Workflow definition is structurally invalid."""

    def __init__(self, workflow: str, errors: Iterable[str]):
        self.workflow = workflow
        self.errors = list(errors)
        super().__init__(f"Invalid workflow '{workflow}': {'; '.join(self.errors)}")


class CyclicWorkflowError(WorkflowValidationError):
    """DAG workflow whose dependency relation contains a cycle."""

    def __init__(self, workflow: str, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__(workflow, [f"cyclic workflow: {' -> '.join(self.cycle)}"])


class UnknownAgentError(OrchestratorError):
    """A step or route references an agent that is not registered."""

    def __init__(self, agent: str, step_id: Optional[str] = None):
        self.agent = agent
        self.step_id = step_id
        where = f" (step '{step_id}')" if step_id else ""
        super().__init__(f"Unknown agent: {agent}{where}")


class NoAgentAvailableError(OrchestratorError):
    """No registered agent can handle the requested task type."""

    def __init__(self, task_type: str):
        self.task_type = task_type
        super().__init__(
            f"No agent found for task type: {task_type}",
            user_message=f"No agent available for '{task_type}' tasks",
        )


class AgentConfigurationError(OrchestratorError):
    """Agent definition cannot produce an executor."""


class WorkflowNotFoundError(OrchestratorError):
    """Named workflow is not registered with the engine."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Workflow not found: {name}")


# ========== Runtime errors ==========


class StepExecutionError(OrchestratorError):
    """Terminal failure of one workflow step (retries exhausted or not allowed).

    Attributes:
        step_id: Failed step
        agent: Agent the step targeted
        error: Final underlying exception (None for cancellation)
        reason: "error" | "timeout" | "cancelled" | "configuration" | "condition"
        attempts: Number of executor attempts made
        timestamp: ISO-8601 UTC time the failure was recorded
    """

    def __init__(
        self,
        step_id: str,
        agent: str,
        error: Optional[BaseException],
        reason: str = "error",
        attempts: int = 0,
    ):
        self.step_id = step_id
        self.agent = agent
        self.error = error
        self.reason = reason
        self.attempts = attempts
        self.timestamp = datetime.now(timezone.utc).isoformat()
        detail = describe_error(error) if error is not None else reason
        super().__init__(
            f"Step '{step_id}' ({agent}) failed after {attempts} attempt(s): {detail}"
        )
        if error is not None:
            self.__cause__ = error


class AttemptTimeoutError(OrchestratorError):
    """A single executor attempt exceeded its timeout."""

    def __init__(self, agent: str, timeout: float):
        self.agent = agent
        self.timeout = timeout
        super().__init__(f"Agent '{agent}' timed out after {timeout:g}s")


class ContextClosedError(OrchestratorError):
    """Write attempted on an execution context whose run has finished."""


def describe_error(error: BaseException) -> str:
    """Render an exception as a short, log-friendly reason string."""
    if isinstance(error, OrchestratorError):
        return str(error)
    if isinstance(error, asyncio.TimeoutError):
        return "timeout"
    if isinstance(error, asyncio.CancelledError):
        return "cancelled"
    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


__all__ = [
    "OrchestratorError",
    "WorkflowValidationError",
    "CyclicWorkflowError",
    "UnknownAgentError",
    "NoAgentAvailableError",
    "AgentConfigurationError",
    "WorkflowNotFoundError",
    "StepExecutionError",
    "AttemptTimeoutError",
    "ContextClosedError",
    "describe_error",
]
