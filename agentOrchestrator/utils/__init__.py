"""Utilities for the agent orchestrator."""

from .error_handler import (
    OrchestratorError,
    WorkflowValidationError,
    CyclicWorkflowError,
    UnknownAgentError,
    NoAgentAvailableError,
    AgentConfigurationError,
    WorkflowNotFoundError,
    StepExecutionError,
    AttemptTimeoutError,
    ContextClosedError,
    describe_error,
)
from .logging_utils import (
    setup_logging,
    log_attempt,
    log_route_decision,
    log_step_result,
    log_step_skipped,
    log_workflow_end,
    log_workflow_start,
)

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
    "setup_logging",
    "log_attempt",
    "log_route_decision",
    "log_step_result",
    "log_step_skipped",
    "log_workflow_end",
    "log_workflow_start",
]
