"""Workflow definitions, validation and the execution engine."""

from .schema import (
    AgentResult,
    RunOptions,
    SkippedStep,
    SkipReason,
    StepFailure,
    Workflow,
    WorkflowResult,
    WorkflowStep,
    WorkflowType,
    build_steps,
)
from .conditions import condition_error, evaluate_condition
from .validation import check_agents, find_cycle, structure_errors, topological_order, validate_structure
from .engine import WorkflowEngine
from .loader import load_workflows_config, parse_workflow, scan_workflows_from_config

__all__ = [
    "AgentResult",
    "RunOptions",
    "SkippedStep",
    "SkipReason",
    "StepFailure",
    "Workflow",
    "WorkflowResult",
    "WorkflowStep",
    "WorkflowType",
    "build_steps",
    "condition_error",
    "evaluate_condition",
    "check_agents",
    "find_cycle",
    "structure_errors",
    "topological_order",
    "validate_structure",
    "WorkflowEngine",
    "load_workflows_config",
    "parse_workflow",
    "scan_workflows_from_config",
]
