"""Routed request and result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agentOrchestrator.workflow.schema import WorkflowResult

from .classifier import TaskType


@dataclass
class UserRequest:
    """A free-form task to route.

    Attributes:
        text: Request text (classified when ``type`` is unset)
        type: Explicit task type, bypasses classification
        workflow: Name of a predefined workflow to run instead of planning one
        options: Free-form options. Recognised keys:
            agents: explicit agent names (overrides selection)
            inputs: extra step inputs
            max_concurrency / timeout / continue_on_error: run overrides
    """

    text: str
    type: Optional[str] = None
    workflow: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RouteResult:
    """Outcome of a routed request."""

    task_type: TaskType
    agents: List[str]
    result: WorkflowResult
    execution_time: float
