"""State carried through the routing graph."""

from __future__ import annotations

from typing import List, Optional, TypedDict

from agentOrchestrator.agents.schema import AgentDefinition
from agentOrchestrator.workflow.schema import Workflow, WorkflowResult

from .classifier import TaskType
from .schema import UserRequest


class RouteState(TypedDict, total=False):
    """Routing pipeline state: classify → select → plan → execute.

    A request naming a predefined workflow skips selection and planning:
    classify → load_workflow → execute.
    """

    # ========== Input ==========
    request: UserRequest
    started_at: float

    # ========== Decisions ==========
    task_type: TaskType
    agents: List[AgentDefinition]
    workflow: Optional[Workflow]

    # ========== Output ==========
    result: WorkflowResult
