"""Request routing: classification, agent selection and workflow planning."""

from .classifier import TaskClassifier, TaskType, extract_task_type, keyword_classification, parse_task_type
from .schema import RouteResult, UserRequest
from .state import RouteState
from .router import TASK_AGENTS, AgentRouter

__all__ = [
    "TaskClassifier",
    "TaskType",
    "extract_task_type",
    "keyword_classification",
    "parse_task_type",
    "RouteResult",
    "UserRequest",
    "RouteState",
    "TASK_AGENTS",
    "AgentRouter",
]
