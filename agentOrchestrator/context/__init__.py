"""Per-run execution context."""

from .store import (
    ContextMessage,
    ContextSnapshot,
    ExecutionContext,
    ExecutionContextStore,
    StepRecord,
)

__all__ = [
    "ContextMessage",
    "ContextSnapshot",
    "ExecutionContext",
    "ExecutionContextStore",
    "StepRecord",
]
