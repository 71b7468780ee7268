"""Per-attempt observability hooks.

The subagent executor emits one ``AttemptEvent`` per executor attempt to every
registered hook. Hooks are the only coupling between the core and a metrics or
logging sink.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, runtime_checkable

from agentOrchestrator.utils.logging_utils import log_attempt

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptEvent:
    """One executor attempt.

    Attributes:
        agent: Agent name
        step_id: Workflow step id
        attempt: 1-based attempt number
        duration: Wall time of the attempt in seconds
        success: Whether the attempt produced a result
        error: Failure description (None on success)
        timed_out: The attempt failed because its timeout elapsed
    """

    agent: str
    step_id: str
    attempt: int
    duration: float
    success: bool
    error: Optional[str] = None
    timed_out: bool = False


@runtime_checkable
class AttemptHook(Protocol):
    def on_attempt(self, event: AttemptEvent) -> None:
        ...


class LoggingAttemptHook:
    """Writes every attempt to the orchestrator log."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("agentOrchestrator.attempts")

    def on_attempt(self, event: AttemptEvent) -> None:
        log_attempt(
            self.logger,
            event.agent,
            event.step_id,
            event.attempt,
            event.duration,
            event.success,
            event.error,
        )


def emit_attempt(hooks: Sequence[AttemptHook], event: AttemptEvent) -> None:
    """Deliver an event to every hook; a failing hook never fails the step."""
    for hook in hooks:
        try:
            hook.on_attempt(event)
        except Exception as e:
            LOGGER.warning(f"Attempt hook {type(hook).__name__} failed: {e}")

