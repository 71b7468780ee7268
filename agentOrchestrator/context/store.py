"""Execution context - shared state for one workflow run.

A context is created once per workflow invocation and owned by that run. It
holds the initial input payload, the per-step result map and free-form shared
key/value data that steps may read and write.

Concurrency model: every read and write goes through one re-entrant lock, so
each key update is atomic and readers never see torn multi-key updates. Steps
running concurrently that write the *same* key race by completion order: the
last writer wins.
"""

from __future__ import annotations

import inspect
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from agentOrchestrator.utils.error_handler import ContextClosedError, describe_error

LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[["ContextMessage"], Union[None, Awaitable[None]]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class StepRecord:
    """Recorded outcome of one step (output on success, error otherwise)."""

    step_id: str
    output: Any = None
    error: Optional[str] = None
    completed_at: str = field(default_factory=_now)

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ContextMessage:
    """Message passed between agents through the context."""

    sender: str
    recipients: Tuple[str, ...]
    type: str  # request | response | notification | error
    content: Any
    id: str = field(default_factory=lambda: f"msg_{uuid.uuid4().hex[:12]}")
    timestamp: str = field(default_factory=_now)


@dataclass(frozen=True)
class ContextSnapshot:
    """Immutable copy of a context's state, used for result synthesis."""

    run_id: str
    initial_data: Any
    data: Mapping[str, Any]
    steps: Mapping[str, StepRecord]
    message_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "initial_data": self.initial_data,
            "data": dict(self.data),
            "steps": {
                step_id: {"output": r.output, "error": r.error, "completed_at": r.completed_at}
                for step_id, r in self.steps.items()
            },
            "message_count": self.message_count,
        }


class ExecutionContext:
    """Mutable, lock-guarded state shared by all steps of one run."""

    def __init__(self, initial_data: Any = None, run_id: Optional[str] = None):
        self.run_id = run_id or f"run-{uuid.uuid4().hex[:8]}"
        self._lock = threading.RLock()
        self._initial_data = dict(initial_data) if isinstance(initial_data, Mapping) else initial_data
        self._data: Dict[str, Any] = {}
        self._steps: Dict[str, StepRecord] = {}
        self._history: List[ContextMessage] = []
        self._handlers: Dict[str, MessageHandler] = {}
        self._closed = False

        if isinstance(initial_data, Mapping):
            self._data.update(initial_data)

    # ========== Lifecycle ==========

    @property
    def initial_data(self) -> Any:
        """Input payload the run was started with."""
        if isinstance(self._initial_data, dict):
            return dict(self._initial_data)
        return self._initial_data

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Mark the run finished; later writes raise ContextClosedError."""
        with self._lock:
            self._closed = True
            self._handlers.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ContextClosedError(f"Execution context {self.run_id} is closed")

    # ========== Shared key/value data ==========

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._ensure_open()
            self._data[key] = value
        LOGGER.debug(f"[{self.run_id}] Context updated: {key}")

    def delete(self, key: str) -> None:
        with self._lock:
            self._ensure_open()
            self._data.pop(key, None)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def data(self) -> Dict[str, Any]:
        """Copy of the shared data map."""
        with self._lock:
            return dict(self._data)

    def update(self, updates: Mapping[str, Any]) -> None:
        """Set several keys atomically."""
        with self._lock:
            self._ensure_open()
            self._data.update(updates)

    def merge(self, updates: Mapping[str, Any]) -> None:
        """Shallow-merge dict values into existing dict values; other values overwrite."""
        with self._lock:
            self._ensure_open()
            for key, value in updates.items():
                existing = self._data.get(key)
                if isinstance(existing, dict) and isinstance(value, Mapping):
                    self._data[key] = {**existing, **value}
                else:
                    self._data[key] = value

    # ========== Per-step results ==========

    def record_step_result(
        self,
        step_id: str,
        output: Any = None,
        error: Optional[Union[BaseException, str]] = None,
    ) -> StepRecord:
        """Record (or overwrite) a step's output or error.

        Args:
            step_id: Step identifier
            output: Step output on success
            error: Exception or reason string on failure

        Returns:
            The stored StepRecord
        """
        if isinstance(error, BaseException):
            error = describe_error(error)
        record = StepRecord(step_id=step_id, output=output if error is None else None, error=error)
        with self._lock:
            self._ensure_open()
            # Re-insert so iteration order follows completion order
            self._steps.pop(step_id, None)
            self._steps[step_id] = record
        return record

    def step_record(self, step_id: str) -> Optional[StepRecord]:
        with self._lock:
            return self._steps.get(step_id)

    def step_output(self, step_id: str, default: Any = None) -> Any:
        record = self.step_record(step_id)
        if record is None or not record.success:
            return default
        return record.output

    def step_results(self) -> Dict[str, StepRecord]:
        """All step records in completion order."""
        with self._lock:
            return dict(self._steps)

    def successful_outputs(self) -> Dict[str, Any]:
        """step_id -> output for every step that succeeded, in completion order."""
        with self._lock:
            return {step_id: r.output for step_id, r in self._steps.items() if r.success}

    def failed_steps(self) -> List[str]:
        with self._lock:
            return [step_id for step_id, r in self._steps.items() if not r.success]

    @property
    def previous_results(self) -> List[Any]:
        """Outputs of successful steps in completion order."""
        return list(self.successful_outputs().values())

    # ========== Snapshots ==========

    def snapshot(self) -> ContextSnapshot:
        """Immutable copy of the current state."""
        with self._lock:
            return ContextSnapshot(
                run_id=self.run_id,
                initial_data=self.initial_data,
                data=MappingProxyType(dict(self._data)),
                steps=MappingProxyType(dict(self._steps)),
                message_count=len(self._history),
            )

    def restore(self, snapshot: ContextSnapshot) -> None:
        """Replace shared data and step records with a snapshot's content."""
        with self._lock:
            self._ensure_open()
            self._data = dict(snapshot.data)
            self._steps = dict(snapshot.steps)
        LOGGER.debug(f"[{self.run_id}] Context restored from snapshot of {snapshot.run_id}")

    def scope(self, keys: Iterable[str]) -> "ExecutionContext":
        """New independent context holding only ``keys`` of the shared data."""
        with self._lock:
            subset = {key: self._data[key] for key in keys if key in self._data}
        return ExecutionContext(subset, run_id=f"{self.run_id}-scope")

    def clone(self) -> "ExecutionContext":
        """Independent deep-enough copy (data, step records and history)."""
        with self._lock:
            cloned = ExecutionContext(run_id=f"{self.run_id}-clone")
            cloned._initial_data = self.initial_data
            cloned._data = dict(self._data)
            cloned._steps = dict(self._steps)
            cloned._history = list(self._history)
        return cloned

    # ========== Message passing ==========

    def register_message_handler(self, agent: str, handler: MessageHandler) -> None:
        with self._lock:
            self._handlers[agent] = handler

    def unregister_message_handler(self, agent: str) -> None:
        with self._lock:
            self._handlers.pop(agent, None)

    async def send_message(
        self,
        sender: str,
        recipients: Union[str, Iterable[str]],
        content: Any,
        message_type: str = "notification",
    ) -> ContextMessage:
        """Append a message to the history and deliver it to registered handlers."""
        if isinstance(recipients, str):
            recipients = (recipients,)
        message = ContextMessage(
            sender=sender,
            recipients=tuple(recipients),
            type=message_type,
            content=content,
        )
        with self._lock:
            self._ensure_open()
            self._history.append(message)
            handlers = [self._handlers[r] for r in message.recipients if r in self._handlers]

        LOGGER.debug(f"[{self.run_id}] Message: {sender} → {', '.join(message.recipients)} ({message_type})")
        for handler in handlers:
            outcome = handler(message)
            if inspect.isawaitable(outcome):
                await outcome
        return message

    def history(
        self,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        message_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ContextMessage]:
        """Message history, optionally filtered."""
        with self._lock:
            messages = list(self._history)
        if sender:
            messages = [m for m in messages if m.sender == sender]
        if recipient:
            messages = [m for m in messages if recipient in m.recipients]
        if message_type:
            messages = [m for m in messages if m.type == message_type]
        if limit:
            messages = messages[-limit:]
        return messages

    # ========== Export / import ==========

    def to_json(self) -> str:
        """Export data, step records and messages as JSON (non-JSON values stringified)."""
        with self._lock:
            payload = self.snapshot().to_dict()
            payload["messages"] = [
                {
                    "id": m.id,
                    "sender": m.sender,
                    "recipients": list(m.recipients),
                    "type": m.type,
                    "content": m.content,
                    "timestamp": m.timestamp,
                }
                for m in self._history
            ]
        payload["exported_at"] = _now()
        return json.dumps(payload, ensure_ascii=False, indent=2, default=str)

    @classmethod
    def from_json(cls, raw: str) -> "ExecutionContext":
        """Rebuild a context from ``to_json`` output.

        Raises:
            ValueError: Payload is not valid context JSON
        """
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to import context: {e}") from e

        context = cls(run_id=payload.get("run_id"))
        context._initial_data = payload.get("initial_data")
        context._data = dict(payload.get("data") or {})
        for step_id, record in (payload.get("steps") or {}).items():
            context._steps[step_id] = StepRecord(
                step_id=step_id,
                output=record.get("output"),
                error=record.get("error"),
                completed_at=record.get("completed_at") or _now(),
            )
        for m in payload.get("messages") or []:
            context._history.append(
                ContextMessage(
                    sender=m["sender"],
                    recipients=tuple(m.get("recipients", [])),
                    type=m.get("type", "notification"),
                    content=m.get("content"),
                    id=m.get("id") or f"msg_{uuid.uuid4().hex[:12]}",
                    timestamp=m.get("timestamp") or _now(),
                )
            )
        return context

    # ========== Statistics ==========

    def statistics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "data_keys": len(self._data),
                "steps": len(self._steps),
                "failed_steps": sum(1 for r in self._steps.values() if not r.success),
                "messages": len(self._history),
                "last_message_time": self._history[-1].timestamp if self._history else None,
            }

    def __repr__(self) -> str:
        return f"ExecutionContext(run_id={self.run_id!r}, keys={len(self._data)}, steps={len(self._steps)})"


class ExecutionContextStore:
    """Factory and index of live execution contexts (one per workflow run)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Dict[str, ExecutionContext] = {}

    def create(self, initial_data: Any = None, run_id: Optional[str] = None) -> ExecutionContext:
        """Create a fresh context scoped to one workflow run."""
        context = ExecutionContext(initial_data, run_id=run_id)
        with self._lock:
            self._active[context.run_id] = context
        LOGGER.debug(f"Created execution context {context.run_id}")
        return context

    def get(self, run_id: str) -> Optional[ExecutionContext]:
        with self._lock:
            return self._active.get(run_id)

    def release(self, context: Union[ExecutionContext, str]) -> None:
        """Close a context and forget it (no-op for unknown runs)."""
        run_id = context if isinstance(context, str) else context.run_id
        with self._lock:
            released = self._active.pop(run_id, None)
        if released is not None:
            released.close()
        elif isinstance(context, ExecutionContext):
            context.close()

    def active_runs(self) -> List[str]:
        with self._lock:
            return list(self._active)
