"""Observability hooks, metrics and tracing."""

from .hooks import AttemptEvent, AttemptHook, LoggingAttemptHook, emit_attempt
from .metrics import AgentMetrics, MetricsCollector
from .tracing import configure_tracing

__all__ = [
    "AttemptEvent",
    "AttemptHook",
    "LoggingAttemptHook",
    "emit_attempt",
    "AgentMetrics",
    "MetricsCollector",
    "configure_tracing",
]
