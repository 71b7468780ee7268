"""In-process metrics collector for agent attempts."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from .hooks import AttemptEvent


@dataclass
class AgentMetrics:
    calls: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    total_duration: float = 0.0
    last_call_time: Optional[str] = None

    @property
    def avg_duration(self) -> float:
        return self.total_duration / self.calls if self.calls else 0.0

    def as_dict(self) -> Dict[str, object]:
        return {
            "calls": self.calls,
            "successes": self.successes,
            "failures": self.failures,
            "timeouts": self.timeouts,
            "total_duration": self.total_duration,
            "avg_duration": self.avg_duration,
            "last_call_time": self.last_call_time,
        }


class MetricsCollector:
    """Attempt hook that aggregates per-agent counters.

    Constructed once per application and passed to the subagent executor;
    there is no module-level collector.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._agents: Dict[str, AgentMetrics] = {}
        self._started_at = datetime.now(timezone.utc)

    def on_attempt(self, event: AttemptEvent) -> None:
        self.record_agent_call(event.agent, event.duration, event.success, event.timed_out)

    def record_agent_call(
        self,
        agent: str,
        duration: float,
        success: bool = True,
        timed_out: bool = False,
    ) -> None:
        with self._lock:
            metrics = self._agents.setdefault(agent, AgentMetrics())
            metrics.calls += 1
            metrics.total_duration += duration
            if success:
                metrics.successes += 1
            else:
                metrics.failures += 1
            if timed_out:
                metrics.timeouts += 1
            metrics.last_call_time = datetime.now(timezone.utc).isoformat()

    def get_agent_metrics(self, agent: str) -> Optional[AgentMetrics]:
        with self._lock:
            metrics = self._agents.get(agent)
            return AgentMetrics(**vars(metrics)) if metrics else None

    def get_stats(self) -> Dict[str, object]:
        with self._lock:
            agents = {name: m.as_dict() for name, m in self._agents.items()}
        total_calls = sum(a["calls"] for a in agents.values())
        total_failures = sum(a["failures"] for a in agents.values())
        return {
            "uptime": (datetime.now(timezone.utc) - self._started_at).total_seconds(),
            "total_calls": total_calls,
            "total_failures": total_failures,
            "agents": agents,
        }

    def reset(self) -> None:
        with self._lock:
            self._agents.clear()
            self._started_at = datetime.now(timezone.utc)
