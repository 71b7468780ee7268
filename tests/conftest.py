"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from agentOrchestrator.agents import AgentDefinition, AgentRegistry, ExecutionConfig
from agentOrchestrator.config.settings import ExecutionSettings
from agentOrchestrator.subagent import SubagentExecutor
from agentOrchestrator.workflow import WorkflowEngine


class ConcurrencyTracker:
    """Shared across fake agents: how many executor calls overlap."""

    def __init__(self):
        self.active = 0
        self.peak = 0
        self.started = []

    def enter(self, step_id):
        self.active += 1
        self.peak = max(self.peak, self.active)
        self.started.append(step_id)

    def exit(self):
        self.active -= 1


class FakeAgent:
    """Scriptable executor.

    ``outcomes`` is consumed one entry per call: exceptions are raised, other
    values returned. Once exhausted every call returns ``"<name>:<step_id>"``.
    """

    def __init__(self, name, outcomes=None, delay=0.0, tracker=None):
        self.name = name
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.tracker = tracker
        self.calls = []
        self.seen_previous = []

    async def execute(self, request):
        self.calls.append(request)
        self.seen_previous.append(dict(request.previous_results))
        if self.tracker is not None:
            self.tracker.enter(request.step_id)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.outcomes.pop(0) if self.outcomes else f"{self.name}:{request.step_id}"
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            if self.tracker is not None:
                self.tracker.exit()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records retry delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def tracker():
    return ConcurrencyTracker()


@pytest.fixture
def registry():
    return AgentRegistry()


@pytest.fixture
def make_agent(registry, tracker):
    """Register a fake agent and return its executor.

    Extra keyword arguments go to ExecutionConfig (timeout, retry_policy, ...).
    """

    def _make(
        name,
        *,
        outcomes=None,
        delay=0.0,
        capabilities=(),
        skills=(),
        dependencies=(),
        provides=(),
        **execution,
    ):
        fake = FakeAgent(name, outcomes=outcomes, delay=delay, tracker=tracker)
        registry.register(
            AgentDefinition(
                name=name,
                capabilities=capabilities,
                skills=skills,
                dependencies=dependencies,
                provides=provides,
                execution=ExecutionConfig(**execution),
                factory=lambda: fake,
            )
        )
        return fake

    return _make


@pytest.fixture
def settings():
    return ExecutionSettings(
        max_concurrency=3,
        default_timeout=5.0,
        default_retry_policy="none",
        retry_base_delay=1.0,
        retry_max_delay=30.0,
    )


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def subagent(registry, settings, recording_sleep):
    return SubagentExecutor(registry, settings, sleep=recording_sleep)


@pytest.fixture
def engine(registry, subagent, settings):
    return WorkflowEngine(registry, subagent, settings)
