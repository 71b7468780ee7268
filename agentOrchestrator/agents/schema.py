"""Agent definition schema.

An ``AgentDefinition`` is the static descriptor of one agent kind: what it can
do (skills, capabilities), how it should be executed (execution config) and how
to obtain the executor that actually fulfils its steps (factory).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, FrozenSet, Iterable, Optional, Tuple


class ExecutionMode(str, Enum):
    """How the agent prefers to be scheduled alongside others."""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    FORK = "fork"  # Isolated execution


class RetryPolicyKind(str, Enum):
    """Retry strategy applied when an attempt fails."""
    NONE = "none"
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


def _frozen(values: Optional[Iterable[str]]) -> FrozenSet[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


def _tuple(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(values)


@dataclass(frozen=True)
class ExecutionConfig:
    """Per-agent execution settings.

    ``None`` fields fall back to workflow-level, then system-level defaults.

    Attributes:
        mode: Scheduling preference (sequential / parallel / fork); None when
            the agent has none
        timeout: Per-attempt timeout in seconds
        retry_policy: Retry strategy
        max_retries: Retries after the initial attempt
    """

    mode: Optional[ExecutionMode] = None
    timeout: Optional[float] = None
    retry_policy: Optional[RetryPolicyKind] = None
    max_retries: Optional[int] = None

    def __post_init__(self):
        if self.mode is not None:
            object.__setattr__(self, "mode", ExecutionMode(self.mode))
        if self.retry_policy is not None:
            object.__setattr__(self, "retry_policy", RetryPolicyKind(self.retry_policy))
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")


@dataclass(frozen=True)
class AgentRequirements:
    """Optional resource constraints (memory in MB, cpu cores)."""

    memory: Optional[int] = None
    cpu: Optional[float] = None
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "capabilities", _frozen(self.capabilities))


@dataclass(frozen=True)
class AgentDefinition:
    """Static descriptor of an agent kind.

    Attributes:
        name: Unique key in the registry
        description: Short summary of what the agent does
        skills: Skill tags the agent can execute
        capabilities: Capability tags used for routing
        input_format / output_format: Human-readable I/O description
        execution: Execution config (timeouts, retries)
        requirements: Optional resource constraints
        dependencies: Names of agents whose output this agent consumes
        provides: Names of agents (or artifacts) this agent supplies
        factory: Zero-argument callable producing the agent's executor

    Examples:
        >>> AgentDefinition(
        ...     name="review-agent",
        ...     description="Peer review simulation",
        ...     skills={"peer-review"},
        ...     capabilities={"review"},
        ...     execution=ExecutionConfig(mode="parallel", timeout=60),
        ...     factory=lambda: CallableExecutor(review),
        ... )
    """

    name: str
    description: str = ""
    skills: FrozenSet[str] = field(default_factory=frozenset)
    capabilities: FrozenSet[str] = field(default_factory=frozenset)
    input_format: str = ""
    output_format: str = ""
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    requirements: Optional[AgentRequirements] = None
    dependencies: Tuple[str, ...] = ()
    provides: Tuple[str, ...] = ()
    factory: Optional[Callable[[], Any]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Agent name is required")
        object.__setattr__(self, "skills", _frozen(self.skills))
        object.__setattr__(self, "capabilities", _frozen(self.capabilities))
        object.__setattr__(self, "dependencies", _tuple(self.dependencies))
        object.__setattr__(self, "provides", _tuple(self.provides))

    def has_skill(self, skill: str) -> bool:
        return skill in self.skills

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities
