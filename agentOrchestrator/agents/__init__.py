"""Agent definitions, executors and registry."""

from .schema import AgentDefinition, AgentRequirements, ExecutionConfig, ExecutionMode, RetryPolicyKind
from .interfaces import Executor, StepRequest
from .executors import CallableExecutor, RunnableExecutor, as_executor
from .registry import AgentRegistry
from .scanner import import_factory, load_agents_config, parse_agent_definition, scan_agents_from_config

__all__ = [
    "AgentDefinition",
    "AgentRequirements",
    "ExecutionConfig",
    "ExecutionMode",
    "RetryPolicyKind",
    "Executor",
    "StepRequest",
    "CallableExecutor",
    "RunnableExecutor",
    "as_executor",
    "AgentRegistry",
    "import_factory",
    "load_agents_config",
    "parse_agent_definition",
    "scan_agents_from_config",
]
