"""Runtime assembly for the agent orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from agentOrchestrator.agents import AgentRegistry, scan_agents_from_config
from agentOrchestrator.config import Settings, get_settings, resolve_project_path
from agentOrchestrator.context import ExecutionContextStore
from agentOrchestrator.routing import AgentRouter, TaskClassifier
from agentOrchestrator.subagent import SubagentExecutor
from agentOrchestrator.telemetry import AttemptHook, LoggingAttemptHook, MetricsCollector, configure_tracing
from agentOrchestrator.utils.logging_utils import setup_logging
from agentOrchestrator.workflow import WorkflowEngine, scan_workflows_from_config

LOGGER = logging.getLogger(__name__)


@dataclass
class OrchestratorApp:
    """Everything one process needs to route requests and run workflows."""

    settings: Settings
    registry: AgentRegistry
    contexts: ExecutionContextStore
    metrics: MetricsCollector
    subagent: SubagentExecutor
    engine: WorkflowEngine
    router: AgentRouter
    workflows: list = field(default_factory=list)


def _create_agent_registry(settings: Settings) -> AgentRegistry:
    """Load the agent catalogue; a missing file yields an empty registry."""
    config_path = resolve_project_path(settings.agents_config_path)
    if not config_path.exists():
        LOGGER.warning(f"Agent config not found at {config_path}, starting with an empty registry")
        return AgentRegistry()
    return scan_agents_from_config(config_path)


def build_application(
    settings: Optional[Settings] = None,
    registry: Optional[AgentRegistry] = None,
    *,
    classifier: Optional[TaskClassifier] = None,
    hooks: Iterable[AttemptHook] = (),
    load_workflows: bool = True,
    configure_logging: bool = True,
) -> OrchestratorApp:
    """Wire registry, executor, engine and router together.

    Args:
        settings: Application settings (cached environment settings when omitted)
        registry: Pre-populated agent registry (scanned from agents.yaml when omitted)
        classifier: Task classifier for the router
        hooks: Extra attempt hooks (logging and metrics hooks are always installed)
        load_workflows: Register the predefined workflows from workflows.yaml
        configure_logging: Install console / file handlers

    Returns:
        OrchestratorApp
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.observability.log_level, settings.observability.log_dir)
    configure_tracing(settings.observability)

    registry = registry if registry is not None else _create_agent_registry(settings)

    metrics = MetricsCollector()
    subagent = SubagentExecutor(
        registry,
        settings.execution,
        hooks=[LoggingAttemptHook(), metrics, *hooks],
    )
    contexts = ExecutionContextStore()
    engine = WorkflowEngine(registry, subagent, settings.execution, contexts)
    router = AgentRouter(registry, engine, classifier)

    workflows = []
    if load_workflows:
        workflows_path = resolve_project_path(settings.workflows_config_path)
        if workflows_path.exists():
            workflows = scan_workflows_from_config(engine, workflows_path)
        else:
            LOGGER.warning(f"Workflow config not found at {workflows_path}")

    LOGGER.info(f"Orchestrator ready: {len(registry)} agents, {len(workflows)} workflows")
    return OrchestratorApp(
        settings=settings,
        registry=registry,
        contexts=contexts,
        metrics=metrics,
        subagent=subagent,
        engine=engine,
        router=router,
        workflows=workflows,
    )
