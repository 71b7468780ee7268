"""Agent scanner - build agent definitions from agents.yaml.

Responsibilities:
1. Read agent definitions from YAML
2. Dynamically import executor factories ("module.path:attr")
3. Create AgentDefinition instances and register them in an AgentRegistry
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from agentOrchestrator.config.project_root import resolve_project_path

from .registry import AgentRegistry
from .schema import AgentDefinition, AgentRequirements, ExecutionConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_AGENTS_CONFIG = "agentOrchestrator/config/agents.yaml"


def import_factory(factory_path: str) -> Callable:
    """Dynamically import an executor factory.

    Args:
        factory_path: "module.path:ClassName" or "module.path:function_name"

    Returns:
        Factory callable

    Raises:
        ValueError / ImportError / AttributeError: Import failed
    """
    try:
        module_path, attr_name = factory_path.split(":")
        module = importlib.import_module(module_path)
        return getattr(module, attr_name)
    except (ValueError, ImportError, AttributeError) as e:
        LOGGER.error(f"Failed to import executor factory '{factory_path}': {e}")
        raise


def parse_agent_definition(name: str, config: Dict[str, Any]) -> AgentDefinition:
    """Parse one agent entry from YAML config.

    Args:
        name: Agent name (the YAML key)
        config: Agent configuration mapping

    Returns:
        AgentDefinition instance

    Raises:
        ImportError: factory_path could not be imported
        ValueError: Invalid execution settings
    """
    execution_cfg = config.get("execution") or {}
    execution = ExecutionConfig(
        mode=execution_cfg.get("mode"),
        timeout=execution_cfg.get("timeout"),
        retry_policy=execution_cfg.get("retry_policy"),
        max_retries=execution_cfg.get("max_retries"),
    )

    requirements = None
    requirements_cfg = config.get("requirements")
    if requirements_cfg:
        requirements = AgentRequirements(
            memory=requirements_cfg.get("memory"),
            cpu=requirements_cfg.get("cpu"),
            capabilities=requirements_cfg.get("capabilities", []),
        )

    factory = None
    factory_path = config.get("factory_path")
    if factory_path:
        factory = import_factory(factory_path)

    return AgentDefinition(
        name=name,
        description=config.get("description", ""),
        skills=config.get("skills", []),
        capabilities=config.get("capabilities", []),
        input_format=config.get("input_format", ""),
        output_format=config.get("output_format", ""),
        execution=execution,
        requirements=requirements,
        dependencies=config.get("dependencies", []),
        provides=config.get("provides", []),
        factory=factory,
    )


def load_agents_config(config_path: Path | str) -> Dict[str, Any]:
    """Load an agents.yaml file.

    Raises:
        FileNotFoundError: Config file does not exist
        yaml.YAMLError: YAML parse error
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Agent config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    LOGGER.debug(f"Loaded agent config from {config_path}")
    return config


def scan_agents_from_config(
    config_path: Optional[Path | str] = None,
    registry: Optional[AgentRegistry] = None,
) -> AgentRegistry:
    """Scan agents.yaml and register every agent it defines.

    A broken entry is logged and skipped; the remaining agents still load.

    Args:
        config_path: Path to agents.yaml (defaults to the bundled catalogue)
        registry: Registry to populate (a new one is created when omitted)

    Returns:
        Populated AgentRegistry
    """
    registry = registry if registry is not None else AgentRegistry()

    if config_path is None:
        config_path = DEFAULT_AGENTS_CONFIG
    config = load_agents_config(resolve_project_path(config_path))

    if not config.get("global", {}).get("enabled", True):
        LOGGER.info("Agent catalogue is disabled in config")
        return registry

    for name, agent_config in (config.get("agents") or {}).items():
        try:
            registry.register(parse_agent_definition(name, agent_config or {}))
            LOGGER.info(f"Registered agent: {name}")
        except Exception as e:
            LOGGER.error(f"Failed to register agent '{name}': {e}")

    LOGGER.info(f"Agent scan complete: {len(registry)} registered")
    return registry
