"""Workflow loader - build Workflow objects from workflows.yaml."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

import yaml

from agentOrchestrator.config.project_root import resolve_project_path
from agentOrchestrator.utils.error_handler import OrchestratorError

from .schema import Workflow, build_steps

if TYPE_CHECKING:
    from .engine import WorkflowEngine

LOGGER = logging.getLogger(__name__)

DEFAULT_WORKFLOWS_CONFIG = "agentOrchestrator/config/workflows.yaml"


def parse_workflow(name: str, config: Mapping[str, Any]) -> Workflow:
    """Parse one workflow entry.

    Raises:
        KeyError: A step lacks ``id`` or ``agent``
        WorkflowValidationError: Structural problem (including cycles)
    """
    return Workflow(
        name=name,
        type=config.get("type", "sequential"),
        steps=build_steps(config.get("steps") or []),
        description=config.get("description", ""),
        timeout=config.get("timeout"),
        step_timeout=config.get("step_timeout"),
        retry_policy=config.get("retry_policy"),
        max_retries=config.get("max_retries"),
        max_concurrency=config.get("max_concurrency"),
        continue_on_error=config.get("continue_on_error"),
    )


def _read_config(config_path: Optional[Path | str]) -> Dict[str, Any]:
    path = Path(resolve_project_path(config_path or DEFAULT_WORKFLOWS_CONFIG))
    if not path.exists():
        raise FileNotFoundError(f"Workflow config not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    LOGGER.debug(f"Loaded workflow config from {path}")
    return config


def load_workflows_config(config_path: Optional[Path | str] = None) -> List[Workflow]:
    """Load every workflow from a YAML file.

    Raises:
        FileNotFoundError: Config file does not exist
        WorkflowValidationError: A workflow is malformed
    """
    config = _read_config(config_path)
    return [parse_workflow(name, entry or {}) for name, entry in (config.get("workflows") or {}).items()]


def scan_workflows_from_config(
    engine: "WorkflowEngine",
    config_path: Optional[Path | str] = None,
) -> List[str]:
    """Register every workflow of a YAML file with ``engine``.

    Workflows that fail to parse or reference unknown agents are logged and
    skipped.

    Returns:
        Names of the registered workflows
    """
    config = _read_config(config_path)

    registered = []
    for name, entry in (config.get("workflows") or {}).items():
        try:
            engine.register(parse_workflow(name, entry or {}))
            registered.append(name)
        except (OrchestratorError, KeyError, ValueError) as e:
            LOGGER.error(f"Failed to register workflow '{name}': {e}")

    LOGGER.info(f"Workflow scan complete: {len(registered)} registered")
    return registered
