"""Configuration for the agent orchestrator."""

from .settings import ExecutionSettings, ObservabilitySettings, Settings, get_settings
from .project_root import get_project_root, resolve_project_path

__all__ = [
    "ExecutionSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
    "get_project_root",
    "resolve_project_path",
]
