"""Top-level package exports for the agent orchestrator."""

from .runtime.app import OrchestratorApp, build_application

__all__ = ["OrchestratorApp", "build_application"]
