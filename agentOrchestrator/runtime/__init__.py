"""Runtime wiring."""

from .app import OrchestratorApp, build_application

__all__ = ["OrchestratorApp", "build_application"]
