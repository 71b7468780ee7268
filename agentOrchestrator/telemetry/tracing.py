"""LangSmith tracing for runnable-backed executors."""

from __future__ import annotations

import logging
import os

from agentOrchestrator.config.settings import ObservabilitySettings

LOGGER = logging.getLogger(__name__)


def configure_tracing(settings: ObservabilitySettings) -> bool:
    """Export LangSmith settings so ``RunnableExecutor`` calls are traced.

    Returns:
        True when tracing was switched on
    """
    exports = {
        "LANGCHAIN_PROJECT": settings.langsmith_project,
        "LANGCHAIN_API_KEY": settings.langsmith_api_key,
        "LANGCHAIN_ENDPOINT": settings.langsmith_endpoint,
    }
    for key, value in exports.items():
        if value:
            os.environ[key] = value

    if not settings.tracing_enabled:
        return False

    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    LOGGER.info(f"LangSmith tracing enabled (project: {settings.langsmith_project or 'default'})")
    return True
