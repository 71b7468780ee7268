"""Environment-bound configuration objects.

Pydantic BaseSettings-based configuration loading from environment variables
and an optional .env file.

Example:
    from agentOrchestrator.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    limit = settings.execution.max_concurrency
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()

RetryPolicyName = Literal["none", "fixed", "exponential"]


class ExecutionSettings(BaseSettings):
    """System-level execution defaults.

    Used whenever neither the agent definition nor the workflow specifies a
    value. Loaded from ``ORCHESTRATOR_*`` environment variables:
    - ORCHESTRATOR_MAX_CONCURRENCY: hard cap of concurrent executor calls per run
    - ORCHESTRATOR_DEFAULT_TIMEOUT: per-attempt timeout in seconds
    - ORCHESTRATOR_DEFAULT_RETRY_POLICY / ORCHESTRATOR_DEFAULT_MAX_RETRIES
    - ORCHESTRATOR_RETRY_BASE_DELAY / ORCHESTRATOR_RETRY_MAX_DELAY (seconds)
    - ORCHESTRATOR_CONTINUE_ON_ERROR: sequential mode keeps going after a failure
    - ORCHESTRATOR_WORKFLOW_TIMEOUT: run-level timeout in seconds (unset = none)
    """

    max_concurrency: int = Field(default=3, ge=1, le=64)
    default_timeout: float = Field(default=300.0, gt=0)
    default_retry_policy: RetryPolicyName = "none"
    default_max_retries: int = Field(default=3, ge=0, le=20)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    continue_on_error: bool = False
    workflow_timeout: Optional[float] = Field(default=None, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ObservabilitySettings(BaseSettings):
    """Logging and tracing configuration.

    - ORCHESTRATOR_LOG_LEVEL: console log level (default: INFO)
    - ORCHESTRATOR_LOG_DIR: directory for detailed log files (unset = console only)
    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, ...) for
      executors backed by LangChain runnables
    """

    log_level: str = "INFO"
    log_dir: Optional[str] = None

    langsmith_project: Optional[str] = Field(default=None, validation_alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, validation_alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, validation_alias="LANGCHAIN_TRACING_V2")

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(BaseSettings):
    """Root application settings.

    Hierarchical structure:
    - execution: concurrency, timeout and retry defaults (ExecutionSettings)
    - observability: logging (ObservabilitySettings)
    - agents_config_path / workflows_config_path: YAML definition sources,
      relative to the project root

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    agents_config_path: str = "agentOrchestrator/config/agents.yaml"
    workflows_config_path: str = "agentOrchestrator/config/workflows.yaml"

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance."""
    return Settings()
