"""Logging utilities for the agent orchestrator."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

ROOT_LOGGER_NAME = "agentOrchestrator"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Setup logging configuration for the orchestrator.

    Args:
        level: Console logging level (default: INFO)
        log_dir: Directory for a timestamped detailed log file (optional)

    Returns:
        Configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Handlers filter; capture everything from children
    logger.propagate = False

    # Clear existing handlers
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"orchestrator_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)
        logger.info(f"Log file: {log_file}")

    return logger


def _preview(value: Any, limit: int = 200) -> str:
    text = str(value)
    if len(text) > limit:
        return text[:limit] + "... (truncated)"
    return text


def log_workflow_start(logger: logging.Logger, name: str, mode: str, step_count: int) -> None:
    """Log the start of a workflow run.

    Args:
        logger: Logger instance
        name: Workflow name
        mode: Execution mode
        step_count: Number of steps in the workflow
    """
    logger.info("=" * 60)
    logger.info(f"Executing workflow: {name}")
    logger.info(f"  Mode: {mode}")
    logger.info(f"  Steps: {step_count}")


def log_workflow_end(
    logger: logging.Logger,
    name: str,
    succeeded: int,
    failed: int,
    skipped: int,
    elapsed: float,
    cancelled: bool = False,
) -> None:
    """Log the summary of a finished workflow run."""
    status = "cancelled" if cancelled else "complete"
    logger.info(
        f"Workflow {name} {status} in {elapsed:.3f}s: "
        f"{succeeded} succeeded, {failed} failed, {skipped} skipped"
    )
    logger.info("=" * 60)


def log_step_result(
    logger: logging.Logger,
    step_id: str,
    agent: str,
    result: Any = None,
    error: Optional[str] = None,
) -> None:
    """Log the terminal outcome of one workflow step.

    Args:
        logger: Logger instance
        step_id: Step identifier
        agent: Agent that ran the step
        result: Step output on success
        error: Failure reason on terminal failure
    """
    if error is None:
        logger.info(f"  ✓ Step {step_id} ({agent}) completed")
        logger.debug(f"    Result: {_preview(result)}")
    else:
        logger.warning(f"  ✗ Step {step_id} ({agent}) failed: {error}")


def log_step_skipped(logger: logging.Logger, step_id: str, reason: str) -> None:
    """Log a step that was skipped instead of executed."""
    logger.info(f"  ⊘ Skipping step {step_id} ({reason})")


def log_attempt(
    logger: logging.Logger,
    agent: str,
    step_id: str,
    attempt: int,
    duration: float,
    success: bool,
    error: Optional[str] = None,
) -> None:
    """Log one executor attempt."""
    status = "✓ Success" if success else "✗ Failed"
    logger.debug(f"Attempt {attempt} of {step_id} on {agent} - {status} ({duration:.3f}s)")
    if error:
        logger.debug(f"  Error: {error}")


def log_route_decision(
    logger: logging.Logger,
    task_type: str,
    agents: Iterable[str],
    mode: str,
) -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        task_type: Classified task type
        agents: Selected agent names
        mode: Workflow mode chosen for the selection
    """
    agent_names = list(agents)
    logger.info(f"Routing decision: {task_type}")
    logger.info(f"  → Agents ({len(agent_names)}): {', '.join(agent_names)}")
    logger.info(f"  → Mode: {mode}")
