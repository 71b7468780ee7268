"""Subagent executor - run one workflow step against its agent.

Each step is executed with the agent's timeout and retry policy, falling back
to workflow-level and then system-level defaults:

    agent.execution.*  ->  workflow.step_timeout / retry_policy / max_retries
                       ->  ExecutionSettings defaults

Attempt failures (exceptions, timeouts) are retried locally. Once retries are
exhausted the step yields a ``StepExecutionError``; it is never raised.
Cancellation is not an attempt failure and always propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from agentOrchestrator.agents.interfaces import StepRequest
from agentOrchestrator.agents.registry import AgentRegistry
from agentOrchestrator.agents.schema import AgentDefinition
from agentOrchestrator.config.settings import ExecutionSettings
from agentOrchestrator.telemetry.hooks import AttemptEvent, AttemptHook, emit_attempt
from agentOrchestrator.utils.error_handler import (
    AgentConfigurationError,
    AttemptTimeoutError,
    StepExecutionError,
    UnknownAgentError,
    describe_error,
)
from agentOrchestrator.utils.logging_utils import log_step_result
from agentOrchestrator.workflow.schema import AgentResult, Workflow, WorkflowStep

from .retry import RetryPolicy, build_retry_policy

LOGGER = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class ResolvedExecution:
    """Effective execution settings for one step."""

    timeout: float
    policy: RetryPolicy


@dataclass(frozen=True)
class StepOutcome:
    """Terminal outcome of one step: exactly one of result / failure is set."""

    step_id: str
    agent: str
    result: Optional[AgentResult] = None
    failure: Optional[StepExecutionError] = None
    attempts: int = 0
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.failure is None


class SubagentExecutor:
    """Executes single steps with timeout and retry policy.

    Args:
        registry: Agent registry (definitions and executor instances)
        settings: System-level execution defaults
        hooks: Observability hooks notified after every attempt
        sleep: Coroutine used for inter-retry delays (injectable for tests)
    """

    def __init__(
        self,
        registry: AgentRegistry,
        settings: Optional[ExecutionSettings] = None,
        hooks: Iterable[AttemptHook] = (),
        sleep: Optional[SleepFunc] = None,
    ):
        self.registry = registry
        self.settings = settings or ExecutionSettings()
        self.hooks: List[AttemptHook] = list(hooks)
        self._sleep = sleep or asyncio.sleep

    def add_hook(self, hook: AttemptHook) -> None:
        self.hooks.append(hook)

    # ========== Policy resolution ==========

    def resolve_execution(
        self,
        agent: AgentDefinition,
        workflow: Optional[Workflow] = None,
    ) -> ResolvedExecution:
        """Resolve timeout and retry policy for an agent within a workflow."""
        execution = agent.execution

        timeout = execution.timeout
        if timeout is None and workflow is not None:
            timeout = workflow.step_timeout
        if timeout is None:
            timeout = self.settings.default_timeout

        kind = execution.retry_policy
        if kind is None and workflow is not None:
            kind = workflow.retry_policy
        if kind is None:
            kind = self.settings.default_retry_policy

        max_retries = execution.max_retries
        if max_retries is None and workflow is not None:
            max_retries = workflow.max_retries

        policy = build_retry_policy(
            kind,
            max_retries=max_retries,
            base_delay=self.settings.retry_base_delay,
            max_delay=self.settings.retry_max_delay,
            default_max_retries=self.settings.default_max_retries,
        )
        return ResolvedExecution(timeout=timeout, policy=policy)

    # ========== Execution ==========

    async def execute_step(
        self,
        step: WorkflowStep,
        context=None,
        workflow: Optional[Workflow] = None,
        *,
        on_cancel: Optional[Callable[[StepExecutionError], None]] = None,
    ) -> StepOutcome:
        """Execute one step to a terminal outcome.

        The outcome is also recorded in ``context`` (when given) as soon as the
        step completes.

        Args:
            step: Workflow step
            context: ExecutionContext of the run (optional)
            workflow: Enclosing workflow, for workflow-level defaults
            on_cancel: Receives the ``cancelled`` failure, carrying the attempts
                made so far, before ``CancelledError`` propagates

        Returns:
            StepOutcome with either an AgentResult or a StepExecutionError
        """
        started = time.monotonic()

        try:
            agent = self.registry.require(step.agent)
            executor = self.registry.get_executor(step.agent)
        except (UnknownAgentError, AgentConfigurationError) as e:
            failure = StepExecutionError(step.id, step.agent, e, reason="configuration", attempts=0)
            return self._finish(step, context, failure=failure, attempts=0, started=started)

        resolved = self.resolve_execution(agent, workflow)
        policy = resolved.policy
        attempt = 0
        last_error: Optional[BaseException] = None
        reason = "error"

        try:
            while True:
                attempt += 1
                request = StepRequest(
                    step_id=step.id,
                    agent=step.agent,
                    action=step.action,
                    inputs=step.inputs,
                    context=context,
                    attempt=attempt,
                    workflow=workflow.name if workflow is not None else None,
                )
                attempt_started = time.monotonic()
                try:
                    output = await asyncio.wait_for(executor.execute(request), timeout=resolved.timeout)
                except asyncio.TimeoutError:
                    last_error = AttemptTimeoutError(step.agent, resolved.timeout)
                    reason = "timeout"
                except Exception as e:
                    last_error = e
                    reason = "error"
                else:
                    duration = time.monotonic() - attempt_started
                    emit_attempt(self.hooks, AttemptEvent(step.agent, step.id, attempt, duration, True))
                    result = AgentResult(
                        agent=step.agent,
                        result=output,
                        step_id=step.id,
                        attempts=attempt,
                        duration=time.monotonic() - started,
                    )
                    return self._finish(step, context, result=result, attempts=attempt, started=started)

                duration = time.monotonic() - attempt_started
                emit_attempt(
                    self.hooks,
                    AttemptEvent(
                        step.agent,
                        step.id,
                        attempt,
                        duration,
                        False,
                        error=describe_error(last_error),
                        timed_out=reason == "timeout",
                    ),
                )

                if not policy.should_retry(attempt):
                    break

                delay = policy.delay(attempt)
                LOGGER.info(
                    f"Retrying step {step.id} ({step.agent}) in {delay:g}s "
                    f"(attempt {attempt + 1}/{policy.max_attempts}): {describe_error(last_error)}"
                )
                await self._sleep(delay)
        except asyncio.CancelledError:
            failure = StepExecutionError(step.id, step.agent, None, reason="cancelled", attempts=attempt)
            if context is not None and not context.closed:
                context.record_step_result(step.id, error="cancelled")
            if on_cancel is not None:
                on_cancel(failure)
            raise

        failure = StepExecutionError(step.id, step.agent, last_error, reason=reason, attempts=attempt)
        return self._finish(step, context, failure=failure, attempts=attempt, started=started)

    def _finish(
        self,
        step: WorkflowStep,
        context,
        *,
        started: float,
        attempts: int,
        result: Optional[AgentResult] = None,
        failure: Optional[StepExecutionError] = None,
    ) -> StepOutcome:
        if context is not None and not context.closed:
            if failure is None:
                context.record_step_result(step.id, output=result.result)
            else:
                context.record_step_result(step.id, error=failure)

        if failure is None:
            log_step_result(LOGGER, step.id, step.agent, result=result.result)
        else:
            log_step_result(LOGGER, step.id, step.agent, error=describe_error(failure))

        return StepOutcome(
            step_id=step.id,
            agent=step.agent,
            result=result,
            failure=failure,
            attempts=attempts,
            duration=time.monotonic() - started,
        )

    async def execute_many(
        self,
        steps: Sequence[WorkflowStep],
        context=None,
        workflow: Optional[Workflow] = None,
        max_concurrency: Optional[int] = None,
    ) -> List[StepOutcome]:
        """Execute independent steps concurrently under a concurrency cap.

        Returns:
            Outcomes in the order of ``steps``
        """
        limit = max_concurrency or self.settings.max_concurrency
        semaphore = asyncio.Semaphore(limit)

        async def run(step: WorkflowStep) -> StepOutcome:
            async with semaphore:
                return await self.execute_step(step, context, workflow)

        LOGGER.info(f"Executing {len(steps)} steps in parallel (max concurrent: {limit})")
        return list(await asyncio.gather(*(run(step) for step in steps)))

    @staticmethod
    def aggregate_outcomes(outcomes: Sequence[StepOutcome]) -> Dict[str, Any]:
        """Split outcomes into successes and failures with a text summary."""
        successful = [o for o in outcomes if o.success]
        failed = [o for o in outcomes if not o.success]
        total_time = sum(o.duration for o in outcomes)
        average = total_time / len(outcomes) if outcomes else 0.0

        summary = "\n".join([
            "Subagent Execution Summary",
            "─" * 25,
            f"Total Tasks: {len(outcomes)}",
            f"Successful: {len(successful)}",
            f"Failed: {len(failed)}",
            f"Total Time: {total_time:.3f}s",
            f"Average Time: {average:.3f}s",
        ])
        return {"successful": successful, "failed": failed, "summary": summary}
