"""Workflow engine - executes workflows in four modes.

Modes:
- sequential: steps in order; the first failure aborts the rest unless
  ``continue_on_error`` is set
- parallel: every step runs concurrently under the concurrency cap; the run
  fails only when every step failed
- dag: steps start as soon as all their dependencies succeeded; dependents of
  a failed or skipped step are skipped, independent branches keep running
- conditional: steps in order, each gated by its condition; failures never abort

Step failures are recorded in ``WorkflowResult.failures``. Only construction
errors (unknown workflow, unknown agent, invalid structure) are raised, and
they are raised before any step runs.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from agentOrchestrator.agents.registry import AgentRegistry
from agentOrchestrator.config.settings import ExecutionSettings
from agentOrchestrator.context.store import ExecutionContext, ExecutionContextStore
from agentOrchestrator.subagent.executor import StepOutcome, SubagentExecutor
from agentOrchestrator.utils.error_handler import (
    StepExecutionError,
    WorkflowNotFoundError,
    describe_error,
)
from agentOrchestrator.utils.logging_utils import (
    log_step_skipped,
    log_workflow_end,
    log_workflow_start,
)

from .conditions import evaluate_condition
from .schema import (
    AgentResult,
    RunOptions,
    SkippedStep,
    SkipReason,
    Workflow,
    WorkflowResult,
    WorkflowStep,
    WorkflowType,
)
from .validation import check_agents, find_cycle, structure_errors, validate_structure

LOGGER = logging.getLogger(__name__)


@dataclass
class _RunState:
    """Mutable bookkeeping of one run, shared by all step tasks."""

    workflow: Workflow
    context: ExecutionContext
    semaphore: asyncio.Semaphore
    continue_on_error: bool
    results: List[AgentResult] = field(default_factory=list)
    failures: List[StepExecutionError] = field(default_factory=list)
    skipped: List[SkippedStep] = field(default_factory=list)
    started: Set[str] = field(default_factory=set)
    succeeded: Set[str] = field(default_factory=set)
    cancelled: bool = False

    def record(self, outcome: StepOutcome) -> None:
        if outcome.success:
            self.results.append(outcome.result)
            self.succeeded.add(outcome.step_id)
        else:
            self.failures.append(outcome.failure)

    def skip(self, step: WorkflowStep, reason: SkipReason, blocked_by=()) -> None:
        self.skipped.append(SkippedStep(step.id, reason, tuple(blocked_by)))
        log_step_skipped(LOGGER, step.id, reason.value)

    def settled(self) -> Set[str]:
        return self.started | {s.step_id for s in self.skipped}


class WorkflowEngine:
    """Executes workflows and keeps a catalogue of named workflows.

    Args:
        registry: Agent registry used to validate step agents
        subagent_executor: Runs individual steps (timeout / retry / hooks)
        settings: System-level defaults (concurrency cap, run timeout, ...)
        context_store: Factory for per-run execution contexts
    """

    def __init__(
        self,
        registry: AgentRegistry,
        subagent_executor: Optional[SubagentExecutor] = None,
        settings: Optional[ExecutionSettings] = None,
        context_store: Optional[ExecutionContextStore] = None,
    ):
        self.registry = registry
        self.settings = settings or ExecutionSettings()
        self.subagent = subagent_executor or SubagentExecutor(registry, self.settings)
        self.contexts = context_store or ExecutionContextStore()
        self._workflows: Dict[str, Workflow] = {}

    # ========== Catalogue ==========

    def register(self, workflow: Workflow) -> None:
        """Register (or replace) a named workflow after validating its agents."""
        check_agents(workflow, self.registry)
        if workflow.name in self._workflows:
            LOGGER.warning(f"Workflow '{workflow.name}' already registered, replacing")
        self._workflows[workflow.name] = workflow
        LOGGER.info(f"Registered workflow: {workflow.name} ({workflow.type.value}, {len(workflow.steps)} steps)")

    def unregister(self, name: str) -> bool:
        return self._workflows.pop(name, None) is not None

    def get(self, name: str) -> Optional[Workflow]:
        return self._workflows.get(name)

    def list(self) -> List[Workflow]:
        return list(self._workflows.values())

    def resolve(self, workflow: Union[Workflow, str]) -> Workflow:
        if isinstance(workflow, Workflow):
            return workflow
        found = self._workflows.get(workflow)
        if found is None:
            raise WorkflowNotFoundError(workflow)
        return found

    # ========== Validation ==========

    def validate(self, workflow: Workflow) -> List[str]:
        """List every problem with a workflow (empty when runnable)."""
        errors = structure_errors(workflow)
        if workflow.type == WorkflowType.DAG:
            cycle = find_cycle(workflow.steps)
            if cycle:
                errors.append(f"cyclic workflow: {' -> '.join(cycle)}")
        for step in workflow.steps:
            if step.agent not in self.registry:
                errors.append(f"Step '{step.id}' references unknown agent '{step.agent}'")
        return errors

    def ensure_valid(self, workflow: Workflow) -> None:
        """Raise the first construction error of a workflow, if any."""
        validate_structure(workflow)
        check_agents(workflow, self.registry)

    # ========== Execution ==========

    async def execute(
        self,
        workflow: Union[Workflow, str],
        context: Optional[ExecutionContext] = None,
        *,
        input_data=None,
        options: Optional[RunOptions] = None,
    ) -> WorkflowResult:
        """Run a workflow to completion, cancellation or timeout.

        Args:
            workflow: Workflow instance or registered workflow name
            context: Existing context to run in (left open afterwards)
            input_data: Initial payload for a fresh context (ignored when
                ``context`` is given)
            options: Run-level overrides

        Returns:
            WorkflowResult with per-step results, failures and skips

        Raises:
            WorkflowNotFoundError / UnknownAgentError / WorkflowValidationError:
                Before any step runs
        """
        workflow = self.resolve(workflow)
        self.ensure_valid(workflow)
        options = options or RunOptions()

        max_concurrency = self._pick(options.max_concurrency, workflow.max_concurrency, self.settings.max_concurrency)
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        timeout = self._pick(options.timeout, workflow.timeout, self.settings.workflow_timeout)
        continue_on_error = self._pick(
            options.continue_on_error, workflow.continue_on_error, self.settings.continue_on_error
        )

        owns_context = context is None
        if owns_context:
            context = self.contexts.create(input_data)

        run = _RunState(
            workflow=workflow,
            context=context,
            semaphore=asyncio.Semaphore(max_concurrency),
            continue_on_error=bool(continue_on_error),
        )

        log_workflow_start(LOGGER, workflow.name, workflow.type.value, len(workflow.steps))
        started = time.monotonic()
        try:
            await self._supervise(run, timeout, options.cancel_event)
        finally:
            elapsed = time.monotonic() - started
            if run.cancelled:
                for step in workflow.steps:
                    if step.id not in run.settled():
                        run.skip(step, SkipReason.CANCELLED)
            snapshot = context.snapshot()
            if owns_context:
                self.contexts.release(context)

        log_workflow_end(
            LOGGER,
            workflow.name,
            succeeded=len(run.results),
            failed=len(run.failures),
            skipped=len(run.skipped),
            elapsed=elapsed,
            cancelled=run.cancelled,
        )
        return WorkflowResult(
            results=run.results,
            failures=run.failures,
            execution_time=elapsed,
            mode=workflow.type,
            workflow=workflow.name,
            skipped=run.skipped,
            cancelled=run.cancelled,
            context=snapshot,
        )

    @staticmethod
    def _pick(*values):
        return next((v for v in values if v is not None), None)

    async def _supervise(
        self,
        run: _RunState,
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        """Drive the run, cancelling it on timeout or when ``cancel_event`` is set."""
        runner = asyncio.ensure_future(self._dispatch(run))
        watchers = {runner}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            watchers.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(watchers, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if runner in done:
                runner.result()
                return

            run.cancelled = True
            reason = "cancel requested" if cancel_waiter is not None and cancel_waiter in done else f"timeout after {timeout:g}s"
            LOGGER.warning(f"Workflow {run.workflow.name} cancelled: {reason}")
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner
        except asyncio.CancelledError:
            run.cancelled = True
            runner.cancel()
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

    async def _dispatch(self, run: _RunState) -> None:
        mode = run.workflow.type
        if mode == WorkflowType.SEQUENTIAL:
            await self._run_sequential(run)
        elif mode == WorkflowType.PARALLEL:
            await self._run_parallel(run)
        elif mode == WorkflowType.DAG:
            await self._run_dag(run)
        else:
            await self._run_conditional(run)

    async def _run_step(self, run: _RunState, step: WorkflowStep) -> StepOutcome:
        """Run one step under the run's semaphore and record its outcome."""
        async with run.semaphore:
            run.started.add(step.id)
            outcome = await self.subagent.execute_step(
                step, run.context, run.workflow, on_cancel=run.failures.append
            )
        run.record(outcome)
        return outcome

    async def _run_sequential(self, run: _RunState) -> None:
        steps = run.workflow.steps
        for index, step in enumerate(steps):
            outcome = await self._run_step(run, step)
            if not outcome.success and not run.continue_on_error:
                LOGGER.warning(f"Step {step.id} failed, aborting workflow {run.workflow.name}")
                for remaining in steps[index + 1:]:
                    run.skip(remaining, SkipReason.ABORTED, blocked_by=(step.id,))
                return

    async def _run_parallel(self, run: _RunState) -> None:
        await asyncio.gather(*(self._run_step(run, step) for step in run.workflow.steps))

    async def _run_dag(self, run: _RunState) -> None:
        steps = {step.id: step for step in run.workflow.steps}
        indegree = {step_id: len(step.dependencies) for step_id, step in steps.items()}
        dependents: Dict[str, List[str]] = {step_id: [] for step_id in steps}
        for step in run.workflow.steps:
            for dep in step.dependencies:
                dependents[dep].append(step.id)
        blockers: Dict[str, Set[str]] = {step_id: set() for step_id in steps}

        pending: Dict[asyncio.Task, str] = {}

        def launch(step_id: str) -> None:
            task = asyncio.ensure_future(self._run_step(run, steps[step_id]))
            pending[task] = step_id

        def settle(step_id: str, ok: bool) -> None:
            queue = [(step_id, ok)]
            while queue:
                current, current_ok = queue.pop(0)
                for child in dependents[current]:
                    indegree[child] -= 1
                    if not current_ok:
                        blockers[child].add(current)
                    if indegree[child] > 0:
                        continue
                    if blockers[child]:
                        run.skip(steps[child], SkipReason.DEPENDENCY, blocked_by=sorted(blockers[child]))
                        queue.append((child, False))
                    else:
                        launch(child)

        for step in run.workflow.steps:
            if indegree[step.id] == 0:
                launch(step.id)

        try:
            while pending:
                done, _ = await asyncio.wait(list(pending), return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    step_id = pending.pop(task)
                    settle(step_id, task.result().success)
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

    async def _run_conditional(self, run: _RunState) -> None:
        for step in run.workflow.steps:
            unmet = sorted(dep for dep in step.dependencies if dep not in run.succeeded)
            if unmet:
                run.skip(step, SkipReason.DEPENDENCY, blocked_by=unmet)
                continue

            try:
                should_run = evaluate_condition(step.condition, run.context)
            except Exception as e:
                LOGGER.error(f"Condition of step {step.id} raised: {describe_error(e)}")
                run.started.add(step.id)
                run.failures.append(StepExecutionError(step.id, step.agent, e, reason="condition", attempts=0))
                continue

            if not should_run:
                run.skip(step, SkipReason.CONDITION)
                continue

            await self._run_step(run, step)
