"""Workflow validation: structure, dependency graph and agent references."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from agentOrchestrator.utils.error_handler import (
    CyclicWorkflowError,
    UnknownAgentError,
    WorkflowValidationError,
)

from .conditions import condition_error

if TYPE_CHECKING:
    from agentOrchestrator.agents.registry import AgentRegistry
    from .schema import Workflow, WorkflowStep


def find_cycle(steps: Sequence["WorkflowStep"]) -> Optional[List[str]]:
    """Return one dependency cycle as a path of step ids, or None.

    Dependencies pointing at unknown step ids are ignored here.
    """
    graph: Dict[str, List[str]] = {step.id: sorted(step.dependencies) for step in steps}
    visited = set()
    on_stack: List[str] = []
    on_stack_set = set()

    def visit(step_id: str) -> Optional[List[str]]:
        visited.add(step_id)
        on_stack.append(step_id)
        on_stack_set.add(step_id)
        for dep in graph.get(step_id, []):
            if dep not in graph:
                continue
            if dep in on_stack_set:
                return on_stack[on_stack.index(dep):] + [dep]
            if dep not in visited:
                cycle = visit(dep)
                if cycle:
                    return cycle
        on_stack.pop()
        on_stack_set.discard(step_id)
        return None

    for step in steps:
        if step.id not in visited:
            cycle = visit(step.id)
            if cycle:
                return cycle
    return None


def topological_order(steps: Sequence["WorkflowStep"]) -> List[str]:
    """Kahn ordering of step ids (ties broken by declaration order).

    Raises:
        ValueError: The dependency graph has a cycle
    """
    indegree = {step.id: len(step.dependencies) for step in steps}
    dependents: Dict[str, List[str]] = {step.id: [] for step in steps}
    for step in steps:
        for dep in step.dependencies:
            dependents[dep].append(step.id)

    ready = [step.id for step in steps if indegree[step.id] == 0]
    order: List[str] = []
    while ready:
        current = ready.pop(0)
        order.append(current)
        for child in dependents[current]:
            indegree[child] -= 1
            if indegree[child] == 0:
                ready.append(child)

    if len(order) != len(steps):
        raise ValueError("Circular dependency detected")
    return order


def structure_errors(workflow: "Workflow") -> List[str]:
    """List structural problems (empty when the workflow is well formed)."""
    from .schema import WorkflowType

    errors: List[str] = []
    if not workflow.name:
        errors.append("Workflow name is required")
    if not workflow.steps:
        errors.append("Workflow must have at least one step")

    seen = set()
    for step in workflow.steps:
        if step.id in seen:
            errors.append(f"Duplicate step id: {step.id}")
        seen.add(step.id)

    position = {step.id: index for index, step in enumerate(workflow.steps)}
    for step in workflow.steps:
        problem = condition_error(step.condition)
        if problem:
            errors.append(f"Step '{step.id}': {problem}")
        for dep in sorted(step.dependencies):
            if dep not in position:
                errors.append(f"Step '{step.id}' depends on unknown step '{dep}'")
            elif dep == step.id:
                errors.append(f"Step '{step.id}' depends on itself")
            elif workflow.type == WorkflowType.CONDITIONAL and position[dep] > position[step.id]:
                errors.append(f"Step '{step.id}' depends on later step '{dep}'")
    return errors


def validate_structure(workflow: "Workflow") -> None:
    """Raise on structural problems; called from ``Workflow.__post_init__``.

    Raises:
        CyclicWorkflowError: DAG workflow with a dependency cycle
        WorkflowValidationError: Any other structural problem
    """
    from .schema import WorkflowType

    if workflow.type == WorkflowType.DAG:
        cycle = find_cycle(workflow.steps)
        if cycle:
            raise CyclicWorkflowError(workflow.name, cycle)

    errors = structure_errors(workflow)
    if errors:
        raise WorkflowValidationError(workflow.name, errors)


def check_agents(workflow: "Workflow", registry: "AgentRegistry") -> None:
    """Ensure every step targets a registered agent.

    Raises:
        UnknownAgentError: First step whose agent is not registered
    """
    for step in workflow.steps:
        if step.agent not in registry:
            raise UnknownAgentError(step.agent, step_id=step.id)
