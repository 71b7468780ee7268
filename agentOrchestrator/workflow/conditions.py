"""Step predicates for conditional workflows.

A condition is either a callable ``(ExecutionContext) -> bool`` or a string:

- ``always`` / ``never``
- ``hasResults``: at least one earlier step succeeded
- ``hasFailures``: at least one earlier step failed
- ``isFirst``: no step has completed yet
- ``key:<name>``: shared context value ``name`` is truthy
- ``succeeded:<step_id>`` / ``failed:<step_id>``: outcome of an earlier step
- ``not:<condition>``: negation of any of the above
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Callable, Dict, Optional

if TYPE_CHECKING:
    from agentOrchestrator.context.store import ExecutionContext
    from .schema import Condition

_NAMED: Dict[str, Callable[["ExecutionContext"], bool]] = {
    "always": lambda ctx: True,
    "never": lambda ctx: False,
    "hasResults": lambda ctx: bool(ctx.successful_outputs()),
    "hasFailures": lambda ctx: bool(ctx.failed_steps()),
    "isFirst": lambda ctx: not ctx.step_results(),
}

_PREFIXED: Dict[str, Callable[["ExecutionContext", str], bool]] = {
    "key": lambda ctx, arg: bool(ctx.get(arg)),
    "succeeded": lambda ctx, arg: (ctx.step_record(arg) is not None and ctx.step_record(arg).success),
    "failed": lambda ctx, arg: (ctx.step_record(arg) is not None and not ctx.step_record(arg).success),
}


def condition_error(condition: "Condition") -> Optional[str]:
    """Describe why a condition is malformed, or None when it is usable."""
    if condition is None:
        return None
    if callable(condition):
        if inspect.iscoroutinefunction(condition):
            return "Condition callables must be synchronous"
        return None
    if not isinstance(condition, str):
        return f"Unsupported condition type: {type(condition).__name__}"

    expr = condition.strip()
    if expr.startswith("not:"):
        return condition_error(expr[len("not:"):])
    if expr in _NAMED:
        return None
    prefix, sep, arg = expr.partition(":")
    if sep and prefix in _PREFIXED and arg:
        return None
    return f"Unknown condition: {condition!r}"


def evaluate_condition(condition: "Condition", context: "ExecutionContext") -> bool:
    """Evaluate a step condition against the run's context.

    Raises:
        ValueError: Condition string is not recognised
        TypeError: Callable condition returned an awaitable
    """
    if condition is None:
        return True
    if callable(condition):
        outcome = condition(context)
        if inspect.isawaitable(outcome):
            if inspect.iscoroutine(outcome):
                outcome.close()
            raise TypeError("Condition callables must be synchronous")
        return bool(outcome)

    expr = condition.strip()
    if expr.startswith("not:"):
        return not evaluate_condition(expr[len("not:"):], context)
    if expr in _NAMED:
        return _NAMED[expr](context)

    prefix, sep, arg = expr.partition(":")
    if sep and prefix in _PREFIXED and arg:
        return _PREFIXED[prefix](context, arg)
    raise ValueError(f"Unknown condition: {condition!r}")
