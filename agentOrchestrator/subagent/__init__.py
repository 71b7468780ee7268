"""Single-step execution with timeout and retry."""

from .retry import ExponentialRetry, FixedRetry, NoRetry, RetryPolicy, build_retry_policy
from .executor import ResolvedExecution, StepOutcome, SubagentExecutor

__all__ = [
    "RetryPolicy",
    "NoRetry",
    "FixedRetry",
    "ExponentialRetry",
    "build_retry_policy",
    "ResolvedExecution",
    "StepOutcome",
    "SubagentExecutor",
]
