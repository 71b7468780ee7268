"""Executor adapters.

Wrap plain callables and LangChain runnables so they satisfy the ``Executor``
protocol expected by the subagent executor.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from langchain_core.runnables import Runnable

from .interfaces import Executor, StepRequest

LOGGER = logging.getLogger(__name__)


class CallableExecutor:
    """Executor backed by a function taking a ``StepRequest``.

    Coroutine functions are awaited directly. Plain functions run on a worker
    thread so blocking I/O does not stall the event loop.
    """

    def __init__(self, func: Callable[[StepRequest], Any], name: str | None = None):
        self.func = func
        self.name = name or getattr(func, "__name__", type(func).__name__)

    async def execute(self, request: StepRequest) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(request)
        result = await asyncio.to_thread(self.func, request)
        if inspect.isawaitable(result):
            return await result
        return result

    def __repr__(self) -> str:
        return f"CallableExecutor({self.name})"


class RunnableExecutor:
    """Executor backed by a LangChain ``Runnable`` (chains, compiled graphs, models).

    The runnable receives ``StepRequest.to_payload()`` unless a custom
    ``input_mapper`` is supplied.
    """

    def __init__(
        self,
        runnable: Runnable,
        input_mapper: Callable[[StepRequest], Any] | None = None,
        config: dict | None = None,
    ):
        self.runnable = runnable
        self.input_mapper = input_mapper or (lambda request: request.to_payload())
        self.config = config

    async def execute(self, request: StepRequest) -> Any:
        payload = self.input_mapper(request)
        config = dict(self.config or {})
        config.setdefault("run_name", f"{request.agent}:{request.step_id}")
        return await self.runnable.ainvoke(payload, config=config)

    def __repr__(self) -> str:
        return f"RunnableExecutor({self.runnable!r})"


def as_executor(obj: Any) -> Executor:
    """Coerce an executor-like object into an ``Executor``.

    Objects whose ``execute`` is a plain method are wrapped in a
    ``CallableExecutor`` so the call runs on a worker thread.

    Args:
        obj: Object exposing ``execute``, a LangChain runnable, or a callable

    Returns:
        Executor instance

    Raises:
        TypeError: Object cannot act as an executor
    """
    if isinstance(obj, Runnable):
        return RunnableExecutor(obj)
    execute = getattr(obj, "execute", None)
    if callable(execute):
        if inspect.iscoroutinefunction(execute):
            return obj
        return CallableExecutor(execute, name=type(obj).__name__)
    if callable(obj):
        return CallableExecutor(obj)
    raise TypeError(f"Object of type {type(obj).__name__} cannot be used as an executor")
