"""Task classification for routed requests."""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, Union

from agentOrchestrator.utils.error_handler import NoAgentAvailableError, describe_error

LOGGER = logging.getLogger(__name__)


class TaskType(str, Enum):
    """Closed set of task types a request can be routed as."""
    LITERATURE = "literature"
    WRITING = "writing"
    ANALYSIS = "analysis"
    REVIEW = "review"
    SUBMISSION = "submission"
    COMPREHENSIVE = "comprehensive"


# First match wins; anything unmatched is comprehensive
KEYWORD_TABLE: Sequence[Tuple[TaskType, Tuple[str, ...]]] = (
    (TaskType.LITERATURE, ("search", "literature", "find")),
    (TaskType.WRITING, ("write", "generate", "create")),
    (TaskType.ANALYSIS, ("analyze", "data")),
    (TaskType.REVIEW, ("review", "check")),
    (TaskType.SUBMISSION, ("submit", "journal")),
)

# Free-form labels returned by external classifiers (e.g. an LLM prompt)
LABEL_TABLE: Sequence[Tuple[TaskType, Tuple[str, ...]]] = (
    (TaskType.COMPREHENSIVE, ("comprehensive",)),
    (TaskType.LITERATURE, ("literature", "search", "find papers")),
    (TaskType.WRITING, ("write", "draft", "compose")),
    (TaskType.ANALYSIS, ("analy", "data", "experiment")),
    (TaskType.REVIEW, ("review", "check", "improve")),
    (TaskType.SUBMISSION, ("submi", "journal", "publish")),
)

ExternalClassifier = Callable[[str], Union[Any, Awaitable[Any]]]


def parse_task_type(value: Union[str, TaskType]) -> TaskType:
    """Convert an explicit task type.

    Raises:
        NoAgentAvailableError: Not one of the known task types
    """
    try:
        return TaskType(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise NoAgentAvailableError(str(value)) from None


def keyword_classification(text: str) -> TaskType:
    lower = text.lower()
    for task_type, keywords in KEYWORD_TABLE:
        if any(keyword in lower for keyword in keywords):
            return task_type
    return TaskType.COMPREHENSIVE


def extract_task_type(label: Any) -> TaskType:
    """Map an external classifier's answer onto a TaskType."""
    if isinstance(label, TaskType):
        return label
    lower = str(label).strip().lower()
    try:
        return TaskType(lower)
    except ValueError:
        pass
    for task_type, markers in LABEL_TABLE:
        if any(marker in lower for marker in markers):
            return task_type
    return TaskType.COMPREHENSIVE


class TaskClassifier:
    """Classifies requests into TaskTypes.

    Order: explicit ``request.type``, then the optional external classifier,
    then keyword classification. A failing external classifier falls back to
    keywords.

    Args:
        external: Callable receiving the request text and returning a label
            (sync or async), e.g. a LangChain chain's ``ainvoke``
    """

    def __init__(self, external: Optional[ExternalClassifier] = None):
        self.external = external

    async def classify(self, request) -> TaskType:
        if request.type:
            return parse_task_type(request.type)

        if self.external is not None:
            try:
                label = self.external(request.text)
                if inspect.isawaitable(label):
                    label = await label
                task_type = extract_task_type(label)
                LOGGER.info(f"Classified as: {task_type.value}")
                return task_type
            except Exception as e:
                LOGGER.warning(f"External classifier failed, using keywords: {describe_error(e)}")

        task_type = keyword_classification(request.text)
        LOGGER.info(f"Classified as: {task_type.value} (keywords)")
        return task_type
