"""
Retry Policy - per-task rules for empty results.

Each task declares its own policy; there is no global rule:

- ``AcceptAnyResult``: no retry, any returned value is a success.
- ``FailIfEmpty``: an empty sequence is an immediate hard failure.
- ``RetryOnceIfEmpty``: an empty sequence re-invokes the same routine with the
  same context exactly once; a second empty result is a hard failure.

Exceptions raised by the routine are never retried; they fail the task.
"""

from collections.abc import Sized
from typing import Any, Awaitable, Callable, Optional

from task_orchestrator.utils.exceptions import EmptyResultError
from task_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

Invoke = Callable[[], Awaitable[Any]]


class RetryPolicy:
    """
    Base policy: invoke once and accept the result.

    Args:
        items: Extracts the sequence to check from a structured result
            (e.g. ``lambda r: r["questions"]``). Defaults to the result itself.
        empty_message: Error recorded when the task fails for an empty result
    """

    name = "accept_any"

    def __init__(self, items: Optional[Callable[[Any], Any]] = None,
                 empty_message: Optional[str] = None):
        self.items = items
        self.empty_message = empty_message

    async def execute(self, task_name: str, invoke: Invoke) -> Any:
        return await invoke()

    def is_empty(self, result: Any) -> bool:
        """True when the checked sequence is None or has no elements."""
        value = self.items(result) if self.items is not None and result is not None else result
        if value is None:
            return True
        if isinstance(value, (str, bytes)) or not isinstance(value, Sized):
            return False
        return len(value) == 0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class AcceptAnyResult(RetryPolicy):
    """No retry; a minimal or empty value is still a success."""

    name = "accept_any"


class FailIfEmpty(RetryPolicy):
    """An empty sequence fails the task without a retry."""

    name = "fail_if_empty"

    async def execute(self, task_name: str, invoke: Invoke) -> Any:
        result = await invoke()
        if self.is_empty(result):
            raise EmptyResultError(task_name, attempts=1, policy=self.name,
                                   message=self.empty_message)
        return result


class RetryOnceIfEmpty(RetryPolicy):
    """An empty sequence is retried once; empty again fails the task."""

    name = "retry_once_if_empty"

    async def execute(self, task_name: str, invoke: Invoke) -> Any:
        result = await invoke()
        if not self.is_empty(result):
            return result

        logger.info(f"Task '{task_name}' returned 0 items, retrying once")
        result = await invoke()
        if self.is_empty(result):
            raise EmptyResultError(task_name, attempts=2, policy=self.name,
                                   message=self.empty_message)
        return result
