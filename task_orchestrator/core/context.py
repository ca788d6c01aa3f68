"""
Task context - what a work routine can see of its run.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from task_orchestrator.core.merger import Patch, ResultMerger

if TYPE_CHECKING:
    from task_orchestrator.core.engine import RunHandle


class TaskContext:
    """
    Passed to a task's work routine on every invocation.

    Work routines close over their own inputs; the context only adds what
    the engine owns: progress text, results of finished tasks and the
    shared result merger. Safe to use from a worker thread when the
    routine is a plain (non-async) callable.
    """

    def __init__(
        self,
        name: str,
        run: "RunHandle",
        loop: asyncio.AbstractEventLoop,
        progress_sink: Callable[[str, str], None],
    ):
        self.name = name
        self._run = run
        self._loop = loop
        self._progress_sink = progress_sink

    @property
    def run_id(self) -> str:
        return self._run.run_id

    @property
    def merger(self) -> ResultMerger:
        return self._run.merger

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def report_progress(self, text: str) -> None:
        """Replace the task's progress text until the next periodic update."""
        if self._on_loop_thread():
            self._progress_sink(self.name, text)
        else:
            self._loop.call_soon_threadsafe(self._progress_sink, self.name, text)

    def result_of(self, name: str, default: Any = None) -> Any:
        """Raw result of a task of the same run that completed, else ``default``."""
        return self._run.results.get(name, default)

    def spawn(
        self,
        item: Any,
        make_call: Callable[[], Awaitable[Any]],
        patch_builder: Callable[[Any], Patch],
    ) -> Optional[asyncio.Task]:
        """Dispatch a fire-and-forget sub-task whose value is merged into the shared result."""
        if self._on_loop_thread():
            return self.merger.dispatch(item, make_call, patch_builder)
        self._loop.call_soon_threadsafe(self.merger.dispatch, item, make_call, patch_builder)
        return None

    def __repr__(self) -> str:
        return f"TaskContext(name={self.name!r}, run_id={self.run_id!r})"
