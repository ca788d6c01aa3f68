"""
Result Merger - read-modify-write updates of the shared result object.

Every write is a patch: a function of the *current* value that returns the
new value. Patches run one at a time under a lock, so concurrent writers to
different keys or indices never overwrite each other, whichever order they
finish in.

Secondary sub-tasks (for example one image generation per generated slide)
are dispatched without anyone awaiting them. When one fails, the failure is
logged against its item and recorded in ``failures``; the shared object is
left without that item's update.
"""

import asyncio
import copy
import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from task_orchestrator.utils.exceptions import MergeWriteError
from task_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

Patch = Callable[[Any], Any]


# ============================================================================
# PATCH HELPERS
# ============================================================================

def set_field(key: str, value: Any) -> Patch:
    """Patch that sets one top-level key of a dict result."""
    def patch(current: Dict[str, Any]) -> Dict[str, Any]:
        return {**(current or {}), key: value}
    return patch


def merge_fields(fields: Dict[str, Any]) -> Patch:
    """Patch that sets several top-level keys of a dict result."""
    def patch(current: Dict[str, Any]) -> Dict[str, Any]:
        return {**(current or {}), **fields}
    return patch


def update_item(collection: str, index: int, **fields: Any) -> Patch:
    """
    Patch that updates one element of a list held under ``collection``.

    The list and the element are copied; other elements are kept as they
    are in the current value.
    """
    def patch(current: Dict[str, Any]) -> Dict[str, Any]:
        if not current or collection not in current:
            raise KeyError(f"Shared result has no '{collection}' collection")
        items = list(current[collection])
        if index < 0 or index >= len(items):
            raise IndexError(f"'{collection}' has no item at index {index}")
        items[index] = {**items[index], **fields}
        return {**current, collection: items}
    return patch


# ============================================================================
# MERGER
# ============================================================================

class ResultMerger:
    """
    Single owner of the shared result object of one run.

    Usage:
        merger = ResultMerger({"slides": slides})
        merger.apply(set_field("summary", summary))

        for index, prompt in enumerate(prompts):
            merger.dispatch(
                index,
                lambda p=prompt: backend.generate_asset(p),
                lambda url, i=index: update_item("slides", i, image_url=url),
            )
    """

    def __init__(
        self,
        initial: Any = None,
        on_update: Optional[Callable[[str, int], None]] = None,
        on_failure: Optional[Callable[[MergeWriteError], None]] = None,
    ):
        self._value = {} if initial is None else copy.deepcopy(initial)
        self._lock = threading.Lock()
        self._on_update = on_update
        self._on_failure = on_failure
        self._pending: Set[asyncio.Task] = set()
        self.version = 0
        self.failures: List[MergeWriteError] = []

    def apply(self, patch: Patch, source: str = "") -> Any:
        """Apply ``patch`` to the latest value atomically and return the new value."""
        with self._lock:
            new_value = patch(self._value)
            self._value = new_value
            self.version += 1
            version = self.version

        if self._on_update is not None:
            self._on_update(source, version)
        return new_value

    def snapshot(self) -> Any:
        """Deep copy of the current value."""
        with self._lock:
            return copy.deepcopy(self._value)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(
        self,
        item: Any,
        make_call: Callable[[], Awaitable[Any]],
        patch_builder: Callable[[Any], Patch],
    ) -> asyncio.Task:
        """
        Start a fire-and-forget sub-task for one item.

        Args:
            item: Key or index the sub-task writes to (used in logs)
            make_call: Returns the awaitable producing the item's value
            patch_builder: Builds the patch from the produced value. Falsy
                values (e.g. no image URL) produce no write.

        Returns:
            The scheduled asyncio task (nobody is required to await it)
        """
        task = asyncio.get_running_loop().create_task(
            self._run_subtask(item, make_call, patch_builder),
            name=f"subtask:{item}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_subtask(
        self,
        item: Any,
        make_call: Callable[[], Awaitable[Any]],
        patch_builder: Callable[[Any], Patch],
    ) -> None:
        try:
            value = await make_call()
        except Exception as e:
            self._record_failure(MergeWriteError(item, "sub-task failed", original_error=e))
            return

        if not value:
            logger.debug(f"Sub-task for item {item!r} produced nothing to merge")
            return

        try:
            self.apply(patch_builder(value), source=f"item:{item}")
        except Exception as e:
            self._record_failure(MergeWriteError(item, "patch could not be applied", original_error=e))

    def _record_failure(self, error: MergeWriteError) -> None:
        self.failures.append(error)
        logger.warning(error.message)
        if self._on_failure is not None:
            self._on_failure(error)

    async def drain(self) -> None:
        """Wait until every dispatched sub-task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
