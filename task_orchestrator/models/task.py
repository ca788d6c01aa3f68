"""
Task module - Task spec and live task state definitions
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Optional, Tuple, TYPE_CHECKING

from .enums import TaskStatus

if TYPE_CHECKING:
    from task_orchestrator.core.retry import RetryPolicy


@dataclass(frozen=True)
class TaskSpec:
    """
    Immutable description of one unit of orchestrated work.

    Attributes:
        name: Unique name within a plan
        work: Work routine. An async callable, a plain callable (run in a
            worker thread) or a langchain ``Runnable``. It is called with the
            task's ``TaskContext``; any other inputs are closed over by the caller.
        depends_on: Name of another task of the same plan that must reach a
            terminal status (complete or error) before this one starts
        start_offset_ms: Minimum time after run start before the task starts
        retry_policy: Policy applied to the routine's result (default: accept any result)
        summarize: Builds the result summary shown for a completed task
        merge: Read-modify-write patch ``(current_shared, result) -> new_shared``
            applied to the shared result object when the task succeeds
        label: Display name (defaults to ``name``)
        progress_texts: Status strings cycled while the task is working
    """
    name: str
    work: Any
    depends_on: Optional[str] = None
    start_offset_ms: int = 0
    retry_policy: Optional["RetryPolicy"] = None
    summarize: Optional[Callable[[Any], str]] = None
    merge: Optional[Callable[[Any, Any], Any]] = None
    label: Optional[str] = None
    progress_texts: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "progress_texts", tuple(self.progress_texts))

    @property
    def display_name(self) -> str:
        return self.label or self.name


@dataclass
class TaskState:
    """Live state of one task within a run."""
    name: str
    label: str
    status: TaskStatus = TaskStatus.QUEUED
    progress_text: str = "Waiting..."
    result_summary: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    started_offset_ms: Optional[float] = None
    completed_offset_ms: Optional[float] = None
    attempts: int = 0
    duration_ms: int = 0
    history: Tuple[TaskStatus, ...] = field(default=(TaskStatus.QUEUED,))

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        data["history"] = [status.value for status in self.history]
        return data
