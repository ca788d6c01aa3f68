"""
Enums module - Task status and other enumeration types
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Enumeration of possible task statuses"""
    QUEUED = "queued"
    WORKING = "working"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETE, TaskStatus.ERROR)


class RunStatus(str, Enum):
    """Lifecycle of one plan run"""
    RUNNING = "running"
    SETTLED = "settled"
    ABANDONED = "abandoned"


# Allowed next statuses for each status
ALLOWED_TRANSITIONS = {
    TaskStatus.QUEUED: frozenset({TaskStatus.WORKING}),
    TaskStatus.WORKING: frozenset({TaskStatus.COMPLETE, TaskStatus.ERROR}),
    TaskStatus.COMPLETE: frozenset(),
    TaskStatus.ERROR: frozenset(),
}
