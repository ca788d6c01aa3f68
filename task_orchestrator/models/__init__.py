"""
Models module - Data structures and enums for the Task Orchestrator
"""

from .enums import TaskStatus, RunStatus, ALLOWED_TRANSITIONS
from .task import TaskSpec, TaskState
from .plan import TaskPlan
from .messages import (
    SystemEvent,
    EVENT_TYPE_REGISTRY,
    create_system_event,
)

__all__ = [
    'TaskStatus',
    'RunStatus',
    'ALLOWED_TRANSITIONS',
    'TaskSpec',
    'TaskState',
    'TaskPlan',
    'SystemEvent',
    'EVENT_TYPE_REGISTRY',
    'create_system_event',
]
