"""
Core module - Execution engine, state store, progress, retry and result merging
"""

from .engine import ExecutionEngine, RunHandle, RunSnapshot
from .state_store import TaskStateStore
from .progress import ProgressReporter
from .retry import RetryPolicy, AcceptAnyResult, FailIfEmpty, RetryOnceIfEmpty
from .merger import ResultMerger, set_field, merge_fields, update_item
from .context import TaskContext
from .event_bus import EventBus, EventSubscription, EventRecord

__all__ = [
    'ExecutionEngine',
    'RunHandle',
    'RunSnapshot',
    'TaskStateStore',
    'ProgressReporter',
    'RetryPolicy',
    'AcceptAnyResult',
    'FailIfEmpty',
    'RetryOnceIfEmpty',
    'ResultMerger',
    'set_field',
    'merge_fields',
    'update_item',
    'TaskContext',
    'EventBus',
    'EventSubscription',
    'EventRecord',
]
