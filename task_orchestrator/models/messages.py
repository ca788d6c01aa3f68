"""
Standardized event format for run observers.

Key Principles:
- Every observable change of a run is published as a SystemEvent
- Type safety via TypedDict
- Payloads carry plain data (dicts, strings, numbers) only
"""

from typing import TypedDict, Optional, Any, Literal
from datetime import datetime
import uuid


EventCategory = Literal["run_lifecycle", "task_lifecycle", "result_update"]
EventSeverity = Literal["debug", "info", "warning", "error", "critical"]


class SystemEvent(TypedDict):
    """
    Standard event format for the observer interface.

    Published by: ExecutionEngine, ResultMerger
    Consumed by: Event subscribers (registered via EventBus)
    """
    # Event Identity
    event_id: str                # UUID
    event_type: str              # e.g., "task_completed", "result_updated"
    event_category: EventCategory

    # Event Source
    run_id: str
    task_name: Optional[str]

    # Event Payload
    payload: dict[str, Any]

    # Event Metadata
    timestamp: str
    severity: EventSeverity


# Event types and their categories
EVENT_TYPE_REGISTRY: dict[str, EventCategory] = {
    # Run Lifecycle Events
    "run_started": "run_lifecycle",
    "run_settled": "run_lifecycle",
    "run_abandoned": "run_lifecycle",

    # Task Lifecycle Events
    "task_started": "task_lifecycle",
    "task_progress": "task_lifecycle",
    "task_completed": "task_lifecycle",
    "task_failed": "task_lifecycle",

    # Shared Result Events
    "result_updated": "result_update",
    "subtask_failed": "result_update",
}


def create_system_event(
    event_type: str,
    run_id: str,
    payload: dict[str, Any],
    task_name: Optional[str] = None,
    severity: EventSeverity = "info",
    event_category: Optional[EventCategory] = None
) -> SystemEvent:
    """
    Helper function to create system events.

    Args:
        event_type: Type of event (e.g., "task_completed")
        run_id: Run the event belongs to
        payload: Event data
        task_name: Optional task name
        severity: Event severity level
        event_category: Category of event (looked up in the registry if None)

    Returns:
        SystemEvent instance
    """
    if event_category is None:
        event_category = EVENT_TYPE_REGISTRY.get(event_type, "run_lifecycle")

    return SystemEvent(
        event_id=str(uuid.uuid4()),
        event_type=event_type,
        event_category=event_category,
        run_id=run_id,
        task_name=task_name,
        payload=payload,
        timestamp=datetime.now().isoformat(),
        severity=severity
    )
