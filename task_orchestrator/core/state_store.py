"""
Task State Store - live status of every task in one run.

Mutated only by the execution engine (and the progress reporter it owns);
observers get copies through ``snapshot``.
"""

import asyncio
import dataclasses
from datetime import datetime
from typing import Dict, List, Optional

from task_orchestrator.models.enums import ALLOWED_TRANSITIONS, TaskStatus
from task_orchestrator.models.plan import TaskPlan
from task_orchestrator.models.task import TaskState
from task_orchestrator.utils.exceptions import InvalidTransitionError


class TaskStateStore:
    """Holds exactly one TaskState per task spec of a plan."""

    def __init__(self, plan: TaskPlan, queued_progress_text: str = "Waiting..."):
        self._states: Dict[str, TaskState] = {
            spec.name: TaskState(
                name=spec.name,
                label=spec.display_name,
                progress_text=queued_progress_text,
            )
            for spec in plan
        }
        self._terminal_events: Dict[str, asyncio.Event] = {
            name: asyncio.Event() for name in self._states
        }

    def _transition(self, name: str, status: TaskStatus) -> TaskState:
        state = self._states[name]
        if status not in ALLOWED_TRANSITIONS[state.status]:
            raise InvalidTransitionError(name, state.status.value, status.value)
        state.status = status
        state.history = state.history + (status,)
        return state

    def mark_working(self, name: str, offset_ms: float) -> TaskState:
        state = self._transition(name, TaskStatus.WORKING)
        state.started_at = datetime.now().isoformat()
        state.started_offset_ms = offset_ms
        return state

    def mark_complete(self, name: str, offset_ms: float,
                      result_summary: Optional[str] = None) -> TaskState:
        state = self._transition(name, TaskStatus.COMPLETE)
        state.result_summary = result_summary
        self._finish(state, offset_ms)
        return state

    def mark_error(self, name: str, offset_ms: float, error: str,
                   progress_text: Optional[str] = None) -> TaskState:
        state = self._transition(name, TaskStatus.ERROR)
        state.error = error
        if progress_text is not None:
            state.progress_text = progress_text
        self._finish(state, offset_ms)
        return state

    def _finish(self, state: TaskState, offset_ms: float) -> None:
        state.completed_at = datetime.now().isoformat()
        state.completed_offset_ms = offset_ms
        if state.started_offset_ms is not None:
            state.duration_ms = int(offset_ms - state.started_offset_ms)
        self._terminal_events[state.name].set()

    def set_progress(self, name: str, text: str) -> bool:
        """Update the progress text of a working task; ignored in any other status."""
        state = self._states[name]
        if state.status != TaskStatus.WORKING:
            return False
        state.progress_text = text
        return True

    def record_attempt(self, name: str) -> int:
        state = self._states[name]
        state.attempts += 1
        return state.attempts

    async def wait_terminal(self, name: str) -> TaskState:
        """Block until the named task is complete or errored."""
        await self._terminal_events[name].wait()
        return self.get(name)

    def get(self, name: str) -> TaskState:
        return dataclasses.replace(self._states[name])

    def status_of(self, name: str) -> TaskStatus:
        return self._states[name].status

    def snapshot(self) -> Dict[str, TaskState]:
        return {name: dataclasses.replace(state) for name, state in self._states.items()}

    def all_terminal(self) -> bool:
        return all(state.is_terminal for state in self._states.values())

    def names_with_status(self, status: TaskStatus) -> List[str]:
        return [name for name, state in self._states.items() if state.status == status]

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in TaskStatus}
        for state in self._states.values():
            counts[state.status.value] += 1
        return counts

    def __len__(self) -> int:
        return len(self._states)
