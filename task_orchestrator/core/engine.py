"""
Execution Engine - Runs task plans concurrently with live state tracking.

Provides:
- Run creation from a validated TaskPlan (configuration errors surface before any task starts)
- Per-task start offsets and dependency gating on terminal status
- Progress text cycling while a task is working
- Per-task retry policies for empty results
- Settle-all join: one failed task never cancels or fails its siblings
- Point-in-time snapshots, settlement checks and abandonment
"""

import asyncio
import inspect
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union

from langchain_core.runnables import Runnable

from task_orchestrator.config import OrchestratorConfig
from task_orchestrator.core.context import TaskContext
from task_orchestrator.core.event_bus import EventBus
from task_orchestrator.core.merger import ResultMerger
from task_orchestrator.core.progress import ProgressReporter
from task_orchestrator.core.retry import AcceptAnyResult
from task_orchestrator.core.state_store import TaskStateStore
from task_orchestrator.models.enums import RunStatus, TaskStatus
from task_orchestrator.models.messages import create_system_event
from task_orchestrator.models.plan import TaskPlan
from task_orchestrator.models.task import TaskSpec, TaskState
from task_orchestrator.utils.exceptions import (
    MergeWriteError,
    OrchestratorError,
    TaskExecutionError,
    UnknownRunError,
    describe_error,
)
from task_orchestrator.utils.logger import get_logger, set_log_level

logger = get_logger(__name__)


@dataclass
class RunSnapshot:
    """Point-in-time copy of a run's task states and shared result."""
    run_id: str
    status: RunStatus
    settled: bool
    tasks: Dict[str, TaskState]
    result: Any

    def statuses(self) -> Dict[str, str]:
        return {name: state.status.value for name, state in self.tasks.items()}

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "settled": self.settled,
            "tasks": [state.to_dict() for state in self.tasks.values()],
            "result": self.result,
        }


@dataclass
class RunHandle:
    """A running or settled plan run."""
    run_id: str
    plan: TaskPlan
    store: TaskStateStore
    merger: ResultMerger
    reporter: ProgressReporter
    loop: asyncio.AbstractEventLoop
    start_time: float
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: Optional[str] = None
    status: RunStatus = RunStatus.RUNNING
    abandoned: bool = False
    results: Dict[str, Any] = field(default_factory=dict)
    settled: asyncio.Event = field(default_factory=asyncio.Event)
    _tasks: Set[asyncio.Task] = field(default_factory=set, repr=False)

    def elapsed_ms(self) -> float:
        """Monotonic milliseconds since the run started."""
        return (self.loop.time() - self.start_time) * 1000

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "plan": self.plan.name,
            "status": self.status.value,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "abandoned": self.abandoned,
            "counts": self.store.counts(),
        }


class ExecutionEngine:
    """Runs task plans and reports their task state stores until settlement."""

    def __init__(self, config: Optional[OrchestratorConfig] = None,
                 event_bus: Optional[EventBus] = None):
        self.config = config or OrchestratorConfig()
        self.event_bus = event_bus
        set_log_level(self.config.log_level)
        self._runs: Dict[str, RunHandle] = {}
        self._stats = {
            "total_runs": 0,
            "tasks_completed": 0,
            "tasks_failed": 0,
        }

    def _notify(self, handle: RunHandle, event_type: str, payload: dict,
                task_name: Optional[str] = None, severity: str = "info"):
        """
        Publish a run event; abandoned runs are no longer observed.

        Observer failures are logged and never reach the task lifecycle.
        """
        if self.event_bus is None or handle.abandoned:
            return
        try:
            self.event_bus.publish(create_system_event(
                event_type=event_type,
                run_id=handle.run_id,
                payload=payload,
                task_name=task_name,
                severity=severity,
            ))
        except Exception as e:
            logger.error(f"Publishing {event_type} for run {handle.run_id} failed: {describe_error(e)}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start_run(self, plan: Union[TaskPlan, List[TaskSpec]],
                        initial_result: Any = None,
                        run_id: Optional[str] = None) -> RunHandle:
        """
        Start executing a plan and return immediately.

        Args:
            plan: The plan, or a list of task specs to build one from
            initial_result: Starting value of the shared result object
            run_id: Optional run identifier (a UUID by default)

        Returns:
            RunHandle for snapshots, settlement checks and abandonment

        Raises:
            PlanConfigurationError: the plan is malformed; nothing was started
        """
        if not isinstance(plan, TaskPlan):
            plan = TaskPlan(plan)
        plan.validate()

        loop = asyncio.get_running_loop()
        store = TaskStateStore(plan, self.config.queued_progress_text)
        # Callbacks below close over ``handle``, bound right after
        reporter = ProgressReporter(
            store,
            self.config.progress_interval_seconds,
            on_update=lambda name, text: self._notify(
                handle, "task_progress", {"progress_text": text}, task_name=name),
        )
        merger = ResultMerger(
            initial_result,
            on_update=lambda source, version: self._notify(
                handle, "result_updated", {"source": source, "version": version}),
            on_failure=lambda error: self._on_subtask_failure(handle, error),
        )
        handle = RunHandle(
            run_id=run_id or str(uuid.uuid4()),
            plan=plan,
            store=store,
            merger=merger,
            reporter=reporter,
            loop=loop,
            start_time=loop.time(),
        )

        self._runs[handle.run_id] = handle
        self._stats["total_runs"] += 1

        logger.info(f"Run {handle.run_id} started with {len(plan)} tasks: {', '.join(plan.names)}")
        self._notify(handle, "run_started", {"run": handle.to_dict(), "tasks": plan.names})

        for spec in plan:
            task = loop.create_task(self._run_task(handle, spec), name=f"{handle.run_id}:{spec.name}")
            handle._tasks.add(task)
            task.add_done_callback(handle._tasks.discard)

        if len(plan) == 0:
            self._settle(handle)

        return handle

    def is_settled(self, handle: Union[RunHandle, str]) -> bool:
        """True once every task of the run is complete or errored."""
        return self._resolve(handle).store.all_terminal()

    def snapshot(self, handle: Union[RunHandle, str]) -> RunSnapshot:
        """Point-in-time read of the task states and the shared result."""
        handle = self._resolve(handle)
        return RunSnapshot(
            run_id=handle.run_id,
            status=handle.status,
            settled=handle.store.all_terminal(),
            tasks=handle.store.snapshot(),
            result=handle.merger.snapshot(),
        )

    def abandon(self, handle: Union[RunHandle, str]) -> int:
        """
        Stop observing a run: release every progress timer.

        In-flight work routines are not cancelled; their state changes and
        shared result writes still apply but are no longer published.

        Returns:
            Number of progress timers released
        """
        handle = self._resolve(handle)
        if handle.abandoned:
            return 0

        released = handle.reporter.close()
        self._notify(handle, "run_abandoned", {"run": handle.to_dict(), "timers_released": released},
                     severity="warning")
        handle.abandoned = True
        if not handle.settled.is_set():
            handle.status = RunStatus.ABANDONED
        logger.info(f"Run {handle.run_id} abandoned ({released} progress timer(s) released)")
        return released

    async def wait_settled(self, handle: Union[RunHandle, str],
                           timeout: Optional[float] = None) -> RunSnapshot:
        """Wait for settlement and return the final snapshot."""
        handle = self._resolve(handle)
        await asyncio.wait_for(handle.settled.wait(), timeout)
        return self.snapshot(handle)

    def get_run(self, run_id: str) -> Optional[RunHandle]:
        """Get run by ID."""
        return self._runs.get(run_id)

    def list_runs(self, status: Optional[RunStatus] = None, limit: int = 20) -> List[RunHandle]:
        """List runs with optional filtering, most recent first."""
        runs = list(self._runs.values())
        if status:
            runs = [r for r in runs if r.status == status]
        return sorted(runs, key=lambda r: r.started_at, reverse=True)[:limit]

    def get_stats(self) -> Dict[str, Any]:
        """Get execution statistics."""
        runs = list(self._runs.values())
        durations = []
        for run in runs:
            if run.completed_at:
                start = datetime.fromisoformat(run.started_at)
                end = datetime.fromisoformat(run.completed_at)
                durations.append((end - start).total_seconds() * 1000)

        return {
            "total_runs": self._stats["total_runs"],
            "running": len([r for r in runs if r.status == RunStatus.RUNNING]),
            "settled": len([r for r in runs if r.status == RunStatus.SETTLED]),
            "abandoned": len([r for r in runs if r.status == RunStatus.ABANDONED]),
            "tasks_completed": self._stats["tasks_completed"],
            "tasks_failed": self._stats["tasks_failed"],
            "avg_duration_ms": int(sum(durations) / len(durations)) if durations else 0,
            "active_tasks": sum(
                len(r.store.names_with_status(TaskStatus.WORKING)) for r in runs
            ),
        }

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    async def _run_task(self, handle: RunHandle, spec: TaskSpec):
        try:
            await self._wait_until_ready(handle, spec)
            await self._execute_task(handle, spec)
        finally:
            if handle.store.all_terminal():
                self._settle(handle)

    async def _wait_until_ready(self, handle: RunHandle, spec: TaskSpec):
        """Wait for the start offset, then for the dependency to be terminal."""
        while True:
            remaining_ms = spec.start_offset_ms - handle.elapsed_ms()
            if remaining_ms <= 0:
                break
            await asyncio.sleep(remaining_ms / 1000)

        if spec.depends_on is not None:
            dependency = await handle.store.wait_terminal(spec.depends_on)
            if dependency.status == TaskStatus.ERROR:
                # Dependents still run; their routines decide what a failed dependency means
                logger.warning(
                    f"Task '{spec.name}' starting although dependency "
                    f"'{spec.depends_on}' ended in error"
                )

    async def _execute_task(self, handle: RunHandle, spec: TaskSpec):
        store = handle.store
        state = store.mark_working(spec.name, handle.elapsed_ms())
        logger.info(f"Starting task: {spec.display_name} (run {handle.run_id})")

        # Once working, every failure below must end in mark_error
        try:
            self._notify(handle, "task_started", {"task": state.to_dict()}, task_name=spec.name)
            handle.reporter.start(spec.name, self._progress_texts(spec))

            context = TaskContext(spec.name, handle, handle.loop, self._progress_sink(handle))
            policy = spec.retry_policy or AcceptAnyResult()
            result = await policy.execute(spec.name, lambda: self._invoke(handle, spec, context))
            summary = self._summarize(spec, result)
            if spec.merge is not None:
                handle.merger.apply(lambda current: spec.merge(current, result), source=spec.name)
        except Exception as e:
            handle.reporter.stop(spec.name)
            state = store.mark_error(spec.name, handle.elapsed_ms(), describe_error(e),
                                     progress_text=self.config.failed_progress_text)
            self._stats["tasks_failed"] += 1
            logger.error(f"Task failed: {spec.display_name} - {state.error}")
            error_code = e.error_code if isinstance(e, OrchestratorError) else e.__class__.__name__
            self._notify(handle, "task_failed", {"task": state.to_dict(), "error_code": error_code},
                         task_name=spec.name, severity="error")
            return

        handle.results[spec.name] = result
        handle.reporter.stop(spec.name)
        state = store.mark_complete(spec.name, handle.elapsed_ms(), result_summary=summary)
        self._stats["tasks_completed"] += 1
        logger.info(f"Task completed: {spec.display_name} ({summary})")
        self._notify(handle, "task_completed", {"task": state.to_dict()}, task_name=spec.name)

    async def _invoke(self, handle: RunHandle, spec: TaskSpec, context: TaskContext) -> Any:
        """Call the work routine once, whatever its calling convention."""
        attempt = handle.store.record_attempt(spec.name)
        if attempt > 1:
            logger.debug(f"Task '{spec.name}' attempt {attempt}")

        try:
            return await self._call_work(spec.work, context)
        except OrchestratorError:
            raise
        except Exception as e:
            raise TaskExecutionError(spec.name, describe_error(e), run_id=handle.run_id,
                                     original_error=e) from e

    async def _call_work(self, work, context: TaskContext) -> Any:
        if isinstance(work, Runnable):
            return await work.ainvoke(context)
        if inspect.iscoroutinefunction(work):
            return await work(context)

        result = await asyncio.to_thread(work, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _progress_texts(self, spec: TaskSpec) -> List[str]:
        if spec.progress_texts:
            return list(spec.progress_texts)
        return [self.config.default_progress_text]

    def _progress_sink(self, handle: RunHandle):
        def sink(name: str, text: str):
            if handle.store.set_progress(name, text):
                self._notify(handle, "task_progress", {"progress_text": text}, task_name=name)
        return sink

    def _summarize(self, spec: TaskSpec, result: Any) -> str:
        if spec.summarize is not None:
            return spec.summarize(result)
        return str(result)[:self.config.summary_max_chars] if result else "Completed"

    def _on_subtask_failure(self, handle: RunHandle, error: MergeWriteError):
        self._notify(handle, "subtask_failed", error.to_dict(), severity="warning")

    def _settle(self, handle: RunHandle):
        if handle.settled.is_set():
            return
        handle.reporter.stop_all()
        handle.completed_at = datetime.now().isoformat()
        if not handle.abandoned:
            handle.status = RunStatus.SETTLED
        handle.settled.set()

        counts = handle.store.counts()
        logger.info(
            f"Run {handle.run_id} settled: {counts[TaskStatus.COMPLETE.value]} complete, "
            f"{counts[TaskStatus.ERROR.value]} failed"
        )
        self._notify(handle, "run_settled", {
            "run": handle.to_dict(),
            "completed": handle.store.names_with_status(TaskStatus.COMPLETE),
            "failed": handle.store.names_with_status(TaskStatus.ERROR),
        })

    def _resolve(self, handle: Union[RunHandle, str]) -> RunHandle:
        run_id = handle if isinstance(handle, str) else handle.run_id
        resolved = self._runs.get(run_id)
        if resolved is None:
            raise UnknownRunError(run_id)
        return resolved
