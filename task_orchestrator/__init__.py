"""
Task Orchestrator - Concurrent generation task runner with live progress

Runs a declared plan of independent and dependent generation tasks
concurrently on asyncio, tracks each task's lifecycle, cycles progress
text while tasks work, retries empty results per task policy, tolerates
individual task failures and merges late side-effect updates into one
shared result without losing writes.

Features:
- Staggered start offsets and single-level dependencies
- Monotonic task lifecycle: queued -> working -> complete | error
- Per-task retry policies for empty results
- Settle-all join (no fail-fast)
- Lock-guarded read-modify-write result merging for fire-and-forget sub-tasks
- Event bus and polling snapshots for observers
- Environment-based configuration

Installation:
pip install python-dotenv langchain-core

Configuration:
    Optional .env settings:

    ORCHESTRATOR_PROGRESS_INTERVAL_SECONDS=2.5
    ORCHESTRATOR_LOG_LEVEL=INFO

Example:
    >>> from task_orchestrator import ExecutionEngine, OrchestratorConfig, EnvConfig
    >>> from task_orchestrator.plans import build_plan, GenerationRequest
    >>>
    >>> EnvConfig.load_env_file()
    >>> engine = ExecutionEngine(OrchestratorConfig.from_env())
    >>> plan = build_plan("visual", backend, GenerationRequest(topic="Forklift safety", sector="Logistics"))
    >>> handle = await engine.start_run(plan)
    >>> snapshot = await engine.wait_settled(handle)
"""

__version__ = "1.0.0"
__all__ = [
    'ExecutionEngine',
    'RunHandle',
    'RunSnapshot',
    'EventBus',
    'OrchestratorConfig',
    'EnvConfig',
    'TaskStatus',
    'TaskSpec',
    'TaskState',
    'TaskPlan',
    'AcceptAnyResult',
    'FailIfEmpty',
    'RetryOnceIfEmpty',
]

from task_orchestrator.core import (
    ExecutionEngine,
    RunHandle,
    RunSnapshot,
    EventBus,
    AcceptAnyResult,
    FailIfEmpty,
    RetryOnceIfEmpty,
)
from task_orchestrator.config import OrchestratorConfig, EnvConfig
from task_orchestrator.models import TaskStatus, TaskSpec, TaskState, TaskPlan
