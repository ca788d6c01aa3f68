"""
Standardized Exception Hierarchy for the Task Orchestrator

Exception Categories:
- Configuration Errors: malformed task plans and invalid settings. Raised
  synchronously, before any task of a run starts.
- Execution Errors: a task's work routine failed, or produced an empty
  result its retry policy does not accept. Recorded on the task's state,
  never escalated to sibling tasks.
- Merge Write Errors: a fire-and-forget sub-task failed. Logged against the
  originating item and recorded by the merger, never raised to the caller.

Usage:
    from task_orchestrator.utils.exceptions import (
        OrchestratorError,
        DuplicateTaskError,
        EmptyResultError,
    )

    try:
        plan = TaskPlan(specs)
    except PlanConfigurationError as e:
        print(e.to_dict())
"""

from typing import Optional, Any, Dict, List


# ============================================================================
# Base Exception
# ============================================================================

class OrchestratorError(Exception):
    """
    Base exception for all orchestrator errors.

    All custom exceptions inherit from this class to enable
    centralized error handling and logging.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for categorization
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        """String representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(OrchestratorError):
    """Raised when there's an issue with configuration or settings."""

    def __init__(
        self,
        setting_name: str,
        message: str,
        expected_value: Optional[Any] = None,
        actual_value: Optional[Any] = None
    ):
        details = {"setting_name": setting_name}
        if expected_value is not None:
            details["expected_value"] = str(expected_value)
        if actual_value is not None:
            details["actual_value"] = str(actual_value)

        super().__init__(
            message=f"Configuration error for '{setting_name}': {message}",
            error_code="CONFIG_ERROR",
            details=details
        )
        self.setting_name = setting_name


class PlanConfigurationError(ConfigurationError):
    """Raised when a task plan is malformed."""

    def __init__(self, task_name: Optional[str], message: str, **kwargs: Any):
        super().__init__(setting_name=task_name or "plan", message=message, **kwargs)
        self.error_code = "PLAN_CONFIG_ERROR"
        self.task_name = task_name


class DuplicateTaskError(PlanConfigurationError):
    """Raised when two task specs in one plan share a name."""

    def __init__(self, task_name: str):
        super().__init__(task_name, "Task name is declared more than once in the plan")
        self.error_code = "DUPLICATE_TASK"


class UnknownDependencyError(PlanConfigurationError):
    """Raised when depends_on names a task that is not in the plan."""

    def __init__(self, task_name: str, dependency: str):
        super().__init__(
            task_name,
            f"Dependency '{dependency}' is not a different task of the same plan",
            actual_value=dependency,
        )
        self.error_code = "UNKNOWN_DEPENDENCY"
        self.dependency = dependency


class DependencyCycleError(PlanConfigurationError):
    """Raised when dependencies form a cycle."""

    def __init__(self, cycle: List[str]):
        super().__init__(
            cycle[0] if cycle else None,
            f"Dependency cycle detected: {' -> '.join(cycle)}",
        )
        self.error_code = "DEPENDENCY_CYCLE"
        self.details["cycle"] = list(cycle)
        self.cycle = list(cycle)


# ============================================================================
# Execution Errors
# ============================================================================

class ExecutionError(OrchestratorError):
    """Base class for execution-time errors."""
    pass


class TaskExecutionError(ExecutionError):
    """Raised when a task's work routine fails."""

    def __init__(
        self,
        task_name: str,
        message: str,
        run_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        full_message = f"[{task_name}] {message}"
        if original_error:
            full_message += f"\nCaused by: {str(original_error)}"

        super().__init__(
            message=full_message,
            error_code="TASK_EXEC_ERROR",
            details={
                "task_name": task_name,
                "run_id": run_id,
                "original_error": str(original_error) if original_error else None
            }
        )
        self.task_name = task_name
        self.original_error = original_error


class EmptyResultError(ExecutionError):
    """Raised when a task returns an empty sequence its policy does not accept."""

    def __init__(self, task_name: str, attempts: int, policy: str,
                 message: Optional[str] = None):
        if not message:
            message = f"Task '{task_name}' returned 0 items"
            if attempts > 1:
                message += " after retry"

        super().__init__(
            message=message,
            error_code="EMPTY_RESULT",
            details={
                "task_name": task_name,
                "attempts": attempts,
                "policy": policy
            }
        )
        self.task_name = task_name
        self.attempts = attempts


class InvalidTransitionError(ExecutionError):
    """Raised when a task state change would break the queued -> working -> terminal order."""

    def __init__(self, task_name: str, status_from: str, status_to: str):
        super().__init__(
            message=f"Task '{task_name}' cannot move from '{status_from}' to '{status_to}'",
            error_code="INVALID_TRANSITION",
            details={
                "task_name": task_name,
                "status_from": status_from,
                "status_to": status_to
            }
        )
        self.task_name = task_name


class UnknownRunError(ExecutionError):
    """Raised when a run handle does not belong to this engine."""

    def __init__(self, run_id: str):
        super().__init__(
            message=f"Run '{run_id}' is not registered with this engine",
            error_code="UNKNOWN_RUN",
            details={"run_id": run_id}
        )
        self.run_id = run_id


# ============================================================================
# Merge Write Errors
# ============================================================================

class MergeWriteError(OrchestratorError):
    """Raised (and recorded, not propagated) when a fire-and-forget write fails."""

    def __init__(
        self,
        item: Any,
        message: str,
        original_error: Optional[Exception] = None
    ):
        full_message = f"Update for item {item!r} failed: {message}"
        if original_error:
            full_message += f"\nCaused by: {str(original_error)}"

        super().__init__(
            message=full_message,
            error_code="MERGE_WRITE_ERROR",
            details={
                "item": repr(item),
                "original_error": str(original_error) if original_error else None
            }
        )
        self.item = item
        self.original_error = original_error


# ============================================================================
# Helpers
# ============================================================================

def describe_error(error: BaseException) -> str:
    """Human-readable description recorded on a failed task's state."""
    if isinstance(error, TaskExecutionError) and error.original_error is not None:
        return describe_error(error.original_error)
    if isinstance(error, OrchestratorError):
        return error.message
    text = str(error)
    if not text:
        return error.__class__.__name__
    return f"{error.__class__.__name__}: {text}"
