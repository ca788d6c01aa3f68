"""
Utilities module - Logging and the exception hierarchy
"""

from .logger import get_logger, configure_logging, set_log_level

from .exceptions import (
    # Base
    OrchestratorError,
    # Configuration
    ConfigurationError,
    PlanConfigurationError,
    DuplicateTaskError,
    UnknownDependencyError,
    DependencyCycleError,
    # Execution
    ExecutionError,
    TaskExecutionError,
    EmptyResultError,
    InvalidTransitionError,
    UnknownRunError,
    # Merge writes
    MergeWriteError,
    # Helpers
    describe_error,
)

__all__ = [
    'get_logger',
    'configure_logging',
    'set_log_level',
    'OrchestratorError',
    'ConfigurationError',
    'PlanConfigurationError',
    'DuplicateTaskError',
    'UnknownDependencyError',
    'DependencyCycleError',
    'ExecutionError',
    'TaskExecutionError',
    'EmptyResultError',
    'InvalidTransitionError',
    'UnknownRunError',
    'MergeWriteError',
    'describe_error',
]
