"""
Orchestrator configuration - Settings for the execution engine
"""

from dataclasses import dataclass, field
from typing import Dict, Any
import os

from task_orchestrator.utils.exceptions import ConfigurationError


@dataclass
class OrchestratorConfig:
    """
    Configuration settings for the Execution Engine.

    Attributes:
        progress_interval_seconds: Period between progress text updates of a working task
        queued_progress_text: Progress text of a task that has not started yet
        default_progress_text: Progress text for tasks without a declared text cycle
        failed_progress_text: Progress text of a task that ended in error
        summary_max_chars: Maximum length of the default result summary
        event_history_size: Number of published events the event bus keeps
        log_level: Level the engine applies to the package logger
    """

    progress_interval_seconds: float = 2.5
    queued_progress_text: str = "Waiting..."
    default_progress_text: str = "Working..."
    failed_progress_text: str = "Failed"
    summary_max_chars: int = 200
    event_history_size: int = 1000
    log_level: str = field(default_factory=lambda: os.getenv("ORCHESTRATOR_LOG_LEVEL", "INFO"))

    def __post_init__(self):
        """Validate configuration values."""
        if self.progress_interval_seconds <= 0:
            raise ConfigurationError(
                "progress_interval_seconds",
                "must be greater than 0",
                actual_value=self.progress_interval_seconds,
            )
        if self.summary_max_chars <= 0:
            raise ConfigurationError(
                "summary_max_chars",
                "must be greater than 0",
                actual_value=self.summary_max_chars,
            )
        if self.event_history_size < 0:
            raise ConfigurationError(
                "event_history_size",
                "cannot be negative",
                actual_value=self.event_history_size,
            )

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.log_level = self.log_level.upper()
        if self.log_level not in valid_levels:
            raise ConfigurationError(
                "log_level",
                f"must be one of {valid_levels}",
                actual_value=self.log_level,
            )

    @classmethod
    def from_env(cls, prefix: str = "ORCHESTRATOR_") -> "OrchestratorConfig":
        """
        Create configuration from environment variables.

        Args:
            prefix: Prefix of the environment variable names

        Returns:
            OrchestratorConfig instance
        """
        try:
            return cls(
                progress_interval_seconds=float(
                    os.getenv(f"{prefix}PROGRESS_INTERVAL_SECONDS", "2.5")
                ),
                queued_progress_text=os.getenv(f"{prefix}QUEUED_PROGRESS_TEXT", "Waiting..."),
                default_progress_text=os.getenv(f"{prefix}DEFAULT_PROGRESS_TEXT", "Working..."),
                failed_progress_text=os.getenv(f"{prefix}FAILED_PROGRESS_TEXT", "Failed"),
                summary_max_chars=int(os.getenv(f"{prefix}SUMMARY_MAX_CHARS", "200")),
                event_history_size=int(os.getenv(f"{prefix}EVENT_HISTORY_SIZE", "1000")),
                log_level=os.getenv(f"{prefix}LOG_LEVEL", "INFO"),
            )
        except ValueError as e:
            raise ConfigurationError(prefix.rstrip("_"), f"invalid numeric setting ({e})") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "progress_interval_seconds": self.progress_interval_seconds,
            "queued_progress_text": self.queued_progress_text,
            "default_progress_text": self.default_progress_text,
            "failed_progress_text": self.failed_progress_text,
            "summary_max_chars": self.summary_max_chars,
            "event_history_size": self.event_history_size,
            "log_level": self.log_level,
        }
