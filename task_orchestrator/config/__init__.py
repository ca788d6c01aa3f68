"""
Configuration module - Settings and configuration management
"""

from .env_config import EnvConfig
from .orchestrator_config import OrchestratorConfig

__all__ = [
    'EnvConfig',
    'OrchestratorConfig',
]
