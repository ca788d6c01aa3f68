"""
Environment configuration - Load settings from .env files
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Dict

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class EnvConfig:
    """
    Load and manage configuration from environment variables and .env files.

    Supports multiple sources with priority:
    1. Environment variables (highest priority)
    2. .env file in current directory or up to 3 parent directories
    """

    @staticmethod
    def load_env_file(path: Optional[str] = None) -> bool:
        """
        Load environment variables from .env file.

        Args:
            path: Path to .env file (default: search current dir and parents)

        Returns:
            True if file was loaded, False otherwise
        """
        if path:
            env_path = Path(path)
        else:
            env_path = None
            current = Path.cwd()
            for _ in range(4):  # Current dir + 3 parent levels
                potential_path = current / ".env"
                if potential_path.exists():
                    env_path = potential_path
                    break
                if current.parent == current:  # Stop at filesystem root
                    break
                current = current.parent

        if env_path and env_path.exists():
            # Existing environment variables keep priority
            load_dotenv(env_path, override=False)
            logger.debug("Loaded environment from %s", env_path)
            return True

        return False

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable with optional default."""
        return os.getenv(key, default)

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        """Get boolean environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    @staticmethod
    def get_int(key: str, default: int = 0) -> int:
        """Get integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    @staticmethod
    def get_float(key: str, default: float = 0.0) -> float:
        """Get float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    @staticmethod
    def get_json(key: str, default: Optional[Dict] = None) -> Optional[Dict]:
        """Get JSON environment variable."""
        value = os.getenv(key)
        if not value:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
