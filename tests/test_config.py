"""
Unit tests for configuration loading and validation.
"""

import os

import pytest

from task_orchestrator.config import EnvConfig, OrchestratorConfig
from task_orchestrator.utils.exceptions import ConfigurationError


class TestOrchestratorConfig:
    """Tests for OrchestratorConfig."""

    def test_defaults(self):
        config = OrchestratorConfig()

        assert config.progress_interval_seconds == 2.5
        assert config.queued_progress_text == "Waiting..."
        assert config.failed_progress_text == "Failed"
        assert config.summary_max_chars == 200

    def test_invalid_interval(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OrchestratorConfig(progress_interval_seconds=0)
        assert exc_info.value.setting_name == "progress_interval_seconds"

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError):
            OrchestratorConfig(log_level="LOUD")

    def test_log_level_is_normalized(self):
        assert OrchestratorConfig(log_level="debug").log_level == "DEBUG"

    def test_log_level_defaults_to_env(self, monkeypatch):
        monkeypatch.setenv("ORCHESTRATOR_LOG_LEVEL", "error")
        assert OrchestratorConfig().log_level == "ERROR"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ORCHESTRATOR_PROGRESS_INTERVAL_SECONDS", "0.5")
        monkeypatch.setenv("ORCHESTRATOR_SUMMARY_MAX_CHARS", "80")
        monkeypatch.setenv("ORCHESTRATOR_FAILED_PROGRESS_TEXT", "Stopped")

        config = OrchestratorConfig.from_env()

        assert config.progress_interval_seconds == 0.5
        assert config.summary_max_chars == 80
        assert config.failed_progress_text == "Stopped"
        assert config.to_dict()["summary_max_chars"] == 80

    def test_from_env_with_bad_number(self, monkeypatch):
        monkeypatch.setenv("TEST_PROGRESS_INTERVAL_SECONDS", "fast")
        with pytest.raises(ConfigurationError):
            OrchestratorConfig.from_env(prefix="TEST_")


class TestEnvConfig:
    """Tests for EnvConfig typed getters."""

    def test_get_bool(self, monkeypatch):
        monkeypatch.setenv("ORCH_TEST_FLAG", "yes")
        assert EnvConfig.get_bool("ORCH_TEST_FLAG") is True
        assert EnvConfig.get_bool("ORCH_TEST_MISSING", default=True) is True

    def test_get_int_and_float(self, monkeypatch):
        monkeypatch.setenv("ORCH_TEST_INT", "42")
        monkeypatch.setenv("ORCH_TEST_FLOAT", "not-a-number")
        assert EnvConfig.get_int("ORCH_TEST_INT") == 42
        assert EnvConfig.get_float("ORCH_TEST_FLOAT", 1.5) == 1.5

    def test_get_json(self, monkeypatch):
        monkeypatch.setenv("ORCH_TEST_JSON", '{"mode": "visual"}')
        assert EnvConfig.get_json("ORCH_TEST_JSON") == {"mode": "visual"}

    def test_load_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("ORCH_TEST_FROM_FILE=loaded\n", encoding="utf-8")
        monkeypatch.delenv("ORCH_TEST_FROM_FILE", raising=False)

        assert EnvConfig.load_env_file(str(env_file)) is True
        assert EnvConfig.get("ORCH_TEST_FROM_FILE") == "loaded"
        os.environ.pop("ORCH_TEST_FROM_FILE", None)

    def test_load_missing_env_file(self, tmp_path):
        assert EnvConfig.load_env_file(str(tmp_path / "missing.env")) is False
