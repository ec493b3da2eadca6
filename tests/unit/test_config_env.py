"""Tests for environment variable loading."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from nextedit.config.env import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_STATE_DIRNAME,
    ENV_LOG_FORMAT,
    ENV_LOG_LEVEL,
    ENV_STATE_DIR,
    load_env_config,
)
from nextedit.core.logging import LogLevel


@pytest.fixture
def clean_env() -> None:
    """Fixture to clear nextedit environment variables."""
    with patch.dict(os.environ, {}, clear=True):
        yield


class TestStateDir:
    """Tests for state directory resolution."""

    def test_default_under_workspace(self, clean_env: None, tmp_path: Path) -> None:
        """Defaults to .nextedit inside the workspace."""
        config = load_env_config(tmp_path)
        assert config.state_dir == tmp_path / DEFAULT_STATE_DIRNAME

    def test_env_override(self, clean_env: None, tmp_path: Path) -> None:
        """NEXTEDIT_STATE_DIR overrides the default."""
        os.environ[ENV_STATE_DIR] = str(tmp_path / "state")
        assert load_env_config(tmp_path).state_dir == tmp_path / "state"


class TestLogging:
    """Tests for logging settings."""

    def test_defaults(self, clean_env: None, tmp_path: Path) -> None:
        """JSON logs at the default level."""
        config = load_env_config(tmp_path)
        assert config.log_level == DEFAULT_LOG_LEVEL
        assert config.json_logs is True

    def test_level_from_env(self, clean_env: None, tmp_path: Path) -> None:
        """NEXTEDIT_LOG_LEVEL sets the level."""
        os.environ[ENV_LOG_LEVEL] = "debug"
        assert load_env_config(tmp_path).log_level == LogLevel.DEBUG

    def test_unknown_level_falls_back(self, clean_env: None, tmp_path: Path) -> None:
        """Unknown level names use the default."""
        os.environ[ENV_LOG_LEVEL] = "chatty"
        assert load_env_config(tmp_path).log_level == DEFAULT_LOG_LEVEL

    def test_text_format(self, clean_env: None, tmp_path: Path) -> None:
        """NEXTEDIT_LOG_FORMAT=text disables JSON."""
        os.environ[ENV_LOG_FORMAT] = "Text"
        assert load_env_config(tmp_path).json_logs is False
