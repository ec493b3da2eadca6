"""Environment variable loading for runtime configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from nextedit.core.logging import LogLevel


@dataclass
class EnvConfig:
    """Environment-based configuration."""

    state_dir: Path
    log_level: LogLevel
    json_logs: bool


# Environment variable names
ENV_STATE_DIR = "NEXTEDIT_STATE_DIR"
ENV_LOG_LEVEL = "NEXTEDIT_LOG_LEVEL"
ENV_LOG_FORMAT = "NEXTEDIT_LOG_FORMAT"

# Default values
DEFAULT_STATE_DIRNAME = ".nextedit"
DEFAULT_LOG_LEVEL = LogLevel.WARNING


def _load_state_dir(workspace: Path) -> Path:
    """Load the state directory from environment or use the workspace default.

    Args:
        workspace: Workspace root directory.

    Returns:
        Path to the state directory.
    """
    state_dir_str = os.environ.get(ENV_STATE_DIR)
    if state_dir_str:
        return Path(state_dir_str).expanduser()
    return workspace / DEFAULT_STATE_DIRNAME


def _load_log_level() -> LogLevel:
    """Load the log level, falling back to the default on unknown names."""
    name = os.environ.get(ENV_LOG_LEVEL)
    if not name:
        return DEFAULT_LOG_LEVEL
    try:
        return LogLevel.from_name(name)
    except ValueError:
        return DEFAULT_LOG_LEVEL


def _load_json_logs() -> bool:
    """Whether logs are written as JSON lines (default) or plain text."""
    return os.environ.get(ENV_LOG_FORMAT, "json").strip().lower() != "text"


def load_env_config(workspace: Path | None = None) -> EnvConfig:
    """Load all environment-based configuration.

    Args:
        workspace: Workspace root (defaults to the current directory).

    Returns:
        EnvConfig with state directory and logging settings.
    """
    return EnvConfig(
        state_dir=_load_state_dir(workspace or Path.cwd()),
        log_level=_load_log_level(),
        json_logs=_load_json_logs(),
    )
