"""Configuration parsing and validation."""

from nextedit.config.env import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_STATE_DIRNAME,
    ENV_LOG_FORMAT,
    ENV_LOG_LEVEL,
    ENV_STATE_DIR,
    EnvConfig,
    load_env_config,
)
from nextedit.config.schema import (
    CONFIG_FILENAME,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    AnalysisDefaults,
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    NextEditConfig,
    SessionConfig,
    load_config,
    load_workspace_config,
    parse_config,
)

__all__ = [
    # Schema types
    "NextEditConfig",
    "AnalysisDefaults",
    "SessionConfig",
    # Schema functions
    "parse_config",
    "load_config",
    "load_workspace_config",
    # Schema constants
    "CONFIG_FILENAME",
    "DEFAULT_INCLUDE_PATTERNS",
    "DEFAULT_EXCLUDE_PATTERNS",
    # Schema errors
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # Environment
    "EnvConfig",
    "load_env_config",
    "ENV_STATE_DIR",
    "ENV_LOG_LEVEL",
    "ENV_LOG_FORMAT",
    "DEFAULT_STATE_DIRNAME",
    "DEFAULT_LOG_LEVEL",
]
