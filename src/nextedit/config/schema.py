"""YAML schema validation for nextedit.yaml configuration files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from nextedit.model.models import DEFAULT_SECONDS_PER_EDIT, UndoLevel

CONFIG_FILENAME = "nextedit.yaml"

DEFAULT_INCLUDE_PATTERNS = [
    "**/*.py",
    "**/*.ts",
    "**/*.tsx",
    "**/*.js",
    "**/*.jsx",
    "**/*.java",
]
DEFAULT_EXCLUDE_PATTERNS = [
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
]


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigParseError(ConfigError):
    """Error parsing YAML configuration."""

    pass


class ConfigValidationError(ConfigError):
    """Error validating configuration schema."""

    pass


@dataclass
class AnalysisDefaults:
    """Default options passed to the analyzer."""

    include_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS)
    )
    exclude_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS)
    )
    max_files: int = 1000
    use_semantic_analysis: bool = True
    use_pattern_matching: bool = True


@dataclass
class SessionConfig:
    """Review session configuration."""

    seconds_per_edit: int = DEFAULT_SECONDS_PER_EDIT
    default_undo_level: UndoLevel = UndoLevel.EDIT
    context_lines: int = 5
    context_cache_ttl: int = 600  # seconds


@dataclass
class NextEditConfig:
    """Complete nextedit.yaml configuration."""

    analysis: AnalysisDefaults = field(default_factory=AnalysisDefaults)
    session: SessionConfig = field(default_factory=SessionConfig)


def _parse_yaml(content: str) -> dict[str, Any]:
    """Parse YAML content into a dictionary.

    Args:
        content: Raw YAML string.

    Returns:
        Parsed dictionary.

    Raises:
        ConfigParseError: If YAML parsing fails.
    """
    try:
        result = yaml.safe_load(content)
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise ConfigParseError("Configuration must be a YAML mapping")
        return result
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e


def _validate_patterns(value: Any, name: str) -> list[str]:
    """Validate a list of glob patterns.

    Raises:
        ConfigValidationError: If the value is not a list of non-empty strings.
    """
    if not isinstance(value, list):
        raise ConfigValidationError(f"{name} must be a list")

    for i, pattern in enumerate(value):
        if not isinstance(pattern, str) or not pattern.strip():
            raise ConfigValidationError(f"{name}[{i}] must be a non-empty string")

    return list(value)


def _positive_int(section: dict[str, Any], key: str, default: int, name: str) -> int:
    value = section.get(key, default)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigValidationError(f"{name}.{key} must be a positive integer")
    return value


def _flag(section: dict[str, Any], key: str, name: str) -> bool:
    value = section.get(key, True)
    if not isinstance(value, bool):
        raise ConfigValidationError(f"{name}.{key} must be a boolean")
    return value


def _validate_analysis(data: dict[str, Any]) -> AnalysisDefaults:
    """Validate the analysis section of configuration.

    Args:
        data: Raw configuration dictionary.

    Returns:
        Validated AnalysisDefaults with defaults if not specified.

    Raises:
        ConfigValidationError: If analysis validation fails.
    """
    if "analysis" not in data:
        return AnalysisDefaults()

    analysis = data["analysis"]
    if not isinstance(analysis, dict):
        raise ConfigValidationError("analysis must be a mapping")

    defaults = AnalysisDefaults()
    include = defaults.include_patterns
    exclude = defaults.exclude_patterns

    if "include_patterns" in analysis:
        include = _validate_patterns(
            analysis["include_patterns"], "analysis.include_patterns"
        )
        if not include:
            raise ConfigValidationError(
                "analysis.include_patterns must contain at least one pattern"
            )

    if "exclude_patterns" in analysis:
        exclude = _validate_patterns(
            analysis["exclude_patterns"], "analysis.exclude_patterns"
        )

    return AnalysisDefaults(
        include_patterns=include,
        exclude_patterns=exclude,
        max_files=_positive_int(analysis, "max_files", defaults.max_files, "analysis"),
        use_semantic_analysis=_flag(analysis, "use_semantic_analysis", "analysis"),
        use_pattern_matching=_flag(analysis, "use_pattern_matching", "analysis"),
    )


def _validate_session(data: dict[str, Any]) -> SessionConfig:
    """Validate the session section of configuration.

    Args:
        data: Raw configuration dictionary.

    Returns:
        Validated SessionConfig with defaults if not specified.

    Raises:
        ConfigValidationError: If session validation fails.
    """
    if "session" not in data:
        return SessionConfig()

    session = data["session"]
    if not isinstance(session, dict):
        raise ConfigValidationError("session must be a mapping")

    defaults = SessionConfig()

    level_name = session.get("default_undo_level", defaults.default_undo_level.value)
    try:
        undo_level = UndoLevel(level_name)
    except ValueError as e:
        allowed = ", ".join(level.value for level in UndoLevel)
        raise ConfigValidationError(
            f"session.default_undo_level must be one of: {allowed}"
        ) from e

    return SessionConfig(
        seconds_per_edit=_positive_int(
            session, "seconds_per_edit", defaults.seconds_per_edit, "session"
        ),
        default_undo_level=undo_level,
        context_lines=_positive_int(
            session, "context_lines", defaults.context_lines, "session"
        ),
        context_cache_ttl=_positive_int(
            session, "context_cache_ttl", defaults.context_cache_ttl, "session"
        ),
    )


def parse_config(content: str) -> NextEditConfig:
    """Parse and validate nextedit.yaml configuration content.

    Args:
        content: Raw YAML string.

    Returns:
        Validated NextEditConfig object.

    Raises:
        ConfigParseError: If YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    data = _parse_yaml(content)
    return NextEditConfig(
        analysis=_validate_analysis(data),
        session=_validate_session(data),
    )


def load_config(path: Path) -> NextEditConfig:
    """Load and validate nextedit.yaml configuration from a file.

    Args:
        path: Path to nextedit.yaml file.

    Returns:
        Validated NextEditConfig object.

    Raises:
        ConfigParseError: If file reading or YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigParseError(f"Failed to read configuration file: {e}") from e

    return parse_config(content)


def load_workspace_config(workspace: Path) -> NextEditConfig:
    """Load nextedit.yaml from a workspace root, or defaults if absent.

    Args:
        workspace: Workspace root directory.

    Returns:
        NextEditConfig object.
    """
    path = workspace / CONFIG_FILENAME
    if not path.is_file():
        return NextEditConfig()
    return load_config(path)
