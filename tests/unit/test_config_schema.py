"""Tests for nextedit.yaml schema validation."""

from pathlib import Path

import pytest

from nextedit.config.schema import (
    CONFIG_FILENAME,
    DEFAULT_INCLUDE_PATTERNS,
    AnalysisDefaults,
    ConfigParseError,
    ConfigValidationError,
    NextEditConfig,
    load_config,
    load_workspace_config,
    parse_config,
)
from nextedit.model.models import UndoLevel


class TestParseConfig:
    """Tests for parse_config function."""

    def test_empty_config_uses_defaults(self) -> None:
        """An empty file yields all defaults."""
        config = parse_config("")
        assert isinstance(config, NextEditConfig)
        assert config.analysis.include_patterns == DEFAULT_INCLUDE_PATTERNS
        assert config.analysis.max_files == 1000
        assert config.session.seconds_per_edit == 30
        assert config.session.default_undo_level == UndoLevel.EDIT

    def test_full_config(self) -> None:
        """All fields are read."""
        content = """
analysis:
  include_patterns: ["src/**/*.py"]
  exclude_patterns: []
  max_files: 50
  use_semantic_analysis: false
session:
  seconds_per_edit: 10
  default_undo_level: file
  context_lines: 3
  context_cache_ttl: 60
"""
        config = parse_config(content)
        assert config.analysis == AnalysisDefaults(
            include_patterns=["src/**/*.py"],
            exclude_patterns=[],
            max_files=50,
            use_semantic_analysis=False,
            use_pattern_matching=True,
        )
        assert config.session.seconds_per_edit == 10
        assert config.session.default_undo_level == UndoLevel.FILE
        assert config.session.context_lines == 3
        assert config.session.context_cache_ttl == 60

    def test_defaults_are_not_shared(self) -> None:
        """Each config gets its own pattern lists."""
        first = parse_config("")
        first.analysis.include_patterns.append("x")
        assert "x" not in parse_config("").analysis.include_patterns


class TestParseErrors:
    """Tests for invalid configuration."""

    def test_invalid_yaml(self) -> None:
        """Malformed YAML raises ConfigParseError."""
        with pytest.raises(ConfigParseError, match="Failed to parse YAML"):
            parse_config("analysis: [unclosed")

    def test_non_mapping(self) -> None:
        """A top-level list is rejected."""
        with pytest.raises(ConfigParseError, match="mapping"):
            parse_config("- a\n- b\n")

    @pytest.mark.parametrize(
        ("content", "match"),
        [
            ("analysis: 3", "analysis must be a mapping"),
            ("analysis:\n  include_patterns: []", "at least one pattern"),
            ("analysis:\n  include_patterns: '*.py'", "must be a list"),
            ("analysis:\n  exclude_patterns: ['']", "non-empty string"),
            ("analysis:\n  max_files: 0", "positive integer"),
            ("analysis:\n  max_files: true", "positive integer"),
            ("analysis:\n  use_pattern_matching: 'yes'", "must be a boolean"),
            ("session: []", "session must be a mapping"),
            ("session:\n  default_undo_level: line", "default_undo_level"),
            ("session:\n  seconds_per_edit: -5", "positive integer"),
        ],
    )
    def test_validation_errors(self, content: str, match: str) -> None:
        """Schema violations raise ConfigValidationError."""
        with pytest.raises(ConfigValidationError, match=match):
            parse_config(content)


class TestLoadConfig:
    """Tests for loading configuration from disk."""

    def test_load_config(self, tmp_path: Path) -> None:
        """load_config reads a file."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("session:\n  seconds_per_edit: 12\n")
        assert load_config(path).session.seconds_per_edit == 12

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """A missing explicit file raises ConfigParseError."""
        with pytest.raises(ConfigParseError, match="Failed to read"):
            load_config(tmp_path / "missing.yaml")

    def test_workspace_defaults_when_absent(self, tmp_path: Path) -> None:
        """load_workspace_config falls back to defaults."""
        assert load_workspace_config(tmp_path) == NextEditConfig()

    def test_workspace_config_present(self, tmp_path: Path) -> None:
        """load_workspace_config reads nextedit.yaml at the root."""
        (tmp_path / CONFIG_FILENAME).write_text("analysis:\n  max_files: 7\n")
        assert load_workspace_config(tmp_path).analysis.max_files == 7
