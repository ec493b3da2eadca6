"""Unit tests for nextedit.core.validation module."""

from __future__ import annotations

import pytest

from nextedit.core.exceptions import ValidationError
from nextedit.core.validation import (
    MAX_GOAL_LENGTH,
    IssueReport,
    require_valid_start,
    require_valid_suggestions,
    validate_goal,
    validate_suggestions,
    validate_workspace,
)
from nextedit.model.models import EditSuggestion


def _edit(edit_id: str, **kwargs) -> EditSuggestion:
    defaults = {
        "file_path": "a.py",
        "line_start": 1,
        "line_end": 1,
        "original_content": "x = 1",
        "suggested_content": "x = 2",
        "confidence": 0.8,
    }
    defaults.update(kwargs)
    return EditSuggestion(id=edit_id, session_id="s1", **defaults)


class TestIssueReport:
    """Tests for IssueReport."""

    def test_warnings_do_not_invalidate(self) -> None:
        """A report with only warnings is valid."""
        report = IssueReport()
        report.add_warning("w", "warning")
        assert report.valid

    def test_merge(self) -> None:
        """merge combines errors and warnings."""
        first = IssueReport()
        first.add_error("a", "A")
        second = IssueReport()
        second.add_warning("b", "B")
        merged = first.merge(second)
        assert merged is first
        assert len(merged.errors) == 1
        assert len(merged.warnings) == 1
        assert merged.to_dict()["valid"] is False


class TestValidateGoal:
    """Tests for goal validation."""

    @pytest.mark.parametrize("goal", ["", "   ", None])
    def test_empty_goal(self, goal: str | None) -> None:
        """Empty goals are rejected."""
        report = validate_goal(goal)
        assert not report.valid
        assert report.errors[0].code == "empty_goal"

    def test_too_long(self) -> None:
        """Goals over the maximum length are rejected."""
        report = validate_goal("x" * (MAX_GOAL_LENGTH + 1))
        assert report.errors[0].code == "goal_too_long"

    def test_valid(self) -> None:
        """A normal goal passes."""
        assert validate_goal("rename foo to bar").valid


class TestValidateWorkspace:
    """Tests for workspace validation."""

    def test_empty(self) -> None:
        """Empty workspace is rejected."""
        assert validate_workspace("").errors[0].code == "empty_workspace"

    def test_valid(self) -> None:
        """A path passes."""
        assert validate_workspace("/repo").valid


class TestValidateSuggestions:
    """Tests for suggestion batch validation."""

    def test_valid_batch(self) -> None:
        """A consistent batch passes without warnings."""
        report = validate_suggestions([_edit("A"), _edit("B", line_start=3, line_end=3, dependencies=["A"])])
        assert report.valid
        assert report.warnings == []

    def test_duplicate_ids(self) -> None:
        """Duplicate IDs are errors."""
        report = validate_suggestions([_edit("A"), _edit("A", file_path="b.py")])
        assert [i.code for i in report.errors] == ["duplicate_id"]

    def test_dangling_dependency(self) -> None:
        """Unknown dependencies are errors."""
        report = validate_suggestions([_edit("A", dependencies=["Z"])])
        assert [i.code for i in report.errors] == ["dangling_dependency"]

    def test_self_dependency_is_warning(self) -> None:
        """An edit depending on itself is reported but does not fail the batch."""
        report = validate_suggestions([_edit("A", dependencies=["A"])])
        assert report.valid
        assert [i.code for i in report.warnings] == ["self_dependency"]

    def test_invalid_fields(self) -> None:
        """Bad line range, confidence and file path are errors."""
        report = validate_suggestions([_edit("A", file_path="", line_start=5, line_end=2, confidence=1.5)])
        codes = {i.code for i in report.errors}
        assert codes == {"empty_file_path", "invalid_line_range", "invalid_confidence"}

    def test_warnings(self) -> None:
        """Low confidence, overlaps and no-ops are warnings."""
        report = validate_suggestions(
            [
                _edit("A", line_start=1, line_end=4, confidence=0.1),
                _edit("B", line_start=3, line_end=5, original_content="y", suggested_content="y"),
            ]
        )
        assert report.valid
        codes = {i.code for i in report.warnings}
        assert codes == {"low_confidence", "overlapping_lines", "no_op"}


class TestRequireValid:
    """Tests for raising validators."""

    def test_require_valid_suggestions_raises(self) -> None:
        """Errors raise ValidationError with the issue report."""
        with pytest.raises(ValidationError) as exc_info:
            require_valid_suggestions([_edit("A", dependencies=["Z"])])
        assert exc_info.value.details["issues"]["valid"] is False

    def test_require_valid_suggestions_returns_report(self) -> None:
        """Valid batches return the report."""
        report = require_valid_suggestions([_edit("A", confidence=0.1)])
        assert len(report.warnings) == 1

    def test_require_valid_start_goal(self) -> None:
        """Empty goals raise with the empty_goal reason."""
        with pytest.raises(ValidationError) as exc_info:
            require_valid_start("/repo", "")
        assert exc_info.value.details["reason"] == "empty_goal"
        assert "Goal is required" in exc_info.value.message

    def test_require_valid_start_workspace_first(self) -> None:
        """Workspace errors are reported before goal errors."""
        with pytest.raises(ValidationError) as exc_info:
            require_valid_start("", "")
        assert exc_info.value.details["reason"] == "empty_workspace"
