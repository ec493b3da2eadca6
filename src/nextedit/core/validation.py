"""Input validation for next-edit sessions.

Validates:
- Goal description is non-empty
- Workspace URI is non-empty
- Suggestion batches are internally consistent
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nextedit.core.exceptions import ValidationError

if TYPE_CHECKING:
    from nextedit.model.models import EditSuggestion


# Validation constants
MAX_GOAL_LENGTH = 10000
LOW_CONFIDENCE_THRESHOLD = 0.3


@dataclass(frozen=True)
class Issue:
    """A single validation finding."""

    code: str
    message: str
    edit_id: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary."""
        return {"code": self.code, "message": self.message, "edit_id": self.edit_id}


@dataclass
class IssueReport:
    """Result of validation, with errors and warnings kept apart."""

    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        """True when there are no errors (warnings are allowed)."""
        return not self.errors

    def add_error(self, code: str, message: str, edit_id: str | None = None) -> None:
        """Add an error to the report."""
        self.errors.append(Issue(code=code, message=message, edit_id=edit_id))

    def add_warning(self, code: str, message: str, edit_id: str | None = None) -> None:
        """Add a warning to the report."""
        self.warnings.append(Issue(code=code, message=message, edit_id=edit_id))

    def merge(self, other: IssueReport) -> IssueReport:
        """Merge another report into this one.

        Args:
            other: Another report

        Returns:
            Self for chaining
        """
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


def validate_goal(goal: str | None) -> IssueReport:
    """Validate a goal description.

    Args:
        goal: The goal to validate

    Returns:
        IssueReport
    """
    report = IssueReport()

    if not goal or not goal.strip():
        report.add_error(
            "empty_goal",
            "Goal is required. Please describe what you want to accomplish.",
        )
        return report

    if len(goal) > MAX_GOAL_LENGTH:
        report.add_error(
            "goal_too_long",
            f"Goal exceeds maximum length ({len(goal)} > {MAX_GOAL_LENGTH} characters)",
        )

    return report


def validate_workspace(workspace_uri: str | None) -> IssueReport:
    """Validate a workspace URI."""
    report = IssueReport()
    if not workspace_uri or not workspace_uri.strip():
        report.add_error(
            "empty_workspace",
            "Workspace URI is required. Please provide a valid workspace path.",
        )
    return report


def _check_fields(edit: EditSuggestion, report: IssueReport) -> None:
    if not edit.file_path:
        report.add_error("empty_file_path", f"Edit {edit.id} has no file path", edit.id)

    if edit.line_start < 1 or edit.line_end < edit.line_start:
        report.add_error(
            "invalid_line_range",
            f"Edit {edit.id} has invalid line range {edit.line_start}-{edit.line_end}",
            edit.id,
        )

    if not 0.0 <= edit.confidence <= 1.0:
        report.add_error(
            "invalid_confidence",
            f"Edit {edit.id} has confidence {edit.confidence} outside [0, 1]",
            edit.id,
        )
    elif edit.confidence < LOW_CONFIDENCE_THRESHOLD:
        report.add_warning(
            "low_confidence",
            f"Edit {edit.id} has low confidence ({edit.confidence:.2f})",
            edit.id,
        )

    if edit.original_content == edit.suggested_content:
        report.add_warning("no_op", f"Edit {edit.id} does not change anything", edit.id)


def _check_overlaps(edits: Sequence[EditSuggestion], report: IssueReport) -> None:
    by_file: dict[str, list[EditSuggestion]] = defaultdict(list)
    for edit in edits:
        by_file[edit.file_path].append(edit)

    for file_path, file_edits in by_file.items():
        ordered = sorted(file_edits, key=lambda e: (e.line_start, e.line_end))
        for previous, current in zip(ordered, ordered[1:]):
            if current.line_start <= previous.line_end:
                report.add_warning(
                    "overlapping_lines",
                    f"Edits {previous.id} and {current.id} overlap in {file_path} "
                    f"(lines {current.line_start}-{previous.line_end})",
                    current.id,
                )


def validate_suggestions(edits: Sequence[EditSuggestion]) -> IssueReport:
    """Validate a batch of suggestions.

    Errors: duplicate IDs, dangling dependencies, invalid line ranges,
    out-of-range confidence, missing file paths.
    Warnings: self dependencies (a one-edit cycle), low confidence,
    overlapping line ranges in one file, no-op edits.

    Args:
        edits: Suggestions produced by an analyzer

    Returns:
        IssueReport
    """
    report = IssueReport()
    seen: set[str] = set()

    for edit in edits:
        if edit.id in seen:
            report.add_error("duplicate_id", f"Duplicate edit ID: {edit.id}", edit.id)
        seen.add(edit.id)

    for edit in edits:
        _check_fields(edit, report)
        for dep_id in edit.dependencies:
            if dep_id == edit.id:
                report.add_warning(
                    "self_dependency", f"Edit {edit.id} depends on itself", edit.id
                )
            elif dep_id not in seen:
                report.add_error(
                    "dangling_dependency",
                    f"Edit {edit.id} depends on unknown edit {dep_id}",
                    edit.id,
                )

    _check_overlaps(edits, report)
    return report


def require_valid_suggestions(edits: Sequence[EditSuggestion]) -> IssueReport:
    """Validate suggestions and raise on errors.

    Args:
        edits: Suggestions to validate

    Returns:
        IssueReport (possibly with warnings) if valid

    Raises:
        ValidationError: If the report contains errors
    """
    report = validate_suggestions(edits)
    if not report.valid:
        raise ValidationError(
            "; ".join(issue.message for issue in report.errors),
            issues=report.to_dict(),
        )
    return report


def require_valid_start(workspace_uri: str | None, goal: str | None) -> None:
    """Validate session start inputs.

    Raises:
        ValidationError: If the workspace or goal is missing
    """
    report = validate_workspace(workspace_uri).merge(validate_goal(goal))
    if not report.valid:
        first = report.errors[0]
        raise ValidationError(first.code, message=first.message, issues=report.to_dict())
