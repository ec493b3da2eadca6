"""Entity definitions and enumerated states for next-edit sessions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Review time budget per edit, used for estimates
DEFAULT_SECONDS_PER_EDIT = 30


class EditStatus(Enum):
    """Lifecycle of a single suggestion."""

    PENDING = "pending"
    REVIEWING = "reviewing"
    ACCEPTED = "accepted"
    SKIPPED = "skipped"
    MODIFIED = "modified"
    ERROR = "error"


class SessionStatus(Enum):
    """Session states."""

    INITIALIZING = "initializing"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


class ActionType(Enum):
    """Reviewer decisions recorded as actions."""

    ACCEPT = "accept"
    SKIP = "skip"
    MODIFY = "modify"
    UNDO = "undo"
    REDO = "redo"


class EditCategory(Enum):
    """Kind of change a suggestion makes."""

    REFACTOR = "refactor"
    UPGRADE = "upgrade"
    SCHEMA = "schema"
    FIX = "fix"
    STYLE = "style"


class AnalysisMethod(Enum):
    """How a suggestion was found."""

    SEMANTIC = "semantic"
    PATTERN = "pattern"
    HYBRID = "hybrid"
    MANUAL = "manual"


class UndoLevel(Enum):
    """Granularity of an undo."""

    EDIT = "edit"
    FILE = "file"
    ALL = "all"


# Terminal states - session cannot transition from these
TERMINAL_STATES = frozenset({
    SessionStatus.COMPLETED,
    SessionStatus.CANCELLED,
    SessionStatus.ERROR,
})

ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.INITIALIZING: frozenset({
        SessionStatus.ACTIVE,
        SessionStatus.CANCELLED,
        SessionStatus.ERROR,
    }),
    SessionStatus.ACTIVE: frozenset({
        SessionStatus.PAUSED,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.ERROR,
    }),
    SessionStatus.PAUSED: frozenset({
        SessionStatus.ACTIVE,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.ERROR,
    }),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.ERROR: frozenset(),
}


def is_terminal_state(status: SessionStatus) -> bool:
    """Check if a status is terminal (no further transitions possible)."""
    return status in TERMINAL_STATES


def can_transition(from_status: SessionStatus, to_status: SessionStatus) -> bool:
    """Check whether the state machine allows a transition."""
    return to_status in ALLOWED_TRANSITIONS[from_status]


def generate_id() -> str:
    """Generate a unique entity ID."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current UTC time."""
    return datetime.now(UTC)


def _parse_datetime(value: str | None) -> datetime:
    if not value:
        return utc_now()
    return datetime.fromisoformat(value)


@dataclass
class EditSuggestion:
    """A single proposed text replacement in one file.

    Attributes:
        id: Unique suggestion identifier
        session_id: Owning session
        file_path: Target file (absolute, or relative to the workspace)
        line_start: First affected line (1-indexed, inclusive)
        line_end: Last affected line (1-indexed, inclusive)
        original_content: Text block to replace
        suggested_content: Replacement text block
        rationale: Why the change is proposed
        confidence: Score in [0, 1]
        dependencies: IDs of suggestions that must be accepted first
        dependents: IDs of suggestions that depend on this one
        status: Review status
        category: Kind of change
        priority: Ordering priority (lower runs first)
        language: Source language of the target file
        user_modification: Reviewer-supplied replacement, if any
    """

    id: str
    session_id: str
    file_path: str
    line_start: int
    line_end: int
    original_content: str
    suggested_content: str
    rationale: str = ""
    confidence: float = 0.5
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    status: EditStatus = EditStatus.PENDING
    category: EditCategory = EditCategory.REFACTOR
    priority: int = 1
    language: str = "unknown"
    user_modification: str | None = None

    def is_pending(self) -> bool:
        """Check if the suggestion still awaits a decision."""
        return self.status == EditStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "file_path": self.file_path,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "original_content": self.original_content,
            "suggested_content": self.suggested_content,
            "rationale": self.rationale,
            "confidence": self.confidence,
            "dependencies": list(self.dependencies),
            "dependents": list(self.dependents),
            "status": self.status.value,
            "category": self.category.value,
            "priority": self.priority,
            "language": self.language,
            "user_modification": self.user_modification,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditSuggestion:
        """Create from a dictionary produced by to_dict()."""
        return cls(
            id=data["id"],
            session_id=data.get("session_id", ""),
            file_path=data["file_path"],
            line_start=int(data["line_start"]),
            line_end=int(data["line_end"]),
            original_content=data.get("original_content", ""),
            suggested_content=data.get("suggested_content", ""),
            rationale=data.get("rationale", ""),
            confidence=float(data.get("confidence", 0.5)),
            dependencies=list(data.get("dependencies", [])),
            dependents=list(data.get("dependents", [])),
            status=EditStatus(data.get("status", EditStatus.PENDING.value)),
            category=EditCategory(data.get("category", EditCategory.REFACTOR.value)),
            priority=int(data.get("priority", 1)),
            language=data.get("language", "unknown"),
            user_modification=data.get("user_modification"),
        )


@dataclass(frozen=True)
class EditAction:
    """Immutable record of one reviewer decision.

    ``original_content`` and ``applied_content`` are whole-file snapshots
    taken around the change; undo and redo write them back verbatim.
    """

    id: str
    session_id: str
    edit_id: str
    action: ActionType
    timestamp: datetime
    original_content: str
    applied_content: str | None = None
    duration_ms: int = 0
    user_notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "edit_id": self.edit_id,
            "action": self.action.value,
            "timestamp": self.timestamp.isoformat(),
            "original_content": self.original_content,
            "applied_content": self.applied_content,
            "duration_ms": self.duration_ms,
            "user_notes": self.user_notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditAction:
        """Create from a dictionary produced by to_dict()."""
        return cls(
            id=data["id"],
            session_id=data["session_id"],
            edit_id=data["edit_id"],
            action=ActionType(data["action"]),
            timestamp=_parse_datetime(data.get("timestamp")),
            original_content=data.get("original_content", ""),
            applied_content=data.get("applied_content"),
            duration_ms=int(data.get("duration_ms", 0)),
            user_notes=data.get("user_notes"),
        )


def create_action(
    edit: EditSuggestion,
    action: ActionType,
    original_content: str,
    applied_content: str | None = None,
    duration_ms: int = 0,
    user_notes: str | None = None,
) -> EditAction:
    """Create an action record for an edit.

    Args:
        edit: The suggestion acted upon
        action: Decision type
        original_content: File content before the action
        applied_content: File content after the action (None for skips)
        duration_ms: Time spent on the action
        user_notes: Optional reviewer notes

    Returns:
        New EditAction
    """
    return EditAction(
        id=generate_id(),
        session_id=edit.session_id,
        edit_id=edit.id,
        action=action,
        timestamp=utc_now(),
        original_content=original_content,
        applied_content=applied_content,
        duration_ms=duration_ms,
        user_notes=user_notes,
    )


@dataclass
class EditSequence:
    """A dependency-coherent batch of suggestions."""

    id: str
    session_id: str
    name: str
    edit_ids: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    estimated_time: int = 0
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "name": self.name,
            "edit_ids": list(self.edit_ids),
            "dependencies": list(self.dependencies),
            "estimated_time": self.estimated_time,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class EditContext:
    """Read-only metadata about a suggestion's surroundings."""

    id: str
    edit_id: str
    surrounding_lines: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)
    analysis_method: AnalysisMethod = AnalysisMethod.HYBRID
    semantic_score: float = 0.0
    file_hash: str = ""
    function_name: str | None = None
    class_name: str | None = None
    module_name: str | None = None
    matched_pattern: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "edit_id": self.edit_id,
            "function_name": self.function_name,
            "class_name": self.class_name,
            "module_name": self.module_name,
            "surrounding_lines": list(self.surrounding_lines),
            "imports": list(self.imports),
            "exports": list(self.exports),
            "analysis_method": self.analysis_method.value,
            "matched_pattern": self.matched_pattern,
            "semantic_score": self.semantic_score,
            "file_hash": self.file_hash,
        }


@dataclass
class EditSession:
    """The full reviewer interaction lifecycle over one goal.

    Attributes:
        id: Unique session identifier
        workspace_uri: Workspace root the edits apply to
        goal: Reviewer goal description
        status: Current session status
        edits: All suggestions, in arrival order
        current_edit_index: Number of decisions made so far
        completed_edits: IDs of accepted suggestions
        skipped_edits: IDs of skipped suggestions
        undo_stack: Applied actions, oldest first
        redo_stack: Undone actions, in the order they were reverted
        total_files: Number of distinct files analyzed
        estimated_time: Estimated review time in seconds
        created_at: UTC creation timestamp
        updated_at: UTC timestamp of the last mutation
    """

    id: str
    workspace_uri: str
    goal: str
    status: SessionStatus = SessionStatus.INITIALIZING
    edits: list[EditSuggestion] = field(default_factory=list)
    current_edit_index: int = 0
    completed_edits: list[str] = field(default_factory=list)
    skipped_edits: list[str] = field(default_factory=list)
    undo_stack: list[EditAction] = field(default_factory=list)
    redo_stack: list[EditAction] = field(default_factory=list)
    total_files: int = 0
    estimated_time: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_terminal(self) -> bool:
        """Check if session is in a terminal state."""
        return is_terminal_state(self.status)

    def find_edit(self, edit_id: str) -> EditSuggestion | None:
        """Find a suggestion by ID."""
        for edit in self.edits:
            if edit.id == edit_id:
                return edit
        return None

    def pending_edits(self) -> list[EditSuggestion]:
        """Suggestions still awaiting a decision, in arrival order."""
        return [edit for edit in self.edits if edit.is_pending()]

    def touch(self) -> None:
        """Record a mutation."""
        self.updated_at = utc_now()

    def to_dict(self) -> dict[str, Any]:
        """Convert session to dictionary for serialization."""
        return {
            "id": self.id,
            "workspace_uri": self.workspace_uri,
            "goal": self.goal,
            "status": self.status.value,
            "edits": [edit.to_dict() for edit in self.edits],
            "current_edit_index": self.current_edit_index,
            "completed_edits": list(self.completed_edits),
            "skipped_edits": list(self.skipped_edits),
            "undo_stack": [action.to_dict() for action in self.undo_stack],
            "redo_stack": [action.to_dict() for action in self.redo_stack],
            "total_files": self.total_files,
            "estimated_time": self.estimated_time,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditSession:
        """Create from a dictionary produced by to_dict()."""
        return cls(
            id=data["id"],
            workspace_uri=data["workspace_uri"],
            goal=data["goal"],
            status=SessionStatus(data["status"]),
            edits=[EditSuggestion.from_dict(e) for e in data.get("edits", [])],
            current_edit_index=int(data.get("current_edit_index", 0)),
            completed_edits=list(data.get("completed_edits", [])),
            skipped_edits=list(data.get("skipped_edits", [])),
            undo_stack=[EditAction.from_dict(a) for a in data.get("undo_stack", [])],
            redo_stack=[EditAction.from_dict(a) for a in data.get("redo_stack", [])],
            total_files=int(data.get("total_files", 0)),
            estimated_time=int(data.get("estimated_time", 0)),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass
class SessionProgress:
    """Progress counters derived from a session."""

    current: int
    total: int
    completed: int
    skipped: int
    remaining: int
    percentage: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "current": self.current,
            "total": self.total,
            "completed": self.completed,
            "skipped": self.skipped,
            "remaining": self.remaining,
            "percentage": self.percentage,
        }


@dataclass
class SessionSummary:
    """Summary of a completed or paused session."""

    session_id: str
    goal: str
    status: str
    total_edits: int
    completed_edits: int
    skipped_edits: int
    modified_edits: int
    pending_edits: int
    errors: int
    files_changed: list[str] = field(default_factory=list)
    estimated_time_remaining: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "session_id": self.session_id,
            "goal": self.goal,
            "status": self.status,
            "total_edits": self.total_edits,
            "completed_edits": self.completed_edits,
            "skipped_edits": self.skipped_edits,
            "modified_edits": self.modified_edits,
            "pending_edits": self.pending_edits,
            "errors": self.errors,
            "files_changed": list(self.files_changed),
            "estimated_time_remaining": self.estimated_time_remaining,
        }
