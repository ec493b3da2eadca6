"""Next-edit exceptions hierarchy.

Every engine error carries a code from a closed set plus a structured
details mapping. Messages are rendered from the code and the details so
callers can handle errors programmatically and still show something
readable.
"""

from enum import Enum
from typing import Any


class NextEditErrorCode(Enum):
    """Closed set of engine error kinds."""

    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_ALREADY_ACTIVE = "SESSION_ALREADY_ACTIVE"
    INVALID_SESSION_ID = "INVALID_SESSION_ID"
    EDIT_NOT_FOUND = "EDIT_NOT_FOUND"
    EDIT_ALREADY_PROCESSED = "EDIT_ALREADY_PROCESSED"
    DEPENDENCY_NOT_MET = "DEPENDENCY_NOT_MET"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    APPLY_FAILED = "APPLY_FAILED"
    UNDO_FAILED = "UNDO_FAILED"
    GIT_ERROR = "GIT_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


_MESSAGE_TEMPLATES: dict[NextEditErrorCode, str] = {
    NextEditErrorCode.SESSION_NOT_FOUND: "Session not found: {session_id}",
    NextEditErrorCode.SESSION_ALREADY_ACTIVE: "Session is already active: {session_id}",
    NextEditErrorCode.INVALID_SESSION_ID: "Invalid session ID: {session_id!r}",
    NextEditErrorCode.EDIT_NOT_FOUND: "Edit {edit_id} not found in session {session_id}",
    NextEditErrorCode.EDIT_ALREADY_PROCESSED: "Edit {edit_id} was already processed (status: {status})",
    NextEditErrorCode.DEPENDENCY_NOT_MET: "Edit {edit_id} depends on unfinished edits: {missing}",
    NextEditErrorCode.FILE_NOT_FOUND: "File not found: {file_path}",
    NextEditErrorCode.ANALYSIS_FAILED: "Analysis failed: {reason}",
    NextEditErrorCode.APPLY_FAILED: "Failed to apply changes to {file_path}: {reason}",
    NextEditErrorCode.UNDO_FAILED: "Undo failed for session {session_id}: {reason}",
    NextEditErrorCode.GIT_ERROR: "Diff generation failed: {reason}",
    NextEditErrorCode.VALIDATION_ERROR: "Validation failed: {reason}",
}


class _Missing(dict[str, Any]):
    """Format mapping that renders absent keys as '?'."""

    def __missing__(self, key: str) -> str:
        return "?"


def render_message(code: NextEditErrorCode, details: dict[str, Any]) -> str:
    """Render the human-readable message for an error code.

    Args:
        code: Error code.
        details: Structured details used to fill the template.

    Returns:
        Message string.
    """
    template = _MESSAGE_TEMPLATES[code]
    message = template.format_map(_Missing(details))
    operation = details.get("operation")
    if operation:
        message = f"{operation}: {message}"
    return message


class NextEditError(Exception):
    """Base exception for all engine errors."""

    code: NextEditErrorCode = NextEditErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        details: dict[str, Any] | None = None,
        message: str | None = None,
        code: NextEditErrorCode | None = None,
    ) -> None:
        """Initialize NextEditError.

        Args:
            details: Structured details for programmatic handling.
            message: Explicit message (input-validation guards only).
            code: Override for the class-level code.
        """
        if code is not None:
            self.code = code
        self.details: dict[str, Any] = dict(details or {})
        self.message = message or render_message(self.code, self.details)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire error payload."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class SessionNotFoundError(NextEditError):
    """No session stored under the given ID."""

    code = NextEditErrorCode.SESSION_NOT_FOUND

    def __init__(self, session_id: str, **details: Any) -> None:
        super().__init__({"session_id": session_id, **details})


class SessionAlreadyActiveError(NextEditError):
    """Session is already active."""

    code = NextEditErrorCode.SESSION_ALREADY_ACTIVE

    def __init__(self, session_id: str, **details: Any) -> None:
        super().__init__({"session_id": session_id, **details})


class InvalidSessionIdError(NextEditError):
    """Session ID is empty or malformed."""

    code = NextEditErrorCode.INVALID_SESSION_ID

    def __init__(self, session_id: str | None) -> None:
        super().__init__({"session_id": session_id})


class EditNotFoundError(NextEditError):
    """Edit ID is not part of the session."""

    code = NextEditErrorCode.EDIT_NOT_FOUND

    def __init__(self, edit_id: str, session_id: str | None = None) -> None:
        super().__init__({"edit_id": edit_id, "session_id": session_id})


class EditAlreadyProcessedError(NextEditError):
    """Edit has already been accepted or skipped."""

    code = NextEditErrorCode.EDIT_ALREADY_PROCESSED

    def __init__(self, edit_id: str, status: str) -> None:
        super().__init__({"edit_id": edit_id, "status": status})


class DependencyNotMetError(NextEditError):
    """Edit has dependencies that are not completed yet."""

    code = NextEditErrorCode.DEPENDENCY_NOT_MET

    def __init__(self, edit_id: str, missing: list[str]) -> None:
        super().__init__({"edit_id": edit_id, "missing": missing})


class FileNotFoundInStoreError(NextEditError):
    """Target file does not exist in the file store."""

    code = NextEditErrorCode.FILE_NOT_FOUND

    def __init__(self, file_path: str) -> None:
        super().__init__({"file_path": file_path})


class AnalysisFailedError(NextEditError):
    """Analyzer could not produce suggestions."""

    code = NextEditErrorCode.ANALYSIS_FAILED

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__({"reason": reason, **details})


class ApplyFailedError(NextEditError):
    """An edit could not be applied."""

    code = NextEditErrorCode.APPLY_FAILED

    def __init__(self, file_path: str, reason: str, **details: Any) -> None:
        super().__init__({"file_path": file_path, "reason": reason, **details})


class UndoFailedError(NextEditError):
    """Undo or redo could not restore file content.

    Attributes:
        reverted: Actions already written back before the failure (a
            multi-action undo stops at the first write that fails)
    """

    code = NextEditErrorCode.UNDO_FAILED
    reverted: list[Any] = []

    def __init__(
        self,
        session_id: str,
        reason: str,
        reverted: list[Any] | None = None,
        **details: Any,
    ) -> None:
        self.reverted = list(reverted or [])
        if self.reverted:
            details["reverted_edit_ids"] = [action.edit_id for action in self.reverted]
        super().__init__({"session_id": session_id, "reason": reason, **details})


class GitError(NextEditError):
    """Diff rendering failed."""

    code = NextEditErrorCode.GIT_ERROR

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__({"reason": reason, **details})


class ValidationError(NextEditError):
    """Input validation failed.

    Validation guards may pass an explicit message; otherwise the message
    is rendered from ``reason``.
    """

    code = NextEditErrorCode.VALIDATION_ERROR

    def __init__(self, reason: str, message: str | None = None, **details: Any) -> None:
        super().__init__({"reason": reason, **details}, message=message)


class NoMoreEditsError(Exception):
    """Raised by get_next_edit when no pending edits remain.

    Not a NextEditError: callers treat it as the end of the review, not a fault.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(
            "No more edits to process. All edits have been completed or skipped."
        )


_CODE_TO_CLASS: dict[NextEditErrorCode, type[NextEditError]] = {
    NextEditErrorCode.SESSION_NOT_FOUND: SessionNotFoundError,
    NextEditErrorCode.SESSION_ALREADY_ACTIVE: SessionAlreadyActiveError,
    NextEditErrorCode.INVALID_SESSION_ID: InvalidSessionIdError,
    NextEditErrorCode.EDIT_NOT_FOUND: EditNotFoundError,
    NextEditErrorCode.EDIT_ALREADY_PROCESSED: EditAlreadyProcessedError,
    NextEditErrorCode.DEPENDENCY_NOT_MET: DependencyNotMetError,
    NextEditErrorCode.FILE_NOT_FOUND: FileNotFoundInStoreError,
    NextEditErrorCode.ANALYSIS_FAILED: AnalysisFailedError,
    NextEditErrorCode.APPLY_FAILED: ApplyFailedError,
    NextEditErrorCode.UNDO_FAILED: UndoFailedError,
    NextEditErrorCode.GIT_ERROR: GitError,
    NextEditErrorCode.VALIDATION_ERROR: ValidationError,
}


def create_error(code: NextEditErrorCode, **details: Any) -> NextEditError:
    """Create an error of the class registered for ``code``.

    Bypasses the subclass constructors so any details bag can be attached.

    Args:
        code: Error code.
        **details: Structured details.

    Returns:
        NextEditError instance of the matching subclass.
    """
    error_class = _CODE_TO_CLASS[code]
    error = error_class.__new__(error_class)
    NextEditError.__init__(error, details, code=code)
    return error
