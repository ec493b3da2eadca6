"""Core infrastructure for nextedit.

Provides:
- Error taxonomy
- Structured logging
- Error handling at process boundaries
- Input validation
"""

from nextedit.core.error_handling import (
    ErrorContext,
    ErrorSeverity,
    GracefulErrorHandler,
    create_error_handler,
    tagged_errors,
)
from nextedit.core.exceptions import (
    AnalysisFailedError,
    ApplyFailedError,
    DependencyNotMetError,
    EditAlreadyProcessedError,
    EditNotFoundError,
    FileNotFoundInStoreError,
    GitError,
    InvalidSessionIdError,
    NextEditError,
    NextEditErrorCode,
    NoMoreEditsError,
    SessionAlreadyActiveError,
    SessionNotFoundError,
    UndoFailedError,
    ValidationError,
    create_error,
)
from nextedit.core.logging import (
    LogEntry,
    LogLevel,
    StructuredLogger,
    configure_logging,
    create_logger,
    get_logger,
    reset_loggers,
)
from nextedit.core.validation import (
    LOW_CONFIDENCE_THRESHOLD,
    MAX_GOAL_LENGTH,
    Issue,
    IssueReport,
    require_valid_start,
    require_valid_suggestions,
    validate_goal,
    validate_suggestions,
    validate_workspace,
)

__all__ = [
    # Errors
    "NextEditErrorCode",
    "NextEditError",
    "SessionNotFoundError",
    "SessionAlreadyActiveError",
    "InvalidSessionIdError",
    "EditNotFoundError",
    "EditAlreadyProcessedError",
    "DependencyNotMetError",
    "FileNotFoundInStoreError",
    "AnalysisFailedError",
    "ApplyFailedError",
    "UndoFailedError",
    "GitError",
    "ValidationError",
    "NoMoreEditsError",
    "create_error",
    # Logging
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "create_logger",
    "get_logger",
    "reset_loggers",
    "configure_logging",
    # Error handling
    "ErrorSeverity",
    "ErrorContext",
    "GracefulErrorHandler",
    "create_error_handler",
    "tagged_errors",
    # Validation
    "Issue",
    "IssueReport",
    "validate_goal",
    "validate_workspace",
    "validate_suggestions",
    "require_valid_suggestions",
    "require_valid_start",
    "MAX_GOAL_LENGTH",
    "LOW_CONFIDENCE_THRESHOLD",
]
