"""Data model for next-edit sessions."""

from nextedit.model.models import (
    ALLOWED_TRANSITIONS,
    DEFAULT_SECONDS_PER_EDIT,
    TERMINAL_STATES,
    ActionType,
    AnalysisMethod,
    EditAction,
    EditCategory,
    EditContext,
    EditSequence,
    EditSession,
    EditStatus,
    EditSuggestion,
    SessionProgress,
    SessionStatus,
    SessionSummary,
    UndoLevel,
    can_transition,
    create_action,
    generate_id,
    is_terminal_state,
    utc_now,
)

__all__ = [
    # Enums
    "EditStatus",
    "SessionStatus",
    "ActionType",
    "EditCategory",
    "AnalysisMethod",
    "UndoLevel",
    # Entities
    "EditSuggestion",
    "EditAction",
    "EditSequence",
    "EditContext",
    "EditSession",
    "SessionProgress",
    "SessionSummary",
    # State machine
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATES",
    "can_transition",
    "is_terminal_state",
    # Helpers
    "create_action",
    "generate_id",
    "utc_now",
    "DEFAULT_SECONDS_PER_EDIT",
]
