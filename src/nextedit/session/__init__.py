"""Review sessions: engine, UI protocol and terminal display."""

from nextedit.session.display import SessionDisplay, create_session_display
from nextedit.session.protocol import NextEditController, to_camel, to_wire
from nextedit.session.session import (
    NextEditSession,
    create_next_edit_session,
    progress_percentage,
)

__all__ = [
    # Engine
    "NextEditSession",
    "create_next_edit_session",
    "progress_percentage",
    # Protocol
    "NextEditController",
    "to_camel",
    "to_wire",
    # Display
    "SessionDisplay",
    "create_session_display",
]
