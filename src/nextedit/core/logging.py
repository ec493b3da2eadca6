"""Structured logging for nextedit.

Provides:
- JSON-formatted log output
- Context-aware logging
- Log level management
- Session state transition logging
- Edit action and undo/redo logging
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_name(cls, name: str) -> LogLevel:
        """Parse a level name case-insensitively.

        Raises:
            ValueError: If the name is not a known level.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown log level: {name}") from e


@dataclass
class LogEntry:
    """A structured log entry."""

    timestamp: str
    level: str
    message: str
    component: str
    event_type: str | None = None
    session_id: str | None = None
    edit_id: str | None = None
    duration_ms: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if "extra" in data and not data["extra"]:
            del data["extra"]
        return json.dumps(data, default=str)

    def to_human_readable(self) -> str:
        """Convert to human-readable format."""
        parts = [f"[{self.timestamp}]", f"[{self.level}]", f"[{self.component}]"]
        if self.event_type:
            parts.append(f"[{self.event_type}]")
        if self.session_id:
            parts.append(f"[{self.session_id}]")
        parts.append(self.message)
        return " ".join(parts)


class StructuredLogger:
    """Structured logger for the engine.

    Logs events in JSON format with consistent structure.
    Supports:
    - Session state transitions
    - Edit actions (accept, skip, undo, redo)
    - Sequencing results
    """

    def __init__(
        self,
        component: str,
        level: LogLevel = LogLevel.WARNING,
        output: TextIO | None = None,
        json_format: bool = True,
    ) -> None:
        """Initialize logger.

        Args:
            component: Component name (sequencer, executor, session, storage, analyzer)
            level: Minimum log level
            output: Output stream (defaults to stderr)
            json_format: Whether to use JSON format
        """
        self.component = component
        self.level = level
        self.output = output or sys.stderr
        self.json_format = json_format
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context for all log entries."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear persistent context."""
        self._context.clear()

    def with_context(self, **kwargs: Any) -> StructuredLogger:
        """Create a new logger with additional context.

        Args:
            **kwargs: Context key-value pairs

        Returns:
            New logger instance with merged context
        """
        new_logger = StructuredLogger(
            component=self.component,
            level=self.level,
            output=self.output,
            json_format=self.json_format,
        )
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def _log(
        self,
        level: LogLevel,
        message: str,
        event_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Internal log method."""
        if level.value < self.level.value:
            return

        duration_ms = kwargs.pop("duration_ms", None)

        extra = {**self._context, **kwargs}

        entry = LogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            level=level.name,
            message=message,
            component=self.component,
            event_type=event_type,
            session_id=extra.pop("session_id", None),
            edit_id=extra.pop("edit_id", None),
            duration_ms=duration_ms,
            extra=extra,
        )

        if self.json_format:
            self.output.write(entry.to_json() + "\n")
        else:
            self.output.write(entry.to_human_readable() + "\n")
        self.output.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, **kwargs)

    # Specialized logging methods

    def log_state_transition(
        self,
        session_id: str,
        from_state: str,
        to_state: str,
        reason: str = "",
    ) -> None:
        """Log a session state transition.

        Args:
            session_id: Session identifier
            from_state: Previous state
            to_state: New state
            reason: Reason for transition
        """
        self._log(
            LogLevel.INFO,
            f"State transition: {from_state} -> {to_state}",
            event_type="state_transition",
            session_id=session_id,
            from_state=from_state,
            to_state=to_state,
            reason=reason,
        )

    def log_session_start(
        self,
        session_id: str,
        goal: str,
        edit_count: int,
        duration_ms: int | None = None,
    ) -> None:
        """Log session start.

        Args:
            session_id: Session identifier
            goal: Reviewer goal (truncated)
            edit_count: Number of suggestions in the session
            duration_ms: Time spent analyzing and sequencing
        """
        self._log(
            LogLevel.INFO,
            f"Session started: {session_id}",
            event_type="session_start",
            session_id=session_id,
            goal=goal[:200] if goal else "",
            edit_count=edit_count,
            duration_ms=duration_ms,
        )

    def log_session_end(
        self,
        session_id: str,
        final_state: str,
        completed: int,
        skipped: int,
    ) -> None:
        """Log session completion or cancellation.

        Args:
            session_id: Session identifier
            final_state: Final session status
            completed: Number of accepted edits
            skipped: Number of skipped edits
        """
        self._log(
            LogLevel.INFO,
            f"Session ended: {session_id} -> {final_state}",
            event_type="session_end",
            session_id=session_id,
            final_state=final_state,
            completed=completed,
            skipped=skipped,
        )

    def log_edit_action(
        self,
        session_id: str,
        edit_id: str,
        action: str,
        file_path: str = "",
        duration_ms: int | None = None,
    ) -> None:
        """Log a reviewer decision applied to an edit.

        Args:
            session_id: Session identifier
            edit_id: Edit identifier
            action: Action type (accept, skip, modify)
            file_path: Target file
            duration_ms: Time spent applying the action
        """
        self._log(
            LogLevel.INFO,
            f"Edit {action}: {edit_id}",
            event_type="edit_action",
            session_id=session_id,
            edit_id=edit_id,
            action=action,
            file_path=file_path,
            duration_ms=duration_ms,
        )

    def log_undo(
        self,
        session_id: str,
        level: str,
        edit_ids: list[str],
        redo: bool = False,
    ) -> None:
        """Log an undo or redo.

        Args:
            session_id: Session identifier
            level: Undo level (edit, file, all)
            edit_ids: Edits reverted or reapplied, in processing order
            redo: Whether this was a redo
        """
        kind = "redo" if redo else "undo"
        self._log(
            LogLevel.INFO,
            f"{kind.capitalize()} of {len(edit_ids)} edit(s)",
            event_type=kind,
            session_id=session_id,
            undo_level=level,
            edit_ids=edit_ids,
        )

    def log_sequencing(
        self,
        edit_count: int,
        ordered_count: int,
        sequence_count: int,
        cycle_count: int,
    ) -> None:
        """Log a sequencing pass.

        Args:
            edit_count: Number of input edits
            ordered_count: Number of edits in the topological order
            sequence_count: Number of sequences generated
            cycle_count: Number of circular dependencies detected
        """
        level = LogLevel.WARNING if cycle_count else LogLevel.INFO
        self._log(
            level,
            f"Sequenced {ordered_count}/{edit_count} edits into {sequence_count} sequences",
            event_type="sequencing",
            edit_count=edit_count,
            ordered_count=ordered_count,
            sequence_count=sequence_count,
            cycle_count=cycle_count,
        )


# Defaults applied to loggers created after configure_logging()
_default_level: LogLevel = LogLevel.WARNING
_default_json_format: bool = True
_default_output: TextIO | None = None


def create_logger(
    component: str,
    level: LogLevel | None = None,
    json_format: bool | None = None,
    output: TextIO | None = None,
) -> StructuredLogger:
    """Create a structured logger.

    Args:
        component: Component name
        level: Minimum log level (defaults to the configured level)
        json_format: Whether to use JSON format (defaults to configured format)
        output: Output stream (defaults to configured stream or stderr)

    Returns:
        Configured logger
    """
    return StructuredLogger(
        component=component,
        level=level or _default_level,
        json_format=_default_json_format if json_format is None else json_format,
        output=output or _default_output,
    )


# Global loggers for each component
_loggers: dict[str, StructuredLogger] = {}


def get_logger(component: str) -> StructuredLogger:
    """Get or create a logger for a component.

    Args:
        component: Component name

    Returns:
        Logger instance
    """
    if component not in _loggers:
        _loggers[component] = create_logger(component)
    return _loggers[component]


def reset_loggers() -> None:
    """Reset all global loggers. Useful for testing."""
    global _default_level, _default_json_format, _default_output
    _loggers.clear()
    _default_level = LogLevel.WARNING
    _default_json_format = True
    _default_output = None


def configure_logging(
    level: LogLevel = LogLevel.WARNING,
    json_format: bool = True,
    output: TextIO | None = None,
) -> None:
    """Configure global logging settings.

    Applies to existing loggers and to loggers created later.

    Args:
        level: Minimum log level for all loggers
        json_format: Whether to use JSON format
        output: Output stream
    """
    global _default_level, _default_json_format, _default_output
    _default_level = level
    _default_json_format = json_format
    _default_output = output
    for logger in _loggers.values():
        logger.level = level
        logger.json_format = json_format
        if output is not None:
            logger.output = output
