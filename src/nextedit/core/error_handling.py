"""Centralized error handling with graceful degradation.

Provides:
- Re-wrapping of untagged exceptions at public entry points
- Context-aware error logging
- Conversion of any exception into a wire error payload
"""

from __future__ import annotations

import contextlib
import traceback
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from nextedit.core.exceptions import (
    NextEditError,
    NextEditErrorCode,
    NoMoreEditsError,
    create_error,
)

if TYPE_CHECKING:
    from nextedit.core.logging import StructuredLogger


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = "warning"  # Non-fatal, continue
    ERROR = "error"  # Operation failed, session intact
    CRITICAL = "critical"  # Session should move to the error state


@dataclass
class ErrorContext:
    """Context information for error handling."""

    operation: str  # What was being attempted
    component: str  # Which component failed (session, executor, protocol)
    session_id: str | None = None
    fallback_code: NextEditErrorCode = NextEditErrorCode.APPLY_FAILED
    additional_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "component": self.component,
        }
        if self.session_id is not None:
            result["session_id"] = self.session_id
        if self.additional_info:
            result["additional_info"] = self.additional_info
        return result


@contextlib.contextmanager
def tagged_errors(
    operation: str,
    code: NextEditErrorCode,
    **details: Any,
) -> Iterator[None]:
    """Re-wrap untagged exceptions raised inside the block.

    NextEditError and NoMoreEditsError pass through unchanged. Anything else is
    converted to the error class registered for ``code`` with the
    operation name and the original message in its details.

    Args:
        operation: Name of the public operation (e.g. "apply_edit").
        code: Error code for untagged failures.
        **details: Extra details (session_id, edit_id, ...).
    """
    try:
        yield
    except (NextEditError, NoMoreEditsError):
        raise
    except Exception as e:
        reason = str(e) or type(e).__name__
        raise create_error(code, operation=operation, reason=reason, **details) from e


class GracefulErrorHandler:
    """Handles errors at process boundaries without crashing.

    Ensures:
    - Errors are logged with full context
    - Callers receive a structured payload instead of an exception
    - The host process remains stable after errors
    """

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        on_error: Callable[[ErrorContext, Exception], None] | None = None,
    ) -> None:
        """Initialize error handler.

        Args:
            logger: Structured logger instance
            on_error: Callback for error notifications
        """
        self._logger = logger
        self._on_error = on_error

    def handle_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> dict[str, Any]:
        """Handle an error gracefully.

        Args:
            error: The exception that occurred
            context: Error context information
            severity: How severe the error is

        Returns:
            Wire error payload ``{code, message, details}``
        """
        self._log_error(error, context, severity)

        # Callback errors must never mask the original one
        if self._on_error:
            with contextlib.suppress(Exception):
                self._on_error(context, error)

        return self.to_payload(error, context)

    def to_payload(self, error: Exception, context: ErrorContext) -> dict[str, Any]:
        """Convert an exception into a wire error payload.

        Args:
            error: The exception to convert
            context: Error context supplying the fallback code

        Returns:
            Payload dictionary
        """
        if isinstance(error, NextEditError):
            return error.to_dict()

        details: dict[str, Any] = {
            "operation": context.operation,
            "reason": str(error) or type(error).__name__,
        }
        if context.session_id is not None:
            details["session_id"] = context.session_id
        return create_error(context.fallback_code, **details).to_dict()

    def _log_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity,
    ) -> None:
        """Log error with full context."""
        if self._logger is None:
            return

        log_data: dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "severity": severity.value,
            **context.to_dict(),
        }
        if isinstance(error, NextEditError):
            log_data["error_code"] = error.code.value
        else:
            log_data["traceback"] = "".join(traceback.format_exception(error))

        if severity == ErrorSeverity.CRITICAL:
            self._logger.critical("Critical error occurred", **log_data)
        elif severity == ErrorSeverity.ERROR:
            self._logger.error("Error occurred", **log_data)
        else:
            self._logger.warning("Warning occurred", **log_data)


def create_error_handler(
    logger: StructuredLogger | None = None,
    on_error: Callable[[ErrorContext, Exception], None] | None = None,
) -> GracefulErrorHandler:
    """Create a graceful error handler.

    Args:
        logger: Structured logger instance
        on_error: Error callback

    Returns:
        Configured error handler
    """
    return GracefulErrorHandler(logger=logger, on_error=on_error)
