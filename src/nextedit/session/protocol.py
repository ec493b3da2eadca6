"""Message protocol between a review UI and the session engine.

Requests (``type`` field):
- start {goal, includePatterns?, excludePatterns?, maxFiles?}
- accept {modification?}
- skip {reason?}
- undo {level?}
- getProgress
- endSession

Responses:
- started {sessionId, goal}
- progress {sessionId, progress}
- edit {sessionId, edit, context}
- completed {sessionId, summary}
- error {sessionId?, error: {code, message, details}}

Keys are camelCase on the wire. A controller serves one session at a time
and has at most one edit in flight.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from nextedit.analysis.analyzer import AnalysisOptions
from nextedit.config.schema import AnalysisDefaults
from nextedit.core.error_handling import (
    ErrorContext,
    GracefulErrorHandler,
    create_error_handler,
)
from nextedit.core.exceptions import (
    NoMoreEditsError,
    SessionAlreadyActiveError,
    ValidationError,
)
from nextedit.core.logging import StructuredLogger, get_logger
from nextedit.model.models import SessionStatus
from nextedit.session.session import NextEditSession

Message = dict[str, Any]
Handler = Callable[[Message], Awaitable[list[Message]]]


def to_camel(key: str) -> str:
    """Convert a snake_case key to camelCase."""
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_wire(data: Any) -> Any:
    """Recursively convert dictionary keys to camelCase."""
    if isinstance(data, dict):
        return {to_camel(str(k)): to_wire(v) for k, v in data.items()}
    if isinstance(data, list):
        return [to_wire(item) for item in data]
    return data


class NextEditController:
    """Translates UI messages into session operations."""

    def __init__(
        self,
        engine: NextEditSession,
        workspace_uri: str,
        analysis_defaults: AnalysisDefaults | None = None,
        error_handler: GracefulErrorHandler | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            engine: Session engine
            workspace_uri: Workspace the UI operates on
            analysis_defaults: Defaults for options not given in ``start``
            error_handler: Converts failures to error payloads
            logger: Logger (defaults to the "protocol" component logger)
        """
        self.engine = engine
        self.workspace_uri = workspace_uri
        self.analysis_defaults = analysis_defaults or AnalysisDefaults()
        self._logger = logger or get_logger("protocol")
        self._errors = error_handler or create_error_handler(logger=self._logger)
        self.session_id: str | None = None
        self.current_edit_id: str | None = None
        self._handlers: dict[str, Handler] = {
            "start": self._on_start,
            "accept": self._on_accept,
            "skip": self._on_skip,
            "undo": self._on_undo,
            "getProgress": self._on_get_progress,
            "endSession": self._on_end_session,
        }

    async def handle(self, message: Message) -> list[Message]:
        """Handle one request.

        Never raises; failures become ``error`` responses.

        Args:
            message: Request with a ``type`` field

        Returns:
            Responses to send back, in order
        """
        msg_type = message.get("type") if isinstance(message, dict) else None
        try:
            handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
            if handler is None:
                raise ValidationError(
                    "unknown_message_type",
                    message=f"Unknown message type: {msg_type!r}",
                )
            return await handler(message)
        except Exception as e:
            payload = self._errors.handle_error(
                e,
                ErrorContext(
                    operation=str(msg_type or "unknown"),
                    component="protocol",
                    session_id=self.session_id,
                ),
            )
            response: Message = {"type": "error", "error": payload}
            if self.session_id is not None:
                response["sessionId"] = self.session_id
            return [response]

    def _require_session(self) -> str:
        if self.session_id is None:
            raise ValidationError(
                "no_session",
                message="No session in progress. Send 'start' first.",
            )
        return self.session_id

    def _require_edit_in_flight(self) -> tuple[str, str]:
        session_id = self._require_session()
        if self.current_edit_id is None:
            raise ValidationError(
                "no_edit_in_flight",
                message="No edit is awaiting a decision",
                session_id=session_id,
            )
        return session_id, self.current_edit_id

    async def _progress(self, session_id: str) -> Message:
        progress = await self.engine.get_progress(session_id)
        return {
            "type": "progress",
            "sessionId": session_id,
            "progress": to_wire(progress.to_dict()),
        }

    async def _advance(self, session_id: str) -> list[Message]:
        """Serve the next edit, or complete the session when none remain."""
        self.current_edit_id = None
        try:
            edit, context = await self.engine.get_next_edit(session_id)
        except NoMoreEditsError:
            summary = await self.engine.complete(session_id)
            self.session_id = None
            return [
                {
                    "type": "completed",
                    "sessionId": session_id,
                    "summary": to_wire(summary.to_dict()),
                }
            ]

        self.current_edit_id = edit.id
        return [
            {
                "type": "edit",
                "sessionId": session_id,
                "edit": to_wire(edit.to_dict()),
                "context": to_wire(context.to_dict()),
            }
        ]

    async def _on_start(self, message: Message) -> list[Message]:
        if self.session_id is not None:
            raise SessionAlreadyActiveError(self.session_id)

        options = AnalysisOptions.from_defaults(
            self.analysis_defaults,
            include_patterns=message.get("includePatterns"),
            exclude_patterns=message.get("excludePatterns"),
            max_files=message.get("maxFiles"),
        )
        session = await self.engine.start(
            self.workspace_uri,
            message.get("goal", ""),
            options,
        )
        self.session_id = session.id
        self.current_edit_id = None
        self._logger.info("Session started from UI", session_id=session.id)

        responses: list[Message] = [
            {"type": "started", "sessionId": session.id, "goal": session.goal},
            await self._progress(session.id),
        ]
        responses.extend(await self._advance(session.id))
        return responses

    async def _on_accept(self, message: Message) -> list[Message]:
        session_id, edit_id = self._require_edit_in_flight()
        await self.engine.apply_edit(session_id, edit_id, message.get("modification"))
        self.current_edit_id = None
        return [await self._progress(session_id), *await self._advance(session_id)]

    async def _on_skip(self, message: Message) -> list[Message]:
        session_id, edit_id = self._require_edit_in_flight()
        await self.engine.skip_edit(session_id, edit_id, message.get("reason"))
        self.current_edit_id = None
        return [await self._progress(session_id), *await self._advance(session_id)]

    async def _on_undo(self, message: Message) -> list[Message]:
        session_id = self._require_session()
        await self.engine.undo_last_edit(session_id, message.get("level"))
        return [await self._progress(session_id), *await self._advance(session_id)]

    async def _on_get_progress(self, message: Message) -> list[Message]:
        return [await self._progress(self._require_session())]

    async def _on_end_session(self, message: Message) -> list[Message]:
        session_id = self._require_session()
        session = await self.engine.get_session(session_id)
        if session.status in (SessionStatus.ACTIVE, SessionStatus.PAUSED):
            summary = await self.engine.complete(session_id)
        else:
            summary = await self.engine.get_summary(session_id)

        self.session_id = None
        self.current_edit_id = None
        return [
            {
                "type": "completed",
                "sessionId": session_id,
                "summary": to_wire(summary.to_dict()),
            }
        ]
