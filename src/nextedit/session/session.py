"""Next-edit session manager.

Coordinates the reviewer loop over a batch of suggestions:

    start -> get_next_edit -> apply_edit / skip_edit -> ... -> complete

Every public operation is async. Mutating operations hold a per-session
asyncio.Lock so two callers never interleave writes to the same session.
Each entry point re-wraps untagged failures with the error code of its
operation family (see tagged_errors).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from pathlib import Path

from nextedit.analysis.analyzer import AnalysisOptions, Analyzer, create_analyzer
from nextedit.config.schema import NextEditConfig, SessionConfig
from nextedit.core.error_handling import tagged_errors
from nextedit.core.exceptions import (
    ApplyFailedError,
    DependencyNotMetError,
    EditAlreadyProcessedError,
    EditNotFoundError,
    InvalidSessionIdError,
    NextEditError,
    NextEditErrorCode,
    NoMoreEditsError,
    SessionAlreadyActiveError,
    SessionNotFoundError,
    UndoFailedError,
    ValidationError,
)
from nextedit.core.logging import StructuredLogger, get_logger
from nextedit.core.validation import require_valid_start, require_valid_suggestions
from nextedit.executor.diff import FileDiff
from nextedit.executor.executor import BulkApplyResult, EditExecutor, FailedEdit
from nextedit.executor.file_store import FileStore, LocalFileStore, decode_text
from nextedit.model.models import (
    ActionType,
    EditAction,
    EditContext,
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
)
from nextedit.sequencer.sequencer import (
    EditSequencer,
    build_dependency_graph,
    topological_sort,
)
from nextedit.storage.storage import InMemorySessionStorage, SessionStorage

_ANALYSIS = NextEditErrorCode.ANALYSIS_FAILED
_APPLY = NextEditErrorCode.APPLY_FAILED
_UNDO = NextEditErrorCode.UNDO_FAILED
_READ = NextEditErrorCode.SESSION_NOT_FOUND
_DIFF = NextEditErrorCode.GIT_ERROR


def progress_percentage(done: int, total: int) -> int:
    """Percentage of processed edits, rounded half up (0 for an empty session)."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


class NextEditSession:
    """Drives review sessions over sequenced edit suggestions."""

    def __init__(
        self,
        analyzer: Analyzer,
        executor: EditExecutor,
        storage: SessionStorage,
        sequencer: EditSequencer | None = None,
        config: SessionConfig | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            analyzer: Produces suggestions and edit contexts
            executor: Applies edits and owns undo/redo stacks
            storage: Persists sessions
            sequencer: Dependency sequencer (created from config if omitted)
            config: Session settings
            logger: Logger (defaults to the "session" component logger)
        """
        self.config = config or SessionConfig()
        self.analyzer = analyzer
        self.executor = executor
        self.storage = storage
        self.sequencer = sequencer or EditSequencer(seconds_per_edit=self.config.seconds_per_edit)
        self._logger = logger or get_logger("session")
        self._locks: dict[str, asyncio.Lock] = {}

    # Internal helpers

    def _lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    async def _load(self, session_id: str) -> EditSession:
        """Load a session and make sure the executor knows its stacks.

        Raises:
            InvalidSessionIdError: If session_id is empty
            SessionNotFoundError: If no such session is stored
        """
        if not session_id:
            raise InvalidSessionIdError(session_id)

        session = await self.storage.load_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        if not self.executor.has_session(session.id):
            self.executor.rehydrate(session)
        return session

    async def _save(self, session: EditSession) -> None:
        session.touch()
        await self.storage.save_session(session)

    @staticmethod
    def _require_active(session: EditSession, operation: str) -> None:
        if session.status != SessionStatus.ACTIVE:
            raise ValidationError(
                "session_not_active",
                message=(
                    f"Session {session.id} is {session.status.value}; "
                    f"{operation} requires an active session"
                ),
                session_id=session.id,
                status=session.status.value,
            )

    def _transition(self, session: EditSession, to_status: SessionStatus, reason: str = "") -> None:
        from_status = session.status
        if not can_transition(from_status, to_status):
            raise ValidationError(
                "invalid_transition",
                message=(
                    f"Cannot move session {session.id} from "
                    f"{from_status.value} to {to_status.value}"
                ),
                session_id=session.id,
                from_status=from_status.value,
                to_status=to_status.value,
            )
        session.status = to_status
        self._logger.log_state_transition(
            session_id=session.id,
            from_state=from_status.value,
            to_state=to_status.value,
            reason=reason,
        )

    @staticmethod
    def _pending_edit(session: EditSession, edit_id: str) -> EditSuggestion:
        if not edit_id:
            raise ValidationError("edit_id_required", message="Edit ID is required")
        edit = session.find_edit(edit_id)
        if edit is None:
            raise EditNotFoundError(edit_id, session.id)
        if edit.status != EditStatus.PENDING:
            raise EditAlreadyProcessedError(edit_id, edit.status.value)
        return edit

    def _require_dependencies(self, session: EditSession, edit: EditSuggestion) -> None:
        missing = self.sequencer.missing_dependencies(edit, session.completed_edits)
        if missing:
            raise DependencyNotMetError(edit.id, missing)

    @staticmethod
    def _record_accept(
        session: EditSession,
        edit: EditSuggestion,
        action: EditAction,
        modification: str | None,
    ) -> None:
        edit.status = EditStatus.ACCEPTED
        edit.user_modification = modification
        if edit.id in session.skipped_edits:
            session.skipped_edits.remove(edit.id)
        if edit.id not in session.completed_edits:
            session.completed_edits.append(edit.id)
        session.current_edit_index += 1
        session.undo_stack.append(action)
        session.redo_stack.clear()

    async def _read_for_context(self, edit: EditSuggestion) -> str:
        try:
            return decode_text(await self.executor.file_store.read_file(edit.file_path))
        except (NextEditError, OSError) as e:
            self._logger.debug(
                "Using suggestion content for context",
                edit_id=edit.id,
                file_path=edit.file_path,
                error=str(e),
            )
            return edit.original_content

    def _summarize(self, session: EditSession) -> SessionSummary:
        counts = {status: 0 for status in EditStatus}
        for edit in session.edits:
            counts[edit.status] += 1

        accepted = [e for e in session.edits if e.status == EditStatus.ACCEPTED]
        pending = counts[EditStatus.PENDING] + counts[EditStatus.REVIEWING]

        return SessionSummary(
            session_id=session.id,
            goal=session.goal,
            status=session.status.value,
            total_edits=len(session.edits),
            completed_edits=len(session.completed_edits),
            skipped_edits=len(session.skipped_edits),
            modified_edits=sum(1 for e in accepted if e.user_modification is not None)
            + counts[EditStatus.MODIFIED],
            pending_edits=pending,
            errors=counts[EditStatus.ERROR],
            files_changed=sorted({e.file_path for e in accepted}),
            estimated_time_remaining=pending * self.config.seconds_per_edit,
        )

    # Lifecycle

    async def start(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions | None = None,
    ) -> EditSession:
        """Analyze a workspace and open a review session.

        Args:
            workspace_uri: Workspace root
            goal: What the reviewer wants to accomplish
            options: Analysis options

        Returns:
            The new, active session

        Raises:
            ValidationError: If the workspace or goal is empty, or the
                suggestions are inconsistent
            AnalysisFailedError: If analysis fails
        """
        with tagged_errors("start", _ANALYSIS):
            require_valid_start(workspace_uri, goal)
            started = time.perf_counter()

            result = await self.analyzer.analyze_codebase(workspace_uri, goal, options)

            session_id = generate_id()
            for edit in result.edits:
                edit.session_id = session_id
                edit.status = EditStatus.PENDING

            report = require_valid_suggestions(result.edits)
            for warning in report.warnings:
                self._logger.warning(
                    warning.message,
                    session_id=session_id,
                    edit_id=warning.edit_id,
                    issue=warning.code,
                )

            sequencing = self.sequencer.sequence_edits(result.edits)

            session = EditSession(
                id=session_id,
                workspace_uri=workspace_uri,
                goal=goal,
                edits=result.edits,
                total_files=result.total_files,
                estimated_time=len(result.edits) * self.config.seconds_per_edit,
            )
            self._transition(session, SessionStatus.ACTIVE, "analysis complete")

            async with self._lock(session.id):
                self.executor.forget(session.id)
                self.executor.register_edits(session.edits)
                await self._save(session)
                await self.storage.set_active_session_id(session.id)
                await self.storage.set_last_session_id(session.id)

            self._logger.log_session_start(
                session_id=session.id,
                goal=goal,
                edit_count=len(session.edits),
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            if sequencing.has_cycles:
                self._logger.warning(
                    "Session contains circular dependencies; affected edits can only be skipped",
                    session_id=session.id,
                    cycles=[c.dependency_cycle for c in sequencing.circular_dependencies],
                )
            return session

    async def pause(self, session_id: str) -> EditSession:
        """Pause an active session."""
        with tagged_errors("pause", _APPLY, session_id=session_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._transition(session, SessionStatus.PAUSED, "paused by reviewer")
                await self._save(session)
                return session

    async def resume(self, session_id: str) -> EditSession:
        """Resume a paused session.

        Raises:
            SessionAlreadyActiveError: If the session is already active
        """
        with tagged_errors("resume", _APPLY, session_id=session_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                if session.status == SessionStatus.ACTIVE:
                    raise SessionAlreadyActiveError(session_id)
                self._transition(session, SessionStatus.ACTIVE, "resumed by reviewer")
                await self._save(session)
                await self.storage.set_active_session_id(session.id)
                await self.storage.set_last_session_id(session.id)
                return session

    async def cancel(self, session_id: str, reason: str | None = None) -> EditSession:
        """Cancel a session. Applied edits stay applied."""
        with tagged_errors("cancel", _APPLY, session_id=session_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._transition(session, SessionStatus.CANCELLED, reason or "cancelled by reviewer")
                await self._save(session)
                await self._release_active(session.id)
                self.executor.forget(session.id)
            self._locks.pop(session.id, None)

            self._logger.log_session_end(
                session_id=session.id,
                final_state=session.status.value,
                completed=len(session.completed_edits),
                skipped=len(session.skipped_edits),
            )
            return session

    async def complete(self, session_id: str) -> SessionSummary:
        """Complete a session and return its summary."""
        with tagged_errors("complete", _APPLY, session_id=session_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._transition(session, SessionStatus.COMPLETED, "completed by reviewer")
                await self._save(session)
                await self._release_active(session.id)
                self.executor.forget(session.id)
            self._locks.pop(session.id, None)

            self._logger.log_session_end(
                session_id=session.id,
                final_state=session.status.value,
                completed=len(session.completed_edits),
                skipped=len(session.skipped_edits),
            )
            return self._summarize(session)

    async def _release_active(self, session_id: str) -> None:
        if await self.storage.get_active_session_id() == session_id:
            await self.storage.set_active_session_id(None)

    # Review loop

    async def get_next_edit(self, session_id: str) -> tuple[EditSuggestion, EditContext]:
        """First pending edit with its context.

        Pending edits whose dependencies are accepted are served first. When
        every pending edit is blocked, the first one is served anyway so the
        reviewer can skip it; accepting it raises DependencyNotMetError.

        Raises:
            NoMoreEditsError: If no pending edits remain
        """
        with tagged_errors("get_next_edit", _ANALYSIS, session_id=session_id):
            session = await self._load(session_id)
            self._require_active(session, "get_next_edit")

            pending = session.pending_edits()
            if not pending:
                raise NoMoreEditsError(session_id)

            completed = set(session.completed_edits)
            edit = next(
                (e for e in pending if self.sequencer.validate_dependencies_met(e, completed)),
                None,
            )
            if edit is None:
                edit = pending[0]
                self._logger.info(
                    "Serving blocked edit",
                    session_id=session.id,
                    edit_id=edit.id,
                    missing=self.sequencer.missing_dependencies(edit, completed),
                )

            content = await self._read_for_context(edit)
            context = await self.analyzer.generate_context(edit, content)
            return edit, context

    async def apply_edit(
        self,
        session_id: str,
        edit_id: str,
        modification: str | None = None,
    ) -> EditAction:
        """Accept an edit (optionally with a reviewer modification).

        Raises:
            EditNotFoundError: If the edit is not in the session
            EditAlreadyProcessedError: If the edit is not pending
            DependencyNotMetError: If a dependency is not accepted yet
            ApplyFailedError: If the file could not be changed
        """
        with tagged_errors("apply_edit", _APPLY, session_id=session_id, edit_id=edit_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._require_active(session, "apply_edit")
                edit = self._pending_edit(session, edit_id)
                self._require_dependencies(session, edit)

                result = await self.executor.apply_edit(edit, modification)
                if not result.success or result.action is None:
                    raise ApplyFailedError(
                        edit.file_path,
                        result.error or "unknown error",
                        edit_id=edit.id,
                        session_id=session.id,
                    )

                self._record_accept(session, edit, result.action, modification)
                await self._save(session)
                return result.action

    async def skip_edit(
        self,
        session_id: str,
        edit_id: str,
        reason: str | None = None,
    ) -> EditAction:
        """Skip an edit without touching its file.

        Raises:
            EditNotFoundError: If the edit is not in the session
            EditAlreadyProcessedError: If the edit is not pending
        """
        with tagged_errors("skip_edit", _APPLY, session_id=session_id, edit_id=edit_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._require_active(session, "skip_edit")
                edit = self._pending_edit(session, edit_id)

                edit.status = EditStatus.SKIPPED
                session.skipped_edits.append(edit.id)
                session.current_edit_index += 1
                action = create_action(
                    edit,
                    ActionType.SKIP,
                    original_content=edit.original_content,
                    user_notes=reason,
                )
                await self._save(session)

            self._logger.log_edit_action(
                session_id=session_id,
                edit_id=edit.id,
                action=ActionType.SKIP.value,
                file_path=edit.file_path,
            )
            return action

    async def bulk_accept(self, session_id: str, edit_ids: Sequence[str]) -> BulkApplyResult:
        """Accept several edits in dependency order.

        Each edit is gated on its dependencies; a failing edit is recorded
        and the rest still run.

        Returns:
            BulkApplyResult with applied actions and failures
        """
        with tagged_errors("bulk_accept", _APPLY, session_id=session_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._require_active(session, "bulk_accept")
                result = BulkApplyResult()

                requested: list[EditSuggestion] = []
                for edit_id in dict.fromkeys(edit_ids):
                    try:
                        requested.append(self._pending_edit(session, edit_id))
                    except NextEditError as e:
                        result.failed.append(FailedEdit(edit_id=edit_id, error=e.message))

                by_id = {edit.id: edit for edit in requested}
                ordered_ids = topological_sort(build_dependency_graph(requested))
                completed = set(session.completed_edits)

                for edit_id in ordered_ids:
                    edit = by_id[edit_id]
                    missing = self.sequencer.missing_dependencies(edit, completed)
                    if missing:
                        error = DependencyNotMetError(edit.id, missing)
                        result.failed.append(FailedEdit(edit_id=edit.id, error=error.message))
                        continue

                    outcome = await self.executor.apply_edit(edit)
                    if not outcome.success or outcome.action is None:
                        result.failed.append(
                            FailedEdit(edit_id=edit.id, error=outcome.error or "unknown error")
                        )
                        continue

                    self._record_accept(session, edit, outcome.action, None)
                    completed.add(edit.id)
                    result.applied.append(outcome.action)

                for edit_id in by_id.keys() - set(ordered_ids):
                    result.failed.append(
                        FailedEdit(edit_id=edit_id, error=f"Edit {edit_id} is part of a dependency cycle")
                    )

                if result.applied:
                    await self._save(session)

            self._logger.info(
                "Bulk accept finished",
                session_id=session_id,
                applied=len(result.applied),
                failed=len(result.failed),
            )
            return result

    async def undo_last_edit(
        self,
        session_id: str,
        level: UndoLevel | str | None = None,
    ) -> list[EditAction]:
        """Undo applied edits at the given level.

        Undone edits return to pending. Later edits are left as they are;
        accepted dependents of an undone edit are logged as stale. If a write
        fails partway through a file or all undo, the edits already reverted
        are recorded and saved before the error is raised.

        Returns:
            Reverted actions in revert order (empty if nothing to undo)
        """
        with tagged_errors("undo_last_edit", _UNDO, session_id=session_id):
            undo_level = self._undo_level(level)
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._require_active(session, "undo_last_edit")

                try:
                    reverted = await self.executor.undo_last_edit(session.id, undo_level)
                except UndoFailedError as e:
                    if e.reverted:
                        self._record_undo(session, e.reverted)
                        await self._save(session)
                    raise
                if not reverted:
                    return []

                self._record_undo(session, reverted)
                await self._save(session)
                return reverted

    def _record_undo(self, session: EditSession, reverted: Sequence[EditAction]) -> None:
        reverted_ids = {action.edit_id for action in reverted}
        for action in reverted:
            edit = session.find_edit(action.edit_id)
            if edit is not None:
                edit.status = EditStatus.PENDING
            if action.edit_id in session.completed_edits:
                session.completed_edits.remove(action.edit_id)
            session.current_edit_index = max(0, session.current_edit_index - 1)
            session.undo_stack = [a for a in session.undo_stack if a.id != action.id]
            session.redo_stack.append(action)

        stale = [
            edit.id
            for edit in session.edits
            if edit.status == EditStatus.ACCEPTED
            and edit.id not in reverted_ids
            and reverted_ids.intersection(edit.dependencies)
        ]
        if stale:
            self._logger.warning(
                "Undone edits have accepted dependents",
                session_id=session.id,
                undone=sorted(reverted_ids),
                stale_dependents=stale,
            )

    def _undo_level(self, level: UndoLevel | str | None) -> UndoLevel:
        if level is None:
            return self.config.default_undo_level
        try:
            return UndoLevel(level)
        except ValueError as e:
            allowed = ", ".join(item.value for item in UndoLevel)
            raise ValidationError(
                "invalid_undo_level",
                message=f"Undo level must be one of: {allowed}",
                level=str(level),
            ) from e

    async def redo_last_edit(self, session_id: str) -> EditAction | None:
        """Re-apply the most recently undone edit.

        Returns:
            The re-applied action, or None if nothing to redo
        """
        with tagged_errors("redo_last_edit", _UNDO, session_id=session_id):
            async with self._lock(session_id):
                session = await self._load(session_id)
                self._require_active(session, "redo_last_edit")

                action = await self.executor.redo_last_edit(session.id)
                if action is None:
                    return None

                edit = session.find_edit(action.edit_id)
                if edit is not None:
                    edit.status = EditStatus.ACCEPTED
                if action.edit_id in session.skipped_edits:
                    session.skipped_edits.remove(action.edit_id)
                if action.edit_id not in session.completed_edits:
                    session.completed_edits.append(action.edit_id)
                session.current_edit_index += 1
                session.redo_stack = [a for a in session.redo_stack if a.id != action.id]
                session.undo_stack.append(action)

                await self._save(session)
                return action

    # Reads

    async def get_session(self, session_id: str) -> EditSession:
        """Load a session.

        Raises:
            SessionNotFoundError: If no such session is stored
        """
        with tagged_errors("get_session", _READ, session_id=session_id):
            return await self._load(session_id)

    async def list_sessions(self) -> list[EditSession]:
        """All stored sessions, newest first."""
        with tagged_errors("list_sessions", _READ):
            sessions: list[EditSession] = []
            for session_id in await self.storage.list_sessions():
                session = await self.storage.load_session(session_id)
                if session is not None:
                    sessions.append(session)
            return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    async def get_progress(self, session_id: str) -> SessionProgress:
        """Progress counters for a session."""
        with tagged_errors("get_progress", _READ, session_id=session_id):
            session = await self._load(session_id)
            total = len(session.edits)
            completed = len(session.completed_edits)
            skipped = len(session.skipped_edits)
            return SessionProgress(
                current=session.current_edit_index,
                total=total,
                completed=completed,
                skipped=skipped,
                remaining=total - completed - skipped,
                percentage=progress_percentage(completed + skipped, total),
            )

    async def get_summary(self, session_id: str) -> SessionSummary:
        """Summary of a session in any state."""
        with tagged_errors("get_summary", _READ, session_id=session_id):
            return self._summarize(await self._load(session_id))

    async def can_undo(self, session_id: str) -> bool:
        """Whether the session has applied edits to undo."""
        with tagged_errors("can_undo", _READ, session_id=session_id):
            session = await self._load(session_id)
            return self.executor.can_undo(session.id)

    async def can_redo(self, session_id: str) -> bool:
        """Whether the session has undone edits to redo."""
        with tagged_errors("can_redo", _READ, session_id=session_id):
            session = await self._load(session_id)
            return self.executor.can_redo(session.id)

    async def get_active_session_id(self) -> str | None:
        """ID of the session most recently started or resumed, if still open."""
        with tagged_errors("get_active_session_id", _READ):
            return await self.storage.get_active_session_id()

    async def get_last_session_id(self) -> str | None:
        """ID of the session most recently started or resumed."""
        with tagged_errors("get_last_session_id", _READ):
            return await self.storage.get_last_session_id()

    # Diffs

    async def preview_all_changes(self, session_id: str) -> list[FileDiff]:
        """Net change per file across the session's applied edits."""
        with tagged_errors("preview_all_changes", _DIFF, session_id=session_id):
            session = await self._load(session_id)
            return self.executor.preview_all_changes(session.id)

    async def get_diff(self, session_id: str, edit_id: str) -> str:
        """Diff for one edit.

        Pending edits are diffed against the file's current content; other
        edits show their original and suggested blocks.
        """
        with tagged_errors("get_diff", _DIFF, session_id=session_id, edit_id=edit_id):
            session = await self._load(session_id)
            edit = session.find_edit(edit_id)
            if edit is None:
                raise EditNotFoundError(edit_id, session.id)
            if edit.status == EditStatus.PENDING:
                return await self.executor.get_git_diff(edit)
            return self.executor.generate_diff(edit)


def create_next_edit_session(
    workspace: Path | str,
    analyzer: Analyzer | None = None,
    storage: SessionStorage | None = None,
    file_store: FileStore | None = None,
    config: NextEditConfig | None = None,
    plan_path: Path | str | None = None,
) -> NextEditSession:
    """Create a session manager wired for a workspace.

    Args:
        workspace: Workspace root
        analyzer: Analyzer (PlanAnalyzer if plan_path is given, else PatternAnalyzer)
        storage: Session storage (in-memory if omitted)
        file_store: File store (LocalFileStore on the workspace if omitted)
        config: Configuration (defaults if omitted)
        plan_path: YAML plan for the default analyzer

    Returns:
        Configured NextEditSession
    """
    config = config or NextEditConfig()
    if analyzer is None:
        analyzer = create_analyzer(
            plan_path=plan_path,
            seconds_per_edit=config.session.seconds_per_edit,
            context_lines=config.session.context_lines,
            cache_ttl=config.session.context_cache_ttl,
        )
    executor = EditExecutor(file_store=file_store or LocalFileStore(workspace))
    return NextEditSession(
        analyzer=analyzer,
        executor=executor,
        storage=storage or InMemorySessionStorage(),
        config=config.session,
    )
