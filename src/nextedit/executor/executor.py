"""Edit executor.

Applies suggestions to files through a FileStore and keeps per-session
undo/redo stacks of whole-file snapshots. Undo and redo write the recorded
snapshots back verbatim, so a round trip restores the exact bytes.

The stacks live in process memory; rehydrate() rebuilds them from a
persisted EditSession.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from nextedit.core.exceptions import (
    GitError,
    InvalidSessionIdError,
    NextEditError,
    UndoFailedError,
    ValidationError,
)
from nextedit.core.logging import StructuredLogger, get_logger
from nextedit.executor.diff import FileDiff, render_block_diff
from nextedit.executor.file_store import FileStore, decode_text, encode_text
from nextedit.model.models import (
    ActionType,
    EditAction,
    EditSession,
    EditSuggestion,
    UndoLevel,
    create_action,
)


@dataclass
class ApplyEditResult:
    """Outcome of applying one edit."""

    success: bool
    action: EditAction | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "action": self.action.to_dict() if self.action else None,
            "error": self.error,
        }


@dataclass
class FailedEdit:
    """An edit that could not be applied in a bulk operation."""

    edit_id: str
    error: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"edit_id": self.edit_id, "error": self.error}


@dataclass
class BulkApplyResult:
    """Outcome of applying several edits independently."""

    applied: list[EditAction] = field(default_factory=list)
    failed: list[FailedEdit] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "applied": [action.to_dict() for action in self.applied],
            "failed": [failure.to_dict() for failure in self.failed],
        }


@dataclass
class _SessionStacks:
    undo: list[EditAction] = field(default_factory=list)
    redo: list[EditAction] = field(default_factory=list)
    edits: dict[str, EditSuggestion] = field(default_factory=dict)


def replace_block(content: str, edit: EditSuggestion, replacement: str) -> str | None:
    """Substitute an edit's original block in file content.

    The first occurrence at or after ``line_start`` wins; earlier edits may
    have shifted lines, so the first occurrence anywhere is the fallback.
    An empty original block inserts the replacement before ``line_start``.

    Args:
        content: Current file content.
        edit: Suggestion being applied.
        replacement: Text to put in place of the original block.

    Returns:
        New content, or None if the original block is not in the file.
    """
    lines = content.splitlines(keepends=True)
    line_index = min(max(edit.line_start - 1, 0), len(lines))
    offset = sum(len(line) for line in lines[:line_index])

    if not edit.original_content:
        insertion = replacement
        if insertion and line_index < len(lines) and not insertion.endswith("\n"):
            insertion += "\n"
        return content[:offset] + insertion + content[offset:]

    position = content.find(edit.original_content, offset)
    if position == -1:
        position = content.find(edit.original_content)
    if position == -1:
        return None

    end = position + len(edit.original_content)
    return content[:position] + replacement + content[end:]


class EditExecutor:
    """Applies edits and manages per-session undo/redo stacks."""

    def __init__(
        self,
        file_store: FileStore,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            file_store: Where file content is read and written
            logger: Logger (defaults to the "executor" component logger)
        """
        self.file_store = file_store
        self._logger = logger or get_logger("executor")
        self._sessions: dict[str, _SessionStacks] = {}

    def _stacks(self, session_id: str) -> _SessionStacks:
        if session_id not in self._sessions:
            self._sessions[session_id] = _SessionStacks()
        return self._sessions[session_id]

    async def _read_text(self, path: str) -> str:
        return decode_text(await self.file_store.read_file(path))

    async def _write_text(self, path: str, content: str) -> None:
        await self.file_store.write_file(path, encode_text(content))

    def _file_of(self, stacks: _SessionStacks, action: EditAction) -> str:
        edit = stacks.edits.get(action.edit_id)
        if edit is None:
            raise UndoFailedError(
                action.session_id,
                f"edit {action.edit_id} is not known to the executor",
            )
        return edit.file_path

    # Session bookkeeping

    def has_session(self, session_id: str) -> bool:
        """Whether stacks exist for a session in this process."""
        return session_id in self._sessions

    def rehydrate(self, session: EditSession) -> None:
        """Rebuild in-memory state from a persisted session.

        Args:
            session: Persisted session record
        """
        self._sessions[session.id] = _SessionStacks(
            undo=[a for a in session.undo_stack if a.applied_content is not None],
            redo=[a for a in session.redo_stack if a.applied_content is not None],
            edits={edit.id: edit for edit in session.edits},
        )
        self._logger.debug(
            "Executor state rehydrated",
            session_id=session.id,
            undo_depth=len(session.undo_stack),
            redo_depth=len(session.redo_stack),
        )

    def forget(self, session_id: str) -> None:
        """Drop in-memory state for a session."""
        self._sessions.pop(session_id, None)

    def register_edits(self, edits: Sequence[EditSuggestion]) -> None:
        """Make edits known to the lookup table used by file-level undo."""
        for edit in edits:
            self._stacks(edit.session_id).edits[edit.id] = edit

    # Applying

    async def apply_edit(
        self,
        edit: EditSuggestion | None,
        modification: str | None = None,
    ) -> ApplyEditResult:
        """Apply one edit to its file.

        Args:
            edit: Suggestion to apply
            modification: Reviewer replacement used instead of the suggestion

        Returns:
            ApplyEditResult; read/write failures are reported, not raised

        Raises:
            ValidationError: If edit is missing
        """
        if edit is None:
            raise ValidationError("edit_required", message="Edit is required")

        start = time.perf_counter()
        stacks = self._stacks(edit.session_id)
        stacks.edits[edit.id] = edit
        replacement = modification if modification is not None else edit.suggested_content

        try:
            before = await self._read_text(edit.file_path)
        except (NextEditError, OSError) as e:
            return self._failure(edit, f"Failed to read file: {e}")

        after = replace_block(before, edit, replacement)
        if after is None:
            return self._failure(
                edit, f"Original content not found in {edit.file_path}"
            )

        try:
            await self._write_text(edit.file_path, after)
        except (NextEditError, OSError) as e:
            return self._failure(edit, f"Failed to write file: {e}")

        duration_ms = int((time.perf_counter() - start) * 1000)
        action = create_action(
            edit,
            ActionType.ACCEPT,
            original_content=before,
            applied_content=after,
            duration_ms=duration_ms,
        )
        stacks.undo.append(action)
        stacks.redo.clear()

        self._logger.log_edit_action(
            session_id=edit.session_id,
            edit_id=edit.id,
            action=ActionType.ACCEPT.value,
            file_path=edit.file_path,
            duration_ms=duration_ms,
        )
        return ApplyEditResult(success=True, action=action)

    def _failure(self, edit: EditSuggestion, error: str) -> ApplyEditResult:
        self._logger.error(
            "Failed to apply edit",
            session_id=edit.session_id,
            edit_id=edit.id,
            file_path=edit.file_path,
            error=error,
        )
        return ApplyEditResult(success=False, error=error)

    async def bulk_apply_edits(
        self,
        edits: Sequence[EditSuggestion],
        modifications: dict[str, str] | None = None,
    ) -> BulkApplyResult:
        """Apply several edits independently.

        A failing edit is recorded and the remaining edits still run.

        Args:
            edits: Suggestions to apply, in order
            modifications: Optional reviewer replacements by edit ID

        Returns:
            BulkApplyResult
        """
        modifications = modifications or {}
        result = BulkApplyResult()

        for edit in edits:
            try:
                outcome = await self.apply_edit(edit, modifications.get(edit.id))
            except NextEditError as e:
                result.failed.append(FailedEdit(edit_id=edit.id, error=e.message))
                continue

            if outcome.success and outcome.action is not None:
                result.applied.append(outcome.action)
            else:
                result.failed.append(
                    FailedEdit(edit_id=edit.id, error=outcome.error or "unknown error")
                )

        return result

    # Diffs

    def generate_diff(self, edit: EditSuggestion | None) -> str:
        """Unified diff between an edit's original and suggested blocks.

        Raises:
            ValidationError: If edit is missing
        """
        if edit is None:
            raise ValidationError("edit_required", message="Edit is required")
        return render_block_diff(
            edit.file_path, edit.original_content, edit.suggested_content
        )

    async def get_git_diff(self, edit: EditSuggestion | None) -> str:
        """Unified diff of the file as it is now versus with the edit applied.

        Raises:
            ValidationError: If edit is missing
            FileNotFoundInStoreError: If the file does not exist
            GitError: If the edit's original block is not in the file
        """
        if edit is None:
            raise ValidationError("edit_required", message="Edit is required")

        current = await self._read_text(edit.file_path)
        replacement = (
            edit.user_modification
            if edit.user_modification is not None
            else edit.suggested_content
        )
        proposed = replace_block(current, edit, replacement)
        if proposed is None:
            raise GitError(
                "original content not found",
                file_path=edit.file_path,
                edit_id=edit.id,
            )

        return FileDiff(
            path=edit.file_path, original_content=current, new_content=proposed
        ).to_unified_diff()

    def preview_all_changes(self, session_id: str) -> list[FileDiff]:
        """Net change per file across the applied actions of a session.

        For each file, diffs the earliest recorded original against the
        latest applied content.
        """
        stacks = self._sessions.get(session_id)
        if stacks is None:
            return []

        changes: dict[str, FileDiff] = {}
        for action in stacks.undo:
            path = self._file_of(stacks, action)
            applied = action.applied_content or ""
            if path in changes:
                changes[path].new_content = applied
            else:
                changes[path] = FileDiff(
                    path=path,
                    original_content=action.original_content,
                    new_content=applied,
                )

        return list(changes.values())

    # Undo / redo

    def can_undo(self, session_id: str) -> bool:
        """Whether the session has applied actions to undo."""
        stacks = self._sessions.get(session_id)
        return stacks is not None and bool(stacks.undo)

    def can_redo(self, session_id: str) -> bool:
        """Whether the session has undone actions to redo."""
        stacks = self._sessions.get(session_id)
        return stacks is not None and bool(stacks.redo)

    def _select_undo_count(self, stacks: _SessionStacks, level: UndoLevel) -> int:
        if level == UndoLevel.EDIT:
            return 1
        if level == UndoLevel.ALL:
            return len(stacks.undo)

        file_path = self._file_of(stacks, stacks.undo[-1])
        count = 0
        for action in reversed(stacks.undo):
            if self._file_of(stacks, action) != file_path:
                break
            count += 1
        return count

    async def undo_last_edit(
        self,
        session_id: str,
        level: UndoLevel | str = UndoLevel.EDIT,
    ) -> list[EditAction]:
        """Revert applied actions.

        ``edit`` reverts the most recent action, ``file`` every trailing
        action on the same file as the most recent one, ``all`` the whole
        stack. Actions are reverted newest first and pushed on the redo
        stack in that order.

        Args:
            session_id: Session identifier
            level: Undo granularity

        Returns:
            Reverted actions in revert order (empty if nothing to undo)

        Raises:
            InvalidSessionIdError: If session_id is empty
            UndoFailedError: If a snapshot cannot be written back; its
                ``reverted`` lists the actions already written back
        """
        if not session_id:
            raise InvalidSessionIdError(session_id)

        level = UndoLevel(level)
        stacks = self._sessions.get(session_id)
        if stacks is None or not stacks.undo:
            self._logger.info("Nothing to undo", session_id=session_id)
            return []

        count = self._select_undo_count(stacks, level)
        reverted: list[EditAction] = []

        for _ in range(count):
            action = stacks.undo[-1]
            path = None
            try:
                path = self._file_of(stacks, action)
                await self._write_text(path, action.original_content)
            except (NextEditError, OSError) as e:
                if reverted:
                    self._logger.warning(
                        "Undo stopped after a failed write",
                        session_id=session_id,
                        undo_level=level.value,
                        reverted=[a.edit_id for a in reverted],
                        failed_edit_id=action.edit_id,
                    )
                raise UndoFailedError(
                    session_id,
                    str(e),
                    reverted=reverted,
                    edit_id=action.edit_id,
                    file_path=path,
                ) from e
            stacks.undo.pop()
            stacks.redo.append(action)
            reverted.append(action)

        self._logger.log_undo(
            session_id=session_id,
            level=level.value,
            edit_ids=[a.edit_id for a in reverted],
        )
        return reverted

    async def redo_last_edit(self, session_id: str) -> EditAction | None:
        """Re-apply the most recently undone action.

        Returns:
            The re-applied action, or None if nothing to redo

        Raises:
            InvalidSessionIdError: If session_id is empty
            UndoFailedError: If the snapshot cannot be written back
        """
        if not session_id:
            raise InvalidSessionIdError(session_id)

        stacks = self._sessions.get(session_id)
        if stacks is None or not stacks.redo:
            self._logger.info("Nothing to redo", session_id=session_id)
            return None

        action = stacks.redo[-1]
        path = self._file_of(stacks, action)
        try:
            await self._write_text(path, action.applied_content or "")
        except (NextEditError, OSError) as e:
            raise UndoFailedError(
                session_id,
                str(e),
                edit_id=action.edit_id,
                file_path=path,
            ) from e

        stacks.redo.pop()
        stacks.undo.append(action)
        self._logger.log_undo(
            session_id=session_id,
            level=UndoLevel.EDIT.value,
            edit_ids=[action.edit_id],
            redo=True,
        )
        return action


def create_executor(
    file_store: FileStore,
    logger: StructuredLogger | None = None,
) -> EditExecutor:
    """Create an edit executor.

    Args:
        file_store: File store to operate on
        logger: Optional logger

    Returns:
        Configured EditExecutor
    """
    return EditExecutor(file_store=file_store, logger=logger)
