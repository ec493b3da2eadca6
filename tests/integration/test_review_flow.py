"""Integration test: review flow on a real workspace.

Tests the reviewer loop against files on disk and JSON session state:
- Edits are served and applied in dependency order
- A new engine instance picks up undo history from stored sessions
- Undo restores file bytes exactly
- File-level undo only touches the most recent file
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nextedit.core.exceptions import NoMoreEditsError
from nextedit.model.models import SessionStatus, UndoLevel
from nextedit.storage.storage import SESSIONS_DIRNAME

from .conftest import HANDLER, SERVICE, make_edit


class TestReviewFlow:
    """End-to-end review of a rename across two files."""

    @pytest.mark.asyncio
    async def test_rename_across_files(self, make_engine, workspace: Path) -> None:
        """Accepting every edit renames the function everywhere."""
        engine = make_engine()
        session = await engine.start(str(workspace), "rename fetch_user to load_user")

        served = []
        while True:
            try:
                edit, context = await engine.get_next_edit(session.id)
            except NoMoreEditsError:
                break
            assert context.file_hash
            served.append(edit.id)
            await engine.apply_edit(session.id, edit.id)

        assert served == ["define", "import", "call"]
        assert "fetch_user" not in (workspace / "service.py").read_text()
        assert (workspace / "handler.py").read_text() == HANDLER.replace("fetch_user", "load_user")

        summary = await engine.complete(session.id)
        assert summary.completed_edits == 3
        assert summary.files_changed == ["handler.py", "service.py"]

    @pytest.mark.asyncio
    async def test_session_persisted_as_json(self, make_engine, workspace: Path, state_dir: Path) -> None:
        """Session state is written to the state directory."""
        engine = make_engine()
        session = await engine.start(str(workspace), "rename")
        await engine.apply_edit(session.id, "define")

        data = json.loads((state_dir / SESSIONS_DIRNAME / f"{session.id}.json").read_text())
        assert data["status"] == "active"
        assert data["completed_edits"] == ["define"]
        assert len(data["undo_stack"]) == 1

    @pytest.mark.asyncio
    async def test_preview_net_changes(self, make_engine, workspace: Path) -> None:
        """Preview combines several edits to one file."""
        engine = make_engine()
        session = await engine.start(str(workspace), "rename")
        for edit_id in ("define", "import", "call"):
            await engine.apply_edit(session.id, edit_id)

        diffs = {d.path: d for d in await engine.preview_all_changes(session.id)}
        assert diffs["handler.py"].original_content == HANDLER
        assert diffs["handler.py"].line_stats() == (2, 2)


class TestRestart:
    """Sessions continue in a new engine instance."""

    @pytest.mark.asyncio
    async def test_undo_after_restart(self, make_engine, workspace: Path) -> None:
        """Undo history is rebuilt from the stored session."""
        first = make_engine()
        session = await first.start(str(workspace), "rename")
        await first.apply_edit(session.id, "define")
        await first.apply_edit(session.id, "import")

        second = make_engine()
        assert await second.get_active_session_id() == session.id
        assert await second.can_undo(session.id)

        reverted = await second.undo_last_edit(session.id)
        assert [a.edit_id for a in reverted] == ["import"]
        assert (workspace / "handler.py").read_text() == HANDLER

        third = make_engine()
        action = await third.redo_last_edit(session.id)
        assert action is not None and action.edit_id == "import"
        assert (workspace / "handler.py").read_text().startswith("from service import load_user")

    @pytest.mark.asyncio
    async def test_resume_after_restart(self, make_engine, workspace: Path) -> None:
        """A paused session resumes where it stopped."""
        first = make_engine()
        session = await first.start(str(workspace), "rename")
        await first.apply_edit(session.id, "define")
        await first.pause(session.id)

        second = make_engine()
        resumed = await second.resume(session.id)
        assert resumed.status == SessionStatus.ACTIVE

        edit, _ = await second.get_next_edit(session.id)
        assert edit.id == "import"

    @pytest.mark.asyncio
    async def test_cancel_keeps_files(self, make_engine, workspace: Path) -> None:
        """Cancelling leaves accepted edits on disk."""
        engine = make_engine()
        session = await engine.start(str(workspace), "rename")
        await engine.apply_edit(session.id, "define")
        await engine.cancel(session.id)

        assert (workspace / "service.py").read_text() != SERVICE
        reloaded = await make_engine().get_session(session.id)
        assert reloaded.status == SessionStatus.CANCELLED
        assert await make_engine().get_active_session_id() is None


class TestUndoFidelity:
    """Undo restores exact content."""

    @pytest.mark.asyncio
    async def test_bytes_restored(self, make_engine, workspace: Path) -> None:
        """Non-UTF-8 bytes and CRLF line endings survive apply and undo."""
        original = b"name = 'caf\xe9'\r\nvalue = 1\r\n"
        (workspace / "legacy.py").write_bytes(original)
        engine = make_engine([make_edit("bump", "legacy.py", 2, "value = 1", "value = 2")])
        session = await engine.start(str(workspace), "bump value")

        await engine.apply_edit(session.id, "bump")
        assert (workspace / "legacy.py").read_bytes() == b"name = 'caf\xe9'\r\nvalue = 2\r\n"

        await engine.undo_last_edit(session.id)
        assert (workspace / "legacy.py").read_bytes() == original

    @pytest.mark.asyncio
    async def test_file_level_undo(self, make_engine, workspace: Path) -> None:
        """File-level undo reverts the trailing edits of one file only."""
        engine = make_engine()
        session = await engine.start(str(workspace), "rename")
        for edit_id in ("define", "import", "call"):
            await engine.apply_edit(session.id, edit_id)

        reverted = await engine.undo_last_edit(session.id, UndoLevel.FILE)
        assert [a.edit_id for a in reverted] == ["call", "import"]
        assert (workspace / "handler.py").read_text() == HANDLER
        assert (workspace / "service.py").read_text().startswith("def load_user")

        progress = await engine.get_progress(session.id)
        assert progress.completed == 1
        assert progress.remaining == 2

    @pytest.mark.asyncio
    async def test_undo_all(self, make_engine, workspace: Path) -> None:
        """Undoing everything restores the workspace."""
        engine = make_engine()
        session = await engine.start(str(workspace), "rename")
        for edit_id in ("define", "import", "call"):
            await engine.apply_edit(session.id, edit_id)

        await engine.undo_last_edit(session.id, "all")
        assert (workspace / "service.py").read_text() == SERVICE
        assert (workspace / "handler.py").read_text() == HANDLER
        assert not await engine.can_undo(session.id)
