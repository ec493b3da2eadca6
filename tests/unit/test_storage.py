"""Unit tests for session storage."""

import json
from pathlib import Path

import pytest

from nextedit.model.models import EditSession, EditSuggestion, SessionStatus
from nextedit.storage.storage import (
    SESSIONS_DIRNAME,
    STATE_FILENAME,
    InMemorySessionStorage,
    JsonSessionStorage,
    StorageError,
    create_session_storage,
)


def _session(session_id: str = "s1") -> EditSession:
    return EditSession(
        id=session_id,
        workspace_uri="/repo",
        goal="rename foo to bar",
        status=SessionStatus.ACTIVE,
        edits=[
            EditSuggestion(
                id="e1",
                session_id=session_id,
                file_path="a.py",
                line_start=1,
                line_end=1,
                original_content="foo()",
                suggested_content="bar()",
            )
        ],
    )


class TestInMemorySessionStorage:
    """Tests for InMemorySessionStorage."""

    @pytest.mark.asyncio
    async def test_save_load_copies(self) -> None:
        """Loaded sessions are independent copies."""
        storage = InMemorySessionStorage()
        session = _session()
        await storage.save_session(session)

        loaded = await storage.load_session("s1")
        assert loaded == session
        assert loaded is not session
        loaded.goal = "changed"
        assert (await storage.load_session("s1")).goal == "rename foo to bar"

    @pytest.mark.asyncio
    async def test_missing(self) -> None:
        """Unknown sessions load as None."""
        assert await InMemorySessionStorage().load_session("nope") is None

    @pytest.mark.asyncio
    async def test_delete_clears_pointers(self) -> None:
        """Deleting a session clears pointers to it."""
        storage = InMemorySessionStorage()
        await storage.save_session(_session())
        await storage.set_active_session_id("s1")
        await storage.set_last_session_id("s1")
        await storage.delete_session("s1")
        assert await storage.list_sessions() == []
        assert await storage.get_active_session_id() is None
        assert await storage.get_last_session_id() is None


class TestJsonSessionStorage:
    """Tests for JsonSessionStorage."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path: Path) -> None:
        """Sessions round-trip through JSON files."""
        storage = JsonSessionStorage(tmp_path / "state")
        session = _session()
        await storage.save_session(session)

        path = tmp_path / "state" / SESSIONS_DIRNAME / "s1.json"
        assert path.is_file()
        assert json.loads(path.read_text())["goal"] == "rename foo to bar"
        assert await storage.load_session("s1") == session

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path: Path) -> None:
        """Atomic writes leave only the final file."""
        storage = JsonSessionStorage(tmp_path)
        await storage.save_session(_session())
        await storage.save_session(_session())
        assert [p.name for p in (tmp_path / SESSIONS_DIRNAME).iterdir()] == ["s1.json"]

    @pytest.mark.asyncio
    async def test_load_missing(self, tmp_path: Path) -> None:
        """Missing sessions load as None."""
        assert await JsonSessionStorage(tmp_path).load_session("nope") is None

    @pytest.mark.asyncio
    async def test_load_corrupt(self, tmp_path: Path) -> None:
        """Corrupt files raise StorageError."""
        storage = JsonSessionStorage(tmp_path)
        path = storage.session_path("bad")
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        with pytest.raises(StorageError, match="Corrupt JSON"):
            await storage.load_session("bad")

    @pytest.mark.asyncio
    async def test_load_invalid_data(self, tmp_path: Path) -> None:
        """Objects that are not sessions raise StorageError."""
        storage = JsonSessionStorage(tmp_path)
        path = storage.session_path("bad")
        path.parent.mkdir(parents=True)
        path.write_text('{"id": "bad"}')
        with pytest.raises(StorageError, match="Invalid session data"):
            await storage.load_session("bad")

    @pytest.mark.parametrize("session_id", ["", "../x", "a/b", ".hidden"])
    def test_rejects_unsafe_ids(self, tmp_path: Path, session_id: str) -> None:
        """IDs that could escape the sessions directory are rejected."""
        with pytest.raises(StorageError):
            JsonSessionStorage(tmp_path).session_path(session_id)

    @pytest.mark.asyncio
    async def test_list_sessions(self, tmp_path: Path) -> None:
        """list_sessions returns stored IDs."""
        storage = JsonSessionStorage(tmp_path)
        assert await storage.list_sessions() == []
        await storage.save_session(_session("b"))
        await storage.save_session(_session("a"))
        assert await storage.list_sessions() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_pointers_persist(self, tmp_path: Path) -> None:
        """Active and last pointers survive a new storage instance."""
        storage = JsonSessionStorage(tmp_path)
        await storage.set_active_session_id("s1")
        await storage.set_last_session_id("s1")

        reopened = JsonSessionStorage(tmp_path)
        assert await reopened.get_active_session_id() == "s1"
        assert await reopened.get_last_session_id() == "s1"

        await reopened.set_active_session_id(None)
        assert await reopened.get_active_session_id() is None
        state = json.loads((tmp_path / STATE_FILENAME).read_text())
        assert state == {"active_session_id": None, "last_session_id": "s1"}

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path: Path) -> None:
        """Deleting removes the file and clears matching pointers."""
        storage = JsonSessionStorage(tmp_path)
        await storage.save_session(_session())
        await storage.set_active_session_id("s1")
        await storage.set_last_session_id("other")

        await storage.delete_session("s1")
        assert await storage.load_session("s1") is None
        assert await storage.get_active_session_id() is None
        assert await storage.get_last_session_id() == "other"


class TestCreateSessionStorage:
    """Tests for the storage factory."""

    def test_in_memory_by_default(self) -> None:
        """No state dir means in-memory storage."""
        assert isinstance(create_session_storage(), InMemorySessionStorage)

    def test_json_with_state_dir(self, tmp_path: Path) -> None:
        """A state dir means JSON storage."""
        assert isinstance(create_session_storage(tmp_path), JsonSessionStorage)
