"""Session persistence.

JsonSessionStorage layout under the state directory:

    sessions/<session_id>.json   one EditSession per file
    state.json                   {"active_session_id": ..., "last_session_id": ...}

Files are written to a temp file in the same directory and moved into
place with os.replace.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from nextedit.core.logging import StructuredLogger, get_logger
from nextedit.model.models import EditSession

SESSIONS_DIRNAME = "sessions"
STATE_FILENAME = "state.json"


class StorageError(Exception):
    """Error reading or writing persisted sessions."""

    pass


class SessionStorage(Protocol):
    """Persistence contract used by the session manager."""

    async def save_session(self, session: EditSession) -> None: ...

    async def load_session(self, session_id: str) -> EditSession | None: ...

    async def delete_session(self, session_id: str) -> None: ...

    async def list_sessions(self) -> list[str]: ...

    async def get_active_session_id(self) -> str | None: ...

    async def set_active_session_id(self, session_id: str | None) -> None: ...

    async def get_last_session_id(self) -> str | None: ...

    async def set_last_session_id(self, session_id: str | None) -> None: ...


class InMemorySessionStorage:
    """Session storage held in process memory.

    Sessions are stored as dictionaries so callers never share mutable
    state with the store.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, Any]] = {}
        self._active_session_id: str | None = None
        self._last_session_id: str | None = None

    async def save_session(self, session: EditSession) -> None:
        self._sessions[session.id] = session.to_dict()

    async def load_session(self, session_id: str) -> EditSession | None:
        data = self._sessions.get(session_id)
        return EditSession.from_dict(data) if data is not None else None

    async def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        if self._active_session_id == session_id:
            self._active_session_id = None
        if self._last_session_id == session_id:
            self._last_session_id = None

    async def list_sessions(self) -> list[str]:
        return list(self._sessions)

    async def get_active_session_id(self) -> str | None:
        return self._active_session_id

    async def set_active_session_id(self, session_id: str | None) -> None:
        self._active_session_id = session_id

    async def get_last_session_id(self) -> str | None:
        return self._last_session_id

    async def set_last_session_id(self, session_id: str | None) -> None:
        self._last_session_id = session_id


def _write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write JSON to a temp file in the same directory, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path) -> dict[str, Any] | None:
    """Read a JSON object, or None if the file does not exist.

    Raises:
        StorageError: If the file is unreadable or not a JSON object.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StorageError(f"Corrupt JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise StorageError(f"Expected a JSON object in {path}")
    return data


class JsonSessionStorage:
    """Session storage as JSON files in a state directory."""

    def __init__(
        self,
        state_dir: Path | str,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the storage.

        Args:
            state_dir: Directory holding session files (created on first write)
            logger: Logger (defaults to the "storage" component logger)
        """
        self.state_dir = Path(state_dir)
        self.sessions_dir = self.state_dir / SESSIONS_DIRNAME
        self.state_path = self.state_dir / STATE_FILENAME
        self._logger = logger or get_logger("storage")

    def session_path(self, session_id: str) -> Path:
        """Path of the file holding a session.

        Raises:
            StorageError: If the ID would escape the sessions directory.
        """
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise StorageError(f"Invalid session ID for storage: {session_id!r}")
        return self.sessions_dir / f"{session_id}.json"

    async def save_session(self, session: EditSession) -> None:
        path = self.session_path(session.id)
        try:
            await asyncio.to_thread(_write_json_atomic, path, session.to_dict())
        except OSError as e:
            raise StorageError(f"Failed to write session {session.id}: {e}") from e
        self._logger.debug("Session saved", session_id=session.id, path=str(path))

    async def load_session(self, session_id: str) -> EditSession | None:
        path = self.session_path(session_id)
        data = await asyncio.to_thread(_read_json, path)
        if data is None:
            return None
        try:
            return EditSession.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Invalid session data in {path}: {e}") from e

    async def delete_session(self, session_id: str) -> None:
        path = self.session_path(session_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)

        state = await self._read_state()
        changed = False
        for key in ("active_session_id", "last_session_id"):
            if state.get(key) == session_id:
                state[key] = None
                changed = True
        if changed:
            await self._write_state(state)
        self._logger.debug("Session deleted", session_id=session_id)

    async def list_sessions(self) -> list[str]:
        def _list() -> list[str]:
            if not self.sessions_dir.is_dir():
                return []
            return sorted(p.stem for p in self.sessions_dir.glob("*.json"))

        return await asyncio.to_thread(_list)

    async def _read_state(self) -> dict[str, Any]:
        return await asyncio.to_thread(_read_json, self.state_path) or {}

    async def _write_state(self, state: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(_write_json_atomic, self.state_path, state)
        except OSError as e:
            raise StorageError(f"Failed to write {self.state_path}: {e}") from e

    async def _get_pointer(self, key: str) -> str | None:
        value = (await self._read_state()).get(key)
        return value if isinstance(value, str) and value else None

    async def _set_pointer(self, key: str, session_id: str | None) -> None:
        state = await self._read_state()
        state[key] = session_id
        await self._write_state(state)

    async def get_active_session_id(self) -> str | None:
        return await self._get_pointer("active_session_id")

    async def set_active_session_id(self, session_id: str | None) -> None:
        await self._set_pointer("active_session_id", session_id)

    async def get_last_session_id(self) -> str | None:
        return await self._get_pointer("last_session_id")

    async def set_last_session_id(self, session_id: str | None) -> None:
        await self._set_pointer("last_session_id", session_id)


def create_session_storage(state_dir: Path | str | None = None) -> SessionStorage:
    """Create session storage.

    Args:
        state_dir: State directory for JSON storage; None for in-memory

    Returns:
        SessionStorage implementation
    """
    if state_dir is None:
        return InMemorySessionStorage()
    return JsonSessionStorage(state_dir)
