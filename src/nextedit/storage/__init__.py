"""Session persistence."""

from nextedit.storage.storage import (
    SESSIONS_DIRNAME,
    STATE_FILENAME,
    InMemorySessionStorage,
    JsonSessionStorage,
    SessionStorage,
    StorageError,
    create_session_storage,
)

__all__ = [
    "SessionStorage",
    "InMemorySessionStorage",
    "JsonSessionStorage",
    "StorageError",
    "create_session_storage",
    "SESSIONS_DIRNAME",
    "STATE_FILENAME",
]
