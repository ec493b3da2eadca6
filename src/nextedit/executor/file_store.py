"""File stores the executor reads from and writes to.

LocalFileStore works against a workspace directory and refuses paths that
resolve outside of it. InMemoryFileStore keeps content in a dict and is
used by tests and previews.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from nextedit.core.exceptions import FileNotFoundInStoreError, ValidationError

# Text codec used by the executor; surrogateescape keeps undecodable bytes intact
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def decode_text(data: bytes) -> str:
    """Decode file bytes so that encode_text() restores them exactly."""
    return data.decode(TEXT_ENCODING, TEXT_ERRORS)


def encode_text(text: str) -> bytes:
    """Inverse of decode_text()."""
    return text.encode(TEXT_ENCODING, TEXT_ERRORS)


class FileStore(Protocol):
    """Byte-level file access used by the executor."""

    async def read_file(self, path: str) -> bytes:
        """Read a file.

        Raises:
            FileNotFoundInStoreError: If the file does not exist.
        """
        ...

    async def write_file(self, path: str, data: bytes) -> None:
        """Write a file, replacing its content."""
        ...


class LocalFileStore:
    """File store rooted at a workspace directory."""

    def __init__(self, root: Path | str) -> None:
        """Initialize the store.

        Args:
            root: Workspace root. Relative paths resolve against it.
        """
        self.root = Path(root).resolve()

    def resolve(self, path: str | Path) -> Path:
        """Resolve a path and check it stays inside the workspace.

        Args:
            path: Absolute or workspace-relative path.

        Returns:
            Resolved absolute path.

        Raises:
            ValidationError: If the path is outside the workspace root.
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        candidate = candidate.resolve()

        try:
            candidate.relative_to(self.root)
        except ValueError as e:
            raise ValidationError(
                "path_outside_workspace",
                message=f"Path is outside workspace root: {candidate}",
                attempted_path=str(candidate),
            ) from e

        return candidate

    def relative_path(self, path: str | Path) -> str:
        """Get the path relative to the workspace root."""
        return self.resolve(path).relative_to(self.root).as_posix()

    async def read_file(self, path: str) -> bytes:
        """Read a file from the workspace.

        Raises:
            FileNotFoundInStoreError: If the file does not exist.
            ValidationError: If the path is outside the workspace.
        """
        resolved = self.resolve(path)
        try:
            return await asyncio.to_thread(resolved.read_bytes)
        except (FileNotFoundError, IsADirectoryError) as e:
            raise FileNotFoundInStoreError(path) from e

    async def write_file(self, path: str, data: bytes) -> None:
        """Write a file in the workspace, creating parent directories.

        Raises:
            ValidationError: If the path is outside the workspace.
            OSError: If the write fails.
        """
        resolved = self.resolve(path)

        def _write() -> None:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            resolved.write_bytes(data)

        await asyncio.to_thread(_write)


class InMemoryFileStore:
    """File store backed by a dictionary of path -> bytes."""

    def __init__(self, files: dict[str, bytes | str] | None = None) -> None:
        """Initialize the store.

        Args:
            files: Initial content; str values are encoded as UTF-8.
        """
        self.files: dict[str, bytes] = {}
        for path, content in (files or {}).items():
            self.files[path] = encode_text(content) if isinstance(content, str) else content
        self.writes: list[str] = []

    async def read_file(self, path: str) -> bytes:
        """Read a stored file.

        Raises:
            FileNotFoundInStoreError: If the path is unknown.
        """
        if path not in self.files:
            raise FileNotFoundInStoreError(path)
        return self.files[path]

    async def write_file(self, path: str, data: bytes) -> None:
        """Store file content."""
        self.files[path] = data
        self.writes.append(path)

    def text(self, path: str) -> str:
        """Decoded content of a stored file."""
        return decode_text(self.files[path])


def create_file_store(workspace: Path | str) -> LocalFileStore:
    """Create a file store rooted at a workspace.

    Args:
        workspace: Workspace root path.

    Returns:
        Configured LocalFileStore.
    """
    return LocalFileStore(workspace)
