"""Shared fixtures for integration tests."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest

from nextedit.analysis.analyzer import StaticAnalyzer
from nextedit.core.logging import LogLevel, StructuredLogger
from nextedit.executor.executor import EditExecutor
from nextedit.executor.file_store import LocalFileStore
from nextedit.model.models import EditSuggestion
from nextedit.session.session import NextEditSession
from nextedit.storage.storage import JsonSessionStorage

SERVICE = (
    "def fetch_user(user_id):\n"
    "    return db.get(user_id)\n"
)
HANDLER = (
    "from service import fetch_user\n"
    "\n"
    "def handle(request):\n"
    "    return fetch_user(request.user_id)\n"
)


def make_edit(
    edit_id: str,
    file_path: str,
    line: int,
    original: str,
    suggested: str,
    *dependencies: str,
) -> EditSuggestion:
    """Create a suggestion for a single line."""
    return EditSuggestion(
        id=edit_id,
        session_id="",
        file_path=file_path,
        line_start=line,
        line_end=line,
        original_content=original,
        suggested_content=suggested,
        confidence=0.9,
        dependencies=list(dependencies),
    )


def rename_edits() -> list[EditSuggestion]:
    """Rename fetch_user to load_user across two files."""
    return [
        make_edit("define", "service.py", 1, "def fetch_user(user_id):", "def load_user(user_id):"),
        make_edit("import", "handler.py", 1, "from service import fetch_user", "from service import load_user", "define"),
        make_edit("call", "handler.py", 4, "fetch_user(request.user_id)", "load_user(request.user_id)", "import"),
    ]


@pytest.fixture
def logger() -> StructuredLogger:
    """Logger writing to a buffer."""
    return StructuredLogger("integration", level=LogLevel.DEBUG, output=StringIO())


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace with a service module and one caller."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "service.py").write_text(SERVICE)
    (root / "handler.py").write_text(HANDLER)
    return root


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def make_engine(workspace: Path, state_dir: Path, logger: StructuredLogger):
    """Build engines that share the workspace and on-disk state.

    Each call returns a fresh engine, as a new process would see it.
    """

    def _make(edits: list[EditSuggestion] | None = None) -> NextEditSession:
        return NextEditSession(
            analyzer=StaticAnalyzer(edits if edits is not None else rename_edits(), logger=logger),
            executor=EditExecutor(LocalFileStore(workspace), logger=logger),
            storage=JsonSessionStorage(state_dir),
            logger=logger,
        )

    return _make
