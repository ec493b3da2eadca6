"""Unit tests for the command line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from nextedit import __version__
from nextedit.cli import main
from nextedit.core.logging import reset_loggers
from nextedit.storage.storage import STATE_FILENAME

PLAN = """
edits:
  - id: define
    file: app.py
    line_start: 1
    original: "def helper():"
    suggested: "def assist():"
    confidence: 0.95
  - id: call
    file: app.py
    line_start: 4
    original: "helper()"
    suggested: "assist()"
    depends_on: define
"""

SOURCE = "def helper():\n    return 1\n\nhelper()\n"


@pytest.fixture(autouse=True)
def fresh_loggers():
    """Loggers created inside the runner must not outlive its streams."""
    reset_loggers()
    yield
    reset_loggers()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "app.py").write_text(SOURCE)
    (tmp_path / "plan.yaml").write_text(PLAN)
    return tmp_path


@pytest.fixture
def runner(workspace: Path) -> CliRunner:
    return CliRunner(env={"NEXTEDIT_STATE_DIR": str(workspace / ".state")})


def invoke(runner: CliRunner, workspace: Path, *args: str):
    return runner.invoke(main, ["--workspace", str(workspace), *args])


def active_session_id(workspace: Path) -> str | None:
    state = json.loads((workspace / ".state" / STATE_FILENAME).read_text())
    return state["active_session_id"]


@pytest.fixture
def started(runner: CliRunner, workspace: Path) -> str:
    result = invoke(runner, workspace, "start", "--plan", str(workspace / "plan.yaml"), "rename helper")
    assert result.exit_code == 0, result.output
    session_id = active_session_id(workspace)
    assert session_id is not None
    return session_id


class TestMain:
    """Tests for the command group."""

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the package version."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_config(self, runner: CliRunner, workspace: Path) -> None:
        """A broken nextedit.yaml exits with an error."""
        (workspace / "nextedit.yaml").write_text("session:\n  seconds_per_edit: -5\n")
        result = invoke(runner, workspace, "list")
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_no_session(self, runner: CliRunner, workspace: Path) -> None:
        """Commands without a session fail with a validation error."""
        result = invoke(runner, workspace, "next")
        assert result.exit_code == 1
        assert "VALIDATION_ERROR" in result.output


class TestReviewCommands:
    """Tests for start/next/accept/skip."""

    def test_start(self, runner: CliRunner, workspace: Path) -> None:
        """start announces the session."""
        result = invoke(runner, workspace, "start", "--plan", str(workspace / "plan.yaml"), "rename helper")
        assert result.exit_code == 0, result.output
        assert "Session Started" in result.output
        assert "nextedit next" in result.output

    def test_start_empty_goal(self, runner: CliRunner, workspace: Path) -> None:
        """An empty goal is rejected."""
        result = invoke(runner, workspace, "start", "--plan", str(workspace / "plan.yaml"), " ")
        assert result.exit_code == 1
        assert "Goal is required" in result.output

    def test_next(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """next shows the first edit with its diff."""
        result = invoke(runner, workspace, "next")
        assert result.exit_code == 0, result.output
        assert "Edit define" in result.output
        assert "+def assist():" in result.output

    def test_accept_and_skip(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """Decisions apply in dependency order and finish the review."""
        result = invoke(runner, workspace, "accept")
        assert result.exit_code == 0, result.output
        assert "Accepted edit define" in result.output
        assert (workspace / "app.py").read_text().startswith("def assist():")

        result = invoke(runner, workspace, "skip", "--reason", "keep call site")
        assert "Skipped edit call" in result.output

        result = invoke(runner, workspace, "next")
        assert "No more edits" in result.output

        result = invoke(runner, workspace, "status")
        assert "2/2 (100%)" in result.output

    def test_accept_out_of_order(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """Accepting a dependent first fails."""
        result = invoke(runner, workspace, "accept", "call")
        assert result.exit_code == 1
        assert "DEPENDENCY_NOT_MET" in result.output
        assert (workspace / "app.py").read_text() == SOURCE

    def test_accept_with_modification(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """--modification-file replaces the suggestion."""
        replacement = workspace / "replacement.txt"
        replacement.write_text("def support():")
        result = invoke(runner, workspace, "accept", "define", "--modification-file", str(replacement))
        assert "Modified edit define" in result.output
        assert (workspace / "app.py").read_text().startswith("def support():")


class TestUndoCommands:
    """Tests for undo and redo across invocations."""

    def test_undo_then_redo(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """Each command rebuilds undo history from the stored session."""
        invoke(runner, workspace, "accept")

        result = invoke(runner, workspace, "undo")
        assert result.exit_code == 0, result.output
        assert "Undid edit define" in result.output
        assert (workspace / "app.py").read_text() == SOURCE

        result = invoke(runner, workspace, "redo")
        assert "Redid edit define" in result.output
        assert (workspace / "app.py").read_text().startswith("def assist():")

    def test_undo_all(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """--level all reverts every accepted edit."""
        invoke(runner, workspace, "accept")
        invoke(runner, workspace, "accept")
        result = invoke(runner, workspace, "undo", "--level", "all")
        assert "Undid edit call" in result.output
        assert "Undid edit define" in result.output
        assert (workspace / "app.py").read_text() == SOURCE

    def test_nothing_to_undo(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """Undo on a fresh session says so."""
        result = invoke(runner, workspace, "undo")
        assert "Nothing to undo" in result.output

    def test_invalid_level(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """Unknown levels are rejected by click."""
        result = invoke(runner, workspace, "undo", "--level", "line")
        assert result.exit_code == 2


class TestLifecycleCommands:
    """Tests for pause/resume/cancel/complete/list."""

    def test_pause_and_resume(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """A paused session can be resumed."""
        result = invoke(runner, workspace, "pause")
        assert f"Paused session {started}" in result.output

        result = invoke(runner, workspace, "next", "--session", started)
        assert result.exit_code == 1

        result = invoke(runner, workspace, "resume", "--session", started)
        assert result.exit_code == 0, result.output
        assert active_session_id(workspace) == started

    def test_complete(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """complete prints the summary and clears the active session."""
        invoke(runner, workspace, "accept")
        result = invoke(runner, workspace, "complete")
        assert result.exit_code == 0, result.output
        assert "Session Summary" in result.output
        assert active_session_id(workspace) is None

        result = invoke(runner, workspace, "summary")
        assert "completed" in result.output

    def test_cancel(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """cancel keeps applied edits."""
        invoke(runner, workspace, "accept")
        result = invoke(runner, workspace, "cancel", "--reason", "enough")
        assert f"Cancelled session {started}" in result.output
        assert (workspace / "app.py").read_text().startswith("def assist():")

    def test_preview(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """preview shows the net change of touched files."""
        invoke(runner, workspace, "accept")
        result = invoke(runner, workspace, "preview")
        assert "app.py (+1 -1)" in result.output

    def test_list(self, runner: CliRunner, workspace: Path, started: str) -> None:
        """list shows stored sessions."""
        result = invoke(runner, workspace, "list")
        assert result.exit_code == 0
        assert "Sessions" in result.output
