"""CLI entry point for nextedit.

Provides commands for:
- Starting a review session (nextedit start)
- Reviewing edits one at a time (nextedit next / accept / skip)
- Undoing and redoing (nextedit undo / redo)
- Inspecting sessions (nextedit status / preview / summary / list)
- Session lifecycle (nextedit pause / resume / cancel / complete)
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import click
from rich.console import Console

from nextedit import __version__
from nextedit.analysis import AnalysisOptions
from nextedit.config import (
    ConfigError,
    NextEditConfig,
    load_env_config,
    load_workspace_config,
)
from nextedit.core import (
    NextEditError,
    NoMoreEditsError,
    ValidationError,
    configure_logging,
)
from nextedit.model import UndoLevel
from nextedit.session import (
    NextEditSession,
    SessionDisplay,
    create_next_edit_session,
    create_session_display,
)
from nextedit.storage import JsonSessionStorage

T = TypeVar("T")

# Global console for Rich output
console = Console()


@dataclass
class CliContext:
    """Settings shared by all commands."""

    workspace: Path
    config: NextEditConfig
    state_dir: Path
    verbose: bool

    def engine(self, plan: Path | None = None) -> NextEditSession:
        """Build a session engine for the workspace."""
        return create_next_edit_session(
            self.workspace,
            storage=JsonSessionStorage(self.state_dir),
            config=self.config,
            plan_path=plan,
        )

    def display(self) -> SessionDisplay:
        return create_session_display(console=console, verbose=self.verbose)


def _run(operation: Callable[[], Awaitable[T]]) -> T:
    """Run an async operation, exiting with status 1 on engine errors."""
    try:
        return asyncio.run(operation())
    except NextEditError as e:
        create_session_display(console=console).show_error(e.code.value, e.message)
        sys.exit(1)


async def _resolve_session(
    engine: NextEditSession,
    session_id: str | None,
    fallback_to_last: bool = False,
) -> str:
    """Explicit session ID, else the active session (or the last one)."""
    if session_id:
        return session_id
    resolved = await engine.get_active_session_id()
    if resolved is None and fallback_to_last:
        resolved = await engine.get_last_session_id()
    if resolved is None:
        raise ValidationError(
            "no_active_session",
            message="No active session. Start one with 'nextedit start' or pass --session.",
        )
    return resolved


session_option = click.option(
    "--session", "session_id", default=None, help="Session ID (defaults to the active session)"
)


@click.group()
@click.version_option(version=__version__, prog_name="nextedit")
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (defaults to the current directory)",
)
@click.option("-v", "--verbose", is_flag=True, help="Show edit context details")
@click.pass_context
def main(ctx: click.Context, workspace: Path | None, verbose: bool) -> None:
    """nextedit - review multi-file edits one at a time, in dependency order."""
    root = (workspace or Path.cwd()).resolve()
    env = load_env_config(root)
    configure_logging(level=env.log_level, json_format=env.json_logs)

    try:
        config = load_workspace_config(root)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    ctx.obj = CliContext(workspace=root, config=config, state_dir=env.state_dir, verbose=verbose)


@main.command()
@click.argument("goal", required=True)
@click.option(
    "--plan",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML plan file with the edits to review",
)
@click.option("--include", "include", multiple=True, help="Glob of files to analyze (repeatable)")
@click.option("--exclude", "exclude", multiple=True, help="Glob of files to skip (repeatable)")
@click.option("--max-files", type=int, default=None, help="Maximum number of files to analyze")
@click.pass_obj
def start(
    obj: CliContext,
    goal: str,
    plan: Path | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    max_files: int | None,
) -> None:
    """Analyze the workspace and start a review session.

    GOAL describes the change, e.g. "rename fetch_user to load_user".

    Examples:
        nextedit start "rename fetch_user to load_user"
        nextedit start --plan edits.yaml "Migrate to the v2 client"
    """
    engine = obj.engine(plan)
    options = AnalysisOptions.from_defaults(
        obj.config.analysis,
        include_patterns=list(include) or None,
        exclude_patterns=list(exclude) or None,
        max_files=max_files,
    )
    session = _run(lambda: engine.start(str(obj.workspace), goal, options))
    obj.display().show_started(session)
    if session.edits:
        console.print("[dim]Run 'nextedit next' to review the first edit.[/dim]")


@main.command(name="next")
@session_option
@click.pass_obj
def next_edit(obj: CliContext, session_id: str | None) -> None:
    """Show the next edit awaiting a decision."""
    engine = obj.engine()
    display = obj.display()

    async def _next() -> None:
        sid = await _resolve_session(engine, session_id)
        try:
            edit, context = await engine.get_next_edit(sid)
        except NoMoreEditsError:
            display.show_no_more_edits()
            return
        display.show_edit(edit, context, await engine.get_diff(sid, edit.id))

    _run(_next)


@main.command()
@click.argument("edit_id", required=False)
@click.option(
    "--modification-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="File holding a replacement to apply instead of the suggestion",
)
@session_option
@click.pass_obj
def accept(
    obj: CliContext,
    edit_id: str | None,
    modification_file: Path | None,
    session_id: str | None,
) -> None:
    """Accept an edit (the next one by default)."""
    engine = obj.engine()
    modification = modification_file.read_text() if modification_file else None

    async def _accept() -> None:
        sid = await _resolve_session(engine, session_id)
        target = edit_id
        if target is None:
            try:
                edit, _ = await engine.get_next_edit(sid)
            except NoMoreEditsError:
                obj.display().show_no_more_edits()
                return
            target = edit.id
        action = await engine.apply_edit(sid, target, modification)
        obj.display().show_action(action, "Modified" if modification is not None else "Accepted")

    _run(_accept)


@main.command()
@click.argument("edit_id", required=False)
@click.option("--reason", default=None, help="Why the edit is skipped")
@session_option
@click.pass_obj
def skip(obj: CliContext, edit_id: str | None, reason: str | None, session_id: str | None) -> None:
    """Skip an edit (the next one by default)."""
    engine = obj.engine()

    async def _skip() -> None:
        sid = await _resolve_session(engine, session_id)
        target = edit_id
        if target is None:
            try:
                edit, _ = await engine.get_next_edit(sid)
            except NoMoreEditsError:
                obj.display().show_no_more_edits()
                return
            target = edit.id
        action = await engine.skip_edit(sid, target, reason)
        obj.display().show_action(action, "Skipped")

    _run(_skip)


@main.command()
@click.option(
    "--level",
    type=click.Choice([level.value for level in UndoLevel]),
    default=None,
    help="Undo one edit, every trailing edit of the same file, or everything",
)
@session_option
@click.pass_obj
def undo(obj: CliContext, level: str | None, session_id: str | None) -> None:
    """Undo applied edits."""
    engine = obj.engine()

    async def _undo() -> None:
        sid = await _resolve_session(engine, session_id)
        obj.display().show_undo(await engine.undo_last_edit(sid, level))

    _run(_undo)


@main.command()
@session_option
@click.pass_obj
def redo(obj: CliContext, session_id: str | None) -> None:
    """Redo the most recently undone edit."""
    engine = obj.engine()

    async def _redo() -> None:
        sid = await _resolve_session(engine, session_id)
        action = await engine.redo_last_edit(sid)
        obj.display().show_undo([action] if action else [], redo=True)

    _run(_redo)


@main.command()
@session_option
@click.pass_obj
def status(obj: CliContext, session_id: str | None) -> None:
    """Show session status and progress."""
    engine = obj.engine()

    async def _status() -> None:
        sid = await _resolve_session(engine, session_id, fallback_to_last=True)
        session = await engine.get_session(sid)
        obj.display().show_progress(session, await engine.get_progress(sid))

    _run(_status)


@main.command()
@session_option
@click.pass_obj
def preview(obj: CliContext, session_id: str | None) -> None:
    """Show the net change of every file touched so far."""
    engine = obj.engine()

    async def _preview() -> None:
        sid = await _resolve_session(engine, session_id, fallback_to_last=True)
        obj.display().show_preview(await engine.preview_all_changes(sid))

    _run(_preview)


@main.command()
@session_option
@click.pass_obj
def summary(obj: CliContext, session_id: str | None) -> None:
    """Show a session summary."""
    engine = obj.engine()

    async def _summary() -> None:
        sid = await _resolve_session(engine, session_id, fallback_to_last=True)
        obj.display().show_summary(await engine.get_summary(sid))

    _run(_summary)


@main.command()
@session_option
@click.pass_obj
def pause(obj: CliContext, session_id: str | None) -> None:
    """Pause the session."""
    engine = obj.engine()

    async def _pause() -> None:
        sid = await _resolve_session(engine, session_id)
        session = await engine.pause(sid)
        console.print(f"[yellow]Paused[/yellow] session {session.id}")

    _run(_pause)


@main.command()
@session_option
@click.pass_obj
def resume(obj: CliContext, session_id: str | None) -> None:
    """Resume a paused session."""
    engine = obj.engine()

    async def _resume() -> None:
        sid = await _resolve_session(engine, session_id, fallback_to_last=True)
        session = await engine.resume(sid)
        console.print(f"[green]Resumed[/green] session {session.id}")

    _run(_resume)


@main.command()
@click.option("--reason", default=None, help="Why the session is cancelled")
@session_option
@click.pass_obj
def cancel(obj: CliContext, reason: str | None, session_id: str | None) -> None:
    """Cancel the session. Applied edits stay applied."""
    engine = obj.engine()

    async def _cancel() -> None:
        sid = await _resolve_session(engine, session_id)
        session = await engine.cancel(sid, reason)
        console.print(f"[yellow]Cancelled[/yellow] session {session.id}")

    _run(_cancel)


@main.command()
@session_option
@click.pass_obj
def complete(obj: CliContext, session_id: str | None) -> None:
    """Complete the session and show its summary."""
    engine = obj.engine()

    async def _complete() -> None:
        sid = await _resolve_session(engine, session_id)
        obj.display().show_summary(await engine.complete(sid))

    _run(_complete)


@main.command(name="list")
@click.pass_obj
def list_sessions(obj: CliContext) -> None:
    """List stored sessions (* marks the active one)."""
    engine = obj.engine()

    async def _list() -> None:
        sessions = await engine.list_sessions()
        obj.display().show_sessions(sessions, await engine.get_active_session_id())

    _run(_list)


if __name__ == "__main__":
    main()
