"""Rich terminal display for review sessions."""

from rich.console import Console
from rich.panel import Panel
from rich.style import Style
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from nextedit.executor.diff import FileDiff
from nextedit.model.models import (
    EditAction,
    EditContext,
    EditSession,
    EditSuggestion,
    SessionProgress,
    SessionStatus,
    SessionSummary,
)

STATUS_STYLES: dict[SessionStatus, Style] = {
    SessionStatus.INITIALIZING: Style(color="yellow"),
    SessionStatus.ACTIVE: Style(color="blue", bold=True),
    SessionStatus.PAUSED: Style(color="yellow"),
    SessionStatus.COMPLETED: Style(color="green", bold=True),
    SessionStatus.CANCELLED: Style(color="yellow"),
    SessionStatus.ERROR: Style(color="red", bold=True),
}


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


class SessionDisplay:
    """Renders sessions, edits, diffs and summaries to a console."""

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        """Initialize the display.

        Args:
            console: Rich console (uses default if None)
            verbose: Whether to show edit context details
        """
        self.console = console or Console()
        self.verbose = verbose

    def show_started(self, session: EditSession) -> None:
        """Announce a new session."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Session", session.id)
        table.add_row("Goal", _truncate(session.goal, 60))
        table.add_row("Edits", str(len(session.edits)))
        table.add_row("Files", str(session.total_files))
        table.add_row("Estimate", f"{session.estimated_time // 60}m {session.estimated_time % 60}s")

        self.console.print(Panel(table, title="[bold]Session Started[/bold]", border_style="blue"))

    def show_edit(
        self,
        edit: EditSuggestion,
        context: EditContext | None,
        diff: str,
    ) -> None:
        """Show the edit awaiting a decision."""
        header = Text()
        header.append(f"{edit.file_path}:{edit.line_start}-{edit.line_end}", style="bold")
        header.append(f"  [{edit.category.value}] confidence {edit.confidence:.2f}", style="dim")
        if edit.rationale:
            header.append(f"\n{edit.rationale}")
        if edit.dependencies:
            header.append(f"\nDepends on: {', '.join(edit.dependencies)}", style="dim")

        self.console.print(Panel(header, title=f"[bold]Edit {edit.id}[/bold]", border_style="blue"))
        if diff:
            self.show_diff(diff)

        if self.verbose and context is not None:
            location = ".".join(n for n in (context.class_name, context.function_name) if n)
            if location:
                self.console.print(f"[dim]In {location}[/dim]")
            if context.surrounding_lines:
                self.console.print(
                    Panel(
                        "\n".join(context.surrounding_lines),
                        title="[dim]Context[/dim]",
                        border_style="dim",
                    )
                )

    def show_diff(self, diff: str, title: str = "Diff") -> None:
        """Show a unified diff with syntax highlighting."""
        self.console.print(
            Panel(Syntax(diff, "diff", word_wrap=True), title=f"[bold]{title}[/bold]", border_style="dim")
        )

    def show_preview(self, diffs: list[FileDiff]) -> None:
        """Show the net change of every touched file."""
        changed = [d for d in diffs if d.changed]
        if not changed:
            self.console.print("[dim]No changes applied yet[/dim]")
            return

        for file_diff in changed:
            additions, deletions = file_diff.line_stats()
            self.show_diff(
                file_diff.to_unified_diff(),
                title=f"{file_diff.path} (+{additions} -{deletions})",
            )

    def show_action(self, action: EditAction, verb: str) -> None:
        """Confirm a decision."""
        self.console.print(f"[green]{verb}[/green] edit {action.edit_id}")

    def show_undo(self, actions: list[EditAction], redo: bool = False) -> None:
        """Confirm an undo or redo."""
        kind = "Redid" if redo else "Undid"
        if not actions:
            self.console.print(f"[dim]Nothing to {'redo' if redo else 'undo'}[/dim]")
            return
        for action in actions:
            self.console.print(f"[yellow]{kind}[/yellow] edit {action.edit_id}")

    def show_progress(self, session: EditSession, progress: SessionProgress) -> None:
        """Show a session status panel with progress counters."""
        style = STATUS_STYLES.get(session.status, Style())

        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Session", session.id)
        table.add_row("Status", Text(session.status.value, style=style))
        table.add_row("Goal", _truncate(session.goal, 60))
        table.add_row(
            "Progress",
            f"{progress.completed + progress.skipped}/{progress.total} ({progress.percentage}%)",
        )
        table.add_row("Accepted", str(progress.completed))
        table.add_row("Skipped", str(progress.skipped))
        table.add_row("Remaining", str(progress.remaining))

        self.console.print(
            Panel(
                table,
                title="[bold]Session Status[/bold]",
                border_style="blue" if session.status == SessionStatus.ACTIVE else "dim",
            )
        )

    def show_summary(self, summary: SessionSummary) -> None:
        """Show a session summary."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Status", summary.status)
        table.add_row("Total edits", str(summary.total_edits))
        table.add_row("Accepted", str(summary.completed_edits))
        table.add_row("Modified", str(summary.modified_edits))
        table.add_row("Skipped", str(summary.skipped_edits))
        table.add_row("Pending", str(summary.pending_edits))
        if summary.errors:
            table.add_row("Errors", Text(str(summary.errors), style="red"))
        table.add_row("Files changed", "\n".join(summary.files_changed) or "-")

        done = summary.status == SessionStatus.COMPLETED.value
        self.console.print(
            Panel(
                table,
                title=f"[bold]Session Summary[/bold] {summary.session_id}",
                border_style="green" if done else "dim",
            )
        )

    def show_sessions(self, sessions: list[EditSession], active_id: str | None = None) -> None:
        """List sessions in a table."""
        if not sessions:
            self.console.print("[dim]No sessions[/dim]")
            return

        table = Table(title="Sessions", show_header=True)
        table.add_column("", width=1)
        table.add_column("ID", width=36)
        table.add_column("Status", width=11)
        table.add_column("Edits", justify="right", width=7)
        table.add_column("Goal", width=40)

        for session in sessions:
            done = len(session.completed_edits) + len(session.skipped_edits)
            table.add_row(
                "*" if session.id == active_id else "",
                session.id,
                Text(session.status.value, style=STATUS_STYLES.get(session.status, Style())),
                f"{done}/{len(session.edits)}",
                _truncate(session.goal, 40),
            )

        self.console.print(table)

    def show_no_more_edits(self) -> None:
        """Tell the reviewer every edit has been decided."""
        self.console.print("[green]No more edits.[/green] Run 'nextedit complete' to finish the session.")

    def show_error(self, code: str, message: str) -> None:
        """Show an engine error."""
        self.console.print(f"[red]Error ({code}):[/red] {message}")


def create_session_display(console: Console | None = None, verbose: bool = False) -> SessionDisplay:
    """Create a new session display.

    Args:
        console: Rich console (uses default if None)
        verbose: Whether to show edit context details

    Returns:
        New SessionDisplay instance
    """
    return SessionDisplay(console=console, verbose=verbose)
