"""Unified diff rendering for edits and whole-file changes."""

import difflib
from dataclasses import dataclass
from typing import Any


def _ensure_trailing_newline(lines: list[str]) -> list[str]:
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    return lines


@dataclass
class FileDiff:
    """Net change to one file."""

    path: str
    original_content: str
    new_content: str

    @property
    def changed(self) -> bool:
        """Whether the content differs."""
        return self.original_content != self.new_content

    def to_unified_diff(self) -> str:
        """Generate a unified diff for this change.

        Returns:
            Git-style unified diff string (empty if nothing changed).
        """
        original_lines = _ensure_trailing_newline(
            self.original_content.splitlines(keepends=True)
        )
        new_lines = _ensure_trailing_newline(self.new_content.splitlines(keepends=True))

        diff = difflib.unified_diff(
            original_lines,
            new_lines,
            fromfile=f"a/{self.path}",
            tofile=f"b/{self.path}",
        )

        return "".join(diff).rstrip("\n")

    def line_stats(self) -> tuple[int, int]:
        """Count added and removed lines.

        Returns:
            (additions, deletions)
        """
        additions = deletions = 0
        for line in self.to_unified_diff().splitlines():
            if line.startswith(("+++", "---")):
                continue
            if line.startswith("+"):
                additions += 1
            elif line.startswith("-"):
                deletions += 1
        return additions, deletions

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        additions, deletions = self.line_stats()
        return {
            "path": self.path,
            "original_content": self.original_content,
            "new_content": self.new_content,
            "diff": self.to_unified_diff(),
            "additions": additions,
            "deletions": deletions,
        }


def render_block_diff(path: str, original: str, suggested: str) -> str:
    """Diff two text blocks as if they were the whole file.

    Args:
        path: File path used in the headers.
        original: Text being replaced.
        suggested: Replacement text.

    Returns:
        Unified diff string.
    """
    return FileDiff(path=path, original_content=original, new_content=suggested).to_unified_diff()


def combine_diffs(diffs: list[FileDiff]) -> str:
    """Concatenate the unified diffs of several files, skipping unchanged ones."""
    return "\n".join(d.to_unified_diff() for d in diffs if d.changed)
