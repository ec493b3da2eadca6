"""Unit tests for unified diff rendering."""

from nextedit.executor.diff import FileDiff, combine_diffs, render_block_diff


class TestFileDiff:
    """Tests for FileDiff."""

    def test_unchanged(self) -> None:
        """Identical content yields an empty diff."""
        diff = FileDiff(path="a.py", original_content="x\n", new_content="x\n")
        assert not diff.changed
        assert diff.to_unified_diff() == ""
        assert diff.line_stats() == (0, 0)

    def test_headers_and_lines(self) -> None:
        """Diffs use a/ and b/ headers."""
        diff = FileDiff(path="src/a.py", original_content="x = 1\ny = 2\n", new_content="x = 1\ny = 3\n")
        text = diff.to_unified_diff()
        assert text.startswith("--- a/src/a.py\n+++ b/src/a.py\n")
        assert "-y = 2" in text
        assert "+y = 3" in text
        assert not text.endswith("\n")

    def test_missing_trailing_newline(self) -> None:
        """Content without a final newline still diffs line by line."""
        diff = FileDiff(path="a.py", original_content="a\nb", new_content="a\nc")
        assert diff.line_stats() == (1, 1)

    def test_line_stats(self) -> None:
        """Additions and deletions are counted without headers."""
        diff = FileDiff(path="a.py", original_content="a\n", new_content="b\nc\n")
        assert diff.line_stats() == (2, 1)

    def test_to_dict(self) -> None:
        """to_dict includes the rendered diff and stats."""
        data = FileDiff(path="a.py", original_content="a\n", new_content="b\n").to_dict()
        assert data["path"] == "a.py"
        assert data["additions"] == 1
        assert data["deletions"] == 1
        assert data["diff"].startswith("--- a/a.py")


class TestHelpers:
    """Tests for module-level helpers."""

    def test_render_block_diff(self) -> None:
        """Blocks diff as if they were whole files."""
        text = render_block_diff("a.py", "old()", "new()")
        assert "-old()" in text
        assert "+new()" in text

    def test_combine_diffs_skips_unchanged(self) -> None:
        """Unchanged files are left out of the combined diff."""
        combined = combine_diffs(
            [
                FileDiff(path="a.py", original_content="a\n", new_content="b\n"),
                FileDiff(path="same.py", original_content="s\n", new_content="s\n"),
                FileDiff(path="c.py", original_content="c\n", new_content="d\n"),
            ]
        )
        assert "a/a.py" in combined
        assert "a/c.py" in combined
        assert "same.py" not in combined
