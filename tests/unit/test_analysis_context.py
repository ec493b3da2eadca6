"""Tests for edit context extraction and caching."""

from nextedit.analysis.context import (
    ContextBuilder,
    ContextCache,
    TTLCache,
    calculate_file_hash,
    detect_class_name,
    detect_function_name,
    detect_module_name,
    extract_exports,
    extract_imports,
    extract_surrounding_lines,
)
from nextedit.model.models import AnalysisMethod, EditSuggestion

PY_SOURCE = """import os
from pathlib import Path


class Repo:
    def load(self):
        value = os.getcwd()
        return value

    def save(self):
        pass


def helper():
    return 1

top = helper()
""".split("\n")

TS_SOURCE = """import { x } from './x';
const fs = require('fs');

export class Service {
  run() {}
}

export async function start(port) {
  return port;
}

module.exports = start;
""".split("\n")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_before_and_after_expiry(self) -> None:
        """Entries expire after their TTL."""
        clock = FakeClock()
        cache: TTLCache[str] = TTLCache(default_ttl=10, clock=clock)
        cache.set("k", "v")
        clock.now = 10
        assert cache.get("k") == "v"
        clock.now = 10.5
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self) -> None:
        """set accepts an explicit TTL."""
        clock = FakeClock()
        cache: TTLCache[int] = TTLCache(default_ttl=100, clock=clock)
        cache.set("short", 1, ttl=1)
        cache.set("long", 2)
        clock.now = 5
        assert "short" not in cache
        assert "long" in cache

    def test_clean_expired(self) -> None:
        """clean_expired removes only expired entries."""
        clock = FakeClock()
        cache: TTLCache[int] = TTLCache(default_ttl=5, clock=clock)
        cache.set("a", 1)
        clock.now = 3
        cache.set("b", 2)
        clock.now = 6
        assert cache.clean_expired() == 1
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0

    def test_context_cache_key(self) -> None:
        """Keys combine edit ID and file hash."""
        assert ContextCache.key("e1", "abc") == "e1:abc"


class TestDetectors:
    """Tests for the context detectors."""

    def test_function_and_class_in_method(self) -> None:
        """A line inside a method reports both names."""
        assert detect_function_name(PY_SOURCE, 7) == "load"
        assert detect_class_name(PY_SOURCE, 7) == "Repo"

    def test_second_method(self) -> None:
        """The nearest enclosing method wins."""
        assert detect_function_name(PY_SOURCE, 11) == "save"

    def test_top_level_function(self) -> None:
        """Module-level functions have no class."""
        assert detect_function_name(PY_SOURCE, 15) == "helper"
        assert detect_class_name(PY_SOURCE, 15) is None

    def test_module_level_statement(self) -> None:
        """Code after a function is not inside it."""
        assert detect_function_name(PY_SOURCE, 17) is None
        assert detect_class_name(PY_SOURCE, 17) is None

    def test_typescript(self) -> None:
        """JavaScript-style declarations are recognized."""
        assert detect_class_name(TS_SOURCE, 5) == "Service"
        assert detect_function_name(TS_SOURCE, 9) == "start"

    def test_module_name(self) -> None:
        """Module names drop the source suffix."""
        assert detect_module_name("src/services/user.ts") == "user"
        assert detect_module_name("pkg\\mod.py") == "mod"
        assert detect_module_name("Makefile") == "Makefile"

    def test_imports(self) -> None:
        """Import and require statements are collected."""
        assert extract_imports(PY_SOURCE) == ["import os", "from pathlib import Path"]
        assert extract_imports(TS_SOURCE) == [
            "import { x } from './x';",
            "const fs = require('fs');",
        ]

    def test_imports_capped(self) -> None:
        """At most ten imports are kept."""
        lines = [f"import m{i}" for i in range(15)]
        assert len(extract_imports(lines)) == 10

    def test_exports(self) -> None:
        """Export statements are collected."""
        exports = extract_exports(TS_SOURCE)
        assert exports[0] == "export class Service {"
        assert exports[-1] == "module.exports = start;"
        assert extract_exports(["__all__ = ['a']"]) == ["__all__ = ['a']"]

    def test_surrounding_lines(self) -> None:
        """Context window is clamped to the file."""
        lines = [str(i) for i in range(1, 21)]
        assert extract_surrounding_lines(lines, 10, 10, 2) == ["8", "9", "10", "11", "12"]
        assert extract_surrounding_lines(lines, 1, 2, 3) == ["1", "2", "3", "4", "5"]
        assert extract_surrounding_lines(lines, 20, 20, 3)[-1] == "20"


class TestContextBuilder:
    """Tests for ContextBuilder."""

    def _edit(self) -> EditSuggestion:
        return EditSuggestion(
            id="e1",
            session_id="s1",
            file_path="src/repo.py",
            line_start=7,
            line_end=7,
            original_content="value = os.getcwd()",
            suggested_content="value = Path.cwd()",
        )

    def test_build(self) -> None:
        """Context carries detectors, hash and analysis metadata."""
        content = "\n".join(PY_SOURCE)
        context = ContextBuilder(context_lines=1).build(
            self._edit(),
            content,
            analysis_method=AnalysisMethod.PATTERN,
            semantic_score=0.4,
            matched_pattern="os.getcwd",
        )
        assert context.edit_id == "e1"
        assert context.function_name == "load"
        assert context.class_name == "Repo"
        assert context.module_name == "repo"
        assert context.surrounding_lines == [
            "    def load(self):",
            "        value = os.getcwd()",
            "        return value",
        ]
        assert context.file_hash == calculate_file_hash(content)
        assert context.analysis_method == AnalysisMethod.PATTERN
        assert context.matched_pattern == "os.getcwd"

    def test_cached_per_file_hash(self) -> None:
        """Same content hits the cache; changed content rebuilds."""
        builder = ContextBuilder()
        content = "\n".join(PY_SOURCE)
        first = builder.build(self._edit(), content)
        assert builder.build(self._edit(), content) is first
        assert builder.build(self._edit(), content + "\n# changed") is not first
        assert len(builder.cache) == 2
