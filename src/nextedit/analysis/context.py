"""Edit context extraction and TTL caching.

ContextBuilder reads the code around a suggestion: the surrounding lines,
the enclosing function and class, the module name, the file's imports and
exports, and an MD5 hash of the content.
"""

from __future__ import annotations

import hashlib
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Generic, TypeVar

from nextedit.model.models import AnalysisMethod, EditContext, EditSuggestion, generate_id

T = TypeVar("T")

DEFAULT_CONTEXT_LINES = 5
DEFAULT_CACHE_TTL = 600.0  # seconds
MAX_IMPORTS = 10
MAX_EXPORTS = 10

_FUNCTION_PATTERNS = (
    re.compile(r"^(\s*)(?:async\s+)?def\s+(\w+)\s*\("),
    re.compile(r"^(\s*)(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)\s*\("),
    re.compile(r"^(\s*)(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s*)?(?:\(|function\b)"),
)
_CLASS_PATTERN = re.compile(r"^(\s*)(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(\w+)")
_SOURCE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx", ".py", ".java")


def calculate_file_hash(content: str) -> str:
    """MD5 hex digest of file content."""
    return hashlib.md5(content.encode("utf-8", "surrogateescape")).hexdigest()


@dataclass
class _CacheEntry(Generic[T]):
    value: T
    stored_at: float
    ttl: float


class TTLCache(Generic[T]):
    """In-memory cache whose entries expire after a time-to-live."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: Entry lifetime in seconds
            clock: Time source (monotonic seconds)
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, _CacheEntry[T]] = {}

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """Store a value."""
        self._entries[key] = _CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    def get(self, key: str) -> T | None:
        """Get a value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > entry.ttl:
            del self._entries[key]
            return None
        return entry.value

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def clean_expired(self) -> int:
        """Drop expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.stored_at > e.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()


class ContextCache(TTLCache[EditContext]):
    """Context cache keyed by ``(edit_id, file_hash)``."""

    @staticmethod
    def key(edit_id: str, file_hash: str) -> str:
        return f"{edit_id}:{file_hash}"


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _enclosing(
    lines: list[str],
    line_index: int,
    patterns: tuple[re.Pattern[str], ...],
) -> str | None:
    """Find the nearest definition above a line that encloses it by indentation."""
    if not lines:
        return None
    line_index = min(max(line_index, 0), len(lines) - 1)
    target = lines[line_index]
    limit = _indent(target) if target.strip() else None

    for i in range(line_index, -1, -1):
        line = lines[i]
        for pattern in patterns:
            match = pattern.match(line)
            if match is None:
                continue
            if i == line_index or limit is None or len(match.group(1)) < limit:
                return match.group(2)
        # Blank lines do not narrow the search
        if line.strip() and limit is not None and i != line_index:
            limit = min(limit, _indent(line))
    return None


def detect_function_name(lines: list[str], line_start: int) -> str | None:
    """Name of the function enclosing a 1-indexed line."""
    return _enclosing(lines, line_start - 1, _FUNCTION_PATTERNS)


def detect_class_name(lines: list[str], line_start: int) -> str | None:
    """Name of the class enclosing a 1-indexed line."""
    return _enclosing(lines, line_start - 1, (_CLASS_PATTERN,))


def detect_module_name(file_path: str) -> str | None:
    """Module name derived from a file path."""
    name = PurePosixPath(file_path.replace("\\", "/")).name
    if not name:
        return None
    for suffix in _SOURCE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def extract_imports(lines: list[str]) -> list[str]:
    """Import statements at the start of lines (first 10)."""
    imports = [
        line
        for line in lines
        if line.strip().startswith(("import ", "from ", "require("))
        or re.match(r"^\s*(?:const|let|var)\s+\w+\s*=\s*require\(", line)
    ]
    return imports[:MAX_IMPORTS]


def extract_exports(lines: list[str]) -> list[str]:
    """Export statements and ``__all__`` assignments (first 10)."""
    exports = [
        line
        for line in lines
        if line.strip().startswith(("export ", "__all__", "module.exports"))
    ]
    return exports[:MAX_EXPORTS]


def extract_surrounding_lines(
    lines: list[str],
    line_start: int,
    line_end: int,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> list[str]:
    """Lines from ``context_lines`` before the edit to ``context_lines`` after it."""
    start = max(0, line_start - context_lines - 1)
    end = min(len(lines), line_end + context_lines)
    return lines[start:end]


class ContextBuilder:
    """Builds EditContext records, cached per edit and file hash."""

    def __init__(
        self,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        cache: ContextCache | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            context_lines: Lines of context on each side of an edit
            cache: Context cache (a fresh one by default)
        """
        self.context_lines = context_lines
        self.cache = cache if cache is not None else ContextCache()

    def build(
        self,
        edit: EditSuggestion,
        file_content: str,
        analysis_method: AnalysisMethod = AnalysisMethod.HYBRID,
        semantic_score: float = 0.0,
        matched_pattern: str | None = None,
    ) -> EditContext:
        """Build (or fetch from cache) the context of an edit.

        Args:
            edit: Suggestion to describe
            file_content: Current content of the edit's file
            analysis_method: How the suggestion was found
            semantic_score: Analyzer-specific relevance score
            matched_pattern: Pattern that produced the suggestion, if any

        Returns:
            EditContext
        """
        file_hash = calculate_file_hash(file_content)
        key = ContextCache.key(edit.id, file_hash)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        lines = file_content.split("\n")
        context = EditContext(
            id=generate_id(),
            edit_id=edit.id,
            function_name=detect_function_name(lines, edit.line_start),
            class_name=detect_class_name(lines, edit.line_start),
            module_name=detect_module_name(edit.file_path),
            surrounding_lines=extract_surrounding_lines(
                lines, edit.line_start, edit.line_end, self.context_lines
            ),
            imports=extract_imports(lines),
            exports=extract_exports(lines),
            analysis_method=analysis_method,
            matched_pattern=matched_pattern,
            semantic_score=semantic_score,
            file_hash=file_hash,
        )
        self.cache.set(key, context)
        return context
