"""Analyzers turn a goal into edit suggestions.

Analyzers shipped here:
- PlanAnalyzer: reads suggestions from a YAML plan file
- PatternAnalyzer: handles "rename X to Y" / "replace X with Y" goals by
  scanning workspace files line by line
- StaticAnalyzer: returns a fixed list (embedding and tests)

All of them share BaseAnalyzer, which caches results per
(workspace, goal, options), builds edit contexts and scores confidence.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import re
import time
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

from nextedit.analysis.context import DEFAULT_CACHE_TTL, ContextBuilder, TTLCache
from nextedit.analysis.file_filter import discover_files
from nextedit.config.schema import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    AnalysisDefaults,
)
from nextedit.core.exceptions import AnalysisFailedError, NextEditError
from nextedit.core.logging import StructuredLogger, get_logger
from nextedit.executor.file_store import decode_text
from nextedit.model.models import (
    DEFAULT_SECONDS_PER_EDIT,
    AnalysisMethod,
    EditCategory,
    EditContext,
    EditSuggestion,
    generate_id,
)

_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".go": "go",
    ".rs": "rust",
}


def detect_language(file_path: str) -> str:
    """Source language from a file extension."""
    return _LANGUAGES.get(Path(file_path).suffix.lower(), "unknown")


def calculate_confidence(edit: EditSuggestion) -> float:
    """Heuristic confidence score in [0, 1].

    Starts at 0.5; a detailed rationale, a real change, a refactor/fix
    category and non-empty blocks raise it; hedging in the rationale
    ("?", "Maybe") lowers it.
    """
    confidence = 0.5

    if edit.rationale and len(edit.rationale) > 50:
        confidence += 0.2
    if edit.original_content != edit.suggested_content:
        confidence += 0.2
    if edit.category in (EditCategory.REFACTOR, EditCategory.FIX):
        confidence += 0.1
    if edit.original_content and edit.suggested_content:
        confidence += 0.1
    if edit.rationale and "?" in edit.rationale:
        confidence -= 0.2
    if edit.rationale and "Maybe" in edit.rationale:
        confidence -= 0.1

    return round(min(max(confidence, 0.0), 1.0), 2)


def link_dependents(edits: Sequence[EditSuggestion]) -> None:
    """Fill each edit's ``dependents`` from the other edits' dependencies."""
    by_id = {edit.id: edit for edit in edits}
    for edit in edits:
        edit.dependents = []
    for edit in edits:
        for dep_id in edit.dependencies:
            dep = by_id.get(dep_id)
            if dep is not None and edit.id not in dep.dependents:
                dep.dependents.append(edit.id)


@dataclass
class AnalysisOptions:
    """Options for one analysis run."""

    include_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_files: int = 1000
    use_semantic_analysis: bool = True
    use_pattern_matching: bool = True

    @classmethod
    def from_defaults(cls, defaults: AnalysisDefaults, **overrides: Any) -> AnalysisOptions:
        """Build options from configuration, applying non-None overrides."""
        values = asdict(defaults)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class AnalysisResult:
    """Suggestions produced for a goal."""

    edits: list[EditSuggestion] = field(default_factory=list)
    total_files: int = 0
    estimated_time: int = 0

    def copy(self) -> AnalysisResult:
        """Deep copy, so callers may mutate the edits."""
        return AnalysisResult(
            edits=[EditSuggestion.from_dict(e.to_dict()) for e in self.edits],
            total_files=self.total_files,
            estimated_time=self.estimated_time,
        )


class Analyzer(Protocol):
    """Discovers candidate edits for a goal."""

    async def analyze_codebase(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions | None = None,
    ) -> AnalysisResult: ...

    async def generate_context(self, edit: EditSuggestion, file_content: str) -> EditContext: ...


class BaseAnalyzer:
    """Shared analyzer behavior: result caching, context and confidence."""

    analysis_method = AnalysisMethod.HYBRID
    component = "analyzer"

    def __init__(
        self,
        seconds_per_edit: int = DEFAULT_SECONDS_PER_EDIT,
        context_builder: ContextBuilder | None = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            seconds_per_edit: Review time estimate per edit
            context_builder: Context builder (default settings if omitted)
            cache_ttl: Lifetime of cached analysis results, in seconds
            logger: Logger (defaults to the "analyzer" component logger)
        """
        self.seconds_per_edit = seconds_per_edit
        self.context_builder = context_builder or ContextBuilder()
        self.results_cache: TTLCache[AnalysisResult] = TTLCache(default_ttl=cache_ttl)
        self._logger = logger or get_logger(self.component)

    @staticmethod
    def cache_key(workspace_uri: str, goal: str, options: AnalysisOptions) -> str:
        """Key for the analysis-result cache."""
        options_str = json.dumps(options.to_dict(), sort_keys=True)
        return hashlib.md5(f"{workspace_uri}:{goal}:{options_str}".encode()).hexdigest()

    async def analyze_codebase(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions | None = None,
    ) -> AnalysisResult:
        """Produce suggestions for a goal.

        Args:
            workspace_uri: Workspace root
            goal: Reviewer goal
            options: Analysis options (defaults if omitted)

        Returns:
            AnalysisResult (a private copy; safe to mutate)

        Raises:
            AnalysisFailedError: If the analyzer cannot produce suggestions
        """
        options = options or AnalysisOptions()
        key = self.cache_key(workspace_uri, goal, options)

        cached = self.results_cache.get(key)
        if cached is not None:
            self._logger.debug("Using cached analysis results", cache_key=key)
            return cached.copy()

        start = time.perf_counter()
        try:
            result = await self._analyze(workspace_uri, goal, options)
        except NextEditError:
            raise
        except Exception as e:
            self._logger.error("Codebase analysis failed", goal=goal[:200], error=str(e))
            raise AnalysisFailedError(str(e) or type(e).__name__, goal=goal) from e

        link_dependents(result.edits)
        result.estimated_time = len(result.edits) * self.seconds_per_edit
        self.results_cache.set(key, result)

        self._logger.info(
            "Codebase analysis completed",
            edits_found=len(result.edits),
            total_files=result.total_files,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return result.copy()

    async def _analyze(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions,
    ) -> AnalysisResult:
        raise NotImplementedError

    async def generate_context(self, edit: EditSuggestion, file_content: str) -> EditContext:
        """Build the context of an edit from its file's current content."""
        return self.context_builder.build(
            edit,
            file_content,
            analysis_method=self.analysis_method,
        )

    def calculate_confidence(self, edit: EditSuggestion) -> float:
        """Heuristic confidence score in [0, 1]."""
        return calculate_confidence(edit)

    def clear_cache(self) -> None:
        """Drop cached analysis results and contexts."""
        self.results_cache.clear()
        self.context_builder.cache.clear()


class StaticAnalyzer(BaseAnalyzer):
    """Returns a fixed list of suggestions regardless of the goal."""

    analysis_method = AnalysisMethod.MANUAL

    def __init__(self, edits: Sequence[EditSuggestion], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.edits = list(edits)
        self.calls = 0

    async def _analyze(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions,
    ) -> AnalysisResult:
        self.calls += 1
        edits = [EditSuggestion.from_dict(e.to_dict()) for e in self.edits]
        return AnalysisResult(
            edits=edits,
            total_files=len({e.file_path for e in edits}),
        )


_PLAN_CATEGORIES = {category.value for category in EditCategory}


class PlanAnalyzer(BaseAnalyzer):
    """Reads suggestions from a YAML plan.

    Plan format::

        edits:
          - id: rename-helper          # optional, generated if absent
            file: src/app.py
            line_start: 3
            line_end: 3                # defaults to line_start
            original: "def helper():"
            suggested: "def assist():"
            rationale: Clearer name
            confidence: 0.9            # scored heuristically if absent
            depends_on: [other-id]
            category: refactor
            priority: 1
    """

    analysis_method = AnalysisMethod.MANUAL

    def __init__(self, plan_path: Path | str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.plan_path = Path(plan_path)

    def _resolve_plan(self, workspace_uri: str) -> Path:
        if self.plan_path.is_absolute():
            return self.plan_path
        return Path(workspace_uri) / self.plan_path

    async def _analyze(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions,
    ) -> AnalysisResult:
        path = self._resolve_plan(workspace_uri)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise AnalysisFailedError(f"Cannot read plan file {path}: {e}") from e

        edits = self.parse_plan(content)
        return AnalysisResult(edits=edits, total_files=len({e.file_path for e in edits}))

    def parse_plan(self, content: str) -> list[EditSuggestion]:
        """Parse plan YAML into suggestions.

        Raises:
            AnalysisFailedError: If the plan is malformed
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise AnalysisFailedError(f"Failed to parse plan YAML: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("edits"), list):
            raise AnalysisFailedError("Plan must be a mapping with an 'edits' list")

        return [self._parse_entry(i, entry) for i, entry in enumerate(data["edits"])]

    def _parse_entry(self, index: int, entry: Any) -> EditSuggestion:
        where = f"edits[{index}]"
        if not isinstance(entry, dict):
            raise AnalysisFailedError(f"{where} must be a mapping")

        for key in ("file", "line_start", "suggested"):
            if key not in entry:
                raise AnalysisFailedError(f"{where} requires '{key}' field")

        file_path = entry["file"]
        if not isinstance(file_path, str) or not file_path.strip():
            raise AnalysisFailedError(f"{where}.file must be a non-empty string")

        try:
            line_start = int(entry["line_start"])
            line_end = int(entry.get("line_end", line_start))
            priority = int(entry.get("priority", 1))
        except (TypeError, ValueError) as e:
            raise AnalysisFailedError(f"{where} has a non-integer line or priority") from e

        category_name = str(entry.get("category", EditCategory.REFACTOR.value)).lower()
        if category_name not in _PLAN_CATEGORIES:
            raise AnalysisFailedError(f"{where}.category must be one of: {', '.join(sorted(_PLAN_CATEGORIES))}")

        depends_on = entry.get("depends_on", [])
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        if not isinstance(depends_on, list):
            raise AnalysisFailedError(f"{where}.depends_on must be a list")

        edit = EditSuggestion(
            id=str(entry.get("id") or generate_id()),
            session_id="",
            file_path=file_path,
            line_start=line_start,
            line_end=line_end,
            original_content=str(entry.get("original", "")),
            suggested_content=str(entry["suggested"]),
            rationale=str(entry.get("rationale", "")),
            dependencies=[str(d) for d in depends_on],
            category=EditCategory(category_name),
            priority=priority,
            language=detect_language(file_path),
        )

        if "confidence" in entry:
            try:
                edit.confidence = float(entry["confidence"])
            except (TypeError, ValueError) as e:
                raise AnalysisFailedError(f"{where}.confidence must be a number") from e
        else:
            edit.confidence = self.calculate_confidence(edit)

        return edit


_GOAL_PATTERN = re.compile(
    r"^\s*(?P<verb>rename|replace)\s+(?P<old>.+?)\s+(?:to|with)\s+(?P<new>.+?)\s*$",
    re.IGNORECASE | re.DOTALL,
)
_IDENTIFIER = re.compile(r"^\w+$")


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


@dataclass(frozen=True)
class ReplacementGoal:
    """A parsed textual goal."""

    verb: str
    old: str
    new: str

    @property
    def pattern(self) -> re.Pattern[str]:
        """Regex matching the text to replace (word-bounded for identifiers)."""
        escaped = re.escape(self.old)
        if self.verb == "rename" and _IDENTIFIER.match(self.old):
            return re.compile(rf"\b{escaped}\b")
        return re.compile(escaped)

    @property
    def rationale(self) -> str:
        if self.verb == "rename":
            return f"Rename `{self.old}` to `{self.new}`"
        return f"Replace `{self.old}` with `{self.new}`"


def parse_goal(goal: str) -> ReplacementGoal | None:
    """Parse "rename X to Y" / "replace X with Y" goals.

    Returns:
        ReplacementGoal, or None if the goal has another shape
    """
    match = _GOAL_PATTERN.match(goal)
    if match is None:
        return None
    old = _unquote(match.group("old"))
    new = _unquote(match.group("new"))
    if not old or old == new:
        return None
    return ReplacementGoal(verb=match.group("verb").lower(), old=old, new=new)


class PatternAnalyzer(BaseAnalyzer):
    """Finds line-level replacements for textual goals."""

    analysis_method = AnalysisMethod.PATTERN

    async def _analyze(
        self,
        workspace_uri: str,
        goal: str,
        options: AnalysisOptions,
    ) -> AnalysisResult:
        parsed = parse_goal(goal)
        if parsed is None:
            raise AnalysisFailedError(
                "Unsupported goal. Use 'rename <old> to <new>' or 'replace <old> with <new>'",
                goal=goal,
            )

        if not options.use_pattern_matching:
            return AnalysisResult()

        root = Path(workspace_uri)
        if not root.is_dir():
            raise AnalysisFailedError(f"Workspace is not a directory: {workspace_uri}")

        files = await asyncio.to_thread(
            discover_files,
            root,
            options.include_patterns,
            options.exclude_patterns,
            options.max_files,
        )

        edits: list[EditSuggestion] = []
        for rel_path in files:
            try:
                data = await asyncio.to_thread((root / rel_path).read_bytes)
            except OSError as e:
                self._logger.warning("Skipping unreadable file", file_path=rel_path, error=str(e))
                continue
            edits.extend(self._scan_file(rel_path, decode_text(data), parsed))

        return AnalysisResult(edits=edits, total_files=len(files))

    def _scan_file(
        self,
        rel_path: str,
        content: str,
        goal: ReplacementGoal,
    ) -> list[EditSuggestion]:
        pattern = goal.pattern
        edits: list[EditSuggestion] = []
        previous: EditSuggestion | None = None

        for number, line in enumerate(content.split("\n"), start=1):
            if not pattern.search(line):
                continue
            edit = EditSuggestion(
                id=generate_id(),
                session_id="",
                file_path=rel_path,
                line_start=number,
                line_end=number,
                original_content=line,
                suggested_content=pattern.sub(lambda _m: goal.new, line),
                rationale=goal.rationale,
                # Same-file edits apply in file order
                dependencies=[previous.id] if previous else [],
                category=EditCategory.REFACTOR,
                language=detect_language(rel_path),
            )
            edit.confidence = self.calculate_confidence(edit)
            edits.append(edit)
            previous = edit

        return edits

    async def generate_context(self, edit: EditSuggestion, file_content: str) -> EditContext:
        """Build context, recording the goal pattern that matched."""
        return self.context_builder.build(
            edit,
            file_content,
            analysis_method=self.analysis_method,
            matched_pattern=edit.rationale or None,
        )


def create_analyzer(
    plan_path: Path | str | None = None,
    seconds_per_edit: int = DEFAULT_SECONDS_PER_EDIT,
    context_lines: int = 5,
    cache_ttl: float = DEFAULT_CACHE_TTL,
) -> BaseAnalyzer:
    """Create the analyzer for a run.

    Args:
        plan_path: YAML plan file; PatternAnalyzer is used when omitted
        seconds_per_edit: Review time estimate per edit
        context_lines: Lines of context on each side of an edit
        cache_ttl: Cache lifetime in seconds

    Returns:
        Configured analyzer
    """
    builder = ContextBuilder(context_lines=context_lines)
    builder.cache.default_ttl = cache_ttl
    if plan_path is not None:
        return PlanAnalyzer(
            plan_path,
            seconds_per_edit=seconds_per_edit,
            context_builder=builder,
            cache_ttl=cache_ttl,
        )
    return PatternAnalyzer(
        seconds_per_edit=seconds_per_edit,
        context_builder=builder,
        cache_ttl=cache_ttl,
    )
