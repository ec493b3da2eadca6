"""Analyzers that turn a goal into edit suggestions."""

from nextedit.analysis.analyzer import (
    AnalysisOptions,
    AnalysisResult,
    Analyzer,
    BaseAnalyzer,
    PatternAnalyzer,
    PlanAnalyzer,
    ReplacementGoal,
    StaticAnalyzer,
    calculate_confidence,
    create_analyzer,
    detect_language,
    link_dependents,
    parse_goal,
)
from nextedit.analysis.context import (
    ContextBuilder,
    ContextCache,
    TTLCache,
    calculate_file_hash,
)
from nextedit.analysis.file_filter import discover_files, is_included, matches_glob

__all__ = [
    # Analyzers
    "Analyzer",
    "AnalysisOptions",
    "AnalysisResult",
    "BaseAnalyzer",
    "PlanAnalyzer",
    "PatternAnalyzer",
    "StaticAnalyzer",
    "create_analyzer",
    # Helpers
    "ReplacementGoal",
    "parse_goal",
    "calculate_confidence",
    "detect_language",
    "link_dependents",
    # Context
    "ContextBuilder",
    "ContextCache",
    "TTLCache",
    "calculate_file_hash",
    # File discovery
    "discover_files",
    "is_included",
    "matches_glob",
]
