"""Dependency-aware edit sequencing."""

from nextedit.sequencer.sequencer import (
    CircularDependency,
    DependencyGraph,
    EditSequencer,
    SequencingResult,
    build_dependency_graph,
    create_sequencer,
    detect_cycles,
    topological_sort,
)

__all__ = [
    "EditSequencer",
    "SequencingResult",
    "CircularDependency",
    "DependencyGraph",
    "build_dependency_graph",
    "detect_cycles",
    "topological_sort",
    "create_sequencer",
]
