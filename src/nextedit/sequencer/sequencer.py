"""Dependency-aware ordering of edit suggestions.

Builds a dependency graph over a batch of suggestions, reports cycles,
produces a topological order (Kahn's algorithm) and groups that order into
sequences that can be reviewed as a unit.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from nextedit.core.exceptions import ValidationError
from nextedit.core.logging import StructuredLogger, get_logger
from nextedit.model.models import (
    DEFAULT_SECONDS_PER_EDIT,
    EditSequence,
    EditSuggestion,
    generate_id,
)

DependencyGraph = dict[str, list[str]]


@dataclass(frozen=True)
class CircularDependency:
    """A dependency cycle found in a batch."""

    edit_id: str
    dependency_cycle: list[str]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"edit_id": self.edit_id, "dependency_cycle": list(self.dependency_cycle)}


@dataclass
class SequencingResult:
    """Result of sequencing a batch.

    Attributes:
        ordered_edit_ids: Edit IDs in a dependency-respecting order
        sequence_count: Number of sequences the order splits into
        circular_dependencies: Cycles found (their members may be missing
            from ordered_edit_ids)
    """

    ordered_edit_ids: list[str] = field(default_factory=list)
    sequence_count: int = 0
    circular_dependencies: list[CircularDependency] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        """Whether any cycle was detected."""
        return bool(self.circular_dependencies)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ordered_edit_ids": list(self.ordered_edit_ids),
            "sequence_count": self.sequence_count,
            "circular_dependencies": [c.to_dict() for c in self.circular_dependencies],
        }


def build_dependency_graph(edits: Iterable[EditSuggestion]) -> DependencyGraph:
    """Build the adjacency map ``edit_id -> dependency ids``."""
    return {edit.id: list(edit.dependencies) for edit in edits}


def detect_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Find dependency cycles with a depth-first search.

    Each cycle is the path slice from the first occurrence of the revisited
    node to the revisited node, inclusive (``[a, b, a]``).

    Args:
        graph: Adjacency map

    Returns:
        List of cycles
    """
    visited: set[str] = set()
    on_stack: set[str] = set()
    cycles: list[list[str]] = []

    # Iterative DFS so deep chains do not hit the recursion limit
    for root in graph:
        if root in visited:
            continue
        path: list[str] = [root]
        visited.add(root)
        on_stack.add(root)
        stack: list[Iterable[str]] = [iter(graph.get(root, []))]

        while stack:
            node = path[-1]
            advanced = False
            for neighbor in stack[-1]:
                if neighbor not in graph:
                    continue
                if neighbor not in visited:
                    visited.add(neighbor)
                    on_stack.add(neighbor)
                    path.append(neighbor)
                    stack.append(iter(graph.get(neighbor, [])))
                    advanced = True
                    break
                if neighbor in on_stack:
                    start = path.index(neighbor)
                    cycles.append([*path[start:], neighbor])
            if not advanced:
                stack.pop()
                on_stack.discard(node)
                path.pop()

    return cycles


def topological_sort(graph: DependencyGraph) -> list[str]:
    """Order nodes so every dependency precedes its dependents.

    Kahn's algorithm: an edge ``dependency -> node`` raises ``node``'s
    in-degree. Nodes on unresolved cycles never reach in-degree zero and are
    left out. Dependencies outside the graph are ignored.

    Args:
        graph: Adjacency map

    Returns:
        Ordered node IDs
    """
    in_degree: dict[str, int] = {node: 0 for node in graph}
    dependents: dict[str, list[str]] = {node: [] for node in graph}

    for node, dependencies in graph.items():
        for dep in dependencies:
            if dep not in graph:
                continue
            in_degree[node] += 1
            dependents[dep].append(node)

    queue = deque(node for node, degree in in_degree.items() if degree == 0)
    result: list[str] = []

    while queue:
        node = queue.popleft()
        result.append(node)
        for dependent in dependents[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    return result


class EditSequencer:
    """Orders edit suggestions by their declared dependencies."""

    def __init__(
        self,
        seconds_per_edit: int = DEFAULT_SECONDS_PER_EDIT,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the sequencer.

        Args:
            seconds_per_edit: Review time estimate per edit
            logger: Logger (defaults to the "sequencer" component logger)
        """
        self.seconds_per_edit = seconds_per_edit
        self._logger = logger or get_logger("sequencer")

    def sequence_edits(self, edits: Sequence[EditSuggestion]) -> SequencingResult:
        """Order edits and report cycles.

        Args:
            edits: Suggestions to sequence

        Returns:
            SequencingResult (empty for empty input)
        """
        if not edits:
            return SequencingResult()

        graph = build_dependency_graph(edits)
        circular = self.detect_circular_dependencies(edits)
        ordered_ids = topological_sort(graph)

        by_id = {edit.id: edit for edit in edits}
        sequences = self._group_into_sequences(
            [by_id[edit_id] for edit_id in ordered_ids], session_id=""
        )

        self._logger.log_sequencing(
            edit_count=len(edits),
            ordered_count=len(ordered_ids),
            sequence_count=len(sequences),
            cycle_count=len(circular),
        )

        return SequencingResult(
            ordered_edit_ids=ordered_ids,
            sequence_count=len(sequences),
            circular_dependencies=circular,
        )

    def resolve_dependencies(
        self, edits: Sequence[EditSuggestion] | None
    ) -> DependencyGraph:
        """Map each edit ID to its dependency IDs."""
        if not edits:
            return {}
        return build_dependency_graph(edits)

    def detect_circular_dependencies(
        self, edits: Sequence[EditSuggestion] | None
    ) -> list[CircularDependency]:
        """Report dependency cycles in a batch."""
        if not edits:
            return []
        cycles = detect_cycles(build_dependency_graph(edits))
        return [
            CircularDependency(edit_id=cycle[0], dependency_cycle=cycle)
            for cycle in cycles
        ]

    def generate_sequences(
        self,
        edits: Sequence[EditSuggestion],
        session_id: str,
    ) -> list[EditSequence]:
        """Group a batch into dependency-coherent sequences.

        Args:
            edits: Suggestions to group
            session_id: Owning session

        Returns:
            Sequences in execution order

        Raises:
            ValidationError: If edits or session_id is missing
        """
        if edits is None:
            raise ValidationError(
                "edits_required",
                message="Edits are required. Please provide edit suggestions to sequence.",
            )
        if not session_id:
            raise ValidationError("session_id_required", message="Session ID is required")

        ordered_ids = topological_sort(build_dependency_graph(edits))
        by_id = {edit.id: edit for edit in edits}
        return self._group_into_sequences([by_id[i] for i in ordered_ids], session_id)

    def validate_dependencies_met(
        self,
        edit: EditSuggestion | None,
        completed_edit_ids: Iterable[str] | None,
    ) -> bool:
        """Check that every dependency of ``edit`` is completed.

        Raises:
            ValidationError: If edit is missing
        """
        if edit is None:
            raise ValidationError("edit_required", message="Edit is required")
        completed = set(completed_edit_ids or ())
        return all(dep in completed for dep in edit.dependencies)

    def missing_dependencies(
        self,
        edit: EditSuggestion,
        completed_edit_ids: Iterable[str],
    ) -> list[str]:
        """Dependencies of ``edit`` that are not completed yet."""
        completed = set(completed_edit_ids)
        return [dep for dep in edit.dependencies if dep not in completed]

    def _group_into_sequences(
        self,
        ordered_edits: Sequence[EditSuggestion],
        session_id: str,
    ) -> list[EditSequence]:
        """Split an ordered list into sequences.

        A new sequence starts whenever an edit depends on something not
        already placed in the current sequence.
        """
        sequences: list[EditSequence] = []
        current: EditSequence | None = None
        placed: set[str] = set()

        for edit in ordered_edits:
            if current is not None and not set(edit.dependencies) <= placed:
                sequences.append(current)
                current = None

            if current is None:
                current = EditSequence(
                    id=generate_id(),
                    session_id=session_id,
                    name=f"Sequence {len(sequences) + 1}",
                    dependencies=[s.id for s in sequences],
                )
                placed = set()

            current.edit_ids.append(edit.id)
            current.estimated_time += self.seconds_per_edit
            placed.add(edit.id)

        if current is not None:
            sequences.append(current)

        return sequences


def create_sequencer(seconds_per_edit: int = DEFAULT_SECONDS_PER_EDIT) -> EditSequencer:
    """Create an edit sequencer.

    Args:
        seconds_per_edit: Review time estimate per edit

    Returns:
        Configured EditSequencer
    """
    return EditSequencer(seconds_per_edit=seconds_per_edit)
