"""
Stage dependency graph.

Holds the stages of one build and the "derives from" edges between them
(plus COPY --from edges), and guarantees the graph stays acyclic.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from ...core.di import LazyService
from ...core.exceptions import CyclicDependencyError, DuplicateStageError, UnknownStageError
from ...core.interfaces.logger import ILogger
from ...core.models.stage import Stage
from ..logging import NullLogger


class AncestorChain:
    """
    Lazy walk over a stage's ancestors, from immediate parent to root.

    Each iteration restarts the walk against the graph's current contents.
    The walk stops at a parent that is referenced but not yet defined.
    """

    def __init__(self, stages: Mapping[str, Stage], name: str) -> None:
        self._stages = stages
        self._name = name

    def __iter__(self) -> Iterator[str]:
        seen = {self._name}
        current = self._stages[self._name].parent
        while current is not None and current not in seen:
            seen.add(current)
            yield current
            stage = self._stages.get(current)
            if stage is None:
                return
            current = stage.parent

    def __repr__(self) -> str:
        return f"AncestorChain({self._name!r})"


class DependencyGraph:
    """
    DAG of build stages keyed by stage name.

    Dependencies may be added after their dependents (forward references);
    planning reports any reference that is still missing.

    Usage:
        graph = DependencyGraph()
        graph.add_stage(Stage(name="base", base="scratch"))
        graph.add_stage(Stage(name="pom", parent="base", commands=["..."]))
        list(graph.resolve_ancestors("pom"))  # ["base"]
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(self, logger: ILogger | None = None) -> None:
        self._stages: dict[str, Stage] = {}
        self.logger = logger

    @classmethod
    def from_stages(
        cls, stages: Iterable[Stage], logger: ILogger | None = None
    ) -> DependencyGraph:
        """Build a graph by adding stages in order."""
        graph = cls(logger=logger)
        for stage in stages:
            graph.add_stage(stage)
        return graph

    def add_stage(self, stage: Stage) -> None:
        """
        Add a stage to the graph.

        Raises:
            DuplicateStageError: If a stage with the same name exists
            CyclicDependencyError: If the stage's edges would close a cycle;
                the graph is left unchanged
        """
        if stage.name in self._stages:
            raise DuplicateStageError(
                f"Stage '{stage.name}' is already defined", stage_name=stage.name
            )

        cycle = self._find_cycle(stage)
        if cycle:
            raise CyclicDependencyError(
                f"Adding stage '{stage.name}' would create a dependency cycle",
                stage_name=stage.name,
                cycle=cycle,
            )

        self._stages[stage.name] = stage
        self.logger.debug(
            "Added stage %s (parent=%s, deps=%s)", stage.name, stage.parent, stage.dependencies
        )

    def _find_cycle(self, stage: Stage) -> list[str] | None:
        """Return the cycle the new stage would close, or None."""
        for dep in stage.dependencies:
            if dep == stage.name:
                return [stage.name, stage.name]
            path = self._path_between(dep, stage.name)
            if path:
                return [stage.name, *path]
        return None

    def _path_between(self, start: str, goal: str) -> list[str] | None:
        """Walk dependency edges from start; return the path if goal is reached."""
        stack: list[tuple[str, list[str]]] = [(start, [start])]
        visited: set[str] = set()
        while stack:
            name, path = stack.pop()
            if name == goal:
                return path
            if name in visited:
                continue
            visited.add(name)
            stage = self._stages.get(name)
            if stage is None:
                continue
            for dep in reversed(stage.dependencies):
                stack.append((dep, [*path, dep]))
        return None

    def resolve_ancestors(self, name: str) -> AncestorChain:
        """
        Ancestor stage names from immediate parent to root.

        The returned sequence is lazy and can be iterated any number of times.

        Raises:
            UnknownStageError: If the stage is not in the graph
        """
        if name not in self._stages:
            raise UnknownStageError(f"Unknown stage '{name}'", stage_name=name)
        return AncestorChain(self._stages, name)

    def get(self, name: str) -> Stage:
        """
        Get a stage by name.

        Raises:
            UnknownStageError: If the stage is not in the graph
        """
        try:
            return self._stages[name]
        except KeyError:
            raise UnknownStageError(f"Unknown stage '{name}'", stage_name=name) from None

    def children(self, name: str) -> list[str]:
        """Stages that depend directly on ``name``, in insertion order."""
        return [s.name for s in self._stages.values() if name in s.dependencies]

    def dependents(self, name: str) -> list[str]:
        """Stages that depend on ``name`` directly or transitively, in insertion order."""
        affected = {name}
        changed = True
        while changed:
            changed = False
            for stage in self._stages.values():
                if stage.name not in affected and any(d in affected for d in stage.dependencies):
                    affected.add(stage.name)
                    changed = True
        return [s for s in self._stages if s in affected and s != name]

    def roots(self) -> list[str]:
        """Stages without a parent."""
        return [s.name for s in self._stages.values() if s.is_root]

    def missing_references(self) -> dict[str, list[str]]:
        """Map of stage name -> referenced stages that are not defined."""
        missing: dict[str, list[str]] = {}
        for stage in self._stages.values():
            absent = [d for d in stage.dependencies if d not in self._stages]
            if absent:
                missing[stage.name] = absent
        return missing

    @property
    def names(self) -> list[str]:
        """Stage names in insertion order."""
        return list(self._stages)

    def __contains__(self, name: object) -> bool:
        return name in self._stages

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(list(self._stages.values()))
