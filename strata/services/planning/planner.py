"""
Build planner.

Computes the minimal ordered set of stages needed to materialize a target.
"""

from __future__ import annotations

from ...core.di import LazyService
from ...core.exceptions import UnknownStageError
from ...core.interfaces.logger import ILogger
from ...core.models.build import BuildPlan
from ..graph.dependency_graph import DependencyGraph
from ..logging import NullLogger


class BuildPlanner:
    """
    Plans builds against a dependency graph.

    Planning is a pure function of the graph: it never mutates the graph
    and only stages reachable from the target are included.
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(self, graph: DependencyGraph, logger: ILogger | None = None) -> None:
        self._graph = graph
        self.logger = logger

    def plan(self, target: str) -> BuildPlan:
        """
        Plan the stages needed to produce ``target``.

        Every stage appears exactly once, after all of its dependencies,
        even when it is reachable along several paths.

        Raises:
            UnknownStageError: If the target or any stage it needs is not defined
        """
        if target not in self._graph:
            raise UnknownStageError(f"Unknown target stage '{target}'", stage_name=target)

        ordered: list[str] = []
        placed: set[str] = set()
        # (stage name, requested by, dependencies already pushed)
        stack: list[tuple[str, str | None, bool]] = [(target, None, False)]

        while stack:
            name, requested_by, expanded = stack.pop()
            if name in placed:
                continue
            if expanded:
                placed.add(name)
                ordered.append(name)
                continue
            if name not in self._graph:
                raise UnknownStageError(
                    f"Stage '{requested_by}' depends on unknown stage '{name}'",
                    stage_name=name,
                    context={"required_by": requested_by, "target": target},
                )
            stack.append((name, requested_by, True))
            for dep in reversed(self._graph.get(name).dependencies):
                if dep not in placed:
                    stack.append((dep, name, False))

        self.logger.debug("Planned %s: %s", target, " -> ".join(ordered))
        return BuildPlan(target=target, stages=[self._graph.get(n) for n in ordered])
