"""
ASCII pipeline renderer for terminal output.

Renders the stage graph as a tree of parent edges using box-drawing
characters, with optional per-stage states from a build result.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from typing import TYPE_CHECKING, ClassVar

from ..core.models.build import StageState
from .formatting import truncate_string

if TYPE_CHECKING:
    from ..core.models.stage import Stage
    from ..services.graph.dependency_graph import DependencyGraph


class PipelineRenderer:
    """
    ASCII renderer for stage graphs.

    Stages hang below their parent. Extra inputs read with COPY --from
    are listed on the stage line.
    """

    # Box-drawing characters
    BRANCH = "\u251c\u2500\u2500>"  # ├──>
    CORNER = "\u2514\u2500\u2500>"  # └──>
    PIPE = "\u2502"  # │

    COLORS: ClassVar[dict[str, str]] = {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "green": "\033[92m",
        "blue": "\033[94m",
        "red": "\033[91m",
        "yellow": "\033[93m",
        "gray": "\033[90m",
    }

    STATE_COLORS: ClassVar[dict[str, str]] = {
        "done": "green",
        "cache_hit": "blue",
        "failed": "red",
        "skipped": "yellow",
        "running": "bold",
    }

    def __init__(self, use_color: bool = True, max_name_width: int = 40):
        """
        Initialize pipeline renderer.

        Args:
            use_color: Whether to use ANSI color codes
            max_name_width: Stage names longer than this are truncated
        """
        self._use_color = use_color and sys.stdout.isatty()
        self._max_name_width = max_name_width

    def render(
        self,
        graph: DependencyGraph,
        statuses: Mapping[str, StageState | str] | None = None,
        cached: set[str] | None = None,
    ) -> str:
        """
        Render the graph as an ASCII tree.

        Args:
            graph: Stage dependency graph
            statuses: Optional state per stage (e.g. BuildResult.per_stage_statuses)
            cached: Stages served from cache, marked with ``(cached)``

        Returns:
            Multi-line string
        """
        statuses = statuses or {}
        cached = cached or set()
        lines = [f"Pipeline: {len(graph)} stages", ""]

        if not len(graph):
            lines.append("No stages in pipeline.")
            return "\n".join(lines)

        stages = {stage.name: stage for stage in graph}
        children: dict[str, list[str]] = {name: [] for name in stages}
        roots: list[str] = []
        for stage in stages.values():
            if stage.parent is not None and stage.parent in stages:
                children[stage.parent].append(stage.name)
            else:
                roots.append(stage.name)

        for name in roots:
            lines.append(self._format_stage(stages[name], "", statuses, cached, root=True))
            self._render_children(lines, stages, children, name, "", statuses, cached)

        return "\n".join(lines)

    def _render_children(
        self,
        lines: list[str],
        stages: dict[str, Stage],
        children: dict[str, list[str]],
        name: str,
        indent: str,
        statuses: Mapping[str, StageState | str],
        cached: set[str],
    ) -> None:
        kids = children[name]
        for i, child in enumerate(kids):
            is_last = i == len(kids) - 1
            prefix = indent + (self.CORNER if is_last else self.BRANCH) + " "
            lines.append(self._format_stage(stages[child], prefix, statuses, cached))
            child_indent = indent + ("     " if is_last else f"{self.PIPE}    ")
            self._render_children(lines, stages, children, child, child_indent, statuses, cached)

    def _format_stage(
        self,
        stage: Stage,
        prefix: str,
        statuses: Mapping[str, StageState | str],
        cached: set[str],
        root: bool = False,
    ) -> str:
        name = truncate_string(stage.name, self._max_name_width)
        parts = [name]
        if root:
            parts.append(f"(from {stage.base or 'context'})")
        if stage.copy_sources:
            parts.append(f"<- {', '.join(stage.copy_sources)}")

        state = statuses.get(stage.name)
        state_value = state.value if isinstance(state, StageState) else state
        if state_value:
            parts.append(f"[{state_value}]")
        if stage.name in cached:
            parts.append("(cached)")

        line = " ".join(parts)
        if self._use_color and state_value in self.STATE_COLORS:
            color = self.COLORS[self.STATE_COLORS[state_value]]
            line = f"{color}{line}{self.COLORS['reset']}"
        return prefix + line
