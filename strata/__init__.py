"""
strata - cached multi-stage builds.

Stages form a dependency graph; a build request plans the stages a target
needs, serves unchanged stages from the layer cache and runs the rest on a
worker pool.

Usage:
    from strata import BuildService, load_buildfile

    with BuildService(load_buildfile(Path("Dockerfile"))) as service:
        result = service.request_build("test")
"""

from .core.exceptions import (
    BuildfileError,
    CyclicDependencyError,
    DuplicateStageError,
    StageExecutionError,
    StrataException,
    UnknownStageError,
)
from .core.models import (
    Artifact,
    BuildOptions,
    BuildPlan,
    BuildResult,
    Stage,
    StageCommand,
    StageState,
)
from .core.settings import StrataSettings, load_settings
from .services.build_service import BuildService
from .services.buildfile import load_buildfile, parse_buildfile
from .services.graph import DependencyGraph
from .services.planning import BuildPlanner

__version__ = "0.1.0"

__all__ = [
    "Artifact",
    "BuildOptions",
    "BuildPlan",
    "BuildPlanner",
    "BuildResult",
    "BuildService",
    "BuildfileError",
    "CyclicDependencyError",
    "DependencyGraph",
    "DuplicateStageError",
    "Stage",
    "StageCommand",
    "StageExecutionError",
    "StageState",
    "StrataException",
    "StrataSettings",
    "UnknownStageError",
    "__version__",
    "load_buildfile",
    "load_settings",
    "parse_buildfile",
]
