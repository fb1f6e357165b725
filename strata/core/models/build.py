"""
Build planning and result models.

Provides the stage state machine, build options (cache policy knobs),
build plans and build results.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import Field, computed_field

from .artifact import Artifact
from .base import ImmutableModel
from .stage import Stage

if TYPE_CHECKING:
    from ..settings import StrataSettings


class StageState(str, Enum):
    """State of a stage during a build run."""

    PENDING = "pending"  # Known to the run, not yet planned
    PLANNED = "planned"  # Part of the build plan, waiting for dependencies
    CACHE_HIT = "cache_hit"  # Served from the layer cache
    RUNNING = "running"  # Commands executing in a working copy
    DONE = "done"  # Artifact available to dependents
    FAILED = "failed"  # Ran (or could not prepare inputs) and failed
    SKIPPED = "skipped"  # Never started because a dependency failed


ALLOWED_TRANSITIONS: dict[StageState, frozenset[StageState]] = {
    StageState.PENDING: frozenset({StageState.PLANNED}),
    StageState.PLANNED: frozenset(
        {StageState.CACHE_HIT, StageState.RUNNING, StageState.SKIPPED, StageState.FAILED}
    ),
    StageState.CACHE_HIT: frozenset({StageState.DONE}),
    StageState.RUNNING: frozenset({StageState.DONE, StageState.FAILED}),
    StageState.DONE: frozenset(),
    StageState.FAILED: frozenset(),
    StageState.SKIPPED: frozenset(),
}

TERMINAL_STATES = frozenset({StageState.DONE, StageState.FAILED, StageState.SKIPPED})


class BuildOptions(ImmutableModel):
    """Cache policy and scheduling knobs for a single build request.

    Attributes:
        cache_enabled: Skip cache lookup and store entirely when False
        force_refresh: Bypass cache lookup but still store results
        pull: Refetch base snapshots before computing any fingerprint
        build_args: Overrides for declared build argument defaults
        no_cache_stages: Stages that always re-execute and are never stored
            (scheduled security scans, for instance)
        max_workers: Worker pool size (None uses the configured default)
    """

    cache_enabled: bool = True
    force_refresh: bool = False
    pull: bool = False
    build_args: dict[str, str] = Field(default_factory=dict)
    no_cache_stages: list[str] = Field(default_factory=list)
    max_workers: Annotated[int, Field(ge=1, le=256)] | None = None

    def should_lookup(self, stage_name: str) -> bool:
        """Whether the cache may serve this stage."""
        return (
            self.cache_enabled
            and not self.force_refresh
            and stage_name not in self.no_cache_stages
        )

    def should_store(self, stage_name: str) -> bool:
        """Whether this stage's artifact is recorded in the cache."""
        return self.cache_enabled and stage_name not in self.no_cache_stages

    @classmethod
    def from_settings(cls, settings: StrataSettings, **overrides: Any) -> BuildOptions:
        """Build options from configuration, with explicit overrides on top.

        Args:
            settings: Loaded strata settings
            **overrides: Field values taking precedence over configuration

        Returns:
            BuildOptions instance
        """
        values: dict[str, Any] = {
            "cache_enabled": settings.cache.enabled,
            "force_refresh": settings.cache.force_refresh,
            "pull": settings.cache.pull,
            "build_args": dict(settings.build.args),
            "no_cache_stages": list(settings.cache.no_cache_stages),
            "max_workers": settings.build.max_workers,
        }
        if "build_args" in overrides:
            values["build_args"].update(overrides.pop("build_args"))
        values.update(overrides)
        return cls(**values)


class BuildPlan(ImmutableModel):
    """Topologically ordered stages needed to materialize a target."""

    target: str
    stages: list[Stage] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        """Stage names in execution order."""
        return [stage.name for stage in self.stages]

    def get(self, name: str) -> Stage | None:
        """Get a planned stage by name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def dependents_of(self, name: str) -> list[str]:
        """Planned stages that transitively depend on ``name``, in plan order."""
        affected = {name}
        result = []
        for stage in self.stages:
            if stage.name == name:
                continue
            if any(dep in affected for dep in stage.dependencies):
                affected.add(stage.name)
                result.append(stage.name)
        return result

    def __len__(self) -> int:
        return len(self.stages)


class StageOutcome(ImmutableModel):
    """What happened to a single stage during a build run."""

    name: str
    state: StageState
    cache_hit: bool = False
    fingerprint: str | None = None
    artifact: Artifact | None = None
    error: str | None = None
    exit_status: int | None = None
    duration: Annotated[float, Field(ge=0)] | None = None
    transitions: list[StageState] = Field(default_factory=list)


class BuildResult(ImmutableModel):
    """Result of a build request.

    A failed build reports the failing stage and the full per-stage map, so
    callers can tell stages that never ran (skipped) from stages that ran and
    failed and from stages served from cache.
    """

    target: str
    status: StageState
    stages: dict[str, StageOutcome] = Field(default_factory=dict)
    plan: list[str] = Field(default_factory=list)
    failed_stage: str | None = None
    error: str | None = None
    duration: Annotated[float, Field(ge=0)] = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def per_stage_statuses(self) -> dict[str, StageState]:
        """Terminal state of every planned stage, in plan order."""
        return {name: StageState(self.stages[name].state) for name in self.plan}

    @property
    def succeeded(self) -> bool:
        """True when the target stage reached DONE."""
        return self.status == StageState.DONE

    @property
    def artifact(self) -> Artifact | None:
        """The target stage's artifact, if it was materialized."""
        outcome = self.stages.get(self.target)
        return outcome.artifact if outcome else None

    @property
    def cached_stages(self) -> list[str]:
        """Stages served from the layer cache."""
        return [name for name in self.plan if self.stages[name].cache_hit]

    @property
    def executed_stages(self) -> list[str]:
        """Stages whose commands actually ran (successfully or not)."""
        return [
            name
            for name in self.plan
            if StageState.RUNNING in self.stages[name].transitions
        ]

    @property
    def skipped_stages(self) -> list[str]:
        """Stages never started because a dependency failed."""
        return [
            name for name in self.plan if self.stages[name].state == StageState.SKIPPED
        ]
