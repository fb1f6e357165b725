"""
Build service.

Entry point for build requests: plans the target, then runs the planned
stages on the scheduler, serving each from the layer cache when its
fingerprint is known and executing it otherwise.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

from ..core.di import LazyService, resolve_or_default
from ..core.exceptions import SnapshotError
from ..core.interfaces.execution import ICommandRunner
from ..core.interfaces.logger import ILogger
from ..core.models.artifact import Artifact
from ..core.models.build import BuildOptions, BuildPlan, BuildResult, StageState
from ..core.models.stage import Stage
from ..core.settings import StrataSettings, load_settings
from ..hashing.registry import HashAlgorithmRegistry
from ..hashing.tree import TreeHasher
from ..storage.artifact_store import ArtifactStore
from .cache.fingerprint import FingerprintService
from .cache.layer_cache import LayerCache
from .execution.executor import StageExecutor
from .execution.runner import SubprocessCommandRunner
from .execution.scheduler import BuildScheduler, StageRun
from .execution.snapshot import LocalSnapshotProvider
from .graph.dependency_graph import DependencyGraph
from .logging import NullLogger
from .planning.planner import BuildPlanner


class BuildService:
    """
    Service for building stages of a multi-stage pipeline.

    Coordinates:
    - Planning (dependency graph -> ordered stage list)
    - Base snapshots for root stages
    - Fingerprinting and layer cache lookups
    - Stage execution on a worker pool

    The layer cache lives as long as the service, so repeated requests
    reuse each other's artifacts.

    Usage:
        with BuildService(stages, settings=load_settings()) as service:
            result = service.request_build("test")
            if not result.succeeded:
                print(result.failed_stage, result.error)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        graph: DependencyGraph | Iterable[Stage],
        settings: StrataSettings | None = None,
        *,
        context_dir: Path | None = None,
        store: ArtifactStore | None = None,
        runner: ICommandRunner | None = None,
        cache: LayerCache | None = None,
        logger: ILogger | None = None,
    ) -> None:
        """
        Initialize build service.

        Args:
            graph: Dependency graph, or stages to build one from
            settings: Loaded settings (loaded from the environment when None)
            context_dir: Build context override (defaults to build.context_dir)
            store: Artifact store (created from the store section when None)
            runner: Command runner for RUN commands
            cache: Layer cache shared between requests
            logger: Logger for internal diagnostics
        """
        self.logger = logger
        self._settings = settings or load_settings()
        self._graph = (
            graph
            if isinstance(graph, DependencyGraph)
            else DependencyGraph.from_stages(graph, logger=logger)
        )
        self._context_dir = (context_dir or Path(self._settings.build.context_dir)).resolve()

        registry = resolve_or_default(HashAlgorithmRegistry, HashAlgorithmRegistry)
        hasher = TreeHasher(self._settings.hash.primary, registry=registry)

        self._owns_store = store is None
        if store is None:
            store_path = self._settings.store.path
            store = ArtifactStore(
                root=Path(store_path).expanduser() if store_path else None,
                hasher=hasher,
                keep=self._settings.store.keep,
                logger=logger,
            )
        self._store = store
        self._cache = cache or LayerCache(logger=logger)
        self._planner = BuildPlanner(self._graph, logger=logger)
        self._fingerprints = FingerprintService(
            hasher, context_dir=self._context_dir, logger=logger
        )
        self._executor = StageExecutor(
            store,
            runner=runner
            or SubprocessCommandRunner(
                shell=self._settings.build.shell,
                timeout=self._settings.build.command_timeout,
                logger=logger,
            ),
            context_dir=self._context_dir,
            logger=logger,
        )
        self._snapshots = LocalSnapshotProvider(
            store, self._context_dir, bases=self._settings.bases, logger=logger
        )

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def cache(self) -> LayerCache:
        return self._cache

    @property
    def store(self) -> ArtifactStore:
        return self._store

    def plan(self, target: str) -> BuildPlan:
        """Plan ``target`` without running anything."""
        return self._planner.plan(target)

    def request_build(self, target: str, options: BuildOptions | None = None) -> BuildResult:
        """
        Build a target stage and everything it needs.

        Args:
            target: Stage to materialize
            options: Cache policy knobs (defaults come from configuration)

        Returns:
            BuildResult with the overall status and every planned stage's outcome

        Raises:
            UnknownStageError: If the target or a stage it requires is not defined
        """
        options = options or BuildOptions.from_settings(self._settings)
        start = time.monotonic()

        plan = self._planner.plan(target)
        self.logger.info("Building %s: %s", target, " -> ".join(plan.names))

        pull_errors = self._pull_bases(plan) if options.pull else {}
        scheduler = BuildScheduler(
            max_workers=options.max_workers or self._settings.build.max_workers,
            logger=self.logger,
        )

        def work(
            stage: Stage,
            inputs: Mapping[str, Artifact],
            report: Callable[[StageState], None],
        ) -> StageRun:
            return self._build_stage(stage, inputs, report, options, pull_errors)

        outcomes = scheduler.run(plan, work)

        failed_stage = next(
            (name for name in plan.names if outcomes[name].state == StageState.FAILED), None
        )
        status = StageState.DONE if outcomes[target].state == StageState.DONE else StageState.FAILED
        result = BuildResult(
            target=target,
            status=status,
            stages=outcomes,
            plan=plan.names,
            failed_stage=failed_stage,
            error=outcomes[failed_stage].error if failed_stage else None,
            duration=time.monotonic() - start,
        )

        if result.succeeded:
            self.logger.info(
                "Built %s in %.2fs (%d cached, %d executed)",
                target,
                result.duration,
                len(result.cached_stages),
                len(result.executed_stages),
            )
        else:
            self.logger.warning(
                "Build of %s failed at stage %s: %s", target, failed_stage, result.error
            )
        return result

    def _pull_bases(self, plan: BuildPlan) -> dict[str | None, SnapshotError]:
        """Refetch the base snapshot of every root stage in the plan."""
        errors: dict[str | None, SnapshotError] = {}
        seen: set[str | None] = set()
        for stage in plan.stages:
            if stage.parent is not None or stage.base in seen:
                continue
            seen.add(stage.base)
            try:
                self._snapshots.snapshot(stage.base, refresh=True)
            except SnapshotError as e:
                errors[stage.base] = e
        return errors

    def _build_stage(
        self,
        stage: Stage,
        inputs: Mapping[str, Artifact],
        report: Callable[[StageState], None],
        options: BuildOptions,
        pull_errors: Mapping[str | None, SnapshotError],
    ) -> StageRun:
        if stage.parent is not None:
            parent = inputs[stage.parent]
        elif stage.base in pull_errors:
            raise pull_errors[stage.base]
        else:
            parent = self._snapshots.snapshot(stage.base)

        dependencies = {name: inputs[name] for name in stage.copy_sources}
        fingerprint = self._fingerprints.fingerprint(
            stage, parent, build_args=options.build_args, dependencies=dependencies
        )

        if options.should_lookup(stage.name):
            cached = self._cache.lookup(fingerprint)
            if cached is not None:
                self.logger.info("Stage %s: cache hit %s", stage.name, fingerprint[:12])
                report(StageState.CACHE_HIT)
                return StageRun(cached, fingerprint, cache_hit=True)

        report(StageState.RUNNING)
        artifact = self._executor.execute(
            stage,
            parent,
            fingerprint=fingerprint,
            dependencies=dependencies,
            build_args=options.build_args,
        )
        if options.should_store(stage.name):
            self._cache.store(fingerprint, artifact)
        return StageRun(artifact, fingerprint)

    def close(self) -> None:
        """Release the artifact store if this service created it."""
        if self._owns_store:
            self._store.close()

    def __enter__(self) -> BuildService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


