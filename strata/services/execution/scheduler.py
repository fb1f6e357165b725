"""
Build scheduler.

Runs the stages of a build plan on a worker pool. A stage starts once all
of its dependencies are done; independent branches run in parallel. When
a stage fails, every planned stage depending on it is marked skipped and
never started, while already running branches are left to finish.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from ...core.di import LazyService
from ...core.exceptions import (
    InvalidStateTransitionError,
    StageExecutionError,
    StrataException,
)
from ...core.interfaces.logger import ILogger
from ...core.models.artifact import Artifact
from ...core.models.build import ALLOWED_TRANSITIONS, BuildPlan, StageOutcome, StageState
from ...core.models.stage import Stage
from ..logging import NullLogger


@dataclass(frozen=True)
class StageRun:
    """What a stage worker hands back on success."""

    artifact: Artifact
    fingerprint: str
    cache_hit: bool = False


# (stage, dependency artifacts by name, state reporter) -> StageRun
StageWork = Callable[[Stage, Mapping[str, Artifact], Callable[[StageState], None]], StageRun]


class StageStateTracker:
    """Thread-safe per-stage state machine."""

    def __init__(self, names: list[str]) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, StageState] = {name: StageState.PENDING for name in names}
        self._history: dict[str, list[StageState]] = {
            name: [StageState.PENDING] for name in names
        }
        self._durations: dict[str, float] = {}

    def transition(self, name: str, state: StageState) -> None:
        """
        Move a stage to a new state.

        Raises:
            InvalidStateTransitionError: If the state machine has no such edge
        """
        with self._lock:
            current = self._states[name]
            if state not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStateTransitionError(
                    f"Stage '{name}' cannot move from {current.value} to {state.value}",
                    stage_name=name,
                    current=current.value,
                    requested=state.value,
                )
            self._states[name] = state
            self._history[name].append(state)

    def state(self, name: str) -> StageState:
        with self._lock:
            return self._states[name]

    def history(self, name: str) -> list[StageState]:
        with self._lock:
            return list(self._history[name])

    def record_duration(self, name: str, seconds: float) -> None:
        with self._lock:
            self._durations[name] = seconds

    def duration(self, name: str) -> float | None:
        with self._lock:
            return self._durations.get(name)


class BuildScheduler:
    """
    Dependency-ordered parallel stage runner.

    Usage:
        scheduler = BuildScheduler(max_workers=4)
        outcomes = scheduler.run(plan, work)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(self, max_workers: int = 4, logger: ILogger | None = None) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._max_workers = max_workers
        self.logger = logger

    def run(self, plan: BuildPlan, work: StageWork) -> dict[str, StageOutcome]:
        """
        Run every stage of ``plan``.

        Returns:
            Outcome per planned stage, in plan order
        """
        tracker = StageStateTracker(plan.names)
        for name in plan.names:
            tracker.transition(name, StageState.PLANNED)

        pending = list(plan.names)
        done: set[str] = set()
        runs: dict[str, StageRun] = {}
        errors: dict[str, Exception] = {}

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="strata-stage"
        ) as pool:
            futures: dict[Future[StageRun], str] = {}

            while pending or futures:
                for name in list(pending):
                    stage = plan.get(name)
                    assert stage is not None
                    if all(dep in done for dep in stage.dependencies):
                        pending.remove(name)
                        inputs = {dep: runs[dep].artifact for dep in stage.dependencies}
                        self.logger.debug("Submitting stage %s", name)
                        futures[pool.submit(self._run_stage, stage, inputs, work, tracker)] = name

                if not futures:
                    break

                finished, _ = wait(futures, return_when=FIRST_COMPLETED)
                for future in finished:
                    name = futures.pop(future)
                    try:
                        runs[name] = future.result()
                    except (StrataException, OSError) as e:
                        errors[name] = e
                        self.logger.warning("Stage %s failed: %s", name, e)
                        self._skip_dependents(plan, name, pending, tracker)
                    except Exception as e:
                        errors[name] = e
                        self.logger.exception("Stage %s raised unexpectedly: %r", name, e)
                        self._skip_dependents(plan, name, pending, tracker)
                    else:
                        done.add(name)

        # Only reachable if a dependency never materialized
        for name in pending:
            tracker.transition(name, StageState.SKIPPED)

        return {
            name: self._outcome(name, tracker, runs.get(name), errors.get(name))
            for name in plan.names
        }

    def _run_stage(
        self,
        stage: Stage,
        inputs: Mapping[str, Artifact],
        work: StageWork,
        tracker: StageStateTracker,
    ) -> StageRun:
        start = time.monotonic()

        def report(state: StageState) -> None:
            tracker.transition(stage.name, state)

        try:
            run = work(stage, inputs, report)
        except Exception:
            tracker.transition(stage.name, StageState.FAILED)
            raise
        finally:
            tracker.record_duration(stage.name, time.monotonic() - start)

        tracker.transition(stage.name, StageState.DONE)
        return run

    def _skip_dependents(
        self,
        plan: BuildPlan,
        failed: str,
        pending: list[str],
        tracker: StageStateTracker,
    ) -> None:
        for name in plan.dependents_of(failed):
            if name in pending:
                pending.remove(name)
                tracker.transition(name, StageState.SKIPPED)
                self.logger.info("Skipping stage %s: depends on failed stage %s", name, failed)

    def _outcome(
        self,
        name: str,
        tracker: StageStateTracker,
        run: StageRun | None,
        error: Exception | None,
    ) -> StageOutcome:
        return StageOutcome(
            name=name,
            state=tracker.state(name),
            cache_hit=run.cache_hit if run else False,
            fingerprint=run.fingerprint if run else None,
            artifact=run.artifact if run else None,
            error=str(error) if error else None,
            exit_status=error.exit_status if isinstance(error, StageExecutionError) else None,
            duration=tracker.duration(name),
            transitions=tracker.history(name),
        )
