"""
Stage executor.

Runs a stage's commands against an exclusively owned working copy of its
input artifact and commits the result as a new artifact. Execution is
all-or-nothing per stage: on any failure the working copy is discarded
and no artifact is produced.
"""

from __future__ import annotations

import os
import time
from collections.abc import Mapping
from pathlib import Path

from ...core.di import LazyService
from ...core.exceptions import StageExecutionError
from ...core.interfaces.execution import ICommandRunner
from ...core.interfaces.logger import ILogger
from ...core.models.artifact import Artifact
from ...core.models.stage import Instruction, Stage, StageCommand
from ...storage.artifact_store import ArtifactStore, WorkingCopy
from ...utils.variables import expand_variables, parse_env_argument, resolve_build_args
from ..logging import NullLogger
from .copy import CopySpec, copy_sources, destination_path, resolve_sources
from .runner import SubprocessCommandRunner

STDERR_TAIL = 2000


class StageExecutor:
    """
    Executes stages.

    Usage:
        executor = StageExecutor(store, context_dir=Path("."))
        artifact = executor.execute(stage, parent_artifact, fingerprint=key)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        store: ArtifactStore,
        runner: ICommandRunner | None = None,
        context_dir: Path | None = None,
        logger: ILogger | None = None,
    ) -> None:
        """
        Initialize executor.

        Args:
            store: Artifact store providing working copies
            runner: Command runner for RUN commands
            context_dir: Build context for COPY without --from
            logger: Logger for internal diagnostics
        """
        self._store = store
        self._runner = runner or SubprocessCommandRunner()
        self._context_dir = context_dir
        self.logger = logger

    def execute(
        self,
        stage: Stage,
        input_artifact: Artifact,
        *,
        fingerprint: str,
        dependencies: Mapping[str, Artifact] | None = None,
        build_args: Mapping[str, str] | None = None,
    ) -> Artifact:
        """
        Run a stage and commit its working copy.

        Args:
            stage: Stage to run
            input_artifact: Parent artifact (or base snapshot)
            fingerprint: Cache key the new artifact is recorded under
            dependencies: Artifacts of COPY --from stages, by stage name
            build_args: Build arg overrides

        Returns:
            The new artifact

        Raises:
            StageExecutionError: If a command fails or a declared output is missing
        """
        args = resolve_build_args(stage, build_args or {})
        dependencies = dependencies or {}
        start = time.monotonic()
        self.logger.info("Executing stage %s (%d commands)", stage.name, len(stage.commands))

        with self._store.working_copy(input_artifact) as wc:
            for command in stage.commands:
                self._apply(stage, command, wc, args, dependencies)
            self._verify_outputs(stage, wc)
            artifact = wc.commit(stage=stage.name, fingerprint=fingerprint)

        self.logger.info(
            "Stage %s done in %.2fs -> %s", stage.name, time.monotonic() - start, artifact.id
        )
        return artifact

    def _apply(
        self,
        stage: Stage,
        command: StageCommand,
        wc: WorkingCopy,
        args: Mapping[str, str],
        dependencies: Mapping[str, Artifact],
    ) -> None:
        variables = {**args, **wc.env}
        try:
            if command.instruction == Instruction.RUN:
                self._run(stage, command, wc, args)
            elif command.instruction == Instruction.COPY:
                self._copy(stage, command, wc, variables, dependencies)
            elif command.instruction == Instruction.ENV:
                wc.env.update(parse_env_argument(command.argument, variables))
            elif command.instruction == Instruction.WORKDIR:
                wc.change_workdir(expand_variables(command.argument, variables))
        except StageExecutionError:
            raise
        except (ValueError, OSError) as e:
            raise StageExecutionError(
                f"Stage '{stage.name}' failed: {e}",
                stage_name=stage.name,
                command=command.describe(),
                cause=e,
            ) from e

    def _run(
        self,
        stage: Stage,
        command: StageCommand,
        wc: WorkingCopy,
        args: Mapping[str, str],
    ) -> None:
        # ENV wins over ARG of the same name
        env = {**os.environ, **args, **wc.env}
        outcome = self._runner.run(command.argument, cwd=wc.cwd, env=env)
        if outcome.timed_out:
            raise StageExecutionError(
                f"Stage '{stage.name}' failed: command timed out",
                stage_name=stage.name,
                command=command.argument,
            )
        if outcome.exit_code != 0:
            stderr = outcome.stderr[-STDERR_TAIL:].strip()
            self.logger.warning(
                "Stage %s: command exited with %d: %s", stage.name, outcome.exit_code, stderr
            )
            raise StageExecutionError(
                f"Stage '{stage.name}' failed: command exited with status {outcome.exit_code}",
                stage_name=stage.name,
                exit_status=outcome.exit_code,
                command=command.argument,
                context={"stderr": stderr} if stderr else None,
            )

    def _copy(
        self,
        stage: Stage,
        command: StageCommand,
        wc: WorkingCopy,
        variables: Mapping[str, str],
        dependencies: Mapping[str, Artifact],
    ) -> None:
        spec = CopySpec.parse(expand_variables(command.argument, variables))
        if command.from_stage:
            if command.from_stage not in dependencies:
                raise StageExecutionError(
                    f"Stage '{stage.name}' failed: no artifact for stage '{command.from_stage}'",
                    stage_name=stage.name,
                    command=command.describe(),
                )
            source_root = dependencies[command.from_stage].path
        elif self._context_dir is not None:
            source_root = self._context_dir
        else:
            raise StageExecutionError(
                f"Stage '{stage.name}' failed: COPY needs a build context",
                stage_name=stage.name,
                command=command.describe(),
            )

        sources: list[Path] = []
        for pattern in spec.sources:
            matches = resolve_sources(source_root, pattern)
            if not matches:
                raise StageExecutionError(
                    f"Stage '{stage.name}' failed: COPY source '{pattern}' not found",
                    stage_name=stage.name,
                    command=command.describe(),
                )
            sources.extend(matches)

        target = destination_path(wc.tree, wc.workdir, spec.destination)
        as_directory = spec.destination_is_directory or len(sources) > 1
        copy_sources(sources, target, as_directory)

    def _verify_outputs(self, stage: Stage, wc: WorkingCopy) -> None:
        missing = [out for out in stage.outputs if not os.path.lexists(wc.tree / out)]
        if missing:
            raise StageExecutionError(
                f"Stage '{stage.name}' failed: declared outputs missing: {', '.join(missing)}",
                stage_name=stage.name,
                context={"missing": missing},
            )
