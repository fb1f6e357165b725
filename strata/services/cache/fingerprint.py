"""
Stage fingerprinting.

A stage fingerprint is the cache key of its artifact. It covers only the
stage's own inputs and its ancestors (through the parent fingerprint):
- the parent artifact fingerprint
- the command sequence
- resolved values of the stage's declared build args
- content digests of COPY sources read from the build context
- fingerprints of the artifacts read by COPY --from

Sibling and descendant stages never influence it.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ...core.di import LazyService
from ...core.interfaces.logger import ILogger
from ...core.models.artifact import Artifact
from ...core.models.stage import Instruction, Stage
from ...hashing.tree import TreeHasher
from ...utils.variables import expand_variables, parse_env_argument, resolve_build_args
from ..execution.copy import CopySpec, resolve_sources
from ..logging import NullLogger

FINGERPRINT_VERSION = 1


class FingerprintService:
    """
    Computes stage fingerprints.

    Usage:
        service = FingerprintService(TreeHasher("blake3"), context_dir=Path("."))
        key = service.fingerprint(stage, parent_artifact, build_args={"JAVA_VERSION": "8"})
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        hasher: TreeHasher | None = None,
        context_dir: Path | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self._hasher = hasher or TreeHasher()
        self._context_dir = context_dir
        self.logger = logger

    @property
    def hasher(self) -> TreeHasher:
        return self._hasher

    def fingerprint(
        self,
        stage: Stage,
        parent: Artifact,
        *,
        build_args: Mapping[str, str] | None = None,
        dependencies: Mapping[str, Artifact] | None = None,
    ) -> str:
        """
        Compute the fingerprint of ``stage`` built on top of ``parent``.

        Args:
            stage: Stage to fingerprint
            parent: Input artifact (parent stage output or base snapshot)
            build_args: Build arg overrides for this build
            dependencies: Artifacts of COPY --from stages, by stage name

        Raises:
            KeyError: If a COPY --from stage has no artifact in ``dependencies``
        """
        args = resolve_build_args(stage, build_args or {})
        dependencies = dependencies or {}

        payload: dict[str, Any] = {
            "version": FINGERPRINT_VERSION,
            "algorithm": self._hasher.algorithm,
            "parent": parent.fingerprint,
            "commands": [
                [Instruction(command.instruction).value, command.argument, command.from_stage]
                for command in stage.commands
            ],
            "args": args,
            "context": self._context_digests(stage, parent, args),
            "dependencies": {
                name: dependencies[name].fingerprint for name in stage.copy_sources
            },
        }
        data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
        key = self._hasher.digest_bytes(data)
        self.logger.debug("Fingerprint %s = %s", stage.name, key[:12])
        return key

    def _context_digests(
        self, stage: Stage, parent: Artifact, args: Mapping[str, str]
    ) -> list[list[str]]:
        """Digest every build-context path a stage's COPY commands read."""
        digests: list[list[str]] = []
        variables = {**args, **parent.env}
        for command in stage.commands:
            if command.instruction == Instruction.ENV:
                try:
                    variables.update(parse_env_argument(command.argument, variables))
                except ValueError:
                    pass  # Reported by the executor when the stage runs
                continue
            if command.instruction != Instruction.COPY or command.from_stage:
                continue
            if self._context_dir is None:
                continue
            try:
                spec = CopySpec.parse(expand_variables(command.argument, variables))
            except ValueError:
                continue
            for pattern in spec.sources:
                matches = resolve_sources(self._context_dir, pattern)
                if not matches:
                    digests.append([pattern, "missing"])
                for match in matches:
                    rel = match.relative_to(self._context_dir).as_posix()
                    digests.append([rel, self._hasher.digest_path(match)])
        return digests
