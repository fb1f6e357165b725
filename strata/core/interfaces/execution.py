"""
Protocol definitions for the collaborators the executor relies on.

These protocols define the contracts for running commands against a
filesystem scope and for producing base snapshots.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Protocol, runtime_checkable

from pydantic import Field

from ..models.base import ImmutableModel

if TYPE_CHECKING:
    from ..models.artifact import Artifact


class CommandOutcome(ImmutableModel):
    """Result of running one shell command."""

    exit_code: int
    duration: Annotated[float, Field(ge=0)] = 0.0
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


@runtime_checkable
class ICommandRunner(Protocol):
    """Protocol for running a shell command inside a working copy."""

    def run(self, command: str, *, cwd: Path, env: dict[str, str]) -> CommandOutcome:
        """Run ``command`` with ``cwd`` as working directory and ``env`` as environment."""
        ...


@runtime_checkable
class ISnapshotProvider(Protocol):
    """Protocol for producing base snapshots of root stages."""

    def snapshot(self, base: str | None, *, refresh: bool = False) -> Artifact:
        """
        Return the artifact for a base reference.

        Args:
            base: Base reference (None for the build context source tree)
            refresh: Discard any memoized snapshot and refetch it

        Raises:
            SnapshotError: If the base cannot be resolved
        """
        ...
