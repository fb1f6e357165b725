"""
Shell command runner.

Runs RUN commands with subprocess inside a working copy.
"""

from __future__ import annotations

import subprocess
import time
from pathlib import Path

from ...core.di import LazyService
from ...core.interfaces.execution import CommandOutcome
from ...core.interfaces.logger import ILogger
from ..logging import NullLogger


class SubprocessCommandRunner:
    """
    Runs commands through a POSIX shell.

    Output is captured so failures can be reported with their stderr.
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        shell: str = "/bin/sh",
        timeout: float = 3600.0,
        logger: ILogger | None = None,
    ) -> None:
        """
        Initialize runner.

        Args:
            shell: Shell executable used as ``<shell> -c <command>``
            timeout: Per-command timeout in seconds
            logger: Logger for internal diagnostics
        """
        self._shell = shell
        self._timeout = timeout
        self.logger = logger

    def run(self, command: str, *, cwd: Path, env: dict[str, str]) -> CommandOutcome:
        """Run one command and report its exit code and output."""
        self.logger.debug("Running in %s: %s", cwd, command)
        start = time.monotonic()
        try:
            result = subprocess.run(
                [self._shell, "-c", command],
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            self.logger.warning("Command timed out after %.0fs: %s", self._timeout, command)
            return CommandOutcome(
                exit_code=-1,
                duration=time.monotonic() - start,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                timed_out=True,
            )

        return CommandOutcome(
            exit_code=result.returncode,
            duration=time.monotonic() - start,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )


def _decode(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
