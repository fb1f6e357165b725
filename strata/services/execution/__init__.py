"""Stage execution: working copies, commands, snapshots and scheduling."""

from .executor import StageExecutor
from .runner import SubprocessCommandRunner
from .scheduler import BuildScheduler, StageRun, StageStateTracker
from .snapshot import SCRATCH, LocalSnapshotProvider

__all__ = [
    "SCRATCH",
    "BuildScheduler",
    "LocalSnapshotProvider",
    "StageExecutor",
    "StageRun",
    "StageStateTracker",
    "SubprocessCommandRunner",
]
