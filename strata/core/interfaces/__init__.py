"""
Protocol definitions for strata's service interfaces.

These protocols define the contracts that implementations must follow,
enabling dependency inversion and loose coupling throughout the codebase.
"""

from .execution import CommandOutcome, ICommandRunner, ISnapshotProvider
from .logger import ILogger
from .presenter import IPresenter

__all__ = [
    "CommandOutcome",
    "ICommandRunner",
    "ILogger",
    "IPresenter",
    "ISnapshotProvider",
]
