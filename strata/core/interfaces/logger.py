"""
Logger interface for build diagnostics.

Stage submission, cache decisions and command failures are logged here.
What the user sees about a finished build goes through IPresenter.
"""

from abc import ABC, abstractmethod
from typing import Any


class ILogger(ABC):
    """
    Diagnostic logger used by the planner, scheduler and executor.

    Messages use %-style arguments so they are only formatted when a
    handler accepts the level. Calls may come from any stage worker thread.
    """

    @abstractmethod
    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log scheduling detail, such as submissions and fingerprints."""

    @abstractmethod
    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log stage progress, such as cache hits and completed stages."""

    @abstractmethod
    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log stage failures and skipped dependents."""

    @abstractmethod
    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log failures that end a build."""

    @abstractmethod
    def exception(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log an error with the traceback of the exception being handled."""
