"""
Application bootstrap for strata.

Registers the shared services (logger, presenter, hash registry) in the
DI container. Library users may skip it: every component falls back to
its default implementation when nothing is registered.
"""

from pathlib import Path

from .container import ServiceContainer, get_container
from .interfaces.logger import ILogger
from .interfaces.presenter import IPresenter

_initialized = False


def bootstrap(config_path: Path | None = None) -> ServiceContainer:
    """
    Bootstrap the strata application.

    Args:
        config_path: Optional explicit config file for logging settings

    Returns:
        Initialized ServiceContainer
    """
    global _initialized

    container = get_container()

    if _initialized:
        return container

    _register_core_services(container, config_path)

    _initialized = True
    return container


def _register_core_services(container: ServiceContainer, config_path: Path | None) -> None:
    """Register core application services."""
    from ..config import load_config
    from ..hashing.registry import HashAlgorithmRegistry
    from ..presenters.console import ConsolePresenter
    from ..services.logging import StrataLogger

    container.register_singleton(IPresenter, implementation=ConsolePresenter())  # type: ignore[type-abstract]
    container.register_singleton(HashAlgorithmRegistry, factory=HashAlgorithmRegistry)

    def create_logger() -> ILogger:
        logging_config = load_config(config_path=config_path).get("logging", {})
        file_enabled = logging_config.get("file")
        if file_enabled is None:
            file_enabled = True
        return StrataLogger(
            level=logging_config.get("level") or "warning",
            console_enabled=logging_config.get("console") or False,
            file_enabled=file_enabled,
        )

    container.register_singleton(ILogger, factory=create_logger)  # type: ignore[type-abstract]


def reset() -> None:
    """
    Reset the application state.

    Useful for testing to ensure clean state between tests.
    """
    global _initialized
    ServiceContainer.reset()
    _initialized = False


def is_initialized() -> bool:
    """Check if the application has been bootstrapped."""
    return _initialized
