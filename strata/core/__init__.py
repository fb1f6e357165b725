"""
Core infrastructure for strata.

This module provides:
- ServiceContainer: DI container using dependency-injector
- Application bootstrap for initialization
- Interface definitions for shared services
- Custom exception hierarchy
"""

from .bootstrap import bootstrap, is_initialized, reset
from .container import ServiceContainer, get_container, resolve, try_resolve
from .exceptions import (
    BuildfileError,
    ConfigFileError,
    ConfigValidationError,
    CyclicDependencyError,
    DuplicateStageError,
    InvalidStateTransitionError,
    SnapshotError,
    StageExecutionError,
    StrataConfigError,
    StrataException,
    StrataExecutionError,
    StrataGraphError,
    UnknownStageError,
)

__all__ = [
    "BuildfileError",
    "ConfigFileError",
    "ConfigValidationError",
    "CyclicDependencyError",
    "DuplicateStageError",
    "InvalidStateTransitionError",
    "ServiceContainer",
    "SnapshotError",
    "StageExecutionError",
    "StrataConfigError",
    "StrataException",
    "StrataExecutionError",
    "StrataGraphError",
    "UnknownStageError",
    "bootstrap",
    "get_container",
    "is_initialized",
    "reset",
    "resolve",
    "try_resolve",
]
