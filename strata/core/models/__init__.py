"""
Pydantic models for strata.

This package provides typed, validated models for all strata data structures.
All models use Pydantic v2 with strict validation.
"""

from .artifact import Artifact
from .base import ImmutableModel, StrataBaseModel
from .build import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    BuildOptions,
    BuildPlan,
    BuildResult,
    StageOutcome,
    StageState,
)
from .config import (
    BuildConfig,
    CacheConfig,
    HashConfig,
    LoggingConfig,
    StoreConfig,
    StrataConfig,
)
from .stage import Instruction, Stage, StageCommand

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATES",
    "Artifact",
    "BuildConfig",
    "BuildOptions",
    "BuildPlan",
    "BuildResult",
    "CacheConfig",
    "HashConfig",
    "ImmutableModel",
    "Instruction",
    "LoggingConfig",
    "Stage",
    "StageCommand",
    "StageOutcome",
    "StageState",
    "StoreConfig",
    "StrataBaseModel",
    "StrataConfig",
]
