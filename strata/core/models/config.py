"""
Configuration models.

Provides Pydantic models for strata configuration with validation.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import ConfigDict, Field, field_validator

from .base import StrataBaseModel

# Type aliases
HashAlgorithm = Literal["blake3", "sha256", "sha512", "md5"]
LogLevel = Literal["debug", "info", "warning", "error"]


class ConfigBaseModel(StrataBaseModel):
    """Base model for config sections with relaxed strict mode for TOML loading."""

    model_config = ConfigDict(
        strict=False,  # Allow coercion from TOML types
        validate_assignment=True,
        extra="ignore",  # Ignore unknown fields in config files
        populate_by_name=True,
        use_enum_values=True,
        revalidate_instances="never",
    )


class CacheConfig(ConfigBaseModel):
    """Layer cache policy section."""

    enabled: bool = True
    force_refresh: bool = False
    pull: bool = False
    no_cache_stages: list[str] = Field(default_factory=list)

    @field_validator("no_cache_stages", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: Any) -> list[str]:
        """Parse comma-separated string to list."""
        if isinstance(v, str):
            return [x.strip() for x in v.split(",") if x.strip()]
        return v if v else []


class BuildConfig(ConfigBaseModel):
    """Build execution section."""

    max_workers: Annotated[int, Field(ge=1, le=256)] = 4
    shell: str = "/bin/sh"
    command_timeout: Annotated[float, Field(gt=0)] = 3600.0
    context_dir: str = "."
    args: dict[str, str] = Field(default_factory=dict)


class StoreConfig(ConfigBaseModel):
    """Artifact store section."""

    path: str | None = None  # None: a temporary directory per build service
    keep: bool = False  # Keep a temporary store after the service closes


class HashConfig(ConfigBaseModel):
    """Hash algorithm configuration section."""

    primary: HashAlgorithm = "blake3"


class LoggingConfig(ConfigBaseModel):
    """Logging configuration section."""

    level: LogLevel = "warning"
    console: bool = False
    file: bool = True


class StrataConfig(ConfigBaseModel):
    """Complete strata configuration.

    This model represents the full configuration with all sections.
    It can be loaded from TOML files or constructed programmatically.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    hash: HashConfig = Field(default_factory=HashConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    bases: dict[str, str] = Field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'cache.enabled')
            default: Default value if key not found

        Returns:
            Config value or default
        """
        parts = key.split(".")
        obj: Any = self
        for part in parts:
            if isinstance(obj, dict):
                if part not in obj:
                    return default
                obj = obj[part]
            elif hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                return default
        return obj

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StrataConfig:
        """Create config from dictionary."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
