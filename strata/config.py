"""Configuration loading for strata."""

from pathlib import Path
from typing import Any

from .core.exceptions import ConfigFileError
from .core.settings import load_settings

# Valid hash algorithms
VALID_HASH_ALGORITHMS = {"blake3", "sha256", "sha512", "md5"}

# Config keys read from .strata/config.toml / [tool.strata] / STRATA_* env vars
CONFIGURABLE_KEYS = {
    "cache.enabled": {
        "type": bool,
        "default": True,
        "description": "Look up and store stage artifacts in the layer cache",
    },
    "cache.force_refresh": {
        "type": bool,
        "default": False,
        "description": "Re-execute every stage but still store the results",
    },
    "cache.pull": {
        "type": bool,
        "default": False,
        "description": "Refetch base snapshots before fingerprinting",
    },
    "cache.no_cache_stages": {
        "type": list,
        "default": [],
        "description": "Stages that always re-execute (comma-separated)",
    },
    "build.max_workers": {
        "type": int,
        "default": 4,
        "description": "Number of stages that may run in parallel",
    },
    "build.shell": {
        "type": str,
        "default": "/bin/sh",
        "description": "Shell used to run RUN commands",
    },
    "build.command_timeout": {
        "type": float,
        "default": 3600.0,
        "description": "Per-command timeout in seconds",
    },
    "build.context_dir": {
        "type": str,
        "default": ".",
        "description": "Build context directory for COPY and root stages",
    },
    "store.path": {
        "type": str,
        "default": None,
        "description": "Artifact store directory (temporary when unset)",
    },
    "store.keep": {
        "type": bool,
        "default": False,
        "description": "Keep a temporary artifact store after the build",
    },
    "hash.primary": {
        "type": str,
        "default": "blake3",
        "description": "Fingerprint hash algorithm (blake3, sha256, sha512, md5)",
    },
    "logging.level": {
        "type": str,
        "default": "warning",
        "description": "Log level (debug, info, warning, error)",
    },
    "logging.console": {
        "type": bool,
        "default": False,
        "description": "Output debug logs to stderr",
    },
    "logging.file": {
        "type": bool,
        "default": True,
        "description": "Output debug logs to ~/.strata/strata.log",
    },
}


def get_default_config() -> dict:
    """Get default config from Pydantic models."""
    from .core.models.config import StrataConfig

    return StrataConfig().to_dict()


def _get_nested(d: dict, key: str, default=None):
    """Get a nested key like 'cache.enabled'."""
    parts = key.split(".")
    for part in parts:
        if isinstance(d, dict) and part in d:
            d = d[part]
        else:
            return default
    return d


def load_config(
    config_path: Path | None = None, start_dir: str | None = None, strict: bool = False
) -> dict:
    """
    Load configuration from file.

    Args:
        config_path: Explicit path to config file
        start_dir: Directory to start searching from (if config_path not given)
        strict: Raise instead of recording an unreadable config file

    Returns:
        Configuration dict with defaults applied

    Raises:
        ConfigFileError: In strict mode, if the config file could not be read
    """
    settings = load_settings(config_path=config_path, start_dir=start_dir)
    if strict and settings.config_error:
        raise ConfigFileError(
            settings.config_error,
            file_path=str(config_path) if config_path else None,
        )
    return settings.to_dict()


def config_get(key: str, start_dir: str | None = None) -> Any:
    """Get a config value."""
    config = load_config(start_dir=start_dir)
    return _get_nested(config, key)


def config_list():
    """List all configurable keys with descriptions."""
    return CONFIGURABLE_KEYS
