"""
Tests for strata configuration loading.

Tests verify:
- Defaults apply when no config file exists
- .strata/config.toml and pyproject.toml [tool.strata] are found and merged
- STRATA_* environment variables override file values
- Invalid values and unreadable files are reported
- CONFIGURABLE_KEYS stays in sync with the Pydantic model defaults
"""

from pathlib import Path

import pytest

from strata.config import (
    CONFIGURABLE_KEYS,
    VALID_HASH_ALGORITHMS,
    _get_nested,
    config_get,
    config_list,
    get_default_config,
    load_config,
)
from strata.core.exceptions import ConfigFileError, ConfigValidationError
from strata.core.models import BuildOptions
from strata.core.settings import find_config_file, load_settings


def _write_config(root: Path, text: str) -> Path:
    config_path = root / ".strata" / "config.toml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(text)
    return config_path


class TestConfigLoading:
    """Tests for load_config and load_settings."""

    def test_load_config_without_file_returns_defaults(self, tmp_path: Path) -> None:
        """Without a config file every section holds its defaults."""
        config = load_config(start_dir=str(tmp_path))

        assert config["cache"]["enabled"] is True
        assert config["build"]["max_workers"] == 4
        assert config["hash"]["primary"] == "blake3"
        assert config["bases"] == {}
        assert "_config_file" not in config

    def test_load_config_merges_with_defaults(self, tmp_path: Path) -> None:
        """Values from .strata/config.toml override defaults; others stay."""
        _write_config(
            tmp_path,
            "[cache]\n"
            "force_refresh = true\n"
            'no_cache_stages = ["dependency_check"]\n'
            "\n"
            "[build]\n"
            "max_workers = 2\n"
            "\n"
            "[build.args]\n"
            'JAVA_VERSION = "11"\n'
            "\n"
            "[bases]\n"
            '"maven:3.5-jdk-8" = "/opt/images/maven"\n',
        )

        config = load_config(start_dir=str(tmp_path))

        assert config["cache"]["force_refresh"] is True
        assert config["cache"]["enabled"] is True
        assert config["cache"]["no_cache_stages"] == ["dependency_check"]
        assert config["build"]["max_workers"] == 2
        assert config["build"]["args"] == {"JAVA_VERSION": "11"}
        assert config["bases"] == {"maven:3.5-jdk-8": "/opt/images/maven"}
        assert config["_config_file"].endswith("config.toml")

    def test_config_found_from_subdirectory(self, tmp_path: Path) -> None:
        """The config file is searched upwards from start_dir."""
        _write_config(tmp_path, "[build]\nmax_workers = 3\n")
        nested = tmp_path / "app" / "src"
        nested.mkdir(parents=True)

        found = find_config_file(str(nested))

        assert found == tmp_path / ".strata" / "config.toml"
        assert load_settings(start_dir=str(nested)).build.max_workers == 3

    def test_pyproject_tool_section(self, tmp_path: Path) -> None:
        """[tool.strata] in pyproject.toml is used when present."""
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "app"\n\n[tool.strata.hash]\nprimary = "sha256"\n'
        )

        settings = load_settings(start_dir=str(tmp_path))

        assert settings.hash.primary == "sha256"
        assert settings.config_file == str(tmp_path / "pyproject.toml")

    def test_pyproject_without_section_is_ignored(self, tmp_path: Path) -> None:
        """A pyproject.toml without [tool.strata] is not a config file."""
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "app"\n')

        assert find_config_file(str(tmp_path)) is None

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        """An explicit path wins over discovery."""
        _write_config(tmp_path, "[build]\nmax_workers = 3\n")
        explicit = tmp_path / "ci.toml"
        explicit.write_text("[build]\nmax_workers = 16\n")

        config = load_config(config_path=explicit, start_dir=str(tmp_path))

        assert config["build"]["max_workers"] == 16

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch) -> None:
        """STRATA_<SECTION>__<KEY> variables beat file values."""
        _write_config(tmp_path, "[build]\nmax_workers = 2\n")
        monkeypatch.setenv("STRATA_BUILD__MAX_WORKERS", "8")
        monkeypatch.setenv("STRATA_CACHE__NO_CACHE_STAGES", '["dependency_check", "test"]')

        settings = load_settings(start_dir=str(tmp_path))

        assert settings.build.max_workers == 8
        assert settings.cache.no_cache_stages == ["dependency_check", "test"]

    def test_explicit_overrides_win(self, tmp_path: Path, monkeypatch) -> None:
        """Keyword overrides have the highest priority."""
        monkeypatch.setenv("STRATA_BUILD__MAX_WORKERS", "8")

        settings = load_settings(start_dir=str(tmp_path), build={"max_workers": 1})

        assert settings.build.max_workers == 1

    def test_comma_separated_no_cache_stages(self, tmp_path: Path) -> None:
        """no_cache_stages also accepts a comma-separated string."""
        _write_config(tmp_path, '[cache]\nno_cache_stages = "dependency_check, scan"\n')

        settings = load_settings(start_dir=str(tmp_path))

        assert settings.cache.no_cache_stages == ["dependency_check", "scan"]

    def test_settings_feed_build_options(self, tmp_path: Path) -> None:
        """BuildOptions defaults come from the cache and build sections."""
        _write_config(tmp_path, "[cache]\npull = true\n\n[build]\nmax_workers = 6\n")

        options = BuildOptions.from_settings(load_settings(start_dir=str(tmp_path)))

        assert options.pull is True
        assert options.max_workers == 6

    def test_config_get_nested_keys(self, tmp_path: Path) -> None:
        """config_get reads dot-separated keys."""
        _write_config(tmp_path, '[logging]\nlevel = "debug"\n')

        assert config_get("logging.level", start_dir=str(tmp_path)) == "debug"
        assert config_get("logging.console", start_dir=str(tmp_path)) is False
        assert config_get("logging.missing", start_dir=str(tmp_path)) is None


class TestConfigErrors:
    """Tests for invalid configuration."""

    def test_invalid_value_raises_validation_error(self, tmp_path: Path) -> None:
        """Out-of-range values name the offending key."""
        _write_config(tmp_path, "[build]\nmax_workers = 0\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_settings(start_dir=str(tmp_path))

        assert exc_info.value.context["key"] == "build.max_workers"
        assert exc_info.value.context["value"] == "0"

    def test_unknown_hash_algorithm(self, tmp_path: Path) -> None:
        """hash.primary must be a supported algorithm."""
        with pytest.raises(ConfigValidationError) as exc_info:
            load_settings(start_dir=str(tmp_path), hash={"primary": "crc32"})

        assert exc_info.value.context["key"] == "hash.primary"

    def test_validation_error_is_a_value_error(self, tmp_path: Path) -> None:
        """Callers catching ValueError still see configuration errors."""
        with pytest.raises(ValueError):
            load_settings(start_dir=str(tmp_path), logging={"level": "verbose"})

    def test_malformed_toml_is_recorded(self, tmp_path: Path) -> None:
        """A broken file falls back to defaults and records the error."""
        _write_config(tmp_path, "[build\nmax_workers = 2\n")

        config = load_config(start_dir=str(tmp_path))

        assert config["build"]["max_workers"] == 4
        assert config["_config_error"].startswith("Failed to parse config file")

    def test_malformed_toml_strict(self, tmp_path: Path) -> None:
        """strict=True turns an unreadable file into ConfigFileError."""
        config_path = _write_config(tmp_path, "[build\nmax_workers = 2\n")

        with pytest.raises(ConfigFileError) as exc_info:
            load_config(config_path=config_path, strict=True)

        assert exc_info.value.context["file_path"] == str(config_path)


class TestConfigurableKeys:
    """Tests for CONFIGURABLE_KEYS."""

    def test_all_configurable_keys_exist(self) -> None:
        """Every configurable key resolves in the default config."""
        defaults = get_default_config()
        sentinel = object()

        for key in CONFIGURABLE_KEYS:
            assert _get_nested(defaults, key, sentinel) is not sentinel, key

    def test_documented_defaults_match_models(self) -> None:
        """Documented defaults equal the Pydantic model defaults."""
        defaults = get_default_config()

        for key, info in CONFIGURABLE_KEYS.items():
            assert _get_nested(defaults, key) == info["default"], key

    def test_every_model_field_is_documented(self) -> None:
        """No scalar config field is missing from CONFIGURABLE_KEYS."""
        defaults = get_default_config()
        documented = set(config_list())

        for section, values in defaults.items():
            if section == "bases":
                continue
            for field in values:
                if section == "build" and field == "args":
                    continue
                assert f"{section}.{field}" in documented

    def test_hash_algorithms_are_valid(self) -> None:
        """The documented algorithms are the ones the models accept."""
        assert VALID_HASH_ALGORITHMS == {"blake3", "sha256", "sha512", "md5"}
        assert CONFIGURABLE_KEYS["hash.primary"]["default"] in VALID_HASH_ALGORITHMS
