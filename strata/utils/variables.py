"""
Build variable helpers.

Expansion of ``$VAR`` / ``${VAR}`` references, ENV argument parsing and
build argument resolution, shared by the build file parser, the
fingerprint service and the executor so all three read commands the
same way.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.models.stage import Stage

_VARIABLE = re.compile(
    r"\\(?P<escaped>\$)"
    r"|\$\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<op>[-+])(?P<word>[^}]*))?\}"
    r"|\$(?P<bare>[A-Za-z_][A-Za-z0-9_]*)"
)


def expand_variables(text: str, values: Mapping[str, str]) -> str:
    """Expand ``$NAME``, ``${NAME}``, ``${NAME:-default}`` and ``${NAME:+alt}``.

    Unknown variables expand to an empty string; ``\\$`` yields a literal ``$``.

    Examples:
        >>> expand_variables("maven:${MAVEN_VERSION}-jdk", {"MAVEN_VERSION": "3.5"})
        'maven:3.5-jdk'
        >>> expand_variables("${MISSING:-fallback}", {})
        'fallback'
    """

    def _replace(match: re.Match[str]) -> str:
        if match.group("escaped"):
            return "$"
        name = match.group("braced") or match.group("bare")
        value = values.get(name, "")
        op = match.group("op")
        if op == "-":
            return value if value else match.group("word")
        if op == "+":
            return match.group("word") if value else ""
        return value

    return _VARIABLE.sub(_replace, text)


def parse_env_argument(argument: str, values: Mapping[str, str] | None = None) -> dict[str, str]:
    """Parse an ENV argument into key/value pairs.

    Supports both ``KEY=VALUE [KEY2=VALUE2 ...]`` and the legacy
    ``KEY VALUE with spaces`` form. Values are expanded against ``values``.

    Raises:
        ValueError: If the argument has no key
    """
    values = values or {}
    text = argument.strip()
    if not text:
        raise ValueError("ENV requires at least one KEY=VALUE pair")

    first = text.split(None, 1)[0]
    if "=" not in first:
        parts = text.split(None, 1)
        value = parts[1] if len(parts) > 1 else ""
        return {parts[0]: expand_variables(value, values)}

    pairs: dict[str, str] = {}
    for token in shlex.split(text, posix=True):
        if "=" not in token:
            raise ValueError(f"ENV pair '{token}' is missing '='")
        key, value = token.split("=", 1)
        if not key:
            raise ValueError(f"ENV pair '{token}' has an empty key")
        pairs[key] = expand_variables(value, {**values, **pairs})
    return pairs


def resolve_build_args(stage: Stage, overrides: Mapping[str, str]) -> dict[str, str]:
    """Resolve a stage's declared build args against caller overrides.

    Only declared args are returned; an arg without default or override
    resolves to an empty string.
    """
    resolved: dict[str, str] = {}
    for name, default in stage.args.items():
        if name in overrides:
            resolved[name] = overrides[name]
        else:
            resolved[name] = default if default is not None else ""
    return resolved
