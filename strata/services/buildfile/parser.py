"""
Multi-stage build file parser.

Reads the Dockerfile-style subset strata executes and turns it into
stages. Supported instructions: ``FROM``, ``ARG``, ``RUN``, ``COPY``,
``ENV`` and ``WORKDIR``. Image metadata instructions are accepted and
ignored, since a stage artifact is a plain directory tree.

    ARG JAVA_VERSION=8
    FROM maven:${JAVA_VERSION} AS pom
    COPY app/pom.xml pom.xml

    FROM pom AS test
    RUN mvn test
"""

from __future__ import annotations

import json
import re
import shlex
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ...core.di import resolve_or_default
from ...core.exceptions import BuildfileError
from ...core.interfaces.logger import ILogger
from ...core.models.stage import Instruction, Stage, StageCommand
from ...utils.variables import expand_variables
from ..logging import NullLogger

IGNORED_INSTRUCTIONS = frozenset(
    {
        "CMD",
        "ENTRYPOINT",
        "LABEL",
        "EXPOSE",
        "USER",
        "VOLUME",
        "HEALTHCHECK",
        "STOPSIGNAL",
        "SHELL",
        "ONBUILD",
        "MAINTAINER",
    }
)

_FLAG = re.compile(r"^--(?P<name>[a-z-]+)(?:=(?P<value>.*))?$")


class _StageDraft:
    """Mutable accumulator for the stage currently being parsed."""

    def __init__(self, index: int, name: str, parent: str | None, base: str | None, line: int):
        self.index = index
        self.name = name
        self.parent = parent
        self.base = base
        self.line = line
        self.commands: list[dict[str, Any]] = []
        self.args: dict[str, str | None] = {}


def _logical_lines(text: str) -> list[tuple[int, str]]:
    """Join continuation lines and drop comments and blanks.

    Returns:
        (first physical line number, joined instruction text) pairs
    """
    lines: list[tuple[int, str]] = []
    buffer: list[str] = []
    start = 0
    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if not buffer:
            start = number
        if stripped.endswith("\\"):
            buffer.append(stripped[:-1].strip())
            continue
        buffer.append(stripped)
        lines.append((start, " ".join(part for part in buffer if part)))
        buffer = []
    if buffer:
        lines.append((start, " ".join(part for part in buffer if part)))
    return lines


def _split_flags(argument: str) -> tuple[dict[str, str], str]:
    """Strip leading ``--flag[=value]`` tokens from an argument."""
    flags: dict[str, str] = {}
    rest = argument
    while rest.startswith("--"):
        token, _, remainder = rest.partition(" ")
        match = _FLAG.match(token)
        if match is None:
            break
        flags[match.group("name")] = match.group("value") or ""
        rest = remainder.lstrip()
    return flags, rest


def _exec_form(argument: str) -> str:
    """Turn a JSON exec-form argument into shell form."""
    if not argument.startswith("["):
        return argument
    try:
        items = json.loads(argument)
    except json.JSONDecodeError:
        return argument
    if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
        return argument
    return shlex.join(items)


def _parse_arg(argument: str, scope: dict[str, str]) -> tuple[str, str | None]:
    tokens = shlex.split(argument)
    if len(tokens) != 1:
        raise ValueError(f"ARG takes exactly one NAME[=default]: {argument!r}")
    name, sep, default = tokens[0].partition("=")
    if not re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", name):
        raise ValueError(f"Invalid ARG name: {name!r}")
    return name, expand_variables(default, scope) if sep else None


class _BuildfileParser:
    """Single-use parser state for one build file."""

    def __init__(self, source: str | None, build_args: dict[str, str], logger: ILogger) -> None:
        self._source = source
        self._build_args = build_args
        self._logger = logger
        self._global_args: dict[str, str] = {}
        self._drafts: list[_StageDraft] = []
        self._line = 0

    def _error(self, message: str, cause: Exception | None = None) -> BuildfileError:
        return BuildfileError(message, line=self._line, source=self._source, cause=cause)

    def parse(self, text: str) -> list[Stage]:
        for line, instruction_text in _logical_lines(text):
            self._line = line
            keyword, _, argument = instruction_text.partition(" ")
            self._instruction(keyword.upper(), argument.strip())

        if not self._drafts:
            raise BuildfileError("Build file defines no stages", source=self._source)
        return [self._build(draft) for draft in self._drafts]

    def _instruction(self, keyword: str, argument: str) -> None:
        if keyword in IGNORED_INSTRUCTIONS:
            self._logger.debug("Ignoring %s instruction at line %d", keyword, self._line)
            return
        if not argument:
            raise self._error(f"{keyword} requires an argument")

        if keyword == "FROM":
            self._drafts.append(self._from(argument))
            return
        if keyword == "ARG" and not self._drafts:
            name, default = self._arg(argument, self._global_args)
            self._global_args[name] = self._build_args.get(
                name, default if default is not None else ""
            )
            return
        if not self._drafts:
            raise self._error(f"{keyword} before the first FROM")

        draft = self._drafts[-1]
        if keyword == "ARG":
            scope = {**self._global_args, **{k: v or "" for k, v in draft.args.items()}}
            name, default = self._arg(argument, scope)
            # Redeclaring a global ARG without a default picks up the global value
            if default is None and name in self._global_args:
                default = self._global_args[name]
            draft.args[name] = default
        elif keyword == "RUN":
            _, command = _split_flags(argument)
            draft.commands.append({"instruction": Instruction.RUN, "argument": _exec_form(command)})
        elif keyword == "COPY":
            draft.commands.append(self._copy(argument))
        elif keyword in ("ENV", "WORKDIR"):
            draft.commands.append({"instruction": Instruction(keyword), "argument": argument})
        elif keyword == "ADD":
            raise self._error("ADD is not supported; use COPY")
        else:
            raise self._error(f"Unknown instruction {keyword}")

    def _arg(self, argument: str, scope: dict[str, str]) -> tuple[str, str | None]:
        try:
            return _parse_arg(argument, scope)
        except ValueError as e:
            raise self._error(str(e), e) from e

    def _from(self, argument: str) -> _StageDraft:
        flags, rest = _split_flags(argument)
        unknown = set(flags) - {"platform"}
        if unknown:
            raise self._error(f"Unsupported FROM flags: {', '.join(sorted(unknown))}")

        index = len(self._drafts)
        tokens = rest.split()
        if len(tokens) == 1:
            ref, name = tokens[0], str(index)
        elif len(tokens) == 3 and tokens[1].lower() == "as":
            ref, name = tokens[0], tokens[2].lower()
        else:
            raise self._error(f"Expected 'FROM <ref> [AS <name>]', got {argument!r}")

        if any(d.name == name for d in self._drafts):
            raise self._error(f"Duplicate stage name '{name}'")

        ref = expand_variables(ref, self._global_args)
        if not ref:
            raise self._error("FROM reference expands to an empty string")
        if any(d.name == ref.lower() for d in self._drafts):
            return _StageDraft(index, name, parent=ref.lower(), base=None, line=self._line)
        return _StageDraft(index, name, parent=None, base=ref, line=self._line)

    def _copy(self, argument: str) -> dict[str, Any]:
        flags, rest = _split_flags(argument)
        for flag in flags:
            if flag in ("chown", "chmod", "link"):
                self._logger.debug("Ignoring COPY --%s at line %d", flag, self._line)
            elif flag != "from":
                raise self._error(f"Unsupported COPY flag --{flag}")

        command: dict[str, Any] = {"instruction": Instruction.COPY, "argument": _exec_form(rest)}
        if "from" in flags:
            ref = flags["from"].lower()
            earlier = self._drafts[:-1]
            if ref.isdigit() and int(ref) < len(earlier):
                command["from_stage"] = earlier[int(ref)].name
            elif any(d.name == ref for d in earlier):
                command["from_stage"] = ref
            else:
                raise self._error(f"COPY --from={ref} does not name an earlier stage")
        return command

    def _build(self, draft: _StageDraft) -> Stage:
        try:
            return Stage(
                name=draft.name,
                parent=draft.parent,
                base=draft.base,
                commands=[StageCommand(**command) for command in draft.commands],
                args=draft.args,
            )
        except ValidationError as e:
            raise BuildfileError(
                f"Invalid stage '{draft.name}': {e.errors()[0]['msg']}",
                line=draft.line,
                source=self._source,
                cause=e,
            ) from e


def parse_buildfile(
    text: str,
    source: str | None = None,
    build_args: dict[str, str] | None = None,
) -> list[Stage]:
    """
    Parse a multi-stage build file.

    Args:
        text: Build file contents
        source: Where the text came from (used in error messages)
        build_args: Overrides for global ARG defaults used in ``FROM``

    Returns:
        Stages in file order. Unnamed stages are named by their index.

    Raises:
        BuildfileError: On syntax errors, unknown instructions or invalid stages
    """
    logger = resolve_or_default(ILogger, NullLogger)
    stages = _BuildfileParser(source, build_args or {}, logger).parse(text)
    logger.debug("Parsed %d stages from %s", len(stages), source or "<text>")
    return stages


def load_buildfile(path: Path, build_args: dict[str, str] | None = None) -> list[Stage]:
    """
    Read and parse a build file.

    Raises:
        BuildfileError: If the file cannot be read or parsed
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise BuildfileError(f"Cannot read build file: {e}", source=str(path), cause=e) from e
    return parse_buildfile(text, source=str(path), build_args=build_args)
