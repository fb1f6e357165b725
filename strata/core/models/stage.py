"""
Stage domain models.

A stage is a named unit of build work: it derives from one parent stage
(or, for a root stage, from a base snapshot), runs an ordered list of
commands and declares the outputs it leaves behind.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator

from .base import ImmutableModel

StageName = Annotated[str, Field(min_length=1, max_length=128, pattern=r"^[A-Za-z0-9][\w.-]*$")]


class Instruction(str, Enum):
    """Build instructions a stage command can carry."""

    RUN = "RUN"
    COPY = "COPY"
    ENV = "ENV"
    WORKDIR = "WORKDIR"


class StageCommand(ImmutableModel):
    """A single instruction of a stage.

    ``RUN`` arguments are shell commands. ``COPY`` arguments are
    ``<src>... <dest>`` with ``from_stage`` naming the stage whose artifact
    the sources are read from (the build context when unset). ``ENV``
    arguments are ``KEY=VALUE`` pairs and ``WORKDIR`` arguments a directory.
    """

    instruction: Instruction = Instruction.RUN
    argument: Annotated[str, Field(min_length=1)]
    from_stage: StageName | None = None

    @field_validator("instruction", mode="before")
    @classmethod
    def normalize_instruction(cls, v: Any) -> Any:
        """Accept instruction names in any case."""
        if isinstance(v, str) and not isinstance(v, Instruction):
            return Instruction(v.upper())
        return v

    @model_validator(mode="after")
    def validate_from_stage(self) -> StageCommand:
        """Only COPY may read from another stage."""
        if self.from_stage is not None and self.instruction != Instruction.COPY:
            raise ValueError("from_stage is only valid for COPY commands")
        return self

    def describe(self) -> str:
        """Render the command the way it would appear in a build file."""
        keyword = Instruction(self.instruction).value
        if self.from_stage:
            return f"{keyword} --from={self.from_stage} {self.argument}"
        return f"{keyword} {self.argument}"


class Stage(ImmutableModel):
    """A named stage of a multi-stage build.

    Attributes:
        name: Unique stage name within a build
        parent: Name of the stage this one derives from (None for a root stage)
        base: External base reference for a root stage. None means the build
            context source tree, ``scratch`` an empty tree, anything else a
            configured base name or a directory.
        commands: Ordered commands; plain strings are treated as RUN commands
        outputs: Paths (relative to the snapshot root) the stage must produce
        args: Declared build arguments and their defaults
    """

    name: StageName
    parent: StageName | None = None
    base: Annotated[str, Field(min_length=1)] | None = None
    commands: list[StageCommand] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    args: dict[str, str | None] = Field(default_factory=dict)

    @field_validator("commands", mode="before")
    @classmethod
    def coerce_commands(cls, v: Any) -> Any:
        """Turn plain strings into RUN commands and dicts into StageCommand."""
        if not isinstance(v, list):
            return v
        commands = []
        for item in v:
            if isinstance(item, str):
                commands.append(StageCommand(instruction=Instruction.RUN, argument=item))
            elif isinstance(item, dict):
                commands.append(StageCommand(**item))
            else:
                commands.append(item)
        return commands

    @field_validator("outputs", mode="before")
    @classmethod
    def normalize_outputs(cls, v: Any) -> Any:
        """Deduplicate declared outputs and strip leading './' and '/'."""
        if isinstance(v, (set, frozenset, tuple)):
            v = sorted(v)
        if not isinstance(v, list):
            return v
        seen: list[str] = []
        for path in v:
            if isinstance(path, str):
                path = path.strip()
                while path.startswith("./"):
                    path = path[2:]
                path = path.lstrip("/")
            if path and path not in seen:
                seen.append(path)
        return seen

    @model_validator(mode="after")
    def validate_origin(self) -> Stage:
        """A stage derives from either a parent stage or a base, not both."""
        if self.parent is not None and self.base is not None:
            raise ValueError(f"Stage '{self.name}' declares both a parent and a base")
        return self

    @property
    def is_root(self) -> bool:
        """True when the stage starts from a base snapshot."""
        return self.parent is None

    @property
    def copy_sources(self) -> list[str]:
        """Stages read by COPY --from, in order of first appearance."""
        names: list[str] = []
        for command in self.commands:
            if command.from_stage and command.from_stage not in names:
                names.append(command.from_stage)
        return names

    @property
    def dependencies(self) -> list[str]:
        """All stages that must be done before this one can start."""
        deps = [self.parent] if self.parent else []
        for name in self.copy_sources:
            if name not in deps:
                deps.append(name)
        return deps
