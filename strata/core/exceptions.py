"""
Custom exception hierarchy for strata.

Provides a structured exception hierarchy so that planning-time and
execution-time failures can be told apart and handled appropriately.
"""

from __future__ import annotations


class StrataException(Exception):
    """
    Base exception for all strata errors.

    Attributes:
        message: Human-readable error description
        context: Additional debugging context (stage names, paths, etc.)
        exit_code: Suggested exit code for callers that surface errors as processes
        recoverable: Whether retry/recovery may be possible
    """

    exit_code: int = 1
    recoverable: bool = True

    def __init__(
        self,
        message: str,
        *,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        if cause is not None:
            self.__cause__ = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class StrataConfigError(StrataException):
    """Base class for configuration-related errors."""

    pass


class ConfigFileError(StrataConfigError):
    """
    Error reading or parsing a configuration file.

    Raised for TOML parsing errors, file not found, permission errors, etc.
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if file_path:
            ctx["file_path"] = file_path
        super().__init__(message, context=ctx, cause=cause)


class ConfigValidationError(StrataConfigError, ValueError):
    """
    Invalid or missing configuration value.

    Inherits from ValueError so callers catching ValueError still see it.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        value: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if key:
            ctx["key"] = key
        if value is not None:
            ctx["value"] = value
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Graph / Planning Errors
# =============================================================================


class StrataGraphError(StrataException):
    """
    Base class for stage graph errors.

    Planning errors are fatal to the planning call and cannot be retried
    without fixing the graph definition.
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        stage_name: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if stage_name:
            ctx["stage"] = stage_name
        super().__init__(message, context=ctx, cause=cause)
        self.stage_name = stage_name


class DuplicateStageError(StrataGraphError):
    """A stage with the same name is already part of the graph."""

    pass


class CyclicDependencyError(StrataGraphError):
    """
    Adding a stage would close a dependency cycle.

    Attributes:
        cycle: Stage names along the detected cycle, starting and ending
            with the rejected stage
    """

    def __init__(
        self,
        message: str,
        *,
        stage_name: str | None = None,
        cycle: list[str] | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if cycle:
            ctx["cycle"] = " -> ".join(cycle)
        super().__init__(message, stage_name=stage_name, context=ctx, cause=cause)
        self.cycle = cycle or []


class UnknownStageError(StrataGraphError, KeyError):
    """The requested stage is not part of the graph."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return StrataGraphError.__str__(self)


# =============================================================================
# Build File Errors
# =============================================================================


class BuildfileError(StrataException, ValueError):
    """
    Error parsing a multi-stage build file.

    Attributes:
        line: 1-based line number of the offending instruction, if known
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        source: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if source:
            ctx["source"] = source
        if line is not None:
            ctx["line"] = line
        super().__init__(message, context=ctx, cause=cause)
        self.line = line


# =============================================================================
# Execution Errors
# =============================================================================


class StrataExecutionError(StrataException):
    """Base class for execution-related errors."""

    pass


class StageExecutionError(StrataExecutionError):
    """
    A stage failed while running its commands.

    The stage's working copy has been discarded; no partial artifact exists.

    Attributes:
        stage_name: Name of the failed stage
        exit_status: Exit status of the failing command, or None if the
            failure happened outside a command (missing COPY source, missing
            declared output, timeout)
        command: The failing command, if any
    """

    def __init__(
        self,
        message: str,
        *,
        stage_name: str,
        exit_status: int | None = None,
        command: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        ctx["stage"] = stage_name
        if exit_status is not None:
            ctx["exit_status"] = exit_status
        if command:
            ctx["command"] = command
        super().__init__(message, context=ctx, cause=cause)
        self.stage_name = stage_name
        self.exit_status = exit_status
        self.command = command


class SnapshotError(StrataExecutionError):
    """
    A base snapshot could not be produced.

    Raised when a base reference cannot be resolved to a directory.
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        base: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if base:
            ctx["base"] = base
        super().__init__(message, context=ctx, cause=cause)
        self.base = base


class InvalidStateTransitionError(StrataExecutionError):
    """A stage was moved along an edge the stage state machine does not allow."""

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        stage_name: str | None = None,
        current: str | None = None,
        requested: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if stage_name:
            ctx["stage"] = stage_name
        if current:
            ctx["current"] = current
        if requested:
            ctx["requested"] = requested
        super().__init__(message, context=ctx, cause=cause)
