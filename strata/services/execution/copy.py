"""
COPY instruction support.

Parses ``<src>... <dest>`` arguments and copies sources from the build
context (or another stage's artifact) into a working copy, following the
multi-stage build file rules: several sources or a trailing slash make the
destination a directory, and directory sources copy their contents.
"""

from __future__ import annotations

import glob
import posixpath
import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path

_GLOB_CHARS = set("*?[")


@dataclass(frozen=True)
class CopySpec:
    """Parsed COPY argument."""

    sources: list[str]
    destination: str

    @classmethod
    def parse(cls, argument: str) -> CopySpec:
        """
        Parse ``<src>... <dest>``.

        Raises:
            ValueError: If fewer than one source and one destination are given
        """
        tokens = shlex.split(argument)
        if len(tokens) < 2:
            raise ValueError(f"COPY needs at least one source and a destination: {argument!r}")
        return cls(sources=tokens[:-1], destination=tokens[-1])

    @property
    def destination_is_directory(self) -> bool:
        return len(self.sources) > 1 or self.destination.endswith("/") or self.destination in (".", "./")


def resolve_sources(root: Path, pattern: str) -> list[Path]:
    """
    Expand one COPY source pattern below ``root``.

    Absolute patterns are taken relative to ``root`` (they name paths inside
    another stage's snapshot). Matches escaping ``root`` are dropped.

    Returns:
        Matching paths in sorted order (empty when nothing matches)
    """
    relative = pattern.lstrip("/") or "."
    root_resolved = root.resolve()
    if _GLOB_CHARS & set(relative):
        candidates = [Path(p) for p in sorted(glob.glob(str(root / relative)))]
    else:
        candidate = root / relative
        candidates = [candidate] if candidate.exists() or candidate.is_symlink() else []

    matches = []
    for candidate in candidates:
        try:
            candidate.resolve().relative_to(root_resolved)
        except ValueError:
            continue
        matches.append(candidate)
    return matches


def destination_path(scope_root: Path, workdir: str, destination: str) -> Path:
    """Map a COPY destination to a path inside the working copy."""
    if destination.startswith("/"):
        target = posixpath.normpath(destination)
    else:
        target = posixpath.normpath(posixpath.join(workdir, destination))
    target = target.lstrip("/")
    if target.startswith(".."):
        raise ValueError(f"COPY destination escapes the snapshot: {destination}")
    return scope_root / target if target and target != "." else scope_root


def copy_sources(sources: list[Path], destination: Path, as_directory: bool) -> list[Path]:
    """
    Copy resolved sources to ``destination``.

    Returns:
        Paths written at the top level of the destination
    """
    written: list[Path] = []
    into_directory = as_directory or destination.is_dir()
    if into_directory:
        destination.mkdir(parents=True, exist_ok=True)

    for source in sources:
        if source.is_dir() and not source.is_symlink():
            destination.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
            written.append(destination)
        else:
            target = destination / source.name if into_directory else destination
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target, follow_symlinks=False)
            written.append(target)
    return written
