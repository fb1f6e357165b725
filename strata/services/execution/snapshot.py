"""
Base snapshot provider.

Supplies the input artifact of root stages. Snapshots are memoized per
base reference; a refresh (``pull``) discards the memo and refetches.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path

from ...core.di import LazyService
from ...core.exceptions import SnapshotError
from ...core.interfaces.logger import ILogger
from ...core.models.artifact import Artifact
from ...storage.artifact_store import ArtifactStore
from ..logging import NullLogger

SCRATCH = "scratch"


class LocalSnapshotProvider:
    """
    Resolves base references to local directories.

    Resolution order:
    - None: the build context source tree
    - ``scratch``: an empty tree
    - a name configured in ``bases``: that directory
    - an existing directory relative to the build context
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        store: ArtifactStore,
        context_dir: Path,
        bases: Mapping[str, str] | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self._store = store
        self._context_dir = context_dir
        self._bases = dict(bases or {})
        self._memo: dict[str, Artifact] = {}
        self._lock = threading.Lock()
        self.logger = logger

    def snapshot(self, base: str | None, *, refresh: bool = False) -> Artifact:
        """
        Return the artifact for a base reference.

        Raises:
            SnapshotError: If the base cannot be resolved
        """
        key = base if base is not None else ""
        with self._lock:
            if not refresh and key in self._memo:
                return self._memo[key]

            source = self._resolve(base)
            label = base or "<context>"
            self.logger.info("Snapshotting base %s from %s", label, source or "scratch")
            try:
                artifact = self._store.import_tree(source)
            except OSError as e:
                raise SnapshotError(
                    f"Failed to snapshot base '{label}'", base=label, cause=e
                ) from e

            previous = self._memo.get(key)
            if previous is not None and previous.content_digest != artifact.content_digest:
                self.logger.info(
                    "Base %s changed: %s -> %s",
                    label,
                    previous.content_digest[:12],
                    artifact.content_digest[:12],
                )
            self._memo[key] = artifact
            return artifact

    def _resolve(self, base: str | None) -> Path | None:
        if base is None:
            if not self._context_dir.is_dir():
                raise SnapshotError(
                    "Build context is not a directory", base=str(self._context_dir)
                )
            return self._context_dir
        if base == SCRATCH:
            return None
        if base in self._bases:
            path = Path(self._bases[base]).expanduser()
            if not path.is_absolute():
                path = self._context_dir / path
            if not path.is_dir():
                raise SnapshotError(
                    f"Configured base '{base}' is not a directory",
                    base=base,
                    context={"path": str(path)},
                )
            return path
        candidate = self._context_dir / base
        if candidate.is_dir():
            return candidate
        raise SnapshotError(
            f"Cannot resolve base '{base}'; map it under [bases] in the configuration",
            base=base,
        )
