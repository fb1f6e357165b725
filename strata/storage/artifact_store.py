"""
Filesystem artifact store.

Holds every materialized snapshot under ``<root>/artifacts/<id>`` and
hands out exclusively owned working copies under ``<root>/work``. A
working copy only becomes an artifact through an explicit commit; if the
owner leaves the ``working_copy()`` block without committing (or with an
exception), the copy is discarded and no artifact is created.
"""

from __future__ import annotations

import os
import posixpath
import shutil
import tempfile
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..core.di import LazyService
from ..core.interfaces.logger import ILogger
from ..core.models.artifact import Artifact
from ..hashing.tree import TreeHasher
from ..services.logging import NullLogger


class WorkingCopy:
    """
    Scratch copy of an input artifact owned by one stage execution.

    Attributes:
        tree: Root of the copied snapshot
        env: Environment carried forward (ENV updates land here)
        workdir: Current working directory inside the snapshot (POSIX, absolute)
    """

    def __init__(self, store: ArtifactStore, scratch: Path, tree: Path, env: dict[str, str], workdir: str):
        self._store = store
        self._scratch = scratch
        self.tree = tree
        self.env = env
        self.workdir = workdir
        self.artifact: Artifact | None = None

    @property
    def committed(self) -> bool:
        return self.artifact is not None

    @property
    def cwd(self) -> Path:
        """Host path of the current working directory, created on demand."""
        path = self.resolve(self.workdir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def resolve(self, path: str) -> Path:
        """Map a snapshot path (absolute, or relative to workdir) to a host path."""
        joined = posixpath.normpath(posixpath.join(self.workdir, path))
        relative = joined.lstrip("/")
        if relative.startswith(".."):
            raise ValueError(f"Path escapes the snapshot: {path}")
        return self.tree / relative if relative and relative != "." else self.tree

    def change_workdir(self, path: str) -> None:
        """Apply a WORKDIR change and create the directory.

        Relative paths resolve against the current working directory.
        """
        workdir = posixpath.normpath(posixpath.join(self.workdir, path))
        if not workdir.startswith("/"):
            workdir = "/" + workdir
        self.resolve(workdir).mkdir(parents=True, exist_ok=True)
        self.workdir = workdir

    def commit(self, *, stage: str | None, fingerprint: str) -> Artifact:
        """Turn the working copy into an immutable artifact."""
        if self.artifact is not None:
            raise RuntimeError("Working copy already committed")
        self.artifact = self._store._commit(self, stage=stage, fingerprint=fingerprint)
        return self.artifact

    def discard(self) -> None:
        shutil.rmtree(self._scratch, ignore_errors=True)


class ArtifactStore:
    """
    Directory-backed store of immutable snapshots.

    Usage:
        with ArtifactStore() as store:
            base = store.import_tree(Path("src"))
            with store.working_copy(base) as wc:
                (wc.cwd / "out.txt").write_text("hello")
                artifact = wc.commit(stage="build", fingerprint=key)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        root: Path | None = None,
        hasher: TreeHasher | None = None,
        keep: bool = False,
        logger: ILogger | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            root: Store directory (a temporary directory when None)
            hasher: Tree hasher for content digests
            keep: Keep a temporary store directory on close()
            logger: Logger for internal diagnostics
        """
        self._owned = root is None
        self._root = Path(tempfile.mkdtemp(prefix="strata-store-")) if root is None else root
        self._keep = keep
        self._hasher = hasher or TreeHasher()
        self._artifacts_dir = self._root / "artifacts"
        self._work_dir = self._root / "work"
        self._artifacts_dir.mkdir(parents=True, exist_ok=True)
        self._work_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logger

    @property
    def root(self) -> Path:
        return self._root

    @property
    def hasher(self) -> TreeHasher:
        return self._hasher

    def import_tree(
        self,
        source: Path | None,
        *,
        stage: str | None = None,
        fingerprint: str | None = None,
    ) -> Artifact:
        """
        Copy a host directory into the store as a new artifact.

        Args:
            source: Directory to snapshot (None for an empty tree)
            stage: Producing stage, if any
            fingerprint: Cache key; defaults to the content digest

        Raises:
            NotADirectoryError: If source is not a directory
        """
        scratch = Path(tempfile.mkdtemp(prefix="import-", dir=self._work_dir))
        tree = scratch / "tree"
        try:
            if source is None:
                tree.mkdir()
            else:
                if not source.is_dir():
                    raise NotADirectoryError(str(source))
                shutil.copytree(source, tree, symlinks=True, ignore=self._ignore_store(source))
            wc = WorkingCopy(self, scratch, tree, env={}, workdir="/")
            return self._commit(wc, stage=stage, fingerprint=fingerprint)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def _ignore_store(self, source: Path):
        """Never copy the store into itself when it lives inside the source tree."""
        store_root = self._root.resolve()

        def _ignore(directory: str, names: list[str]) -> list[str]:
            return [n for n in names if (Path(directory) / n).resolve() == store_root]

        return _ignore

    @contextmanager
    def working_copy(self, artifact: Artifact) -> Iterator[WorkingCopy]:
        """
        Yield an exclusively owned copy of ``artifact``.

        The copy is discarded on exit unless it was committed.
        """
        scratch = Path(tempfile.mkdtemp(prefix="wc-", dir=self._work_dir))
        tree = scratch / "tree"
        wc = WorkingCopy(self, scratch, tree, env=dict(artifact.env), workdir=artifact.workdir)
        try:
            shutil.copytree(artifact.path, tree, symlinks=True)
            yield wc
        finally:
            if not wc.committed:
                self.logger.debug("Discarding working copy %s", scratch.name)
            wc.discard()

    def _commit(self, wc: WorkingCopy, *, stage: str | None, fingerprint: str | None) -> Artifact:
        artifact_id = uuid.uuid4().hex
        destination = self._artifacts_dir / artifact_id
        os.replace(wc.tree, destination)
        digest = self._hasher.digest_tree(destination)
        artifact = Artifact(
            id=artifact_id,
            stage=stage,
            fingerprint=fingerprint or digest,
            content_digest=digest,
            path=destination,
            env=dict(wc.env),
            workdir=wc.workdir,
            created_at=time.time(),
        )
        self.logger.debug(
            "Committed artifact %s (stage=%s, digest=%s)", artifact_id, stage, digest[:12]
        )
        return artifact

    def close(self) -> None:
        """Remove a temporary store directory (unless keep was requested)."""
        if self._owned and not self._keep:
            shutil.rmtree(self._root, ignore_errors=True)

    def __enter__(self) -> ArtifactStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
