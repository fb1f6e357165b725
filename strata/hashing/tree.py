"""
Content digests for files and directory trees.

A tree digest covers relative paths, entry types, the executable bit,
symlink targets and file contents, so two trees hash equal exactly when a
build could not tell them apart. Timestamps and ownership are ignored.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Any

from .registry import HashAlgorithmRegistry

CHUNK_SIZE = 8 * 1024 * 1024  # 8MB


class TreeHasher:
    """Computes deterministic digests of files and directory trees."""

    def __init__(
        self,
        algorithm: str = "blake3",
        registry: HashAlgorithmRegistry | None = None,
    ) -> None:
        self._registry = registry or HashAlgorithmRegistry()
        self._algorithm = algorithm
        # Fail early on unknown algorithms
        self._registry.require(algorithm)

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def digest_bytes(self, data: bytes) -> str:
        """Hash an in-memory payload with the configured algorithm."""
        return self._registry.compute_hash(self._algorithm, data)

    def digest_path(self, path: Path) -> str:
        """Digest a file, symlink or directory tree.

        Raises:
            FileNotFoundError: If path does not exist
        """
        if not os.path.lexists(path):
            raise FileNotFoundError(path)
        hasher = self._registry.create_hasher(self._algorithm)
        if path.is_dir() and not path.is_symlink():
            self._update_tree(hasher, path)
        else:
            self._update_entry(hasher, path, path.name)
        return hasher.hexdigest()

    def digest_tree(self, root: Path) -> str:
        """Digest the contents of a directory (the root's own name is excluded)."""
        hasher = self._registry.create_hasher(self._algorithm)
        self._update_tree(hasher, root)
        return hasher.hexdigest()

    def _update_tree(self, hasher: Any, root: Path) -> None:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            current = Path(dirpath)
            rel_dir = current.relative_to(root).as_posix()
            if rel_dir != ".":
                hasher.update(b"d\0" + rel_dir.encode() + b"\0")
            for name in sorted(filenames + [d for d in dirnames if (current / d).is_symlink()]):
                entry = current / name
                rel = entry.relative_to(root).as_posix()
                self._update_entry(hasher, entry, rel)
            # os.walk does not descend into symlinked dirs; they are hashed as links
            dirnames[:] = [d for d in dirnames if not (current / d).is_symlink()]

    def _update_entry(self, hasher: Any, entry: Path, rel: str) -> None:
        info = entry.lstat()
        if stat.S_ISLNK(info.st_mode):
            hasher.update(b"l\0" + rel.encode() + b"\0" + os.readlink(entry).encode() + b"\0")
            return
        executable = b"x" if info.st_mode & stat.S_IXUSR else b"-"
        hasher.update(b"f\0" + rel.encode() + b"\0" + executable + b"\0")
        hasher.update(str(info.st_size).encode() + b"\0")
        with open(entry, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
