"""
Content-addressed layer cache.

Maps stage fingerprints to the artifacts produced under them.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from ...core.di import LazyService
from ...core.interfaces.logger import ILogger
from ...core.models.artifact import Artifact
from ..logging import NullLogger


@dataclass(frozen=True)
class CacheStats:
    """Counters for cache activity."""

    entries: int
    hits: int
    misses: int
    stores: int
    duplicates: int


class LayerCache:
    """
    In-memory fingerprint -> artifact cache.

    Lookups and stores are guarded by a lock, so build workers may share one
    cache. Concurrent stores for one fingerprint resolve last-writer-wins,
    except that a store whose artifact is interchangeable with the existing
    entry is dropped as duplicate work and the first entry stays.
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(self, logger: ILogger | None = None) -> None:
        self._entries: dict[str, Artifact] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._stores = 0
        self._duplicates = 0
        self.logger = logger

    def lookup(self, fingerprint: str) -> Artifact | None:
        """
        Return the cached artifact for a fingerprint, or None on a miss.

        Never changes the set of entries.
        """
        with self._lock:
            artifact = self._entries.get(fingerprint)
            if artifact is None:
                self._misses += 1
            else:
                self._hits += 1
        self.logger.debug(
            "Cache %s for %s", "hit" if artifact is not None else "miss", fingerprint[:12]
        )
        return artifact

    def store(self, fingerprint: str, artifact: Artifact) -> None:
        """Insert or replace the entry for a fingerprint."""
        with self._lock:
            existing = self._entries.get(fingerprint)
            if existing is not None and existing.is_interchangeable_with(artifact):
                self._duplicates += 1
                replaced = False
            else:
                self._entries[fingerprint] = artifact
                self._stores += 1
                replaced = existing is not None

        if existing is not None and not replaced:
            self.logger.debug(
                "Discarding duplicate artifact %s for %s (keeping %s)",
                artifact.id,
                fingerprint[:12],
                existing.id,
            )
        elif replaced:
            self.logger.info(
                "Replaced cache entry %s: %s -> %s", fingerprint[:12], existing.id, artifact.id
            )
        else:
            self.logger.debug("Stored %s for %s", artifact.id, fingerprint[:12])

    def invalidate(self, fingerprint: str) -> bool:
        """Drop one entry. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    def clear(self) -> None:
        """Drop all entries (counters are kept)."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        """Snapshot of cache counters."""
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                stores=self._stores,
                duplicates=self._duplicates,
            )

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
