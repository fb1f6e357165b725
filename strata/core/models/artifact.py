"""
Artifact domain models.

Provides the immutable record of a materialized filesystem snapshot.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator

from .base import ImmutableModel

HexDigest = Annotated[str, Field(min_length=8, max_length=128, pattern=r"^[a-f0-9]+$")]


class Artifact(ImmutableModel):
    """Immutable output of a stage execution (or of a base snapshot).

    Artifacts are never mutated. Re-executing a stage produces a new
    artifact with a new id and directory; the previous one stays valid.

    Attributes:
        id: Unique id of this materialization
        stage: Producing stage, or None for a base snapshot
        fingerprint: Cache key the artifact was produced under; for base
            snapshots, the content digest of the base tree
        content_digest: Hash of the snapshot tree contents
        path: Directory holding the snapshot
        env: Environment inherited by stages deriving from this artifact
        workdir: Working directory inherited by derived stages (POSIX, absolute)
        created_at: Unix timestamp of creation
    """

    id: Annotated[str, Field(min_length=1, max_length=64)]
    stage: str | None = None
    fingerprint: HexDigest
    content_digest: HexDigest
    path: Path
    env: dict[str, str] = Field(default_factory=dict)
    workdir: Annotated[str, Field(pattern=r"^/")] = "/"
    created_at: Annotated[float, Field(gt=0, description="Unix timestamp")]

    @field_validator("fingerprint", "content_digest", mode="before")
    @classmethod
    def normalize_digest(cls, v: str) -> str:
        """Normalize digests to lowercase."""
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def short_fingerprint(self) -> str:
        """First 12 characters of the fingerprint, for display."""
        return self.fingerprint[:12]

    def is_interchangeable_with(self, other: Artifact) -> bool:
        """True when both artifacts hold the same content under the same key."""
        return (
            self.fingerprint == other.fingerprint
            and self.content_digest == other.content_digest
            and self.env == other.env
            and self.workdir == other.workdir
        )
