"""Artifact storage."""

from .artifact_store import ArtifactStore, WorkingCopy

__all__ = ["ArtifactStore", "WorkingCopy"]
