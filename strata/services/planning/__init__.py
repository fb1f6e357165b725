"""Build planning."""

from .planner import BuildPlanner

__all__ = ["BuildPlanner"]
