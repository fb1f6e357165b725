"""Stage dependency graph."""

from .dependency_graph import AncestorChain, DependencyGraph

__all__ = ["AncestorChain", "DependencyGraph"]
