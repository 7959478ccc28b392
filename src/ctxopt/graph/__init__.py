"""Import dependency graph for project snapshots."""

from ctxopt.graph.dependencies import DependencyGraph, resolve_import_path

__all__ = ["DependencyGraph", "resolve_import_path"]
