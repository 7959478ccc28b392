"""Budgeted context optimization.

Selects relevance-ranked files, or chunks of files, from a project snapshot
within a token budget.

Usage:
    from ctxopt.context import ContextOptimizer, OptimizeOptions

    optimizer = ContextOptimizer()
    context = await optimizer.optimize("fix the login form", files, OptimizeOptions())
    print(context.render())
"""

from ctxopt.context.models import (
    Chunk,
    ChunkKind,
    Complexity,
    ContextStrategy,
    OptimizedContext,
    ScoredFile,
    TokenEstimator,
)
from ctxopt.context.chunker import Chunker
from ctxopt.context.optimizer import ContextOptimizer, OptimizeOptions

__all__ = [
    "Chunk",
    "ChunkKind",
    "Chunker",
    "Complexity",
    "ContextOptimizer",
    "ContextStrategy",
    "OptimizeOptions",
    "OptimizedContext",
    "ScoredFile",
    "TokenEstimator",
]
