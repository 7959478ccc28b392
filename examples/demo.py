#!/usr/bin/env python3
"""Demo: Using ctxopt as a Python library.

This shows how to select context for a code-generation agent programmatically,
not just through the CLI.
"""

import asyncio
import sys
from pathlib import Path

from ctxopt.config import load_config
from ctxopt.context import Chunker, ContextOptimizer, OptimizeOptions
from ctxopt.embeddings import EmbeddingProvider
from ctxopt.graph import DependencyGraph
from ctxopt.project import load_project_files
from ctxopt.search.classifier import ComplexityClassifier


async def run(project_root: Path, query: str) -> None:
    config = load_config(project_root)

    # 1. Snapshot the project
    print("Loading project files...")
    files = load_project_files(project_root, config)
    print(f"  Files: {len(files)}")

    # 2. Classify the request
    analysis = ComplexityClassifier().classify(query, files)
    print(f"\n--- Complexity of {query!r} ---")
    print(f"  {analysis.complexity.value} (score {analysis.score}, {analysis.confidence:.0f}% confidence)")
    print(f"  Reasons: {analysis.reasoning}")

    # 3. Optimize the context
    optimizer = ContextOptimizer(
        config=config.optimizer,
        chunker=Chunker(config.chunker),
        embeddings=EmbeddingProvider.from_config(config.embedding),
    )
    context = await optimizer.optimize(query, files, OptimizeOptions(complexity="auto"))

    print("\n--- Optimized context ---")
    print(context.summary())

    # 4. Explore imports around the top file
    if context.relevant_files:
        top = context.relevant_files[0].path
        graph = DependencyGraph()
        graph.build(files)
        print(f"\n--- Files related to {top} ---")
        for path in graph.related_files([top], max_files=5):
            print(f"  {path} (importance {graph.importance(path)})")

    # 5. Prompt-ready text
    print("\n--- Rendered context (first 40 lines) ---")
    print("\n".join(context.render().splitlines()[:40]))


def main():
    project_root = Path(sys.argv[1] if len(sys.argv) > 1 else ".").resolve()
    query = sys.argv[2] if len(sys.argv) > 2 else "Make the header sticky"
    asyncio.run(run(project_root, query))


if __name__ == "__main__":
    main()
