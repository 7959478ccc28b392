"""Budgeted context optimization.

Given a project snapshot P = {path -> content}, a query q and a token budget
B, select the files (or chunks of files) a code-generation agent should see.

Algorithm:
  1. Lexical scoring of every file against q
  2. Optional embedding re-scoring of the top lexical candidates:
       score = 0.6 * lexical + 0.4 * (cosine(q, file) * 100)
  3. Complexity-tiered greedy selection: files in descending score order,
     bounded by the tier's file limit and its share of B
  4. Critical-file guarantee: anchor files (index.html, App.tsx, ...) are
     added when they fit the tier's remaining budget
  5. Pass files through whole when they fit 80% of B, otherwise chunk them
     and keep the most important chunks up to 90% of B

Each call is independent; the only shared state is the embedding provider's
cache. The embedding round trip is the single await point.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

from pydantic import BaseModel, Field, field_validator

from ctxopt.config import OptimizerConfig
from ctxopt.context.chunker import Chunker
from ctxopt.context.models import (
    Chunk,
    Complexity,
    ContextStrategy,
    OptimizedContext,
    ScoredFile,
    TokenEstimator,
)
from ctxopt.embeddings.provider import EmbeddingProvider
from ctxopt.exceptions import OptimizationCancelled

logger = logging.getLogger("ctxopt.optimizer")


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


class OptimizeOptions(BaseModel):
    """Per-request options for `ContextOptimizer.optimize`."""

    max_tokens: int | None = Field(default=None, gt=0)  # None = config default
    use_embeddings: bool = True
    complexity: Complexity | None = Complexity.MODERATE  # None = classify the query

    @field_validator("complexity", mode="before")
    @classmethod
    def _auto_complexity(cls, v: Any) -> Any:
        if isinstance(v, str) and v.lower() == "auto":
            return None
        return v


class ContextOptimizer:
    """Selects a bounded, relevance-ranked slice of a project for one request.

    Usage:
        optimizer = ContextOptimizer()
        context = await optimizer.optimize(
            "make the header sticky", project_files,
            OptimizeOptions(max_tokens=8000, complexity="simple"),
        )
        prompt_context = context.render()
    """

    def __init__(
        self,
        config: OptimizerConfig | None = None,
        chunker: Chunker | None = None,
        embeddings: EmbeddingProvider | None = None,
    ) -> None:
        from ctxopt.search.lexical import LexicalScorer

        self.config = config or OptimizerConfig()
        self.chunker = chunker or Chunker()
        self.embeddings = embeddings or EmbeddingProvider()
        self.lexical = LexicalScorer()

    # -------------------------------------------------------------------
    # Main entry point
    # -------------------------------------------------------------------

    async def optimize(
        self,
        query: str,
        project_files: dict[str, str],
        options: OptimizeOptions | None = None,
        cancel_event: CancelSignal | None = None,
    ) -> OptimizedContext:
        """Build the optimized context for one request.

        Args:
            query: Free-text user request.
            project_files: Snapshot mapping path -> content.
            options: Budget, embedding and complexity options.
            cancel_event: Optional signal (e.g. asyncio.Event) checked between
                stages and around the embedding call.

        Returns:
            An OptimizedContext; never raises on degraded dependencies.

        Raises:
            OptimizationCancelled: If `cancel_event` was set.
        """
        start_time = time.time()
        options = options or OptimizeOptions()
        max_tokens = options.max_tokens or self.config.max_tokens
        files = {
            path: content if isinstance(content, str) else ""
            for path, content in project_files.items()
        }
        complexity = self._resolve_complexity(query, files, options.complexity)

        logger.info(
            f"Optimizing context: {len(files)} files, max_tokens={max_tokens}, "
            f"embeddings={options.use_embeddings}, complexity={complexity.value}"
        )

        # Phase 1: Lexical scoring
        self._check_cancelled(cancel_event, "lexical scoring")
        scored = self.lexical.score_files(query, files)

        # Phase 2: Embedding re-scoring
        embeddings_used = False
        if options.use_embeddings and len(files) > self.config.min_files_for_embeddings:
            self._check_cancelled(cancel_event, "embedding re-scoring")
            scored, embeddings_used = await self._rescore_with_embeddings(query, scored)
            self._check_cancelled(cancel_event, "file selection")

        # Phase 3-4: Tiered selection + critical files
        selected = self._select_by_complexity(scored, complexity, max_tokens)

        # Phase 5: Chunk if needed
        self._check_cancelled(cancel_event, "chunking")
        chunks, strategy = self._chunk_if_needed(selected, max_tokens)

        # Phase 6: Recount what is actually returned
        if chunks:
            total_tokens = TokenEstimator.estimate_many([c.content for c in chunks])
        else:
            total_tokens = TokenEstimator.estimate_many([f.content for f in selected])

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Context optimized: {len(selected)} files, {len(chunks)} chunks, "
            f"{total_tokens} tokens, strategy={strategy.value}"
        )

        return OptimizedContext(
            relevant_files=selected,
            chunks=chunks,
            total_tokens=total_tokens,
            strategy=strategy,
            query=query,
            complexity=complexity,
            token_budget=max_tokens,
            files_considered=len(files),
            embeddings_used=embeddings_used,
            assembly_time_ms=round(elapsed_ms, 1),
        )

    def optimize_sync(
        self,
        query: str,
        project_files: dict[str, str],
        options: OptimizeOptions | None = None,
    ) -> OptimizedContext:
        """Blocking wrapper around `optimize` for callers without an event loop."""
        return asyncio.run(self.optimize(query, project_files, options))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _resolve_complexity(
        self, query: str, files: dict[str, str], complexity: Complexity | None
    ) -> Complexity:
        if complexity is not None:
            return Complexity(complexity)

        from ctxopt.search.classifier import ComplexityClassifier

        analysis = ComplexityClassifier().classify(query, files)
        logger.debug(
            f"Classified complexity as {analysis.complexity.value} "
            f"(score={analysis.score}, {analysis.reasoning})"
        )
        return analysis.complexity

    @staticmethod
    def _check_cancelled(cancel_event: CancelSignal | None, stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OptimizationCancelled(f"Context optimization cancelled before {stage}")

    # -------------------------------------------------------------------
    # Phase 2: Embedding re-scoring
    # -------------------------------------------------------------------

    async def _rescore_with_embeddings(
        self, query: str, scored: list[ScoredFile]
    ) -> tuple[list[ScoredFile], bool]:
        """Fuse lexical scores with embedding similarity for the top candidates.

        Ignore-listed paths are never candidates, so they keep their zero score.
        """
        from ctxopt.search.lexical import should_ignore_file

        candidates = [f for f in scored if not should_ignore_file(f.path)]
        top = sorted(candidates, key=lambda f: f.score, reverse=True)[
            : self.config.embedding_candidates
        ]
        if not top:
            return scored, False
        texts = [f"{f.path}\n{f.content[: self.config.preview_chars]}" for f in top]

        try:
            similar = await self.embeddings.find_similar(query, texts, top_k=len(texts))
        except Exception as e:
            logger.warning(f"Embedding re-scoring failed, keeping lexical scores: {e}")
            return scored, False

        similarity_by_path = {top[r.index].path: r.score for r in similar}
        fused: list[ScoredFile] = []
        for f in scored:
            sim = similarity_by_path.get(f.path)
            if sim is None:
                fused.append(f)
                continue
            score = (
                self.config.lexical_weight * f.score
                + self.config.embedding_weight * (sim * 100)
            )
            fused.append(f.model_copy(update={"score": score}))

        logger.debug(f"Re-scored {len(similarity_by_path)} files with embeddings")
        return fused, True

    # -------------------------------------------------------------------
    # Phase 3-4: Selection
    # -------------------------------------------------------------------

    def _select_by_complexity(
        self, scored: list[ScoredFile], complexity: Complexity, max_tokens: int
    ) -> list[ScoredFile]:
        """Greedy selection bounded by the tier's file limit and token share.

        Stops at the first file that would exceed either bound; files scoring
        at or below the minimum are skipped.
        """
        tier = self.config.tiers[complexity.value]
        token_budget = max_tokens * tier.token_fraction
        ranked = sorted(scored, key=lambda f: f.score, reverse=True)

        selected: list[ScoredFile] = []
        current_tokens = 0
        for f in ranked:
            if len(selected) >= tier.file_limit:
                break
            file_tokens = TokenEstimator.estimate(f.content)
            if current_tokens + file_tokens > token_budget:
                break
            if f.score > self.config.min_score:
                selected.append(f)
                current_tokens += file_tokens

        self._ensure_critical_files(selected, ranked, token_budget - current_tokens)
        return selected

    def _ensure_critical_files(
        self,
        selected: list[ScoredFile],
        ranked: list[ScoredFile],
        remaining_tokens: float,
    ) -> None:
        """Add anchor files that fit the remaining budget.

        Each anchor is checked against the same remaining amount, so the final
        total may exceed the tier's share slightly.
        """
        from ctxopt.search.lexical import file_name, should_ignore_file

        selected_paths = {f.path for f in selected}
        for name in self.config.critical_files:
            critical = next(
                (
                    f for f in ranked
                    if file_name(f.path) == name and not should_ignore_file(f.path)
                ),
                None,
            )
            if critical is None or critical.path in selected_paths:
                continue
            if TokenEstimator.estimate(critical.content) <= remaining_tokens:
                selected.append(critical)
                selected_paths.add(critical.path)
                logger.debug(f"Added critical file {critical.path}")

    # -------------------------------------------------------------------
    # Phase 5: Chunking
    # -------------------------------------------------------------------

    def _chunk_if_needed(
        self, selected: list[ScoredFile], max_tokens: int
    ) -> tuple[list[Chunk], ContextStrategy]:
        total_tokens = TokenEstimator.estimate_many([f.content for f in selected])
        if total_tokens <= max_tokens * self.config.full_threshold:
            return [], ContextStrategy.FULL

        all_chunks: list[Chunk] = []
        for f in selected:
            all_chunks.extend(self.chunker.chunk_file(f.path, f.content))
        all_chunks.sort(key=lambda c: c.importance, reverse=True)

        chunk_budget = max_tokens * self.config.chunk_threshold
        chosen: list[Chunk] = []
        current_tokens = 0
        for chunk in all_chunks:
            chunk_tokens = TokenEstimator.estimate(chunk.content)
            if current_tokens + chunk_tokens > chunk_budget:
                break
            chosen.append(chunk)
            current_tokens += chunk_tokens

        if not chosen:
            logger.warning(
                f"No chunk fits {chunk_budget:.0f} tokens; returning selected files as-is"
            )
            return [], ContextStrategy.FILTERED

        return chosen, ContextStrategy.CHUNKED
