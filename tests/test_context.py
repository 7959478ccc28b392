"""Tests for context models and the context optimizer pipeline."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from ctxopt.config import OptimizerConfig, TierConfig
from ctxopt.context.models import (
    Chunk,
    ChunkKind,
    Complexity,
    ContextStrategy,
    OptimizedContext,
    ScoredFile,
    TokenEstimator,
)
from ctxopt.context.optimizer import ContextOptimizer, OptimizeOptions
from ctxopt.embeddings.base import EmbeddingBackend
from ctxopt.embeddings.provider import EmbeddingProvider
from ctxopt.exceptions import OptimizationCancelled
from ctxopt.search.lexical import file_name


def _lexical_only(**kwargs) -> OptimizeOptions:
    return OptimizeOptions(use_embeddings=False, **kwargs)


def _theme_css(rules: int = 100) -> str:
    # Each rule is exactly 24 characters (6 tokens)
    return "".join(f".r{i:03d} {{\n  color: red;\n}}\n" for i in range(rules))


class TestTokenEstimator:
    def test_empty(self):
        assert TokenEstimator.estimate("") == 0

    def test_rounds_up(self):
        assert TokenEstimator.estimate("abcd") == 1
        assert TokenEstimator.estimate("abcde") == 2

    def test_estimate_many_counts_separators(self):
        assert TokenEstimator.estimate_many(["ab", "cd"]) == 2
        assert TokenEstimator.estimate_many([]) == 0

    def test_proportional(self):
        assert TokenEstimator.estimate("x" * 400) > TokenEstimator.estimate("x" * 40)


class TestOptimizedContext:
    def _context(self) -> OptimizedContext:
        return OptimizedContext(
            relevant_files=[ScoredFile(path="src/a.ts", content="const a = 1;", score=20)],
            chunks=[
                Chunk(
                    id="src/a.ts:b", file_path="src/a.ts", content="const b = 2;",
                    start_line=5, end_line=5, kind=ChunkKind.FUNCTION, importance=60,
                ),
                Chunk(
                    id="src/a.ts:a", file_path="src/a.ts", content="const a = 1;",
                    start_line=1, end_line=1, kind=ChunkKind.FUNCTION, importance=50,
                ),
            ],
            total_tokens=50,
            strategy=ContextStrategy.CHUNKED,
            query="fix a",
            token_budget=1000,
            assembly_time_ms=12.3,
        )

    def test_budget_used_pct(self):
        assert self._context().budget_used_pct == 5.0

    def test_render_groups_chunks_by_file_in_line_order(self):
        text = self._context().render()
        assert text.count("## src/a.ts") == 1
        assert text.index("const a = 1;") < text.index("const b = 2;")
        assert "strategy=chunked" in text

    def test_render_without_metadata(self):
        text = self._context().render(include_metadata=False)
        assert "strategy=" not in text
        assert "importance" not in text

    def test_render_files_when_no_chunks(self):
        ctx = OptimizedContext(
            relevant_files=[ScoredFile(path="index.html", content="<html></html>", score=35)],
            query="q",
        )
        assert "## index.html\n<html></html>" in ctx.render()

    def test_payload_excludes_timing(self):
        payload = self._context().to_payload()
        assert "assembly_time_ms" not in payload
        assert payload["strategy"] == "chunked"

    def test_summary(self):
        summary = self._context().summary()
        assert "Strategy: chunked" in summary
        assert "src/a.ts:b" in summary

    def test_importance_bounds(self):
        with pytest.raises(ValidationError):
            Chunk(
                id="x", file_path="x", content="", start_line=1, end_line=1,
                kind=ChunkKind.FULL, importance=101,
            )


class TestOptimizeOptions:
    def test_defaults(self):
        options = OptimizeOptions()
        assert options.max_tokens is None
        assert options.use_embeddings is True
        assert options.complexity == Complexity.MODERATE

    def test_string_complexity(self):
        assert OptimizeOptions(complexity="simple").complexity == Complexity.SIMPLE

    def test_auto_complexity(self):
        assert OptimizeOptions(complexity="auto").complexity is None

    def test_rejects_non_positive_budget(self):
        with pytest.raises(ValidationError):
            OptimizeOptions(max_tokens=0)

    def test_rejects_unknown_complexity(self):
        with pytest.raises(ValidationError):
            OptimizeOptions(complexity="huge")


class TestSelection:
    @pytest.mark.asyncio
    async def test_empty_project(self):
        ctx = await ContextOptimizer().optimize("anything", {}, _lexical_only())
        assert ctx.strategy == ContextStrategy.FULL
        assert ctx.relevant_files == []
        assert ctx.chunks == []
        assert ctx.total_tokens == 0

    @pytest.mark.asyncio
    async def test_small_project_passes_through(self, project_files):
        ctx = await ContextOptimizer().optimize(
            "Make the header sticky", project_files, _lexical_only(complexity="complex")
        )
        assert ctx.strategy == ContextStrategy.FULL
        assert ctx.chunks == []
        assert "src/components/Header.tsx" in [f.path for f in ctx.relevant_files]
        assert ctx.total_tokens == TokenEstimator.estimate_many(
            [f.content for f in ctx.relevant_files]
        )
        assert ctx.token_budget == 20000
        assert ctx.files_considered == len(project_files)

    @pytest.mark.asyncio
    async def test_selection_sorted_by_score(self, project_files):
        ctx = await ContextOptimizer().optimize(
            "Make the header sticky", project_files, _lexical_only(complexity="complex")
        )
        paths = [f.path for f in ctx.relevant_files]
        assert paths[0] == "src/App.tsx"
        # Files scoring at or below the minimum are skipped
        assert "package.json" not in paths

    @pytest.mark.asyncio
    async def test_trivial_limits_non_critical_files(self, project_files):
        config = OptimizerConfig()
        ctx = await ContextOptimizer(config).optimize(
            "Make the header sticky", project_files, _lexical_only(complexity="trivial")
        )
        non_critical = [
            f for f in ctx.relevant_files if file_name(f.path) not in config.critical_files
        ]
        assert len(non_critical) <= 2

    @pytest.mark.asyncio
    async def test_critical_files_added(self, project_files):
        ctx = await ContextOptimizer().optimize(
            "Make the header sticky", project_files, _lexical_only(complexity="trivial")
        )
        paths = [f.path for f in ctx.relevant_files]
        # Greedy pass stops at two files; anchors are appended afterwards
        assert paths[:2] == ["src/App.tsx", "index.html"]
        assert "src/main.tsx" in paths
        assert "src/styles.css" in paths

    @pytest.mark.asyncio
    async def test_critical_file_must_fit_remaining_budget(self):
        files = {
            "src/header.ts": "export const header = 1;\n" * 20,
            "index.html": "<html>" + "x" * 4000 + "</html>",
        }
        ctx = await ContextOptimizer().optimize(
            "src/header.ts", files, _lexical_only(max_tokens=1000, complexity="trivial")
        )
        assert [f.path for f in ctx.relevant_files] == ["src/header.ts"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("complexity", ["trivial", "simple", "moderate", "complex"])
    async def test_named_file_selected_in_every_tier(self, project_files, complexity):
        ctx = await ContextOptimizer().optimize(
            "Update Header.tsx styles", project_files, _lexical_only(complexity=complexity)
        )
        assert ctx.relevant_files[0].path == "src/components/Header.tsx"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("complexity", ["trivial", "simple", "moderate", "complex"])
    async def test_vendored_files_never_selected(self, project_files_with_vendor, complexity):
        ctx = await ContextOptimizer().optimize(
            "react header checkout index", project_files_with_vendor,
            _lexical_only(complexity=complexity),
        )
        paths = [f.path for f in ctx.relevant_files]
        assert "node_modules/react/index.js" not in paths
        assert "dist/header.js" not in paths

    @pytest.mark.asyncio
    async def test_deterministic_without_embeddings(self, project_files):
        optimizer = ContextOptimizer()
        first = await optimizer.optimize("Make the header sticky", project_files, _lexical_only())
        second = await optimizer.optimize("Make the header sticky", project_files, _lexical_only())
        assert first.to_payload() == second.to_payload()

    @pytest.mark.asyncio
    async def test_non_string_content_treated_as_empty(self):
        ctx = await ContextOptimizer().optimize(
            "header", {"src/header.ts": 123}, _lexical_only()
        )
        assert ctx.relevant_files[0].content == ""

    @pytest.mark.asyncio
    async def test_custom_tiers(self, project_files):
        tiers = OptimizerConfig().tiers
        tiers["moderate"] = TierConfig(file_limit=1, token_fraction=0.5)
        config = OptimizerConfig(tiers=tiers, critical_files=[])
        ctx = await ContextOptimizer(config).optimize(
            "Make the header sticky", project_files, _lexical_only()
        )
        assert len(ctx.relevant_files) == 1

    def test_optimize_sync(self, project_files):
        ctx = ContextOptimizer().optimize_sync("header", project_files, _lexical_only())
        assert ctx.relevant_files


class TestAutoComplexity:
    @pytest.mark.asyncio
    async def test_simple_edit_classified_trivial(self, project_files):
        ctx = await ContextOptimizer().optimize(
            "Change the title color to red", project_files, _lexical_only(complexity="auto")
        )
        assert ctx.complexity == Complexity.TRIVIAL

    @pytest.mark.asyncio
    async def test_empty_project_classified_complex(self):
        ctx = await ContextOptimizer().optimize(
            "Change the title", {}, _lexical_only(complexity=None)
        )
        assert ctx.complexity == Complexity.COMPLEX

    @pytest.mark.asyncio
    async def test_explicit_complexity_kept(self, project_files):
        ctx = await ContextOptimizer().optimize(
            "Change the title color to red", project_files, _lexical_only(complexity="complex")
        )
        assert ctx.complexity == Complexity.COMPLEX


class TestChunking:
    @pytest.mark.asyncio
    async def test_large_selection_is_chunked(self):
        files = {"src/theme.css": _theme_css()}
        ctx = await ContextOptimizer().optimize(
            "theme colors", files, _lexical_only(max_tokens=650, complexity="complex")
        )
        assert ctx.strategy == ContextStrategy.CHUNKED
        # 90% of 650 tokens holds 97 six-token rules
        assert len(ctx.chunks) == 97
        assert ctx.total_tokens == 606
        assert ctx.total_tokens <= 650

    @pytest.mark.asyncio
    async def test_chunks_ordered_by_importance(self):
        body = "".join(f"  const item{i} = items[{i}];\n" for i in range(80))
        content = (
            "export function Header() {\n" + body + "}\n"
            "export default function App() {\n" + body + "}\n"
        )
        files = {"src/App.tsx": content}
        max_tokens = TokenEstimator.estimate(content) + 50
        ctx = await ContextOptimizer().optimize(
            "app header", files, _lexical_only(max_tokens=max_tokens, complexity="complex")
        )
        assert ctx.strategy == ContextStrategy.CHUNKED
        assert ctx.chunks[0].id == "src/App.tsx:App"

    @pytest.mark.asyncio
    async def test_nothing_fits_is_filtered(self):
        files = {"notes.md": "n" * 1400}
        ctx = await ContextOptimizer().optimize(
            "notes", files, _lexical_only(max_tokens=380, complexity="complex")
        )
        assert ctx.strategy == ContextStrategy.FILTERED
        assert ctx.chunks == []
        assert [f.path for f in ctx.relevant_files] == ["notes.md"]
        assert ctx.total_tokens == 350


class _CancellingBackend(EmbeddingBackend):
    name = "cancelling"

    def __init__(self, event: asyncio.Event) -> None:
        super().__init__(model="cancelling")
        self.event = event

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.event.set()
        return [[1.0, 0.0] for _ in texts]


class _RaisingProvider(EmbeddingProvider):
    async def find_similar(self, query, candidates, top_k=5):
        raise RuntimeError("similarity service exploded")


class TestEmbeddingRescoring:
    @pytest.mark.asyncio
    async def test_fused_scores(self, project_files, counting_backend):
        optimizer = ContextOptimizer(embeddings=EmbeddingProvider(backend=counting_backend))
        ctx = await optimizer.optimize(
            "Make the header sticky", project_files, OptimizeOptions(complexity="complex")
        )
        assert ctx.embeddings_used is True
        by_path = {f.path: f.score for f in ctx.relevant_files}
        # 0.6 * lexical 22 + 0.4 * (similarity 1.0 * 100)
        assert by_path["src/components/Header.tsx"] == pytest.approx(53.2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("complexity", ["trivial", "simple", "moderate", "complex"])
    async def test_vendored_files_never_selected(self, project_files_with_vendor, complexity):
        ctx = await ContextOptimizer().optimize(
            "react header checkout index", project_files_with_vendor,
            OptimizeOptions(use_embeddings=True, complexity=complexity),
        )
        assert ctx.embeddings_used is True
        paths = [f.path for f in ctx.relevant_files]
        assert "node_modules/react/index.js" not in paths
        assert "dist/header.js" not in paths

    @pytest.mark.asyncio
    async def test_vendored_files_not_embedded(self, project_files_with_vendor, counting_backend):
        optimizer = ContextOptimizer(embeddings=EmbeddingProvider(backend=counting_backend))
        await optimizer.optimize(
            "react header", project_files_with_vendor, OptimizeOptions(complexity="complex")
        )
        texts = counting_backend.calls[0][1:]
        assert len(texts) == 9
        assert not any(t.startswith(("node_modules/", "dist/")) for t in texts)

    @pytest.mark.asyncio
    async def test_single_batch_of_top_candidates(self, counting_backend):
        files = {f"src/module{i}.ts": f"export const value{i} = {i};\n" for i in range(25)}
        optimizer = ContextOptimizer(embeddings=EmbeddingProvider(backend=counting_backend))
        await optimizer.optimize("value", files, OptimizeOptions())
        assert len(counting_backend.calls) == 1
        # query + top 20 candidates
        assert len(counting_backend.calls[0]) == 21
        assert counting_backend.calls[0][1].startswith("src/module0.ts\n")

    @pytest.mark.asyncio
    async def test_skipped_for_small_projects(self, counting_backend):
        files = {"src/a.ts": "a", "src/b.ts": "b"}
        optimizer = ContextOptimizer(embeddings=EmbeddingProvider(backend=counting_backend))
        ctx = await optimizer.optimize("a", files, OptimizeOptions())
        assert counting_backend.calls == []
        assert ctx.embeddings_used is False

    @pytest.mark.asyncio
    async def test_skipped_when_disabled(self, project_files, counting_backend):
        optimizer = ContextOptimizer(embeddings=EmbeddingProvider(backend=counting_backend))
        await optimizer.optimize("header", project_files, _lexical_only())
        assert counting_backend.calls == []

    @pytest.mark.asyncio
    async def test_provider_down_still_returns_context(self, project_files, failing_backend):
        optimizer = ContextOptimizer(embeddings=EmbeddingProvider(backend=failing_backend))
        ctx = await optimizer.optimize("Make the header sticky", project_files, OptimizeOptions())
        assert ctx.relevant_files
        assert failing_backend.calls == 1

    @pytest.mark.asyncio
    async def test_rescoring_error_keeps_lexical_scores(self, project_files):
        optimizer = ContextOptimizer(embeddings=_RaisingProvider())
        ctx = await optimizer.optimize(
            "Make the header sticky", project_files, OptimizeOptions(complexity="complex")
        )
        assert ctx.embeddings_used is False
        by_path = {f.path: f.score for f in ctx.relevant_files}
        assert by_path["src/components/Header.tsx"] == 22


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, project_files):
        event = asyncio.Event()
        event.set()
        with pytest.raises(OptimizationCancelled):
            await ContextOptimizer().optimize("header", project_files, cancel_event=event)

    @pytest.mark.asyncio
    async def test_cancelled_during_embedding(self, project_files):
        event = asyncio.Event()
        optimizer = ContextOptimizer(
            embeddings=EmbeddingProvider(backend=_CancellingBackend(event))
        )
        with pytest.raises(OptimizationCancelled, match="file selection"):
            await optimizer.optimize("header", project_files, cancel_event=event)

    @pytest.mark.asyncio
    async def test_unset_event_runs_to_completion(self, project_files):
        ctx = await ContextOptimizer().optimize(
            "header", project_files, _lexical_only(), cancel_event=asyncio.Event()
        )
        assert ctx.relevant_files
