"""Data models for context selection."""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, Field


class ContextStrategy(str, Enum):
    """How the final context is represented."""

    FULL = "full"  # Selected files passed through whole
    CHUNKED = "chunked"  # Greedily chosen chunks of the selected files
    FILTERED = "filtered"  # Degenerate best-effort: nothing fit after chunking


class Complexity(str, Enum):
    """Caller-supplied hint controlling file and budget limits."""

    TRIVIAL = "trivial"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class ChunkKind(str, Enum):
    """Types of chunks produced by the chunker."""

    FUNCTION = "function"
    CLASS = "class"
    COMPONENT = "component"
    BLOCK = "block"
    FULL = "full"


class Chunk(BaseModel):
    """A contiguous slice of one source file, tagged with an importance score."""

    id: str
    file_path: str
    content: str
    start_line: int
    end_line: int
    offset: int = Field(default=0, ge=0)  # character offset of `content` in the file
    kind: ChunkKind
    importance: int = Field(ge=0, le=100)
    imports: list[str] | None = None
    exports: list[str] | None = None


class ScoredFile(BaseModel):
    """A project file with its relevance score for the current query."""

    path: str
    content: str
    score: float = 0.0


class OptimizedContext(BaseModel):
    """The bounded context handed to the code-generation agent."""

    relevant_files: list[ScoredFile] = Field(default_factory=list)
    chunks: list[Chunk] = Field(default_factory=list)
    total_tokens: int = 0
    strategy: ContextStrategy = ContextStrategy.FULL
    # Metadata (not used when rendering)
    query: str = ""
    complexity: Complexity = Complexity.MODERATE
    token_budget: int = 0
    files_considered: int = 0
    embeddings_used: bool = False
    assembly_time_ms: float = 0.0

    @property
    def budget_used_pct(self) -> float:
        return round(self.total_tokens / max(self.token_budget, 1) * 100, 1)

    def to_payload(self) -> dict:
        """Serializable form without wall-clock timing, stable across runs."""
        return self.model_dump(mode="json", exclude={"assembly_time_ms"})

    def render(self, include_metadata: bool = True) -> str:
        """Render the context as prompt-ready text grouped by file."""
        sections: list[str] = []

        if include_metadata:
            sections.append(f"# Project context for: {self.query}")
            sections.append(
                f"# strategy={self.strategy.value}, "
                f"~{self.total_tokens:,} tokens ({self.budget_used_pct:.0f}% of budget)"
            )
            sections.append("")

        if self.chunks:
            by_file: dict[str, list[Chunk]] = {}
            for chunk in self.chunks:
                by_file.setdefault(chunk.file_path, []).append(chunk)

            for file_path, chunks in by_file.items():
                sections.append(f"## {file_path}")
                for chunk in sorted(chunks, key=lambda c: c.start_line):
                    if include_metadata:
                        sections.append(
                            f"# [{chunk.kind.value}] lines {chunk.start_line}-{chunk.end_line} "
                            f"(importance: {chunk.importance})"
                        )
                    sections.append(chunk.content)
                    sections.append("")
        else:
            for f in self.relevant_files:
                sections.append(f"## {f.path}")
                sections.append(f.content)
                sections.append("")

        return "\n".join(sections)

    def summary(self) -> str:
        """Human-readable summary of what's in the context."""
        lines = [
            f"Context for: {self.query}",
            f"Strategy: {self.strategy.value}",
            f"Complexity: {self.complexity.value}",
            f"Tokens: {self.total_tokens:,} / {self.token_budget:,} ({self.budget_used_pct:.0f}%)",
            f"Files: {len(self.relevant_files)} selected of {self.files_considered}",
            f"Embeddings: {'yes' if self.embeddings_used else 'no'}",
            f"Assembly time: {self.assembly_time_ms:.1f}ms",
            "",
            "Selected files:",
        ]
        for f in self.relevant_files:
            lines.append(f"  {f.path} score={f.score:.1f} ~{TokenEstimator.estimate(f.content)}tok")
        if self.chunks:
            lines.append("")
            lines.append("Chunks:")
            for c in self.chunks:
                lines.append(
                    f"  {c.id} ({c.kind.value}) [{c.start_line}-{c.end_line}] "
                    f"importance={c.importance}"
                )
        return "\n".join(lines)


class TokenEstimator:
    """Estimate token counts for text."""

    # Rough heuristic: 1 token ≈ 4 characters
    CHARS_PER_TOKEN = 4

    @classmethod
    def estimate(cls, text: str) -> int:
        """Estimate token count for a string (0 for the empty string)."""
        return math.ceil(len(text) / cls.CHARS_PER_TOKEN)

    @classmethod
    def estimate_many(cls, texts: list[str]) -> int:
        """Estimate tokens for several texts joined by newlines."""
        return cls.estimate("\n".join(texts))
