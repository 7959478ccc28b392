"""Semantic chunking of project files.

Splits one file's text into bounded, scored chunks. Declaration boundaries are
found with regular expressions, which is a heuristic stand-in for a parser:
unconventional code styles (declarations built by factories, minified code,
nested components) can be missed, in which case the file falls through to the
fixed-size chunker.

Every code path returns at least one chunk.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath

from ctxopt.config import ChunkerConfig
from ctxopt.context.models import Chunk, ChunkKind

logger = logging.getLogger("ctxopt.chunker")

# Capitalized declarations in component files
_COMPONENT_RE = re.compile(r"(?:export\s+)?(?:function|const)\s+([A-Z]\w+)")

# Any function/const/class declaration in script files
_DECLARATION_RE = re.compile(r"(?:export\s+)?(function|const|class)\s+(\w+)")

# Top-level selectors at the start of a line
_SELECTOR_RE = re.compile(r"^([.#][\w-]+|\w+)\s*\{", re.MULTILINE)

# Structural tags in markup
_SECTION_RE = re.compile(r"<(header|nav|main|section|footer)[^>]*>", re.IGNORECASE)

_IMPORT_FROM_RE = re.compile(r"""import\s+.*?from\s+['"](.+?)['"]""")
_IMPORT_KEYWORD_RE = re.compile(r"import\s+")
_EXPORT_RE = re.compile(r"export\s+(?:default\s+)?(?:function|const|class)\s+(\w+)")

# Names that usually anchor an app's structure
_IMPORTANT_NAMES = ("App", "Main", "Index", "Layout", "Route", "Provider")

_COMPONENT_EXTS = {"tsx", "jsx"}
_SCRIPT_EXTS = {"ts", "js"}
_STYLE_EXTS = {"css", "scss"}
_MARKUP_EXTS = {"html"}


def extract_imports(content: str) -> list[str]:
    """Module specifiers of `import ... from '...'` statements."""
    return [m.group(1) for m in _IMPORT_FROM_RE.finditer(content)]


def extract_exports(content: str) -> list[str]:
    """Names of exported functions, consts and classes."""
    return [m.group(1) for m in _EXPORT_RE.finditer(content)]


def calculate_importance(content: str, name: str) -> int:
    """Score a declaration chunk in [0, 100]."""
    score = 50

    if any(n in name for n in _IMPORTANT_NAMES):
        score += 20

    if "export default" in content or "export {" in content:
        score += 15

    if len(content) > 800:
        score += 10

    import_count = len(_IMPORT_KEYWORD_RE.findall(content))
    score += min(import_count * 3, 15)

    return min(score, 100)


def _line_of(content: str, offset: int) -> int:
    """1-based line number of the character at `offset`."""
    return content.count("\n", 0, offset) + 1


def _line_start(content: str, offset: int) -> int:
    return content.rfind("\n", 0, offset) + 1


def _end_line(start_line: int, text: str) -> int:
    """Line of the last character of `text` when it begins on `start_line`."""
    if not text:
        return start_line
    return start_line + text.count("\n", 0, len(text) - 1)


class Chunker:
    """Splits files into semantically bounded chunks.

    Usage:
        chunker = Chunker()
        chunks = chunker.chunk_file("src/App.tsx", source)
        text = Chunker.reconstruct(chunks)
    """

    def __init__(self, config: ChunkerConfig | None = None) -> None:
        self.config = config or ChunkerConfig()

    @property
    def max_chunk_size(self) -> int:
        return self.config.max_chunk_size

    @property
    def overlap(self) -> int:
        return self.config.overlap

    def chunk_file(self, file_path: str, content: str) -> list[Chunk]:
        """Split one file into chunks, dispatching on its extension."""
        imports = extract_imports(content)
        exports = extract_exports(content)

        if len(content) <= self.max_chunk_size:
            return [self._full_chunk(file_path, content, 100, imports, exports)]

        ext = PurePosixPath(file_path).suffix.lower().lstrip(".")

        if ext in _COMPONENT_EXTS:
            chunks = self._chunk_components(file_path, content, imports, exports)
        elif ext in _SCRIPT_EXTS:
            chunks = self._chunk_declarations(file_path, content, imports, exports)
        elif ext in _STYLE_EXTS:
            chunks = self._chunk_styles(file_path, content, imports, exports)
        elif ext in _MARKUP_EXTS:
            chunks = self._chunk_markup(file_path, content, imports, exports)
        else:
            chunks = []

        if not chunks:
            chunks = self._chunk_fixed(file_path, content, imports, exports)

        logger.debug(f"Chunked {file_path} into {len(chunks)} chunk(s)")
        return chunks

    # -------------------------------------------------------------------
    # Per-type strategies
    # -------------------------------------------------------------------

    def _chunk_components(
        self, file_path: str, content: str, imports: list[str], exports: list[str]
    ) -> list[Chunk]:
        bounds = [(m.start(), m.group(1), ChunkKind.COMPONENT) for m in _COMPONENT_RE.finditer(content)]
        return self._slice(file_path, content, bounds, imports, exports, score_declarations=True)

    def _chunk_declarations(
        self, file_path: str, content: str, imports: list[str], exports: list[str]
    ) -> list[Chunk]:
        bounds = [
            (
                m.start(),
                m.group(2),
                ChunkKind.CLASS if m.group(1) == "class" else ChunkKind.FUNCTION,
            )
            for m in _DECLARATION_RE.finditer(content)
        ]
        return self._slice(file_path, content, bounds, imports, exports, score_declarations=True)

    def _chunk_styles(
        self, file_path: str, content: str, imports: list[str], exports: list[str]
    ) -> list[Chunk]:
        matches = list(_SELECTOR_RE.finditer(content))
        if len(matches) < 3:
            return []
        bounds = [(m.start(), m.group(1), ChunkKind.BLOCK) for m in matches]
        return self._slice(file_path, content, bounds, imports, exports, fixed_importance=50)

    def _chunk_markup(
        self, file_path: str, content: str, imports: list[str], exports: list[str]
    ) -> list[Chunk]:
        if len(content) <= self.max_chunk_size * 2:
            return [self._full_chunk(file_path, content, 90, imports, exports)]

        bounds = [
            (m.start(), m.group(1).lower(), ChunkKind.BLOCK)
            for m in _SECTION_RE.finditer(content)
        ]
        return self._slice(file_path, content, bounds, imports, exports, fixed_importance=70)

    def _chunk_fixed(
        self, file_path: str, content: str, imports: list[str], exports: list[str]
    ) -> list[Chunk]:
        """Fixed-size windows; each window overlaps the previous by `overlap` chars."""
        chunks: list[Chunk] = []
        step = self.max_chunk_size - self.overlap
        start = 0

        while start < len(content):
            end = min(start + self.max_chunk_size, len(content))
            text = content[start:end]
            start_line = _line_of(content, start)
            chunks.append(
                Chunk(
                    id=f"{file_path}:{start}",
                    file_path=file_path,
                    content=text,
                    start_line=start_line,
                    end_line=_end_line(start_line, text),
                    offset=start,
                    kind=ChunkKind.BLOCK,
                    importance=50,
                    imports=imports,
                    exports=exports,
                )
            )
            if end >= len(content):
                break
            start += step

        return chunks

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _full_chunk(
        self,
        file_path: str,
        content: str,
        importance: int,
        imports: list[str],
        exports: list[str],
    ) -> Chunk:
        return Chunk(
            id=f"{file_path}:full",
            file_path=file_path,
            content=content,
            start_line=1,
            end_line=content.count("\n") + 1,
            kind=ChunkKind.FULL,
            importance=importance,
            imports=imports,
            exports=exports,
        )

    def _slice(
        self,
        file_path: str,
        content: str,
        bounds: list[tuple[int, str, ChunkKind]],
        imports: list[str],
        exports: list[str],
        score_declarations: bool = False,
        fixed_importance: int = 50,
    ) -> list[Chunk]:
        """Cut `content` between consecutive boundary offsets.

        Boundaries are moved back to the start of their line so that line
        ranges never overlap; two boundaries on one line collapse into the
        first.
        """
        starts: list[tuple[int, str, ChunkKind]] = []
        for offset, name, kind in bounds:
            snapped = _line_start(content, offset)
            if starts and starts[-1][0] == snapped:
                continue
            starts.append((snapped, name, kind))

        chunks: list[Chunk] = []
        seen_ids: set[str] = set()
        for idx, (start, name, kind) in enumerate(starts):
            end = starts[idx + 1][0] if idx < len(starts) - 1 else len(content)
            text = content[start:end]
            start_line = _line_of(content, start)

            chunk_id = f"{file_path}:{name}"
            if chunk_id in seen_ids:
                chunk_id = f"{chunk_id}:{start_line}"
            seen_ids.add(chunk_id)

            importance = (
                calculate_importance(text, name) if score_declarations else fixed_importance
            )
            chunks.append(
                Chunk(
                    id=chunk_id,
                    file_path=file_path,
                    content=text,
                    start_line=start_line,
                    end_line=_end_line(start_line, text),
                    offset=start,
                    kind=kind,
                    importance=importance,
                    imports=imports,
                    exports=exports,
                )
            )

        return chunks

    # -------------------------------------------------------------------
    # Reassembly
    # -------------------------------------------------------------------

    @staticmethod
    def reconstruct(chunks: list[Chunk]) -> str:
        """Reassemble text from chunks of one file.

        Chunks are ordered by position. When both neighbours carry character
        offsets, the overlapping characters are dropped from the later chunk,
        which is exact for the chunker's own output, including fixed-size
        windows inside a single long line. Otherwise, when a chunk's line range
        overlaps the previous one, the overlapping number of lines is dropped
        from its start.
        """
        if not chunks:
            return ""
        if len(chunks) == 1:
            return chunks[0].content

        ordered = sorted(chunks, key=lambda c: (c.start_line, c.offset))
        result = ordered[0].content
        for prev, curr in zip(ordered, ordered[1:]):
            text = curr.content
            if curr.offset > prev.offset:
                overlap_chars = prev.offset + len(prev.content) - curr.offset
                result += text[max(overlap_chars, 0):]
                continue
            if curr.start_line <= prev.end_line:
                overlap_lines = prev.end_line - curr.start_line + 1
                text = "".join(text.splitlines(keepends=True)[overlap_lines:])
            if not text:
                continue
            if result and not result.endswith("\n"):
                result += "\n"
            result += text

        return result
