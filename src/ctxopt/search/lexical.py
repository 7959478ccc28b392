"""Lexical (keyword and path based) relevance scoring of project files."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from ctxopt.context.models import ScoredFile

MAX_KEYWORDS = 15

_STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been", "be",
    "have", "has", "had", "do", "does", "did", "will", "would", "should",
    "could", "may", "might", "must", "can", "this", "that", "these", "those",
    "i", "you", "he", "she", "it", "we", "they",
})

# Substrings of a path that usually anchor a project's structure
_CRITICAL_NAMES = ("index", "app", "main", "layout", "config", "route")

_RELEVANT_EXTENSIONS = {"tsx", "ts", "jsx", "js", "html", "css"}

# Path segments that never belong in the context
_IGNORED_SEGMENTS = {"node_modules", "dist", "build", ".git"}

_NON_WORD_RE = re.compile(r"[^\w\s]")

# Score bonuses
_MENTION_BONUS = 50
_PATH_KEYWORD_BONUS = 10
_CONTENT_KEYWORD_BONUS = 2
_CRITICAL_BONUS = 25
_FILE_TYPE_BONUS = 10
_CONFIG_PENALTY_BELOW = 30


def extract_keywords(query: str) -> list[str]:
    """Significant lowercase words of a query, deduplicated, at most 15."""
    words = _NON_WORD_RE.sub(" ", query.lower()).split()
    keywords: list[str] = []
    for word in words:
        if len(word) <= 2 or word in _STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
    return keywords[:MAX_KEYWORDS]


def file_name(path: str) -> str:
    return PurePosixPath(path).name


def is_mentioned(query_lower: str, path: str) -> bool:
    """Whether the query names the file by path or bare filename."""
    path_lower = path.lower()
    name = file_name(path_lower)
    return path_lower in query_lower or bool(name and name in query_lower)


def is_critical_file(path: str) -> bool:
    path_lower = path.lower()
    return any(c in path_lower for c in _CRITICAL_NAMES)


def is_relevant_file_type(path: str) -> bool:
    return PurePosixPath(path).suffix.lower().lstrip(".") in _RELEVANT_EXTENSIONS


def should_ignore_file(path: str) -> bool:
    parts = PurePosixPath(path.lower().replace("\\", "/")).parts
    return any(part in _IGNORED_SEGMENTS for part in parts)


def is_config_file(path: str) -> bool:
    path_lower = path.lower()
    return "config" in path_lower or path_lower.endswith(".json")


def extract_explicit_files(query: str, project_files: dict[str, str]) -> list[str]:
    """Paths the query mentions explicitly, in snapshot order."""
    query_lower = query.lower()
    return [path for path in project_files if is_mentioned(query_lower, path)]


class LexicalScorer:
    """Keyword and path-pattern scoring of every file in a snapshot.

    Scores are unbounded above zero:
      +50 when the query names the file, +10 per keyword in the path,
      +2 per keyword in the content, +25 for structural names, +10 for web
      source types. Ignored paths score 0 and weak config files are halved.
    """

    def score_files(self, query: str, project_files: dict[str, str]) -> list[ScoredFile]:
        """Score every file in snapshot order."""
        query_lower = query.lower()
        keywords = extract_keywords(query)

        scored: list[ScoredFile] = []
        for path, content in project_files.items():
            text = content if isinstance(content, str) else ""
            scored.append(
                ScoredFile(
                    path=path,
                    content=text,
                    score=self.score_file(query_lower, keywords, path, text),
                )
            )
        return scored

    def score_file(
        self, query_lower: str, keywords: list[str], path: str, content: str
    ) -> float:
        """Score one file against a lowercased query and its keywords."""
        score = 0.0
        path_lower = path.lower()
        content_lower = content.lower()

        if is_mentioned(query_lower, path):
            score += _MENTION_BONUS

        score += _PATH_KEYWORD_BONUS * sum(1 for kw in keywords if kw in path_lower)
        score += _CONTENT_KEYWORD_BONUS * sum(1 for kw in keywords if kw in content_lower)

        if is_critical_file(path):
            score += _CRITICAL_BONUS

        if is_relevant_file_type(path):
            score += _FILE_TYPE_BONUS

        # Penalties
        if should_ignore_file(path):
            score = 0.0
        if is_config_file(path) and score < _CONFIG_PENALTY_BELOW:
            score *= 0.5

        return score
