"""Query complexity classifier.

Maps a free-text request to a complexity tier so callers that have no better
signal can still pick selection limits. Pure heuristics over the query text:

  1. Small-edit patterns ("change the title", "replace X by Y", color changes,
     removals, alignment) pull the score down.
  2. Large-generation patterns ("create a new site", "add several pages",
     "redesign everything") push it up.
  3. Short prompts (< 10 words) lean toward small edits, long prompts
     (> 50 words) toward larger work.

The score is clamped to [-50, 100] and bucketed:
  < -20 trivial, < 10 simple, < 30 moderate, otherwise complex.

An empty project always needs full generation and classifies as complex.
French and English phrasings are both recognised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ctxopt.context.models import Complexity

_COLORS = r"(red|blue|green|yellow|black|white|rouge|bleu|vert|jaune|noir|blanc)"

# (pattern, points, reason)
_SMALL_EDIT_PATTERNS: list[tuple[re.Pattern, int, str]] = [
    (re.compile(r"change\s+(le|la|les)?\s*(titre|texte|couleur|prix)", re.I), -50, "simple change"),
    (re.compile(r"modifie\s+(le|la|les)?\s*(titre|texte|couleur|style)", re.I), -50, "content edit"),
    (re.compile(r"(change|update|edit)\s+(the\s+)?(title|text|color|colour|price|label|font)", re.I), -50, "simple change"),
    (re.compile(r"remplace\s+[\"'].*[\"']\s+par\s+[\"'].*[\"']", re.I), -60, "text replacement"),
    (re.compile(r"replace\s+[\"'].*[\"']\s+(with|by)\s+[\"'].*[\"']", re.I), -60, "text replacement"),
    (re.compile(r"met(s)?\s+(en)?\s+" + _COLORS, re.I), -45, "color change"),
    (re.compile(r"(make|turn)\s+(it|the\s+\w+)\s+" + _COLORS, re.I), -45, "color change"),
    (re.compile(r"(enlève|supprime|retire|cache|remove|delete|hide)\b", re.I), -45, "element removal"),
    (re.compile(r"(centre|aligne|center|align)\s+(à\s+|to\s+the\s+)?(gauche|droite|centre|left|right|center)", re.I), -40, "alignment"),
    (re.compile(r"\b(rename|typo|fix\s+the\s+spelling)\b", re.I), -40, "small fix"),
]

_LARGE_WORK_PATTERNS: list[tuple[re.Pattern, int, str]] = [
    (re.compile(r"(crée|créer|génère)\s+(un\s+nouveau\s+site|from\s+scratch)", re.I), 80, "site creation"),
    (re.compile(r"(create|build|generate)\s+(a\s+)?(new\s+(site|website|app)|.*from\s+scratch)", re.I), 80, "site creation"),
    (re.compile(r"ajoute\s+(plusieurs|5|six|sept)\s+pages", re.I), 70, "multiple pages"),
    (re.compile(r"add\s+(several|multiple|\d+|three|four|five|six|seven)\s+pages", re.I), 70, "multiple pages"),
    (re.compile(r"(refais|redesign|restructure)\s+(tout|complètement|everything|completely|the\s+whole)", re.I), 75, "restructuring"),
]


@dataclass
class ComplexityAnalysis:
    """Result of complexity classification."""

    complexity: Complexity
    score: int  # -50..100
    confidence: float  # 0-100
    reasons: list[str] = field(default_factory=list)

    @property
    def reasoning(self) -> str:
        return ", ".join(self.reasons[:3]) if self.reasons else "standard heuristics"


class ComplexityClassifier:
    """Classifies requests into trivial/simple/moderate/complex.

    Usage:
        classifier = ComplexityClassifier()
        analysis = classifier.classify("Change the title color to red", files)
        # analysis.complexity == Complexity.TRIVIAL
    """

    def classify(
        self, query: str, project_files: dict[str, str] | None = None
    ) -> ComplexityAnalysis:
        if project_files is not None and len(project_files) == 0:
            return ComplexityAnalysis(
                complexity=Complexity.COMPLEX,
                score=100,
                confidence=100.0,
                reasons=["no existing files, full generation required"],
            )

        score = 0
        reasons: list[str] = []

        for pattern, points, reason in _SMALL_EDIT_PATTERNS + _LARGE_WORK_PATTERNS:
            if pattern.search(query):
                score += points
                if reason not in reasons:
                    reasons.append(reason)

        word_count = len(query.split())
        if word_count < 10:
            score -= 25
            reasons.append("short prompt (targeted edit)")
        elif word_count > 50:
            score += 10
            reasons.append("detailed prompt")

        score = max(-50, min(100, score))
        confidence = min(100.0, abs(score) * 1.5)

        return ComplexityAnalysis(
            complexity=self._bucket(score),
            score=score,
            confidence=confidence,
            reasons=reasons,
        )

    @staticmethod
    def _bucket(score: int) -> Complexity:
        if score < -20:
            return Complexity.TRIVIAL
        if score < 10:
            return Complexity.SIMPLE
        if score < 30:
            return Complexity.MODERATE
        return Complexity.COMPLEX
