"""Relevance scoring: lexical file scoring and query complexity classification."""

from ctxopt.search.classifier import ComplexityAnalysis, ComplexityClassifier
from ctxopt.search.lexical import LexicalScorer, extract_explicit_files, extract_keywords

__all__ = [
    "LexicalScorer",
    "ComplexityClassifier",
    "ComplexityAnalysis",
    "extract_explicit_files",
    "extract_keywords",
]
