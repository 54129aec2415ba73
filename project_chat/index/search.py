"""
Keyword search over indexed files, and snippet extraction for tool output.
"""
from __future__ import annotations

import logging
from typing import Sequence

from .indexing import IndexedFile

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 5
PATH_MATCH_BONUS = 5


def query_terms(query: str) -> list[str]:
    return query.lower().split()


def score_file(file: IndexedFile, terms: list[str]) -> int:
    score = 0
    path = file.path.lower()
    for term in terms:
        score += file.search_content.count(term)
        if term in path:
            score += PATH_MATCH_BONUS
    return score


def search_index(
    files: Sequence[IndexedFile],
    query: str,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[IndexedFile]:
    """
    Rank files against a free-text query.

    Each term scores its non-overlapping occurrences in the content, plus a bonus
    when it appears in the path. Zero scores are dropped; ties keep input order.

    Args:
        files: Files to search, already filtered to one category by the caller
        query: Free-text query; blank queries return []
        max_results: Result cap, must be >= 0

    Returns:
        list[IndexedFile]: At most max_results files, best first
    """
    if max_results < 0:
        raise ValueError(f"max_results must be >= 0, got {max_results}")
    terms = query_terms(query)
    if not terms:
        return []

    scored = [(score_file(f, terms), f) for f in files]
    scored = [s for s in scored if s[0] > 0]
    # sorted() is stable, so equal scores keep encounter order
    scored = sorted(scored, key=lambda s: s[0], reverse=True)
    return [f for _, f in scored[:max_results]]


def extract_snippet(content: str, query: str, context_lines: int = 3) -> str:
    """
    Return the first line matching any query term with context_lines around it.
    Falls back to the first 2*context_lines+1 lines when nothing matches.
    """
    if context_lines < 0:
        raise ValueError(f"context_lines must be >= 0, got {context_lines}")
    lines = content.split("\n")
    terms = query_terms(query)

    for i, line in enumerate(lines):
        lower = line.lower()
        if any(t in lower for t in terms):
            start = max(0, i - context_lines)
            end = min(len(lines), i + context_lines + 1)
            return "\n".join(lines[start:end])

    return "\n".join(lines[: context_lines * 2 + 1])
