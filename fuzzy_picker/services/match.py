"""Fuzzy matching and ranking for picker candidates.

Ordered-subsequence matching with locality bonuses, scored by dynamic
programming:
- Exact (case-insensitive) match: SCORE_MAX, above anything else
- Consecutive matched characters: largest bonus
- Matches after a path separator or at the start: high bonus
- Matches after a word boundary, camel-case hump or dot: smaller bonuses
- Skipped haystack characters: small penalties
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..models.candidate import Candidate, ScoredCandidate

# Score constants
SCORE_GAP_TRAILING = -0.005
SCORE_GAP_INNER = -0.01
SCORE_MATCH_CONSECUTIVE = 1.0
SCORE_MATCH_SLASH = 0.9
SCORE_MATCH_WORD = 0.8
SCORE_MATCH_CAPITAL = 0.7
SCORE_MATCH_DOT = 0.6
SCORE_MAX = math.inf
SCORE_MIN = -math.inf

# Sentinel for excluded candidates
NO_MATCH = SCORE_MIN

PATH_SEPARATORS = frozenset("/\\")
WORD_SEPARATORS = frozenset("_- ")


def is_match(score: float) -> bool:
    """Check whether a score means the candidate matched."""
    return score > NO_MATCH


def _fold(text: str) -> list[str]:
    # Per-character lowering keeps indices aligned with the original casing
    return [ch.lower() for ch in text]


def _bonus(haystack: str, j: int) -> float:
    """Positional bonus for a match at haystack index j (0-based)."""
    if j == 0:
        return SCORE_MATCH_SLASH

    prev = haystack[j - 1]
    curr = haystack[j]

    if prev in PATH_SEPARATORS:
        return SCORE_MATCH_SLASH
    if prev in WORD_SEPARATORS:
        return SCORE_MATCH_WORD
    if prev == ".":
        return SCORE_MATCH_DOT
    if prev.islower() and curr.isupper():
        return SCORE_MATCH_CAPITAL
    return 0.0


def _subsequence(needle: list[str], haystack: list[str]) -> bool:
    """Check that every needle character appears in order in haystack."""
    i = 0
    n = len(needle)
    for ch in haystack:
        if ch == needle[i]:
            i += 1
            if i == n:
                return True
    return False


def has_match(query: str, haystack: str) -> bool:
    """Case-insensitive ordered subsequence test."""
    if not query:
        return True
    return _subsequence(_fold(query), _fold(haystack))


def score(query: str, haystack: str) -> float:
    """Score how well query fuzzy-matches haystack.

    Returns:
        NO_MATCH if the query is empty, longer than the haystack, or its
        characters do not appear in order. SCORE_MAX for a case-insensitive
        exact match. Otherwise a finite score, higher is better.
    """
    n = len(query)
    m = len(haystack)

    if n == 0 or n > m:
        return NO_MATCH

    needle = _fold(query)
    hay = _fold(haystack)

    if n == m and needle == hay:
        return SCORE_MAX

    if not _subsequence(needle, hay):
        return NO_MATCH

    bonuses = [_bonus(haystack, j) for j in range(m)]

    # Row i-1 of Best (D) and RunningMatch (M), indexed by haystack length 0..m
    prev_best = [0.0] * (m + 1)
    prev_match = [NO_MATCH] * (m + 1)

    for i in range(1, n + 1):
        best = [NO_MATCH] * (m + 1)
        match = [NO_MATCH] * (m + 1)
        gap = SCORE_GAP_TRAILING if i == n else SCORE_GAP_INNER
        nc = needle[i - 1]
        prev_score = NO_MATCH

        for j in range(i, m + 1):
            if nc == hay[j - 1]:
                start = prev_best[j - 1] + bonuses[j - 1]
                extend = prev_match[j - 1] + SCORE_MATCH_CONSECUTIVE
                match[j] = max(start, extend)
                best[j] = max(prev_score + gap, match[j])
            else:
                best[j] = prev_score + gap
            prev_score = best[j]

        prev_best = best
        prev_match = match

    return prev_best[m]


def _rank_key(entry: tuple[int, ScoredCandidate]) -> tuple[float, int, str, int]:
    index, scored = entry
    return (-scored.score, len(scored.display), scored.display, index)


def rank(
    query: str,
    candidates: Sequence[Candidate],
    limit: int | None = None,
) -> list[ScoredCandidate]:
    """Rank candidates by fuzzy match quality.

    Args:
        query: Search string
        candidates: Candidates in source order
        limit: Maximum number of results (None for all)

    Returns:
        Matching candidates ordered by score descending, then display
        length ascending, then display string, then source position.
        An empty query returns the first `limit` candidates in source
        order with score 0.
    """
    if limit is not None and limit <= 0:
        return []

    if not query:
        head = candidates if limit is None else candidates[:limit]
        return [ScoredCandidate(candidate, 0.0) for candidate in head]

    scored: list[tuple[int, ScoredCandidate]] = []
    for index, candidate in enumerate(candidates):
        value = score(query, candidate.display)
        if is_match(value):
            scored.append((index, ScoredCandidate(candidate, value)))

    scored.sort(key=_rank_key)
    if limit is not None:
        scored = scored[:limit]
    return [entry for _, entry in scored]
