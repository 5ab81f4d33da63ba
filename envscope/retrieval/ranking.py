"""Fuzzy ranking of resolved values against a search query.

Matching is a case-insensitive subsequence search over both the key and the
value text of each :class:`ResolvedValue`. Scores reward matches on the first
character, after separators, on camel-case humps and on runs of adjacent
characters; unmatched characters cost a little.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from envscope.resolve import ResolvedValue

FIRST_CHAR_BONUS = 10
SEPARATOR_BONUS = 20
CAMEL_CASE_BONUS = 20
ADJACENT_BONUS = 5
LEADING_PENALTY = -5
MAX_LEADING_PENALTY = -15
UNMATCHED_PENALTY = -1

SEPARATORS = frozenset("/-_ .\\:=")


@dataclass(slots=True)
class FuzzyMatch:
    score: int
    positions: List[int]


@dataclass(slots=True)
class SearchResult:
    value: ResolvedValue
    score: int = 0
    key_matches: List[int] = field(default_factory=list)
    value_matches: List[int] = field(default_factory=list)


def fuzzy_match(pattern: str, text: str) -> Optional[FuzzyMatch]:
    """Match ``pattern`` as a subsequence of ``text``; ``None`` if it isn't one."""
    if not pattern:
        return FuzzyMatch(0, [])
    lowered = text.lower()
    positions: List[int] = []
    score = 0
    start = 0
    for ch in pattern.lower():
        idx = lowered.find(ch, start)
        if idx == -1:
            return None
        if idx == 0:
            score += FIRST_CHAR_BONUS
        else:
            prev = text[idx - 1]
            if prev in SEPARATORS:
                score += SEPARATOR_BONUS
            elif prev.islower() and text[idx].isupper():
                score += CAMEL_CASE_BONUS
        if positions and idx == positions[-1] + 1:
            score += ADJACENT_BONUS
        positions.append(idx)
        start = idx + 1

    score += max(MAX_LEADING_PENALTY, LEADING_PENALTY * positions[0])
    score += UNMATCHED_PENALTY * (len(text) - len(positions))
    return FuzzyMatch(score, positions)


def rank(values: Iterable[ResolvedValue], query: str) -> List[SearchResult]:
    """Rank ``values`` against ``query``.

    An empty query keeps every value (score 0) in key order. Otherwise values
    matching neither key nor value are dropped and the rest are ordered by
    score descending, then key ascending.
    """
    if not query:
        return [SearchResult(v) for v in sorted(values, key=lambda v: v.key)]

    results: List[SearchResult] = []
    for v in values:
        key_hit = fuzzy_match(query, v.key)
        value_hit = fuzzy_match(query, v.value)
        if key_hit is None and value_hit is None:
            continue
        result = SearchResult(v, score=max(h.score for h in (key_hit, value_hit) if h is not None))
        if key_hit is not None:
            result.key_matches = key_hit.positions
        if value_hit is not None:
            result.value_matches = value_hit.positions
        results.append(result)

    results.sort(key=lambda r: (-r.score, r.value.key))
    return results
