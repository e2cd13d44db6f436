"""Fuzzy matching of repository names against a typed query.

A query matches when its characters appear in order (case-insensitively) in
the candidate. Scores reward consecutive runs and matches at segment starts,
so ``gh/wid`` ranks ``github.com/acme/widgets`` above scattered hits.
"""

from __future__ import annotations

SEGMENT_BOUNDARIES = "/_-. "


def fuzzy_score(query: str, candidate: str) -> int | None:
    """Return a relevance score, or ``None`` when ``query`` is not a subsequence."""
    if not query:
        return 0
    query_folded = query.casefold()
    candidate_folded = candidate.casefold()

    score = 0
    prev_idx = -1
    run = 0
    for needle in query_folded:
        if needle == " ":
            continue
        idx = candidate_folded.find(needle, prev_idx + 1)
        if idx < 0:
            return None
        if idx == prev_idx + 1:
            run += 1
            score += 20 + min(16, run * 4)
        else:
            run = 0
            score -= min(40, (idx - prev_idx - 1) * 2)
        if idx == 0 or candidate_folded[idx - 1] in SEGMENT_BOUNDARIES:
            score += 35
        prev_idx = idx

    score -= len(candidate_folded) // 5
    return score


def fuzzy_matches(query: str, candidate: str) -> bool:
    return fuzzy_score(query, candidate) is not None


__all__ = ["fuzzy_matches", "fuzzy_score"]
