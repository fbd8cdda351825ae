"""Robustness scoring for locator candidates."""
from __future__ import annotations

from typing import Iterable, List, Optional

from .synthesis import LocatorCandidate

BASE_SCORES = {
    "data-testid": 95,
    "data-test-id": 94,
    "data-test": 92,
    "data-cy": 92,
    "data-qa": 91,
    "role-name": 88,
    "role": 76,
    "css": 70,
    "xpath": 56,
    "text": 52,
}
DEFAULT_BASE_SCORE = 50

UNIQUE_BONUS = 10
AMBIGUITY_STEP = 4
AMBIGUITY_CAP = 28
NO_MATCH_PENALTY = 20
POSITIONAL_PENALTY = 8
LONG_SELECTOR_PENALTY = 8
LONG_SELECTOR_LENGTH = 120


def score_locator(candidate: LocatorCandidate) -> int:
    """Score one candidate from 0 to 100; a pure function of its fields."""

    score = BASE_SCORES.get(candidate.strategy, DEFAULT_BASE_SCORE)

    count: Optional[int] = candidate.unique_count
    if count == 1:
        score += UNIQUE_BONUS
    elif count is not None and count > 1:
        score -= min(AMBIGUITY_CAP, (count - 1) * AMBIGUITY_STEP)
    elif count == 0:
        score -= NO_MATCH_PENALTY

    selector = candidate.selector or ""
    if ":nth-of-type" in selector:
        score -= POSITIONAL_PENALTY
    if len(selector) > LONG_SELECTOR_LENGTH:
        score -= LONG_SELECTOR_PENALTY

    return max(0, min(100, score))


def rank_locators(candidates: Iterable[LocatorCandidate]) -> List[LocatorCandidate]:
    """Score every candidate and sort best first; ties keep synthesis order."""

    ranked = list(candidates)
    for candidate in ranked:
        candidate.score = score_locator(candidate)
    ranked.sort(key=lambda candidate: candidate.score, reverse=True)
    return ranked


__all__ = ["BASE_SCORES", "DEFAULT_BASE_SCORE", "rank_locators", "score_locator"]
