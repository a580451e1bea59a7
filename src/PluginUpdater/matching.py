"""Heuristic name matching between a local plugin and catalog entries.

Most plugins have no authoritative identifier shared with the catalogs, so
search hits are ranked by how closely their title/slug resembles the
declared plugin name. Scores are additive within one candidate string and
the best candidate wins:

* +120 exact match after normalization
* +70 one normalized string is a prefix of the other
* +45 one normalized string contains the other
* +12 per shared lower-cased ``[a-z0-9]+`` token

Callers reject hits scoring below :data:`DEFAULT_MIN_SCORE`.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

DEFAULT_MIN_SCORE = 50
DEFAULT_CATEGORY_BONUS = 8
PLUGIN_PLATFORM_CATEGORIES = ("paper", "spigot", "bukkit", "purpur", "folia")

EXACT_BONUS = 120
PREFIX_BONUS = 70
SUBSTRING_BONUS = 45
TOKEN_BONUS = 12

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def normalize_name(text: str) -> str:
    return "".join(ch.lower() for ch in text if ch.isalnum())


def tokenize(text: str) -> set[str]:
    return set(_TOKEN_RE.findall(text.lower()))


def _score_candidate(target: str, target_tokens: set[str], candidate: str) -> int:
    normalized = normalize_name(candidate)
    if not normalized:
        return 0

    score = 0
    if normalized == target:
        score += EXACT_BONUS
    if normalized.startswith(target) or target.startswith(normalized):
        score += PREFIX_BONUS
    if target in normalized or normalized in target:
        score += SUBSTRING_BONUS
    score += TOKEN_BONUS * len(target_tokens & tokenize(candidate))
    return score


def score(target_name: str, *candidates: Optional[str]) -> int:
    """Return the best match score of ``candidates`` against ``target_name``."""

    target = normalize_name(target_name or "")
    if not target:
        return 0

    target_tokens = tokenize(target_name)
    best = 0
    for candidate in candidates:
        if not candidate or not candidate.strip():
            continue
        best = max(best, _score_candidate(target, target_tokens, candidate))
    return best


def category_bonus(
    categories: Optional[Iterable[str]],
    *,
    known: Iterable[str] = PLUGIN_PLATFORM_CATEGORIES,
    bonus: int = DEFAULT_CATEGORY_BONUS,
) -> int:
    """Return ``bonus`` for each known plugin-platform category present."""

    if not categories:
        return 0
    present = {str(category).lower() for category in categories}
    return bonus * sum(1 for category in known if category.lower() in present)


__all__ = [
    "DEFAULT_CATEGORY_BONUS",
    "DEFAULT_MIN_SCORE",
    "PLUGIN_PLATFORM_CATEGORIES",
    "category_bonus",
    "normalize_name",
    "score",
    "tokenize",
]
