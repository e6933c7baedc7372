"""Fuzzy matching of job names and paths."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

_MAIN_BRANCH_SUFFIXES = ("/master", "/main", "/develop")


@dataclass(frozen=True)
class Match:
    """A fuzzy match and its score."""

    value: str
    score: int


def search(query: str, items: Iterable[str], max_results: int = 0) -> list[Match]:
    """Return items matching ``query``, best first; ties prefer shorter values."""
    if not query:
        return []
    query = query.lower()
    matches = [Match(item, score) for item in items if (score := calculate_score(query, item)) > 0]
    matches.sort(key=lambda m: (-m.score, len(m.value)))
    if max_results > 0:
        matches = matches[:max_results]
    return matches


def calculate_score(query: str, target: str) -> int:
    """Score how well ``query`` matches ``target``; higher is better, 0 means no match."""
    query_lower = query.lower()
    target_lower = target.lower()

    if query_lower == target_lower:
        return 1000

    score = 0
    if query_lower in target_lower:
        score += 500 if target_lower.startswith(query_lower) else 300

    target_parts = target_lower.split("/")
    component_matched = False
    for q_part in query_lower.split("/"):
        q_part = q_part.strip()
        if not q_part:
            continue
        for t_part in target_parts:
            if q_part == t_part:
                score += 100
                component_matched = True
            elif q_part in t_part:
                score += 50
                component_matched = True

    target_words = target_lower.replace("/", " ").split()
    word_matched = False
    for q_word in query_lower.replace("/", " ").split():
        for t_word in target_words:
            if q_word == t_word:
                score += 80
                word_matched = True
            elif t_word.startswith(q_word):
                score += 40
                word_matched = True
            elif q_word in t_word:
                score += 20
                word_matched = True

    if (component_matched or word_matched) and len(query_lower) > 3:
        score += _count_common_chars(query_lower, target_lower) * 2

    if score > 0 and target_lower.endswith(_MAIN_BRANCH_SUFFIXES):
        score += 50

    return score


def _count_common_chars(query: str, target: str) -> int:
    available = Counter(target)
    common = 0
    for ch in query:
        if available[ch] > 0:
            common += 1
            available[ch] -= 1
    return common


def extract_values(matches: Iterable[Match]) -> list[str]:
    """Return the matched values in order."""
    return [m.value for m in matches]