"""Prefix-then-fuzzy lookup against a LinkIndex."""

from __future__ import annotations

from typing import NamedTuple

from .index import LinkIndex
from .models import IndexEntry
from .normalize import normalize

MAX_RESULTS = 100
PREFIX_SCORE = 0.0
FUZZY_SCORE = 0.5


class Match(NamedTuple):
    entry: IndexEntry
    score: float


def fuzzy_match(query: str, key: str) -> bool:
    """True if every character of *query* appears in *key*, in order."""
    remaining = iter(key)
    return all(ch in remaining for ch in query)


def rank(index: LinkIndex, query: str, limit: int = MAX_RESULTS) -> list[Match]:
    """Scored, deduplicated matches: all prefix hits, then all fuzzy hits."""
    needle = normalize(query)
    if not needle:
        return []

    buckets = index.items()
    prefix: list[Match] = []
    fuzzy: list[Match] = []
    for key, entries in buckets:
        if key.startswith(needle):
            prefix.extend(Match(e, PREFIX_SCORE) for e in entries)
        # Prefix keys would only contribute duplicates here
        elif fuzzy_match(needle, key):
            fuzzy.extend(Match(e, FUZZY_SCORE) for e in entries)

    seen: set[tuple] = set()
    results: list[Match] = []
    for m in prefix + fuzzy:
        if m.entry.identity in seen:
            continue
        seen.add(m.entry.identity)
        results.append(m)
        if len(results) >= limit:
            break
    return results


def match(index: LinkIndex, query: str, limit: int = MAX_RESULTS) -> list[IndexEntry]:
    return [m.entry for m in rank(index, query, limit)]
