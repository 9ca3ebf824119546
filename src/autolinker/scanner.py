"""Phrase scanner: sentence around the cursor -> word tokens -> candidate phrases.

The suggestion popup and the quick-link command both go through
``iter_candidate_phrases`` and differ only in how they pick a phrase.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import TypeVar

from .models import Phrase, Token

T = TypeVar("T")

SENTENCE_TERMINATORS = ".!?"

# A word starts at a boundary and may contain apostrophes and hyphens,
# but never ends on one.
_WORD_RE = re.compile(r"\b\w[\w'-]*\b")


def scan_sentence(line: str, cursor: int) -> tuple[str, int]:
    """Return the sentence enclosing *cursor* and its offset within *line*.

    Terminators are excluded and surrounding whitespace is trimmed.
    """
    start = max(line.rfind(t, 0, cursor) for t in SENTENCE_TERMINATORS) + 1

    end = len(line)
    for t in SENTENCE_TERMINATORS:
        pos = line.find(t, cursor)
        if pos != -1 and pos < end:
            end = pos

    while start < end and line[start].isspace():
        start += 1
    while end > start and line[end - 1].isspace():
        end -= 1

    return line[start:end], start


def tokenize(sentence: str) -> list[Token]:
    return [Token(m.group(0), m.start(), m.end()) for m in _WORD_RE.finditer(sentence)]


def locate_cursor_word(tokens: list[Token], cursor: int) -> int | None:
    """Index of the token the cursor touches, counting the position just past a word."""
    for i, token in enumerate(tokens):
        if token.start <= cursor <= token.end:
            return i
    return None


def enumerate_phrases(tokens: list[Token], cursor_idx: int) -> Iterator[tuple[int, int]]:
    """Yield inclusive ``(start_idx, end_idx)`` token spans containing *cursor_idx*.

    Longest spans come first; spans of equal length go left to right.
    """
    count = len(tokens)
    for span in range(count, 0, -1):
        first = max(0, cursor_idx - span + 1)
        last = min(cursor_idx, count - span)
        for start_idx in range(first, last + 1):
            yield start_idx, start_idx + span - 1


def iter_candidate_phrases(line: str, cursor: int) -> Iterator[Phrase]:
    """Run the whole scan and yield candidate phrases, longest first.

    Yields nothing when the cursor is outside the line or touches no word.
    """
    if not 0 <= cursor <= len(line):
        return

    sentence, offset = scan_sentence(line, cursor)
    tokens = tokenize(sentence)
    cursor_idx = locate_cursor_word(tokens, cursor - offset)
    if cursor_idx is None:
        return

    for start_idx, end_idx in enumerate_phrases(tokens, cursor_idx):
        start = tokens[start_idx].start
        end = tokens[end_idx].end
        yield Phrase(sentence[start:end], offset + start, offset + end)


def find_phrase(
    line: str,
    cursor: int,
    select: Callable[[str], T | None],
) -> tuple[Phrase, T] | None:
    """Return the first candidate phrase for which *select* gives a result."""
    for phrase in iter_candidate_phrases(line, cursor):
        result = select(phrase.text)
        if result is not None:
            return phrase, result
    return None
