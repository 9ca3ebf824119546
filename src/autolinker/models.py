"""Data models for index entries, document metadata and scan results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntryKind(str, Enum):
    TITLE = "title"
    HEADING = "heading"
    BLOCK = "block"
    TAG = "tag"


@dataclass(frozen=True)
class IndexEntry:
    """A single linkable target inside a document."""

    kind: EntryKind
    source_id: str
    source_title: str
    target: str
    display_text: str

    @property
    def identity(self) -> tuple[EntryKind, str, str]:
        return (self.kind, self.source_id, self.target)


@dataclass
class DocumentMetadata:
    """Structural metadata extracted from a document by the host store."""

    title: str
    tags: list[str] = field(default_factory=list)
    headings: list[str] = field(default_factory=list)
    block_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Token:
    word: str
    start: int
    end: int


@dataclass(frozen=True)
class Phrase:
    """A candidate phrase with offsets relative to the full line."""

    text: str
    start: int
    end: int


@dataclass
class Suggestion:
    span_start: int
    span_end: int
    query: str
    matches: list[IndexEntry] = field(default_factory=list)


@dataclass(frozen=True)
class Replacement:
    """Text edit for the host editor: replace line[span_start:span_end]."""

    span_start: int
    span_end: int
    replacement_text: str

    def apply(self, line: str) -> str:
        return line[: self.span_start] + self.replacement_text + line[self.span_end :]
