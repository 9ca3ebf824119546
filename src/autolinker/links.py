"""Build wikilink text for a chosen index entry."""

from __future__ import annotations

from .models import EntryKind, IndexEntry


def resolve_link_text(entry: IndexEntry, phrase: str) -> str:
    """Return ``[[destination|phrase]]`` for *entry*, keeping the typed phrase as the label."""
    match entry.kind:
        case EntryKind.HEADING:
            destination = f"{entry.source_title}#{entry.target}"
        case EntryKind.BLOCK:
            destination = f"{entry.source_title}#^{entry.target}"
        case _:
            # Titles and tags link straight to their target
            destination = entry.target
    return f"[[{destination}|{phrase}]]"
