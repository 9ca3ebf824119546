"""In-memory index mapping normalized keys to linkable targets."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Iterable

from .models import DocumentMetadata, EntryKind, IndexEntry
from .normalize import normalize

log = logging.getLogger(__name__)


def display_text_for(kind: EntryKind, source_title: str, target: str) -> str:
    match kind:
        case EntryKind.TITLE:
            return target
        case EntryKind.HEADING:
            return f"{source_title} > {target}"
        case EntryKind.BLOCK:
            return f"{source_title} > #{target}"
        case EntryKind.TAG:
            return f"#{target}"


def entries_for(source_id: str, metadata: DocumentMetadata) -> list[tuple[str, IndexEntry]]:
    """Derive ``(key text, entry)`` pairs for one document.

    One title entry, then tags, headings and block ids in metadata order.
    """
    title = metadata.title
    pairs: list[tuple[str, IndexEntry]] = []

    def add(kind: EntryKind, target: str) -> None:
        entry = IndexEntry(
            kind=kind,
            source_id=source_id,
            source_title=title,
            target=target,
            display_text=display_text_for(kind, title, target),
        )
        pairs.append((target, entry))

    add(EntryKind.TITLE, title)
    for tag in metadata.tags:
        tag = tag.strip()
        if tag:
            add(EntryKind.TAG, tag)
    for heading in metadata.headings:
        add(EntryKind.HEADING, heading)
    for block_id in metadata.block_ids:
        add(EntryKind.BLOCK, block_id)
    return pairs


def _insert(buckets: dict[str, list[IndexEntry]], key_text: str, entry: IndexEntry) -> bool:
    key = normalize(key_text)
    if not key:
        log.debug("Skipping %s entry %r with empty key", entry.kind.value, key_text)
        return False
    bucket = buckets.setdefault(key, [])
    if any(e.identity == entry.identity for e in bucket):
        return False
    bucket.append(entry)
    return True


class LinkIndex:
    """Normalized key -> entries, mutated atomically per call.

    Change notifications arrive on timer threads while lookups run on the
    caller's thread, so every mutation and every snapshot holds ``_lock``.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, list[IndexEntry]] = {}
        self._lock = threading.RLock()
        self._rebuilding = False
        self._rebuild_flag_lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._buckets

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._buckets)

    def get(self, key: str) -> list[IndexEntry]:
        with self._lock:
            return list(self._buckets.get(key, ()))

    def items(self) -> list[tuple[str, list[IndexEntry]]]:
        """Consistent snapshot of every bucket, in insertion order."""
        with self._lock:
            return [(key, list(entries)) for key, entries in self._buckets.items()]

    def entry_count(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._buckets.values())

    @property
    def is_rebuilding(self) -> bool:
        return self._rebuilding

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()

    def add(self, key_text: str, entry: IndexEntry) -> bool:
        """Insert *entry* under ``normalize(key_text)``. Returns False for duplicates."""
        with self._lock:
            return _insert(self._buckets, key_text, entry)

    def add_document(self, source_id: str, metadata: DocumentMetadata) -> int:
        pairs = entries_for(source_id, metadata)
        with self._lock:
            return sum(_insert(self._buckets, key_text, entry) for key_text, entry in pairs)

    def remove_document(self, source_id: str) -> int:
        """Drop every entry owned by *source_id*; empty buckets go too."""
        removed = 0
        with self._lock:
            for key in list(self._buckets):
                entries = self._buckets[key]
                kept = [e for e in entries if e.source_id != source_id]
                removed += len(entries) - len(kept)
                if kept:
                    self._buckets[key] = kept
                else:
                    del self._buckets[key]
        if removed:
            log.debug("Removed %d entries for %s", removed, source_id)
        return removed

    def rename_document(
        self,
        source_id: str,
        new_title: str,
        new_source_id: str | None = None,
    ) -> int:
        """Point every entry of *source_id* at *new_title* (and *new_source_id*).

        Heading, block and tag entries keep their key. Title entries take the
        new title as target and move to the key of the new title. Whatever was
        indexed under *new_source_id* before is dropped, since that document
        has been overwritten.
        """
        new_source_id = new_source_id or source_id
        with self._lock:
            owned: list[tuple[str, IndexEntry]] = []
            for key in list(self._buckets):
                entries = self._buckets[key]
                owned.extend((key, e) for e in entries if e.source_id == source_id)
                kept = [e for e in entries if e.source_id != source_id]
                if kept:
                    self._buckets[key] = kept
                else:
                    del self._buckets[key]

            if new_source_id != source_id:
                self.remove_document(new_source_id)

            for key, entry in owned:
                if entry.kind is EntryKind.TITLE:
                    key = new_title
                    entry = dataclasses.replace(entry, target=new_title, display_text=new_title)
                else:
                    entry = dataclasses.replace(
                        entry, display_text=display_text_for(entry.kind, new_title, entry.target),
                    )
                _insert(
                    self._buckets,
                    key,
                    dataclasses.replace(entry, source_id=new_source_id, source_title=new_title),
                )
        log.debug("Renamed %s -> %s (%s), %d entries updated", source_id, new_source_id, new_title, len(owned))
        return len(owned)

    def upsert_document(self, source_id: str, metadata: DocumentMetadata) -> int:
        """Replace everything indexed for *source_id* in one atomic step."""
        pairs = entries_for(source_id, metadata)
        with self._lock:
            self.remove_document(source_id)
            return sum(_insert(self._buckets, key_text, entry) for key_text, entry in pairs)

    def rebuild_all(self, documents: Iterable[tuple[str, DocumentMetadata]]) -> bool:
        """Rebuild from the full collection. Returns False if a rebuild is already running."""
        with self._rebuild_flag_lock:
            if self._rebuilding:
                log.debug("Rebuild already in progress, ignoring request")
                return False
            self._rebuilding = True

        try:
            buckets: dict[str, list[IndexEntry]] = {}
            doc_count = 0
            for source_id, metadata in documents:
                doc_count += 1
                for key_text, entry in entries_for(source_id, metadata):
                    _insert(buckets, key_text, entry)
            with self._lock:
                self._buckets = buckets
            log.info("Indexed %d documents into %d keys", doc_count, len(buckets))
            return True
        finally:
            with self._rebuild_flag_lock:
                self._rebuilding = False
