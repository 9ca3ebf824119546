"""Link engine: owns the index and serves the editor's suggestion and quick-link requests.

The document store is any object with ``list_all_documents()`` returning
``(source_id, DocumentMetadata)`` pairs. Lifecycle events reach the engine
through the ``on_document_*`` methods, whatever dispatches them.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from .config import Config
from .debounce import KeyedDebouncer
from .index import LinkIndex
from .links import resolve_link_text
from .matcher import MAX_RESULTS, match
from .models import DocumentMetadata, IndexEntry, Replacement, Suggestion
from .scanner import find_phrase, iter_candidate_phrases

log = logging.getLogger(__name__)

NOTICE_INITIALIZED = "Auto Linker initialized"
NOTICE_INIT_FAILED = "Auto Linker failed to initialize: no documents indexed"
NOTICE_NO_PHRASE = "No valid phrase found under cursor."
NOTICE_NO_MATCH = "No matching note found for this phrase."


MetadataSource = DocumentMetadata | Callable[[], DocumentMetadata | None]


def _log_notice(message: str) -> None:
    log.info("%s", message)


class LinkEngine:
    def __init__(
        self,
        store: Any,
        *,
        trigger_key: str = "",
        debounce_seconds: float = 0.3,
        max_results: int = MAX_RESULTS,
        startup_retry_delay: float = 0.2,
        max_startup_attempts: int = 2,
        notify: Callable[[str], None] | None = None,
    ):
        self.store = store
        self.trigger_key = trigger_key
        self.max_results = max_results
        self.index = LinkIndex()
        self._debouncer = KeyedDebouncer(debounce_seconds)
        self._startup_retry_delay = startup_retry_delay
        self._max_startup_attempts = max_startup_attempts
        self._startup_attempts = 0
        self._retry_timer: threading.Timer | None = None
        self._notify = notify or _log_notice
        # Serializes document events with debounced re-indexes
        self._events_lock = threading.RLock()
        self._generations: dict[str, int] = {}

    @classmethod
    def from_config(
        cls,
        config: Config,
        store: Any,
        *,
        notify: Callable[[str], None] | None = None,
    ) -> LinkEngine:
        return cls(
            store,
            trigger_key=config.trigger_key,
            debounce_seconds=config.debounce_seconds,
            max_results=config.max_results,
            startup_retry_delay=config.startup_retry_delay,
            max_startup_attempts=config.max_startup_attempts,
            notify=notify,
        )

    # --- lifecycle ---

    def rebuild(self) -> int:
        """Rebuild the index from the store. Returns the number of entries indexed."""
        try:
            documents = list(self.store.list_all_documents())
        except Exception:
            log.warning("Document store unavailable during rebuild", exc_info=True)
            documents = []
        self.index.rebuild_all(documents)
        return self.index.entry_count()

    def start(self, *, block: bool = False) -> bool:
        """Build the initial index, retrying a bounded number of times while it stays empty.

        With ``block=False`` the retry runs on a timer thread; with ``block=True``
        this call sleeps between attempts and returns the final outcome.
        """
        while True:
            self._startup_attempts += 1
            if self.rebuild() > 0:
                self._notify(NOTICE_INITIALIZED)
                return True

            if self._startup_attempts >= self._max_startup_attempts:
                log.warning("Index still empty after %d attempts", self._startup_attempts)
                self._notify(NOTICE_INIT_FAILED)
                return False

            log.warning(
                "Index empty after startup attempt %d, retrying in %.1fs",
                self._startup_attempts, self._startup_retry_delay,
            )
            if not block:
                self._retry_timer = threading.Timer(self._startup_retry_delay, self._retry_start)
                self._retry_timer.daemon = True
                self._retry_timer.start()
                return False
            time.sleep(self._startup_retry_delay)

    def _retry_start(self) -> None:
        try:
            self.start()
        except Exception:
            log.error("Startup retry failed", exc_info=True)

    def stop(self) -> None:
        """Cancel the startup retry and any pending re-index."""
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None
        self._debouncer.cancel_all()

    def flush(self) -> int:
        """Apply pending debounced re-indexes immediately."""
        return self._debouncer.flush()

    # --- inbound document events ---

    def on_document_changed(self, source_id: str, metadata: MetadataSource) -> None:
        """Re-index *source_id* once edits settle.

        *metadata* may be a zero-argument loader; it is called when the
        debounced re-index runs, and a ``None`` result skips it.
        """
        self._schedule_upsert(source_id, metadata)

    def on_document_created(self, source_id: str, metadata: MetadataSource) -> None:
        self._schedule_upsert(source_id, metadata)

    def on_document_deleted(self, source_id: str) -> None:
        with self._events_lock:
            self._bump_generation(source_id)
            self._debouncer.cancel(source_id)
            self.index.remove_document(source_id)

    def on_document_renamed(
        self,
        source_id: str,
        new_title: str,
        new_source_id: str | None = None,
    ) -> None:
        with self._events_lock:
            # A pending edit must land under the old id before the entries move
            self._debouncer.flush(source_id)
            if new_source_id is not None and new_source_id != source_id:
                self._bump_generation(source_id)
                self._bump_generation(new_source_id)
                self._debouncer.cancel(new_source_id)
            self.index.rename_document(source_id, new_title, new_source_id)

    def _bump_generation(self, source_id: str) -> None:
        self._generations[source_id] = self._generations.get(source_id, 0) + 1

    def _schedule_upsert(self, source_id: str, metadata: MetadataSource) -> None:
        with self._events_lock:
            generation = self._generations.get(source_id, 0)
            self._debouncer.schedule(source_id, self._apply_upsert, source_id, metadata, generation)

    def _apply_upsert(self, source_id: str, metadata: MetadataSource, generation: int) -> None:
        if callable(metadata):
            metadata = metadata()
            if metadata is None:
                return
        with self._events_lock:
            # Deleted or moved away after this re-index was scheduled
            if self._generations.get(source_id, 0) != generation:
                log.debug("Dropping stale re-index of %s", source_id)
                return
            self.index.upsert_document(source_id, metadata)

    # --- editor requests ---

    def lookup(self, query: str) -> list[IndexEntry]:
        return match(self.index, query, self.max_results)

    def request_suggestion(self, line: str, cursor: int) -> Suggestion | None:
        """Longest phrase around *cursor* that has any match, with its matches."""
        if not 0 <= cursor <= len(line):
            return None

        span_end_extra = 0
        if self.trigger_key:
            size = len(self.trigger_key)
            if cursor < size or line[cursor - size:cursor] != self.trigger_key:
                return None
            # Scan the text before the trigger; the replacement swallows the trigger
            cursor -= size
            span_end_extra = size

        found = find_phrase(line, cursor, lambda text: self.lookup(text) or None)
        if found is None:
            return None
        phrase, matches = found
        end = phrase.end
        if span_end_extra and phrase.end == cursor:
            end += span_end_extra
        return Suggestion(span_start=phrase.start, span_end=end, query=phrase.text, matches=matches)

    def apply_suggestion(self, suggestion: Suggestion, entry: IndexEntry) -> Replacement:
        return Replacement(
            suggestion.span_start,
            suggestion.span_end,
            resolve_link_text(entry, suggestion.query),
        )

    def _exact_match(self, text: str) -> IndexEntry | None:
        folded = text.casefold()
        for entry in self.lookup(text):
            if entry.display_text.casefold() == folded:
                return entry
        return None

    def request_immediate_link(self, line: str, cursor: int) -> Replacement | None:
        """Link the longest phrase at *cursor* whose match is shown exactly as typed."""
        found = find_phrase(line, cursor, self._exact_match)
        if found is None:
            if next(iter_candidate_phrases(line, cursor), None) is None:
                self._notify(NOTICE_NO_PHRASE)
            else:
                self._notify(NOTICE_NO_MATCH)
            return None

        phrase, entry = found
        self._notify(f"Linked: {entry.display_text}")
        return Replacement(phrase.start, phrase.end, resolve_link_text(entry, phrase.text))
