"""Tests for autolinker.index — entry derivation and the mutation protocol."""

from __future__ import annotations

import threading

import pytest

from autolinker.index import LinkIndex, display_text_for, entries_for
from autolinker.models import DocumentMetadata, EntryKind, IndexEntry


def _title_entry(source_id: str, title: str) -> IndexEntry:
    return IndexEntry(EntryKind.TITLE, source_id, title, title, title)


class TestEntriesFor:
    def test_all_kinds_in_order(self):
        meta = DocumentMetadata(
            title="Paris", tags=["travel"], headings=["Museums"], block_ids=["abc"],
        )
        pairs = entries_for("Paris.md", meta)
        kinds = [entry.kind for _, entry in pairs]
        assert kinds == [EntryKind.TITLE, EntryKind.TAG, EntryKind.HEADING, EntryKind.BLOCK]

    def test_display_texts(self):
        meta = DocumentMetadata(
            title="Paris", tags=["travel"], headings=["Museums"], block_ids=["abc"],
        )
        displays = [entry.display_text for _, entry in entries_for("Paris.md", meta)]
        assert displays == ["Paris", "#travel", "Paris > Museums", "Paris > #abc"]

    def test_blank_tags_dropped(self):
        meta = DocumentMetadata(title="T", tags=[" ", " spaced "])
        targets = [entry.target for _, entry in entries_for("t", meta)]
        assert targets == ["T", "spaced"]

    def test_display_text_for(self):
        assert display_text_for(EntryKind.TAG, "Note", "x") == "#x"
        assert display_text_for(EntryKind.TITLE, "Note", "Note") == "Note"


class TestAdd:
    def test_key_is_normalized(self):
        index = LinkIndex()
        index.add("Café Culture", _title_entry("c", "Café Culture"))
        assert "caféculture" not in index
        assert "cafeculture" in index

    def test_duplicate_identity_stored_once(self):
        index = LinkIndex()
        entry = _title_entry("a", "Alpha")
        assert index.add("Alpha", entry) is True
        assert index.add("Alpha", entry) is False
        assert index.get("alpha") == [entry]

    def test_same_identity_different_display_still_deduplicated(self):
        index = LinkIndex()
        index.add("Alpha", _title_entry("a", "Alpha"))
        index.add("alpha", IndexEntry(EntryKind.TITLE, "a", "Alpha", "Alpha", "other"))
        assert len(index.get("alpha")) == 1

    def test_different_sources_share_bucket(self):
        index = LinkIndex()
        index.add("Alpha", _title_entry("a", "Alpha"))
        index.add("alpha", _title_entry("b", "alpha"))
        assert [e.source_id for e in index.get("alpha")] == ["a", "b"]

    def test_empty_key_skipped(self):
        index = LinkIndex()
        assert index.add("!!!", _title_entry("x", "!!!")) is False
        assert len(index) == 0


class TestRemoveDocument:
    def test_removes_all_entries_and_empty_buckets(self, sample_index):
        removed = sample_index.remove_document("places/Paris.md")
        assert removed == 6
        for key in ("paris", "travel", "france", "museums", "gettingaround", "louvrehours"):
            assert key not in sample_index

    def test_shared_bucket_keeps_others(self):
        index = LinkIndex()
        index.add_document("a.md", DocumentMetadata(title="Shared"))
        index.add_document("b.md", DocumentMetadata(title="Other", headings=["Shared"]))
        index.remove_document("a.md")
        assert [e.source_id for e in index.get("shared")] == ["b.md"]

    def test_unknown_source(self, sample_index):
        before = sample_index.entry_count()
        assert sample_index.remove_document("nope.md") == 0
        assert sample_index.entry_count() == before


class TestRenameDocument:
    def test_title_entry_follows_new_title(self, sample_index):
        sample_index.rename_document("places/Prague.md", "Praha")
        assert "prague" not in sample_index
        [entry] = sample_index.get("praha")
        assert entry.kind is EntryKind.TITLE
        assert entry.target == "Praha"
        assert entry.display_text == "Praha"
        assert entry.source_title == "Praha"

    def test_other_kinds_keep_their_keys(self, sample_index):
        keys_before = set(sample_index.keys())
        sample_index.rename_document("places/Paris.md", "City of Light")
        keys_after = set(sample_index.keys())
        assert keys_after == (keys_before - {"paris"}) | {"cityoflight"}

        [heading] = sample_index.get("museums")
        assert heading.source_title == "City of Light"
        assert heading.display_text == "City of Light > Museums"
        [block] = sample_index.get("louvrehours")
        assert block.source_title == "City of Light"

    def test_new_source_id(self, sample_index):
        sample_index.rename_document("places/Prague.md", "Praha", "cz/Praha.md")
        [entry] = sample_index.get("praha")
        assert entry.source_id == "cz/Praha.md"
        assert sample_index.remove_document("places/Prague.md") == 0

    def test_move_onto_existing_document_replaces_it(self):
        index = LinkIndex()
        index.add_document("a.md", DocumentMetadata(title="A", headings=["Intro"], tags=["t"]))
        index.add_document("b.md", DocumentMetadata(title="B", headings=["Intro", "Only In B"]))
        index.rename_document("a.md", "B", "b.md")

        [intro] = index.get("intro")
        assert intro.source_id == "b.md"
        assert intro.display_text == "B > Intro"
        assert "onlyinb" not in index
        assert [e.identity for e in index.get("b")] == [(EntryKind.TITLE, "b.md", "B")]
        assert "a" not in index
        for _, entries in index.items():
            identities = [e.identity for e in entries]
            assert len(identities) == len(set(identities))

    def test_returns_updated_count(self, sample_index):
        assert sample_index.rename_document("places/Paris.md", "P2") == 6
        assert sample_index.rename_document("missing.md", "X") == 0


class TestUpsertDocument:
    def test_replaces_previous_entries(self, sample_index):
        sample_index.upsert_document(
            "places/Paris.md",
            DocumentMetadata(title="Paris", headings=["Cafés"]),
        )
        assert "museums" not in sample_index
        assert "travel" not in sample_index
        assert "cafes" in sample_index
        assert len(sample_index.get("paris")) == 1

    def test_inserts_new_document(self):
        index = LinkIndex()
        assert index.upsert_document("n.md", DocumentMetadata(title="Fresh", tags=["t"])) == 2
        assert index.entry_count() == 2


class TestRebuildAll:
    def test_clears_previous_state(self, sample_index):
        sample_index.rebuild_all([("x.md", DocumentMetadata(title="Only"))])
        assert sample_index.keys() == ["only"]

    def test_counts(self, sample_index):
        # Paris 6, New York City 2, Prague 1, Café Culture 1
        assert sample_index.entry_count() == 10

    def test_reentrant_request_dropped(self):
        index = LinkIndex()
        nested: list[bool] = []

        def documents():
            nested.append(index.rebuild_all([("inner.md", DocumentMetadata(title="Inner"))]))
            yield "outer.md", DocumentMetadata(title="Outer")

        assert index.rebuild_all(documents()) is True
        assert nested == [False]
        assert index.keys() == ["outer"]
        assert index.is_rebuilding is False

    def test_flag_reset_after_failure(self):
        index = LinkIndex()

        def documents():
            raise OSError("store down")
            yield

        with pytest.raises(OSError):
            index.rebuild_all(documents())
        assert index.is_rebuilding is False
        assert index.rebuild_all([]) is True

    def test_reads_see_complete_state(self):
        index = LinkIndex()
        index.add_document("a.md", DocumentMetadata(title="Alpha", headings=["One", "Two"]))
        stop = threading.Event()
        seen_sizes: set[int] = set()

        def reader():
            while not stop.is_set():
                seen_sizes.add(sum(len(v) for _, v in index.items()))

        t = threading.Thread(target=reader)
        t.start()
        try:
            for _ in range(200):
                index.upsert_document("a.md", DocumentMetadata(title="Alpha", headings=["One", "Two"]))
        finally:
            stop.set()
            t.join()
        assert seen_sizes == {3}
