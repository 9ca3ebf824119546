"""Shared fixtures for autolinker tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from autolinker.config import Config
from autolinker.engine import LinkEngine
from autolinker.index import LinkIndex
from autolinker.models import DocumentMetadata


class FakeStore:
    """In-memory document store."""

    def __init__(self, documents: dict[str, DocumentMetadata] | None = None):
        self.documents = dict(documents or {})
        self.calls = 0

    def list_all_documents(self):
        self.calls += 1
        return list(self.documents.items())


@pytest.fixture
def sample_documents() -> dict[str, DocumentMetadata]:
    return {
        "places/Paris.md": DocumentMetadata(
            title="Paris",
            tags=["travel", "france"],
            headings=["Museums", "Getting Around"],
            block_ids=["louvre-hours"],
        ),
        "places/New York City.md": DocumentMetadata(title="New York City", headings=["Subway"]),
        "places/Prague.md": DocumentMetadata(title="Prague"),
        "Café Culture.md": DocumentMetadata(title="Café Culture"),
    }


@pytest.fixture
def sample_index(sample_documents) -> LinkIndex:
    index = LinkIndex()
    index.rebuild_all(sample_documents.items())
    return index


@pytest.fixture
def store(sample_documents) -> FakeStore:
    return FakeStore(sample_documents)


@pytest.fixture
def notices() -> list[str]:
    return []


@pytest.fixture
def engine(store, notices) -> LinkEngine:
    eng = LinkEngine(store, debounce_seconds=60, notify=notices.append)
    eng.start(block=True)
    yield eng
    eng.stop()


@pytest.fixture
def sample_vault(tmp_path) -> Path:
    vault = tmp_path / "vault"
    (vault / "places").mkdir(parents=True)
    (vault / "places" / "Paris.md").write_text(
        "---\ntags: [travel, france]\n---\n"
        "# Museums\n\nThe Louvre opens at nine. ^louvre-hours\n\n"
        "## Getting Around\n\nTake the metro.\n"
    )
    (vault / "Prague.md").write_text("Old town.\n")
    (vault / ".obsidian").mkdir()
    (vault / ".obsidian" / "Hidden.md").write_text("# Not a note\n")
    (vault / "notes.txt").write_text("not markdown")
    return vault


@pytest.fixture
def sample_config(sample_vault) -> Config:
    return Config(vault_path=sample_vault)
