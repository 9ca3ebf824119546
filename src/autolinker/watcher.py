"""Watchdog-based daemon that keeps the link index in step with the vault."""

from __future__ import annotations

import functools
import logging
import signal
import threading
import time

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .engine import LinkEngine
from .models import DocumentMetadata
from .vault import MarkdownVault, is_markdown

log = logging.getLogger(__name__)


class _VaultEventHandler(FileSystemEventHandler):
    """Translates file events for markdown notes into engine calls."""

    def __init__(self, vault: MarkdownVault, engine: LinkEngine):
        super().__init__()
        self._vault = vault
        self._engine = engine

    def _load(self, path: str) -> DocumentMetadata | None:
        try:
            return self._vault.read_metadata(path)
        except OSError:
            # Gone again before we could read it; a delete event follows
            log.debug("Could not read %s", path, exc_info=True)
            return None

    def _index(self, path: str, *, created: bool) -> None:
        source_id = self._vault.source_id_for(path)
        # Read when the debounced re-index runs, not on every save
        loader = functools.partial(self._load, path)
        if created:
            self._engine.on_document_created(source_id, loader)
        else:
            self._engine.on_document_changed(source_id, loader)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory or not is_markdown(str(event.src_path)):
            return
        log.debug("Created %s", event.src_path)
        self._index(str(event.src_path), created=True)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory or not is_markdown(str(event.src_path)):
            return
        log.debug("Modified %s", event.src_path)
        self._index(str(event.src_path), created=False)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory or not is_markdown(str(event.src_path)):
            return
        log.debug("Deleted %s", event.src_path)
        self._engine.on_document_deleted(self._vault.source_id_for(str(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        src = str(event.src_path)
        dest = str(event.dest_path)
        if is_markdown(src) and is_markdown(dest):
            old_id = self._vault.source_id_for(src)
            new_id = self._vault.source_id_for(dest)
            log.debug("Renamed %s -> %s", old_id, new_id)
            self._engine.on_document_renamed(old_id, self._vault.path_for(new_id).stem, new_id)
        elif is_markdown(src):
            self._engine.on_document_deleted(self._vault.source_id_for(src))
        elif is_markdown(dest):
            self._index(dest, created=True)


def watch(engine: LinkEngine, vault: MarkdownVault) -> None:
    """Index the vault and keep the index current. Blocks until interrupted."""
    if not vault.root.is_dir():
        log.error("Vault directory does not exist: %s", vault.root)
        raise SystemExit(1)

    log.info("Building initial index...")
    engine.start()

    handler = _VaultEventHandler(vault, engine)
    observer = Observer()
    observer.schedule(handler, str(vault.root), recursive=True)

    stop_event = threading.Event()

    def _shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        log.info("Received %s, shutting down...", sig_name)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    observer.start()
    log.info("Watching %s for changes (Ctrl+C to stop)", vault.root)

    try:
        while not stop_event.is_set():
            time.sleep(1)
    finally:
        observer.stop()
        observer.join()
        engine.stop()
        log.info("Watcher stopped")
