"""Per-key debouncing on top of threading.Timer."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from typing import Any

log = logging.getLogger(__name__)


class KeyedDebouncer:
    """Run the latest scheduled call per key once *delay* seconds pass quietly.

    Scheduling again for the same key cancels the pending call.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._pending: dict[Hashable, tuple[threading.Timer, Callable[..., Any], tuple]] = {}
        self._lock = threading.Lock()

    def schedule(self, key: Hashable, func: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous[0].cancel()
            timer = threading.Timer(self.delay, self._fire, args=(key,))
            timer.daemon = True
            self._pending[key] = (timer, func, args)
            timer.start()
        log.debug("Scheduled %r in %.2fs", key, self.delay)

    def is_pending(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending[0].cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for timer, _, _ in pending:
            timer.cancel()

    def flush(self, key: Hashable | None = None) -> int:
        """Run pending calls now (all of them, or just *key*'s). Returns how many ran."""
        with self._lock:
            if key is None:
                pending = list(self._pending.values())
                self._pending.clear()
            else:
                item = self._pending.pop(key, None)
                pending = [item] if item is not None else []
        for timer, func, args in pending:
            timer.cancel()
            self._run(func, args)
        return len(pending)

    def _fire(self, key: Hashable) -> None:
        with self._lock:
            pending = self._pending.get(key)
            # A newer schedule() replaced this timer after it had already started
            if pending is None or pending[0] is not threading.current_thread():
                return
            del self._pending[key]
        self._run(pending[1], pending[2])

    def _run(self, func: Callable[..., Any], args: tuple) -> None:
        try:
            func(*args)
        except Exception:
            log.error("Debounced call %r failed", func, exc_info=True)
