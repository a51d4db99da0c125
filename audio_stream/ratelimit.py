from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


class RateLimiter:
    """Fixed-window admission control keyed by client identifier.

    Entries expire lazily: a request arriving after ``window_reset_at``
    replaces the stored entry. Stale entries are swept at most once per
    window from inside :meth:`admit`, which keeps the table bounded without a
    background task.
    """

    def __init__(
        self,
        limit: int = 30,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._next_cleanup = clock() + window

    def admit(self, identifier: str) -> bool:
        with self._lock:
            now = self._clock()
            if now >= self._next_cleanup:
                self._cleanup_locked(now)

            entry = self._entries.get(identifier)
            if entry is None or now >= entry.window_reset_at:
                self._entries[identifier] = RateLimitEntry(
                    count=1, window_reset_at=now + self.window
                )
                return True
            if entry.count >= self.limit:
                return False
            entry.count += 1
            return True

    def retry_after(self, identifier: str) -> float:
        """Seconds until ``identifier`` gets a fresh window."""
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return 0.0
            return max(0.0, entry.window_reset_at - self._clock())

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            return self._cleanup_locked(self._clock())

    def _cleanup_locked(self, now: float) -> int:
        stale = [
            key
            for key, entry in self._entries.items()
            if now >= entry.window_reset_at
        ]
        for key in stale:
            del self._entries[key]
        self._next_cleanup = now + self.window
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
