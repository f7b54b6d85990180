"""
In-memory caching of the last classification with expiry.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from models.classification import ClassificationRecord


@dataclass(frozen=True)
class CacheEntry:
    """A cached record together with when it was computed and how long it lives."""
    record: ClassificationRecord
    computed_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.computed_at <= self.ttl


class ResultCache:
    """
    Holds at most one ClassificationRecord with a time-to-live.

    Entries are immutable and swapped in one assignment under the lock, so a
    reader sees either a whole entry or none. Expiry is evaluated on read;
    nothing runs in the background.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Time-to-live in seconds (default: 5 minutes)
            clock: Monotonic time source, replaceable in tests
        """
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must not be negative, got {ttl_seconds}")
        self.ttl = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[ClassificationRecord]:
        """
        Get the cached record.

        Returns:
            The cached record or None if empty or expired
        """
        with self._lock:
            entry = self._entry
        if entry is None or not entry.is_valid(self._clock()):
            return None
        return entry.record

    def set(self, record: ClassificationRecord) -> None:
        """Replace the cached record and restart its expiry clock."""
        entry = CacheEntry(record=record, computed_at=self._clock(), ttl=self.ttl)
        with self._lock:
            self._entry = entry

    def invalidate(self) -> None:
        """Drop the cached record."""
        with self._lock:
            self._entry = None
