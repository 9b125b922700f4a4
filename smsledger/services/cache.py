"""Bounded LRU of recently seen fingerprints.

Thread-safe; entries are evicted either when capacity is exceeded (least
recently used first) or when `cleanup` finds them older than a cutoff.
"""

import logging
import threading
from collections import OrderedDict

from smsledger.config import settings

logger = logging.getLogger(__name__)


class FingerprintCache:
    """Fingerprint -> last-seen timestamp (epoch ms)."""

    def __init__(self, capacity: int | None = None):
        self.capacity = capacity if capacity is not None else settings.cache_capacity
        if self.capacity <= 0:
            raise ValueError(f"Cache capacity must be positive, got {self.capacity}")
        self._entries: OrderedDict[str, int] = OrderedDict()
        self._lock = threading.Lock()

    def add(self, fingerprint: str, timestamp: int) -> None:
        """Insert or refresh a fingerprint, evicting the LRU entry when full."""
        with self._lock:
            self._entries[fingerprint] = timestamp
            self._entries.move_to_end(fingerprint)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted fingerprint {evicted[:8]}... (capacity {self.capacity})")

    def contains(self, fingerprint: str) -> bool:
        """Look up a fingerprint; a hit counts as a use."""
        with self._lock:
            if fingerprint not in self._entries:
                return False
            self._entries.move_to_end(fingerprint)
            return True

    def cleanup(self, older_than: int) -> int:
        """
        Remove entries whose timestamp is before a cutoff.

        Args:
            older_than: Cutoff in epoch milliseconds

        Returns:
            Number of entries removed
        """
        with self._lock:
            stale_keys = [key for key, seen_at in self._entries.items() if seen_at < older_than]
            for key in stale_keys:
                del self._entries[key]

        if stale_keys:
            logger.debug(f"Removed {len(stale_keys)} stale fingerprints")
        return len(stale_keys)

    def discard(self, fingerprint: str) -> bool:
        """Forget a fingerprint. Returns True if it was cached."""
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
