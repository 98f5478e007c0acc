"""In-memory, versioned cache for decoded sheet rows."""
import logging
import time
from typing import Callable, Dict, Optional

from processor.models import CacheEntry

logger = logging.getLogger(__name__)


class SheetCache:
    """
    Process-lifetime cache keyed by sheet id and tab id.

    Staleness is tracked with a single last-modified clock shared by all
    keys: any successful `set` resets freshness for every key. There is no
    locking; concurrent writers to the same key resolve as last write wins.
    """

    POLL_INTERVAL = 60  # seconds

    def __init__(
        self,
        poll_interval: float = POLL_INTERVAL,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize an empty cache.

        Args:
            poll_interval: Seconds after which cached data is eligible for refresh
            clock: Returns the current epoch time in seconds
        """
        self.poll_interval = poll_interval
        self.clock = clock
        self.version = 0
        self.last_modified = clock()
        self._entries: Dict[str, CacheEntry] = {}

    @staticmethod
    def make_key(sheet_id: str, tab_id: str) -> str:
        """Build the cache key for a sheet tab."""
        return f"{sheet_id}-{tab_id}"

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, rows: list) -> CacheEntry:
        """
        Replace the entry for a key and bump the global version.

        Args:
            key: Cache key
            rows: Normalized rows to store

        Returns:
            The new CacheEntry
        """
        self.version += 1
        self.last_modified = self.clock()

        entry = CacheEntry(rows=rows, fetched_at=self.last_modified, version=self.version)
        self._entries[key] = entry

        logger.debug(f"Cached {len(rows)} rows for {key} (version {entry.version})")
        return entry

    def invalidate(self, key: str) -> bool:
        """
        Drop the entry for a key.

        Returns:
            True if an entry was removed
        """
        removed = self._entries.pop(key, None) is not None
        logger.info(f"Cache invalidated for {key}")
        return removed

    def is_stale(self) -> bool:
        """True once the poll interval has elapsed since the last refresh of any key."""
        return (self.clock() - self.last_modified) > self.poll_interval

    def __contains__(self, key: str) -> bool:
        return key in self._entries
