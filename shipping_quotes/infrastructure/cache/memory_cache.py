import copy
import time
from typing import Any, Callable, Dict, Optional

from shipping_quotes.adapters.interfaces.cache import CacheStrategy
from shipping_quotes.core.logging import get_logger

logger = get_logger(__name__)


class CacheItem:
    """A stored quote list and the clock reading it was stored at."""

    __slots__ = ("value", "stored_at")

    def __init__(self, value: Any, stored_at: float):
        self.value = value
        self.stored_at = stored_at

    def is_expired(self, now: float, ttl: float) -> bool:
        # Valid only while strictly younger than the TTL
        return now - self.stored_at >= ttl


class QuoteCache(CacheStrategy[str, Any]):
    """
    In-memory, time-bounded memo of shipping quotes.

    Expiry is checked on read only; a dead entry stays in the mapping until a
    read finds it or the size bound forces a purge.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            ttl: Maximum age of a valid entry, in seconds
            max_entries: Optional bound on stored entries
            clock: Monotonic time source in seconds
        """
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheItem] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[Any]:
        """Return a copy of the live value for ``key``, dropping it if it has expired."""
        item = self._entries.get(key)
        if item is None:
            logger.debug(f"Quote cache miss: {key}")
            return None

        if item.is_expired(self._clock(), self.ttl):
            self._entries.pop(key, None)
            logger.debug(f"Quote cache entry expired: {key}")
            return None

        logger.debug(f"Quote cache hit: {key}")
        return copy.deepcopy(item.value)

    async def set(self, key: str, value: Any) -> bool:
        """Store a copy of ``value``, replacing any previous entry for the key."""
        if self.max_entries and key not in self._entries and len(self._entries) >= self.max_entries:
            self._make_room()

        # Re-inserting moves the key to the end so eviction stays oldest-first
        self._entries.pop(key, None)
        self._entries[key] = CacheItem(copy.deepcopy(value), self._clock())
        logger.debug(f"Quote cached for {self.ttl}s: {key}")
        return True

    def purge_expired(self) -> int:
        """
        Drop every dead entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, item in self._entries.items() if item.is_expired(now, self.ttl)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired quotes")
        return len(expired)

    def _make_room(self) -> None:
        self.purge_expired()
        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Evicted quote {oldest} to stay within {self.max_entries} entries")
