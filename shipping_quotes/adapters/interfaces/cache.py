from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

K = TypeVar('K')
V = TypeVar('V')


class CacheStrategy(Generic[K, V], ABC):
    """
    Contract for memoizing partner API responses.

    Services hold a ``CacheStrategy`` rather than a concrete store, so the
    in-process cache can be swapped without touching the quote pipeline.
    """

    @abstractmethod
    async def get(self, key: K) -> Optional[V]:
        """
        Look up a live entry.

        Returns:
            The stored value, or None when the key is absent or has expired
        """

    @abstractmethod
    async def set(self, key: K, value: V) -> bool:
        """
        Store ``value`` under ``key``, replacing what was there and
        restarting its lifetime.

        Returns:
            True once the value is stored
        """
