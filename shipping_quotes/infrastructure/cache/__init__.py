"""Caching implementations for the Shipping Quotes Proxy."""

from shipping_quotes.infrastructure.cache.memory_cache import QuoteCache

__all__ = ["QuoteCache"]
