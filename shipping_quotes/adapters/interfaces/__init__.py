"""
Interfaces package for the adapters.

Abstract base interfaces used to standardize interactions with external APIs.
"""

from .cache import CacheStrategy
from .connector import APIConnector, HttpMethod

__all__ = [
    'CacheStrategy',
    'APIConnector',
    'HttpMethod',
]
