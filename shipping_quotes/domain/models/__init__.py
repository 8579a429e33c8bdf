"""Domain models for the Shipping Quotes Proxy."""

from shipping_quotes.domain.models.catalog import CatalogEntry, SeedLoadResult
from shipping_quotes.domain.models.quote import ProxyRequest, ProxyResponse, QuoteRequest

__all__ = ["CatalogEntry", "SeedLoadResult", "ProxyRequest", "ProxyResponse", "QuoteRequest"]
