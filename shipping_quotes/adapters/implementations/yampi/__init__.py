"""Yampi (Dooki) merchant API adapter."""

from shipping_quotes.adapters.implementations.yampi.client import YampiClient

__all__ = ["YampiClient"]
