"""Shipping quotes proxy between a Shopify storefront and the Yampi API."""

__version__ = "0.1.0"
