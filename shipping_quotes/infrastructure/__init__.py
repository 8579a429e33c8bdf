"""Infrastructure layer for the Shipping Quotes Proxy."""
