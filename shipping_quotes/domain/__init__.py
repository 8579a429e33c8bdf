"""Domain layer for the Shipping Quotes Proxy."""
