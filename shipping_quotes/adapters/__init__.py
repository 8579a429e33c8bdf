"""
Adapters package for the Shipping Quotes Proxy.

This package contains components for integrating with external APIs:
- Abstract interfaces that define the contracts for adapters
- Concrete implementations for specific external APIs
"""
