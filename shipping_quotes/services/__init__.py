"""
Services package for the Shipping Quotes Proxy.

Service classes orchestrate application workflows, coordinating between
domain models, the cache and external adapters.
"""
