"""Catalog mirror with token-managed upstream access, caching, and sync."""

__version__ = "0.1.0"
