"""Proxy path: rate-limited, cached catalog operations."""

from showsync.proxy.router import (
    CACHE_TTLS,
    OPERATION_ALIASES,
    CatalogProxy,
    canonical_operation,
)


__all__ = [
    "CACHE_TTLS",
    "OPERATION_ALIASES",
    "CatalogProxy",
    "canonical_operation",
]
