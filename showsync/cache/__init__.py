"""Read-through caching of upstream catalog results."""

from showsync.cache.keys import make_cache_key
from showsync.cache.metrics import CacheMetrics
from showsync.cache.read_through import ReadThroughCache


__all__ = [
    "CacheMetrics",
    "ReadThroughCache",
    "make_cache_key",
]
