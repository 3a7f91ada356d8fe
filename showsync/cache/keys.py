"""Stable cache keys for catalog operations."""

from collections.abc import Mapping
from typing import Any

from showsync.store.hash import normalize_args, stable_hash


def make_cache_key(operation: str, args: Mapping[str, Any]) -> str:
    """Build the cache key of an operation call.

    Equivalent argument maps (same values, any key order, ``None`` values
    omitted) produce the same key.

    Args:
        operation: Canonical operation name.
        args: Operation arguments.

    Returns:
        Key of the form ``<operation>:<sha256 hex>``.

    Examples:
        >>> make_cache_key("search", {"term": "a", "limit": None}) == make_cache_key(
        ...     "search", {"term": "a"}
        ... )
        True
    """
    return f"{operation}:{stable_hash(normalize_args(args))}"
