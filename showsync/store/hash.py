"""Stable hashing utilities for the store.

This module provides deterministic hashes for cache keys and for
detecting changes in a collection's display fields.
"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def canonical_json(value: Any) -> str:
    """Serialize a value to JSON with a stable key order.

    Args:
        value: JSON-serializable value.

    Returns:
        Compact JSON string with sorted keys.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def stable_hash(value: Any) -> str:
    """Compute a SHA-256 hex digest of a value's canonical JSON.

    Args:
        value: JSON-serializable value.

    Returns:
        64-character hex digest.
    """
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def compute_info_hash(
    title: str | None,
    publisher: str | None,
    image: str | None,
) -> str:
    """Compute the content hash of a collection's mutable display fields.

    Args:
        title: Collection title.
        publisher: Collection publisher.
        image: Collection image URL.

    Returns:
        SHA-256 hex digest of the display fields.

    Examples:
        >>> len(compute_info_hash("Tech Talk", "Pod Co", None))
        64
    """
    return stable_hash({"title": title, "publisher": publisher, "image": image})


def normalize_args(args: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize operation arguments for hashing.

    Drops ``None`` values and strips surrounding whitespace from strings so
    that equivalent calls hash identically.

    Args:
        args: Raw operation arguments.

    Returns:
        Normalized copy of the arguments.
    """
    normalized: dict[str, Any] = {}
    for key, value in args.items():
        if value is None:
            continue
        normalized[key] = value.strip() if isinstance(value, str) else value
    return normalized
