"""Upstream catalog operations.

This module provides typed access to shows and episodes:
- Explicit upstream payload shapes that ignore unknown fields
- One normalizer per type
- Offset-cursor pagination and a bounded recent-window fetch for sync
"""

from showsync.catalog.fetcher import CatalogFetcher, clamp_page_size
from showsync.catalog.models import Episode, EpisodePage, SearchPage, Show
from showsync.catalog.normalize import (
    extract_offset_cursor,
    normalize_episode,
    normalize_show,
)


__all__ = [
    # Fetcher
    "CatalogFetcher",
    "clamp_page_size",
    # Models
    "Episode",
    "EpisodePage",
    "SearchPage",
    "Show",
    # Normalization
    "extract_offset_cursor",
    "normalize_episode",
    "normalize_show",
]
