"""Catalog paging constants."""

# Upstream page size bounds
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 50

DEFAULT_SEARCH_LIMIT = 20
DEFAULT_ITEMS_LIMIT = 20

# Bounded recent window scanned per sync pass
SYNC_MAX_PAGES = 2
SYNC_PAGE_SIZE = 50
