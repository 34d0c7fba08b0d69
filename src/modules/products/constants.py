"""Catalog constants: listing cache key space and page bounds."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

LISTING_CACHE_NAMESPACE = "products"
LISTING_CACHE_PATTERN = f"{LISTING_CACHE_NAMESPACE}:*"

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50


def listing_cache_key(
    page: int,
    limit: int,
    category: Optional[UUID] = None,
    search: Optional[str] = None,
) -> str:
    """Build the cache key of one listing page, e.g. ``products:1:12:all:none``."""
    return (
        f"{LISTING_CACHE_NAMESPACE}:{page}:{limit}:"
        f"{category or 'all'}:{search or 'none'}"
    )
