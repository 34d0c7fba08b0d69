"""Asynchronous catalog tasks."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.core.cache import get_listing_cache
from modules.products.constants import LISTING_CACHE_PATTERN

logger = structlog.get_logger(__name__)


@shared_task(
    name="products.invalidate_listing_cache",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=60,
    max_retries=5,
)
def invalidate_listing_cache(pattern: str = LISTING_CACHE_PATTERN) -> int:
    """Deferred retry of a listing-cache invalidation that failed inline."""
    removed = get_listing_cache().delete_pattern(pattern)
    logger.info("cache.invalidated", pattern=pattern, removed=removed, deferred=True)
    return removed
