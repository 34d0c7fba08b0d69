"""Production wiring of the listing cache and its invalidation coordinator."""

from __future__ import annotations

from django.conf import settings

from modules.core.cache import CacheInvalidationCoordinator, get_listing_cache
from modules.products.constants import LISTING_CACHE_PATTERN


def build_listing_invalidator() -> CacheInvalidationCoordinator:
    from modules.products.tasks import invalidate_listing_cache

    return CacheInvalidationCoordinator(
        cache=get_listing_cache(),
        patterns=[LISTING_CACHE_PATTERN],
        retry_scheduler=(
            invalidate_listing_cache.delay
            if settings.LISTING_CACHE_RETRY_ENABLED
            else None
        ),
    )
