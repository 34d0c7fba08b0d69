"""Read-side cache access and post-commit invalidation.

The listing cache is an injected capability: services and the
``CacheInvalidationCoordinator`` receive an object satisfying
``IPatternCache`` instead of importing a global client.  In production
that object is the django-redis backend configured under
``settings.LISTING_CACHE_ALIAS``, which supports ``delete_pattern``
natively (SCAN + DEL, honouring ``KEY_PREFIX`` and key versions).

Invalidation is best effort: failures are logged and never propagate to
the caller of a committed order or catalog change.  Stale pages expire on
their own TTL.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, Protocol, Tuple

import structlog
from django.conf import settings
from django.core.cache import caches

logger = structlog.get_logger(__name__)


class IPatternCache(Protocol):
    """Key/value cache that can bulk-delete keys matching a glob pattern."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any, timeout: Optional[int] = None) -> Any: ...

    def delete_pattern(self, pattern: str) -> int: ...


def get_listing_cache() -> IPatternCache:
    """Return the cache backend that stores product-listing pages."""
    return caches[settings.LISTING_CACHE_ALIAS]


RetryScheduler = Callable[[str], Any]


class CacheInvalidationCoordinator:
    """Removes every listing page that may reflect pre-change inventory.

    ``patterns`` are glob patterns in the cache's key space
    (e.g. ``"products:*"``).  ``retry_scheduler`` is called with a
    pattern whose deletion failed; production wires it to the Celery
    task ``products.invalidate_listing_cache``.
    """

    def __init__(
        self,
        cache: IPatternCache,
        patterns: Iterable[str],
        retry_scheduler: Optional[RetryScheduler] = None,
    ) -> None:
        self._cache = cache
        self._patterns: Tuple[str, ...] = tuple(patterns)
        self._retry_scheduler = retry_scheduler

    @property
    def patterns(self) -> Tuple[str, ...]:
        return self._patterns

    def invalidate_after_order(self) -> None:
        """Invoked once an order has committed (stock went down)."""
        self._invalidate(reason="order_committed")

    def invalidate_after_catalog_change(self) -> None:
        """Invoked once a restock, adjustment or price change has committed."""
        self._invalidate(reason="catalog_changed")

    def _invalidate(self, reason: str) -> None:
        for pattern in self._patterns:
            log = logger.bind(pattern=pattern, reason=reason)
            try:
                removed = self._cache.delete_pattern(pattern)
            except Exception as exc:
                log.warning(
                    "cache.invalidation_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                self._schedule_retry(pattern)
                continue
            log.info("cache.invalidated", removed=removed)

    def _schedule_retry(self, pattern: str) -> None:
        if self._retry_scheduler is None:
            return
        try:
            self._retry_scheduler(pattern)
        except Exception as exc:
            logger.warning(
                "cache.invalidation_retry_not_scheduled",
                pattern=pattern,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        else:
            logger.info("cache.invalidation_retry_scheduled", pattern=pattern)
