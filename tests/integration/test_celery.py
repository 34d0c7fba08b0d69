"""Celery wiring and the deferred listing-cache invalidation task."""

from unittest.mock import MagicMock

import pytest

from modules.core.cache import CacheInvalidationCoordinator, get_listing_cache
from modules.products.constants import LISTING_CACHE_PATTERN, listing_cache_key
from modules.products.tasks import invalidate_listing_cache

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_task_is_registered_by_name(self):
        from config import celery_app

        assert "products.invalidate_listing_cache" in celery_app.tasks


class TestInvalidateListingCacheTask:
    def test_removes_listing_pages(self):
        cache = get_listing_cache()
        cache.set(listing_cache_key(1, 12), {"items": []})
        cache.set(listing_cache_key(2, 12), {"items": []})

        removed = invalidate_listing_cache.delay(LISTING_CACHE_PATTERN).get()

        assert removed == 2
        assert cache.get(listing_cache_key(1, 12)) is None

    def test_coordinator_hands_failed_pattern_to_task(self):
        cache = get_listing_cache()
        cache.set(listing_cache_key(1, 12), {"items": []})
        broken = MagicMock()
        broken.delete_pattern.side_effect = ConnectionError("redis down")
        coordinator = CacheInvalidationCoordinator(
            broken, [LISTING_CACHE_PATTERN], retry_scheduler=invalidate_listing_cache.delay
        )

        coordinator.invalidate_after_order()

        assert cache.get(listing_cache_key(1, 12)) is None
