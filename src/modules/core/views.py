import time
from typing import Any, Dict

import structlog
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.cache import get_listing_cache

logger = structlog.get_logger(__name__)

HEALTH_CHECK_KEY = "_health_check"


def _probe_database() -> Dict[str, Any]:
    start = time.monotonic()
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def _probe_listing_cache() -> Dict[str, Any]:
    start = time.monotonic()
    cache = get_listing_cache()
    cache.set(HEALTH_CHECK_KEY, "ok", 10)
    if cache.get(HEALTH_CHECK_KEY) != "ok":
        raise ConnectionError("Cache read failed")
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    """GET /health

    Probes the database and the product listing cache.  A down cache
    degrades listings but not order placement, so it is reported
    separately; any down service turns the response into a 503.
    """
    services: Dict[str, Dict[str, Any]] = {}

    try:
        services["database"] = _probe_database()
    except DatabaseError as exc:
        services["database"] = {"status": "down"}
        logger.error("health_check.database_down", error=str(exc))

    try:
        services["cache"] = _probe_listing_cache()
    except Exception as exc:  # any backend (redis, locmem) error means down
        services["cache"] = {"status": "down"}
        logger.error("health_check.cache_down", error=str(exc))

    healthy = all(s["status"] == "up" for s in services.values())
    logger.info("health_check.completed", status="healthy" if healthy else "unhealthy")

    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )
