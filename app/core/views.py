"""
Health probe for load balancers and container orchestration.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def _database_ok():
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception:
        logger.exception("Health check: database unreachable")
        return False
    return True


def _cache_ok():
    try:
        cache.set("health_check", "ok", timeout=1)
        return cache.get("health_check") == "ok"
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        return False


def _channel_layer_ok():
    layer = get_channel_layer()
    if layer is None:
        return False
    try:
        async_to_sync(layer.group_send)("health-check", {"type": "health.check"})
    except Exception:
        logger.warning("Health check: channel layer unreachable", exc_info=True)
        return False
    return True


def health_check(request):
    """
    GET /health/

    Reports ``connected``/``disconnected`` for database, cache and channel
    layer. Only the database decides the status code (200 or 503); without
    cache or channel layer, HTTP still works but events stop fanning out.
    """
    checks = {
        "database": _database_ok(),
        "cache": _cache_ok(),
        "channel_layer": _channel_layer_ok(),
    }
    body = {name: "connected" if ok else "disconnected" for name, ok in checks.items()}
    body["status"] = "healthy" if checks["database"] else "unhealthy"
    return JsonResponse(body, status=200 if checks["database"] else 503)
