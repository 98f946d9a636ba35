"""
Project-wide pytest setup.

Tests run without Redis: the channel layer and cache are in-process and
Celery runs inline. Per-app fixtures live in each app's tests/conftest.py.
"""

import os
from pathlib import Path

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Test module name -> marker; anything unlisted is an integration test
MARKERS_BY_MODULE = {
    "test_consumers.py": "e2e",
    "test_integration.py": "e2e",
    "test_models.py": "unit",
    "test_serializers.py": "unit",
    "test_helpers.py": "unit",
    "test_exceptions.py": "unit",
    "test_rooms.py": "unit",
    "test_registry.py": "unit",
}
LEVEL_MARKERS = {"unit", "integration", "e2e"}


def pytest_configure():
    django.setup()

    from django.conf import settings

    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }
    settings.SESSION_ENGINE = "django.contrib.sessions.backends.db"
    settings.SECURE_SSL_REDIRECT = False

    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


def pytest_collection_modifyitems(items):
    """Add a unit/integration/e2e marker unless the test already has one."""
    for item in items:
        if LEVEL_MARKERS & {marker.name for marker in item.iter_markers()}:
            continue
        level = MARKERS_BY_MODULE.get(Path(str(item.fspath)).name, "integration")
        item.add_marker(getattr(pytest.mark, level))


def _flush_postgres_with_cascade():
    """
    Consumer tests use transactional db access, which truncates tables
    between tests; PostgreSQL refuses that for FK-referenced tables
    unless CASCADE is used.
    """
    from django.db.backends.postgresql import operations

    sql_flush = operations.DatabaseOperations.sql_flush

    def cascading_sql_flush(self, style, tables, *, reset_sequences=False, allow_cascade=False):
        return sql_flush(self, style, tables, reset_sequences=reset_sequences, allow_cascade=True)

    operations.DatabaseOperations.sql_flush = cascading_sql_flush


_flush_postgres_with_cascade()
