"""
Small helpers shared by the services and list endpoints.

Both the HTTP views and the services accept ``page`` and ``limit`` values
straight from the client, so they are clamped in one place.
"""

from __future__ import annotations

import uuid


def normalize_page_params(
    page,
    limit,
    default_limit: int,
    max_limit: int,
) -> tuple[int, int]:
    """
    Coerce raw page/limit values into a safe (page, limit) pair.

    Non-numeric values fall back to page 1 and ``default_limit``. The page
    is at least 1 and the limit is between 1 and ``max_limit``.

    Example:
        normalize_page_params("3", "500", default_limit=50, max_limit=100)
        # (3, 100)
    """
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = default_limit

    return max(page, 1), max(1, min(limit, max_limit))


def coerce_int_id(value) -> int | None:
    """
    Parse a client-supplied integer id; None when missing or malformed.

    Accepts ints, whole floats (JSON clients may send 7.0) and digit
    strings. Fractional floats and booleans are malformed, never truncated.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        value = value.strip()
        if value.isascii() and value.isdigit():
            return int(value)
    return None


def coerce_uuid(value) -> uuid.UUID | None:
    """Parse a client-supplied UUID; None when missing or malformed."""
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
