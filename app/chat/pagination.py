"""
Pagination classes for list endpoints.

Clients page with ``?page=<n>&limit=<size>``, the query names the mobile
clients already use for conversation history.

- ConnectionPagination: connection lists (10 per page)
- OnlineUserPagination: online users listing (20 per page)
"""

from rest_framework.pagination import PageNumberPagination

from chat.constants import PRESENCE_CONFIG


class PageLimitPagination(PageNumberPagination):
    """Page-number pagination with ``limit`` as the page size parameter."""

    page_query_param = "page"
    page_size_query_param = "limit"
    page_size = 20
    max_page_size = 100


class ConnectionPagination(PageLimitPagination):
    page_size = 10
    max_page_size = 50


class OnlineUserPagination(PageLimitPagination):
    page_size = PRESENCE_CONFIG.ONLINE_DEFAULT_LIMIT
    max_page_size = PRESENCE_CONFIG.ONLINE_MAX_LIMIT
