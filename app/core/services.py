"""
Service layer primitives.

Every chat, presence and connection operation is a classmethod on a
BaseService subclass that returns a ServiceResult. The HTTP views and the
websocket consumer call the same methods and only differ in how they
render the result: a status code plus JSON body, or an ack frame.

Expected failures (self-targeting, unknown user, not connected) come back
as ``ServiceResult.failure(...)`` with an error code from
``chat.constants.ErrorCode``. Anything else is raised.

    result = MessageService.send_message(sender, receiver_id, "hi", transport=t)
    if not result:
        return service_error_response(result)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import Any

    from core.exceptions import BaseApplicationError

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service call.

    Truthy on success. On failure ``error`` is a readable message,
    ``error_code`` the machine-readable code clients switch on, and
    ``errors`` optional per-field messages.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code, errors=errors)

    @classmethod
    def from_exception(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """Turn a raised application error into a failure, e.g. SelfTargetError from room_for in ChatConsumer."""
        return cls.failure(exc.message, error_code=exc.error_code)

    def to_response(self) -> dict[str, Any]:
        """Error body shared by HTTP responses; keys are omitted when empty."""
        if self.success:
            return {"success": True, "data": self.data}

        body: dict[str, Any] = {"error": self.error}
        if self.error_code:
            body["error_code"] = self.error_code
        if self.errors:
            body["errors"] = self.errors
        return body

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """Stateless base for services; subclasses only define classmethods."""

    @classmethod
    def get_logger(cls) -> logging.Logger:
        # e.g. "chat.services.PresenceService", routed by the "chat" logger
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Iterator[None]:
        with transaction.atomic():
            yield
