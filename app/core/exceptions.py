"""
Application errors.

Services report expected failures through ServiceResult. These exceptions
are for code that cannot return one: chat.rooms.room_for raises
SelfTargetError, and the transport raises TransportError when the channel
layer rejects an event.

    BaseApplicationError
    ├── ValidationError          VALIDATION_ERROR
    │   └── SelfTargetError      SELF_TARGET
    ├── NotFoundError            NOT_FOUND
    ├── PermissionDeniedError    FORBIDDEN
    ├── ConflictError            CONFLICT
    └── ExternalServiceError     EXTERNAL_SERVICE_ERROR
        └── TransportError       TRANSPORT_ERROR

The codes double as ServiceResult error codes; core.responses maps them
to HTTP statuses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """Carries a readable ``message``, an ``error_code`` and optional ``details``."""

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(BaseApplicationError):
    """Missing or malformed input, e.g. a frame without receiverId."""

    default_error_code: str = "VALIDATION_ERROR"


class SelfTargetError(ValidationError):
    """A user addressed themselves: messaging, typing, joining a room or connecting."""

    default_error_code: str = "SELF_TARGET"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """Deleting someone else's message, or messaging without an accepted connection."""

    default_error_code: str = "FORBIDDEN"


class ConflictError(BaseApplicationError):
    """A connection between the two users already exists or was already answered."""

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    default_error_code: str = "EXTERNAL_SERVICE_ERROR"


class TransportError(ExternalServiceError):
    """
    The channel layer did not accept an event.

    Fan-out is best effort: services log this and keep the persisted change.
    """

    default_error_code: str = "TRANSPORT_ERROR"
