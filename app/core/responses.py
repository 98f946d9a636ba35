"""
Translate failed ServiceResults into DRF responses.

Views return the same ``{"error", "error_code"}`` body for every failure
and pick the HTTP status from the error code. The codes are the defaults
of the core.exceptions hierarchy.
"""

from rest_framework import status
from rest_framework.response import Response

from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    SelfTargetError,
    ValidationError,
)

ERROR_STATUS = {
    ValidationError.default_error_code: status.HTTP_400_BAD_REQUEST,
    SelfTargetError.default_error_code: status.HTTP_400_BAD_REQUEST,
    NotFoundError.default_error_code: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError.default_error_code: status.HTTP_403_FORBIDDEN,
    ConflictError.default_error_code: status.HTTP_409_CONFLICT,
}


def service_error_response(result) -> Response:
    """
    Build the error response for a failed ServiceResult.

    Unknown error codes map to 400.

    Example:
        result = MessageService.delete_message(request.user, message_id)
        if not result.success:
            return service_error_response(result)
    """
    return Response(
        result.to_response(),
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )
