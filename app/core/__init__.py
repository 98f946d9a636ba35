"""
Shared building blocks for the chat, connections and authentication apps.

- services: BaseService and the ServiceResult every operation returns
- exceptions: application errors and their error codes
- responses: ServiceResult -> DRF Response
- helpers: parsing of client-supplied ids and paging values
- models / model_mixins: abstract timestamp model and UUID key

The model modules need the app registry and are not re-exported here.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    SelfTargetError,
    TransportError,
    ValidationError,
)
from .helpers import coerce_int_id, coerce_uuid, normalize_page_params
from .services import BaseService, ServiceResult

__all__ = [
    "BaseService",
    "ServiceResult",
    "BaseApplicationError",
    "ValidationError",
    "SelfTargetError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
    "TransportError",
    "coerce_int_id",
    "coerce_uuid",
    "normalize_page_params",
]
