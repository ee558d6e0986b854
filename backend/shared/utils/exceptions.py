"""
HTTP errors raised by the floor routers.

Domain services return result objects for expected outcomes; routers turn a
failed result into one of these exceptions so every error response has the
same shape and gets logged once, at the level its status class calls for.

Usage:
    from shared.utils.exceptions import NotFoundError, BusinessRuleError

    raise NotFoundError("Table", table_number, location_id=location_id)
    raise LocationAccessError(location_id)
    raise BusinessRuleError(result.error, result.reason, items=[...])
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base for the API's errors. Subclasses fix the status code and log level;
    keyword context goes to the log record, never to the response.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level: str = "warning"

    def __init__(
        self,
        detail: str | dict[str, Any],
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        summary = detail if isinstance(detail, str) else str(detail.get("error", "error"))
        getattr(logger, self.log_level)(summary, status_code=self.status_code, **log_context)
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class NotFoundError(AppException):
    """A table, session, order or seat the path names does not exist here."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any = None, **log_context: Any):
        detail = f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(detail, entity=entity, **log_context)


class ResourceNotFoundError(AppException):
    """404 carrying a message produced by a domain service."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppException):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, action: str | None = None, **log_context: Any):
        super().__init__(f"Not authorized to {action}" if action else "Access denied", **log_context)


class LocationAccessError(AppException):
    """Caller does not work this location, or it does not exist."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, location_id: Any = None, **log_context: Any):
        super().__init__(
            "Unauthorized or location not found",
            location_id=str(location_id) if location_id is not None else None,
            **log_context,
        )


class InsufficientRoleError(ForbiddenError):
    """The action is reserved to other roles (forced close, guest count edits)."""

    def __init__(self, required_roles: list[str], **log_context: Any):
        super().__init__(
            f"perform this action (requires role: {', '.join(required_roles)})",
            required_roles=required_roles,
            **log_context,
        )


class ValidationError(AppException):
    """Input the floor cannot act on, such as a negative tip (400)."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppException):
    status_code = status.HTTP_409_CONFLICT


class BusinessRuleError(ConflictError):
    """
    A floor rule refused the operation (wave already fired, unpaid balance...).

    The response body keeps the machine-readable reason and any supporting
    data so the UI can explain the refusal.
    """

    def __init__(self, error: str, reason: str | None, **data: Any):
        detail: dict[str, Any] = {"error": error, "reason": reason}
        detail.update({k: v for k, v in data.items() if v is not None})
        super().__init__(detail, reason=reason)


class InternalError(AppException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level = "error"

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(detail, **log_context)


class DatabaseError(InternalError):
    """Storage failed mid-request; the driver message stays in the log."""

    def __init__(self, operation: str, **log_context: Any):
        super().__init__(f"Database error during {operation}. Please try again.", operation=operation, **log_context)
