"""
Translate failed service results into HTTP errors.

Usage:
    result = OrderService(db, ctx).fire_wave(order_id)
    raise_for_result(result)
"""

from shared.config.constants import CLIENT_ERROR_REASONS, FailureReason
from shared.utils.exceptions import (
    BusinessRuleError,
    InternalError,
    LocationAccessError,
    ResourceNotFoundError,
    ValidationError,
)
from rest_api.services.domain.results import ServiceResult


def raise_for_result(result: ServiceResult, location_id=None) -> None:
    """
    Do nothing for a successful result; otherwise raise the matching error.

    - unauthorized -> 403
    - not_found -> 404
    - invalid input (negative tip, unknown status) -> 400
    - any other reason -> 409 with the reason and the result's payload
    - no reason (storage failure) -> 500
    """
    if result.ok:
        return
    reason = result.reason
    if reason == FailureReason.UNAUTHORIZED:
        raise LocationAccessError(location_id)
    if reason == FailureReason.NOT_FOUND:
        raise ResourceNotFoundError(result.error or "Not found")
    if reason in CLIENT_ERROR_REASONS:
        raise ValidationError({"error": result.error or "Invalid request", "reason": reason})
    if reason is not None:
        raise BusinessRuleError(result.error or "Operation refused", reason, **result.extra())
    raise InternalError(result.error or "Internal server error")
