"""
Utilities module: exceptions, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    LocationAccessError,
    ValidationError,
    ConflictError,
    BusinessRuleError,
)
from shared.utils.schemas import StoreTableSessionState, TableOrderView

__all__ = [
    # exceptions
    "NotFoundError",
    "ForbiddenError",
    "LocationAccessError",
    "ValidationError",
    "ConflictError",
    "BusinessRuleError",
    # schemas
    "StoreTableSessionState",
    "TableOrderView",
]
