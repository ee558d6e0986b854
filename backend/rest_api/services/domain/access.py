"""
Location access guard.

Every public floor operation starts here: the caller must be allowed to act
on the location before anything else is looked up or written.
"""

import uuid
from typing import Any

from sqlalchemy.orm import Session

from shared.config.constants import Roles
from shared.config.logging import get_logger
from rest_api.models import Location

logger = get_logger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized or location not found"


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class LocationAccessGuard:
    """
    Yes/no capability check for a location.

    ctx is the dict built by current_user_context. A ctx of None means an
    internal caller (CLI, background job) and is allowed on any active location.
    """

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._ctx = ctx

    def verify(self, location_id: uuid.UUID | str) -> Location | None:
        """Return the location if the caller may act on it, else None."""
        location_uuid = _as_uuid(location_id)
        if location_uuid is None:
            return None

        location = self._db.get(Location, location_uuid)
        if location is None or not location.is_active:
            return None

        if self._ctx is None:
            return location

        if Roles.ADMIN in self._ctx.get("roles", []):
            return location

        if str(location.id) in self._ctx.get("location_ids", []):
            return location

        logger.warning(
            "Location access denied",
            location_id=str(location_uuid),
            user_id=self._ctx.get("user_id"),
        )
        return None
