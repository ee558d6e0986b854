"""
Service period lookup.

Periods are stored as zero-padded "HH:MM" strings and matched by plain
string comparison against the location's local wall-clock time.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.config.logging import get_logger
from shared.config.settings import settings
from rest_api.models import Location, ServicePeriod

logger = get_logger(__name__)


class PeriodLike(Protocol):
    id: uuid.UUID
    start_time: str
    end_time: str


def find_service_period(periods: Iterable[PeriodLike], hhmm: str) -> uuid.UUID | None:
    """
    First period with start <= hhmm < end, in the order given.

    Lexical comparison on "HH:MM" is only correct for zero-padded values;
    a period whose end sorts before its start never matches.
    """
    for period in periods:
        if period.start_time <= hhmm < period.end_time:
            return period.id
    return None


def location_tz(location: Location | None) -> tzinfo:
    """Timezone for a location, falling back to the configured default, then UTC."""
    name = (location.timezone if location else None) or settings.default_location_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown location timezone, using UTC", timezone=name)
        return timezone.utc


def resolve_service_period(
    db: Session,
    location_id: uuid.UUID,
    now: datetime | None = None,
) -> uuid.UUID | None:
    """Id of the service period in effect at `now` for the location, or None."""
    location = db.get(Location, location_id)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    hhmm = now.astimezone(location_tz(location)).strftime("%H:%M")

    periods = db.scalars(
        select(ServicePeriod)
        .where(ServicePeriod.location_id == location_id)
        .order_by(ServicePeriod.start_time)
    ).all()
    return find_service_period(periods, hhmm)
