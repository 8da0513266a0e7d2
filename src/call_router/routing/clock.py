"""Timezone-aware wall clock for business-hours evaluation."""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from call_router.core.exceptions import InvalidConfigurationError
from call_router.core.logging import get_logger
from call_router.routing.models import WEEKDAYS, LocalTime

log = get_logger(__name__)


def get_zone(timezone: str) -> ZoneInfo:
    """Resolve an IANA zone name.

    Raises:
        InvalidConfigurationError: If the name is empty or unknown
    """
    if not timezone:
        raise InvalidConfigurationError("Timezone not set")
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidConfigurationError(
            f"Unknown timezone: {timezone}",
            details={"timezone": timezone},
            cause=e,
        ) from e


def to_local_time(moment: datetime, timezone: str) -> LocalTime:
    """Convert an instant into a wall-clock reading in ``timezone``.

    Naive datetimes are treated as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt_timezone.utc)
    local = moment.astimezone(get_zone(timezone))
    return LocalTime(
        date=local.strftime("%Y-%m-%d"),
        time=local.strftime("%H:%M"),
        weekday=WEEKDAYS[local.weekday()],
        timezone=timezone,
    )


def local_now(timezone: str, now: datetime | None = None) -> LocalTime:
    """Current date, HH:MM time and weekday in ``timezone``.

    Args:
        timezone: IANA zone name (e.g. "America/New_York")
        now: Instant to use instead of the system clock

    Raises:
        InvalidConfigurationError: If the zone is unknown
    """
    return to_local_time(now or datetime.now(dt_timezone.utc), timezone)


def resolve_local_now(
    timezone: str | None,
    fallback_timezone: str,
    now: datetime | None = None,
) -> LocalTime:
    """Like :func:`local_now` but falls back to a reference zone.

    An unknown zone must never fail a live call, so the anomaly is
    logged and the reference zone is used instead.
    """
    if timezone:
        try:
            return local_now(timezone, now)
        except InvalidConfigurationError as e:
            log.warning(
                "Invalid agent timezone, using reference zone",
                timezone=timezone,
                fallback=fallback_timezone,
                error=e.message,
            )
    return local_now(fallback_timezone, now)
