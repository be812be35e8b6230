"""Timezone-aware helpers for attributing sleep to local calendar time.

All instants handled by nightscore are timezone-aware datetimes. Local wall
clock values are derived with the IANA database shipped through ``zoneinfo``,
so DST transitions are handled by the timezone rules, not by fixed offsets.
"""

import datetime
import math
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from nightscore.core import config, exceptions

logger = config.get_logger()

MINUTES_PER_DAY = 1440

TimezoneLike = Union[str, datetime.tzinfo]


def resolve_timezone(user_timezone: TimezoneLike) -> datetime.tzinfo:
    """Resolve a timezone identifier into a tzinfo object.

    Args:
        user_timezone: An IANA timezone name (e.g. "Australia/Perth") or an
            existing tzinfo instance, which is returned unchanged.

    Returns:
        The tzinfo for the user timezone.

    Raises:
        InvalidTimezoneError: If the name is not a known IANA timezone.
    """
    if isinstance(user_timezone, datetime.tzinfo):
        return user_timezone
    try:
        return ZoneInfo(user_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc_info:
        raise exceptions.InvalidTimezoneError(
            f"Unknown timezone: {user_timezone}. "
            "Please provide an IANA timezone identifier."
        ) from exc_info


def ensure_aware(instant: datetime.datetime) -> datetime.datetime:
    """Attach UTC to naive datetimes, leave aware datetimes untouched."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=datetime.timezone.utc)
    return instant


def to_local(
    instant: datetime.datetime, user_timezone: TimezoneLike
) -> datetime.datetime:
    """Convert an instant to wall clock time in the user timezone."""
    return ensure_aware(instant).astimezone(resolve_timezone(user_timezone))


def local_hour(instant: datetime.datetime, user_timezone: TimezoneLike) -> int:
    """Return the local hour (0-23) of an instant."""
    return to_local(instant, user_timezone).hour


def local_date_string(
    instant: datetime.datetime, user_timezone: TimezoneLike
) -> str:
    """Return the local calendar date of an instant as YYYY-MM-DD."""
    return to_local(instant, user_timezone).date().isoformat()


def minutes_since_local_midnight(
    instant: datetime.datetime, user_timezone: TimezoneLike
) -> float:
    """Return the minutes elapsed since local midnight.

    Args:
        instant: The instant to convert.
        user_timezone: The timezone defining local midnight.

    Returns:
        A value in [0, 1440).
    """
    local = to_local(instant, user_timezone)
    return local.hour * 60 + local.minute + local.second / 60


def circular_minutes_difference(first: float, second: float) -> float:
    """Shortest distance between two times of day, in minutes.

    Differences above half a day wrap around midnight, so 23:50 and 00:10 are
    20 minutes apart rather than 1420.
    """
    difference = abs(first - second)
    if difference > MINUTES_PER_DAY / 2:
        difference = MINUTES_PER_DAY - difference
    return difference


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded towards +infinity."""
    return math.floor(value + 0.5)


def minutes_between(start: datetime.datetime, end: datetime.datetime) -> int:
    """Whole minutes from start to end, rounded half up.

    Args:
        start: The earlier instant.
        end: The later instant. An end before start gives a negative value.

    Returns:
        The elapsed minutes, 30 minutes 30 seconds counting as 31.
    """
    return round_half_up((end - start).total_seconds() / 60)
