"""
Clock / time-zone resolver.

Converts instants to a user's local wall clock. Unknown time zones fall back
to the server's local time instead of failing the caller.
"""

from datetime import UTC, datetime, time, tzinfo
from typing import Optional

import pytz
import structlog

logger = structlog.get_logger(__name__)


def resolve_time_zone(tz_name: Optional[str]) -> Optional[tzinfo]:
    """
    Look up an IANA time zone.

    Args:
        tz_name: IANA name such as "Asia/Seoul"

    Returns:
        pytz time zone, or None if the name is empty or unknown
    """
    if not tz_name:
        return None
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning("time_zone_unknown_using_server_local", time_zone=tz_name)
        return None


def _aware(now: datetime) -> datetime:
    # Naive instants are treated as UTC
    return now if now.tzinfo is not None else now.replace(tzinfo=UTC)


def to_local(now: datetime, tz_name: Optional[str]) -> datetime:
    """Express ``now`` in ``tz_name``, or in server-local time on failure."""
    tz = resolve_time_zone(tz_name)
    if tz is None:
        return _aware(now).astimezone()
    return _aware(now).astimezone(tz)


def minutes_since_midnight(now: datetime, tz_name: Optional[str]) -> int:
    """Local hour * 60 + minute of ``now`` in ``tz_name`` (24-hour clock)."""
    local = to_local(now, tz_name)
    return local.hour * 60 + local.minute


def start_of_local_day(now: datetime, tz_name: Optional[str]) -> datetime:
    """
    Midnight of the local calendar day containing ``now``.

    Args:
        now: Evaluation instant
        tz_name: IANA time zone; unknown or empty uses server-local midnight

    Returns:
        Aware datetime in UTC
    """
    tz = resolve_time_zone(tz_name)
    if tz is None:
        local = _aware(now).astimezone()
        midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight.astimezone(UTC)

    local = _aware(now).astimezone(tz)
    midnight = tz.localize(datetime.combine(local.date(), time.min))
    return midnight.astimezone(UTC)


def parse_hhmm(value: str) -> int:
    """Parse "HH:MM" into minutes since midnight."""
    hours, minutes = value.split(":", 1)
    return int(hours) * 60 + int(minutes)
