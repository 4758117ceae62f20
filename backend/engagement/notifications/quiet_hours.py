"""
Quiet-hours evaluator.

Decides whether an instant falls inside a user's do-not-disturb window,
including windows that wrap midnight (e.g. 23:00 - 07:00).
"""

from datetime import datetime

from engagement.models.notification import QuietHours
from engagement.notifications.clock import minutes_since_midnight, parse_hhmm


def is_quiet(now: datetime, start: str, end: str, tz: str) -> bool:
    """
    Check if ``now`` is within the quiet window.

    Args:
        now: Evaluation instant
        start: Window start "HH:MM" (empty disables)
        end: Window end "HH:MM", exclusive (empty disables)
        tz: IANA time zone the window is expressed in

    Returns:
        True if notifications should be held back right now
    """
    if not start or not end or start == end:
        return False

    current = minutes_since_midnight(now, tz)
    start_minutes = parse_hhmm(start)
    end_minutes = parse_hhmm(end)

    if start_minutes < end_minutes:
        return start_minutes <= current < end_minutes

    # Spans midnight
    return current >= start_minutes or current < end_minutes


def is_quiet_for(quiet_hours: QuietHours, now: datetime) -> bool:
    """Convenience wrapper over :func:`is_quiet` for a QuietHours model."""
    return is_quiet(now, quiet_hours.start, quiet_hours.end, quiet_hours.time_zone)
