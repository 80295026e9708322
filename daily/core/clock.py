"""
Calendar day helpers.

The daily post gate, the friends feed window, `has_posted_today` and the reset countdown all use these functions so
they agree at day boundaries. A calendar day is the half-open interval [local midnight, next local midnight) in the
configured time zone.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from daily.core import config

# Posts expire (for display purposes only) this long after creation
POST_LIFETIME = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(instant: datetime) -> datetime:
    """Convert the given instant to UTC. Naive datetimes are assumed to already be in UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def calendar_day(instant: datetime, tz: Optional[tzinfo] = None) -> date:
    """Return the local calendar date the given instant falls on."""
    return to_utc(instant).astimezone(tz or config.TIMEZONE).date()


def day_bounds(instant: datetime, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """Return [start, end) of the calendar day containing the given instant, as UTC datetimes."""
    tz = tz or config.TIMEZONE
    day = calendar_day(instant, tz)
    start = datetime.combine(day, time.min, tzinfo=tz)
    # Combine with the next date instead of adding 24h so DST days are 23 or 25 hours long
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return to_utc(start), to_utc(end)


def next_midnight(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    _, end = day_bounds(instant, tz)
    return end


def seconds_until_reset(instant: datetime, tz: Optional[tzinfo] = None) -> int:
    """Whole seconds left until the next local midnight, when a new post is allowed."""
    remaining = next_midnight(instant, tz) - to_utc(instant)
    return max(0, int(remaining.total_seconds()))


def expires_at(created_at: datetime) -> datetime:
    return to_utc(created_at) + POST_LIFETIME
