"""Calendar days in the site timezone.

Streaks and daily tasks roll over at local midnight (UTC+7 by default), not at
UTC midnight.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from boreview.config import get_settings


def site_timezone() -> timezone:
    return timezone(timedelta(hours=get_settings().site_utc_offset_hours))


def site_date(dt: datetime) -> date:
    """Calendar date of an aware datetime in the site timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(site_timezone()).date()


def site_day_start(now: datetime | None = None) -> datetime:
    """Start of the site day containing ``now``, as an aware UTC datetime."""
    now = now or datetime.now(timezone.utc)
    local_midnight = datetime.combine(site_date(now), time.min, tzinfo=site_timezone())
    return local_midnight.astimezone(timezone.utc)


def site_day_bounds(now: datetime | None = None) -> tuple[datetime, datetime]:
    start = site_day_start(now)
    return start, start + timedelta(days=1)
