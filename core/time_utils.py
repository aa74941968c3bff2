import re
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from core.config import settings

YMD_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def local_zone() -> Optional[ZoneInfo]:
    """Configured TIMEZONE, or None to follow the system zone."""
    if settings.TIMEZONE:
        return ZoneInfo(settings.TIMEZONE)
    return None


def get_current_time() -> datetime:
    """Returns the current time in the local zone."""
    return to_local(datetime.now().astimezone())


def to_local(dt: datetime) -> datetime:
    """
    Converts a datetime object to the local zone.

    Without a configured zone, astimezone() applies the system DST rules
    for that instant, not the offset in force today.
    """
    if dt.tzinfo is None:
        # Naive values are already local wall-clock time
        return dt
    return dt.astimezone(local_zone())


def format_ymd(value: Union[date, datetime]) -> str:
    if isinstance(value, datetime):
        value = to_local(value).date()
    return value.strftime("%Y-%m-%d")


def parse_local_date(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string into a calendar date.

    Returns None for anything that is not a real date in that exact format,
    so callers never fall back to UTC parsing.
    """
    if not value or not isinstance(value, str):
        return None
    match = YMD_PATTERN.match(value)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _as_date(value) -> Optional[date]:
    if isinstance(value, str):
        return parse_local_date(value)
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value
    return None


def days_between(first, second) -> Optional[int]:
    """
    Whole calendar days from `first` to `second` (positive if second is later).

    Works on calendar dates, so a DST shift between the two never turns
    into an off-by-one.
    """
    start = _as_date(first)
    end = _as_date(second)
    if start is None or end is None:
        return None
    return (end - start).days


def is_weekday(value) -> bool:
    day = _as_date(value)
    return day is not None and day.weekday() < 5


def week_start(value) -> date:
    """Monday of the week containing `value`."""
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def week_end(value) -> date:
    """Sunday of the week containing `value`."""
    return week_start(value) + timedelta(days=6)


def next_local_midnight(now: datetime) -> datetime:
    local_now = to_local(now)
    tomorrow = local_now.date() + timedelta(days=1)
    midnight = datetime(tomorrow.year, tomorrow.month, tomorrow.day)
    if local_now.tzinfo is None:
        return midnight
    zone = local_zone()
    if zone is None:
        # System zone: offset at midnight itself, which may differ from now
        return midnight.astimezone()
    return midnight.replace(tzinfo=zone)
