"""
Time helpers shared by the timesheet and presence services

All instants are handled as timezone-aware UTC datetimes; local calendars
are only used to bucket days and to place slot windows and deadlines.
"""
import re
from datetime import date, datetime, time, timezone
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import InvalidInputException

Clock = Callable[[], datetime]

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_timezone(name: Optional[str], default: str) -> ZoneInfo:
    tz_name = (name or "").strip() or default
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidInputException("invalid_timezone", f"Unknown timezone '{tz_name}'")


def parse_month(value: Optional[str]) -> Tuple[int, int]:
    """Parse ``YYYY-MM`` into (year, month)."""
    match = _MONTH_PATTERN.match((value or "").strip())
    if not match:
        raise InvalidInputException("invalid_month", "Invalid month format. Use YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidInputException("invalid_month", "Invalid month format. Use YYYY-MM")
    return year, month


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(instant).astimezone(tz).date()


def local_wall_clock(day: date, wall: time, tz: ZoneInfo) -> datetime:
    """UTC instant of a local wall-clock time on ``day``."""
    return datetime.combine(day, wall, tzinfo=tz).astimezone(timezone.utc)
