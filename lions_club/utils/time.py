from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from lions_club.config import settings


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC, naive ones are assumed to be UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def today_local() -> date:
    """Return current date in the chapter's timezone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) of a calendar day in the chapter's timezone."""
    tz = ZoneInfo(settings.TIMEZONE)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return to_naive_utc(start), to_naive_utc(end)


def format_local(value: datetime, fmt: str = "%Y/%m/%d %H:%M") -> str:
    """Render a stored naive-UTC datetime in the chapter's timezone."""
    return value.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(settings.TIMEZONE)).strftime(fmt)
