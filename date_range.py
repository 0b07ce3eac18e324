# date_range.py

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

DAY_FORMAT = '%Y-%m-%d'


def _zone(tz):
    if tz is None: return timezone.utc
    if isinstance(tz, str): return ZoneInfo(tz)
    return tz


def to_day(value, tz=None):
    """Normalizes a date, datetime or ISO string to a calendar date in the scheduler timezone.

    Aware datetimes are converted into ``tz`` before the date is taken, so an evening
    timestamp in UTC-5 does not land on the following day.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None: value = value.astimezone(_zone(tz))
        return value.date()
    if isinstance(value, date): return value
    if not isinstance(value, str): raise ValueError(f"Cannot derive a day from {value!r}")
    text = value.strip()
    if len(text) == 10: return datetime.strptime(text, DAY_FORMAT).date()
    # Full timestamps are parsed, never sliced.
    return to_day(datetime.fromisoformat(text.replace('Z', '+00:00')), tz)


def day_key(value, tz=None):
    return to_day(value, tz).isoformat()


def is_day_key(value):
    if not isinstance(value, str) or len(value) != 10: return False
    try: datetime.strptime(value, DAY_FORMAT)
    except ValueError: return False
    return True


def expand(start_day, end_day, tz=None):
    """Returns every day key from the earlier to the later of the two days, inclusive."""
    first, last = sorted((to_day(start_day, tz), to_day(end_day, tz)))
    days = []
    d = first
    while d <= last:
        days.append(d.strftime(DAY_FORMAT))
        d += timedelta(days=1)
    return days
