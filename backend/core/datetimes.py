"""Date and time helpers for appointment scheduling.

Appointments are stored as naive datetimes holding the clinic's local wall
clock. Every path that creates, filters or displays an appointment reads and
writes the year/month/day/hour/minute components directly through these
helpers and never goes through UTC or ISO-string conversion, so a booking at
``2024-05-28 10:00`` reads back as ``2024-05-28`` / ``10:00`` on any host.
"""

from datetime import date, datetime, time, timedelta

MINUTES_PER_DAY = 24 * 60


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date."""
    normalized = (value or '').strip()
    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as exc:
        raise ValueError(f'Invalid date {value!r}; expected YYYY-MM-DD.') from exc


def parse_time(value: str) -> time:
    """Parse ``HH:MM`` or ``H:MM AM/PM`` into a time of day."""
    normalized = ' '.join((value or '').strip().upper().split())
    for pattern in ('%H:%M', '%I:%M %p', '%I:%M%p'):
        try:
            return datetime.strptime(normalized, pattern).time()
        except ValueError:
            continue

    raise ValueError(f'Invalid time {value!r}; expected HH:MM or H:MM AM/PM.')


def to_local_naive(value: datetime) -> datetime:
    """Drop tzinfo without shifting the wall-clock components."""
    if value.tzinfo is not None:
        value = value.replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


def combine_local(day: date, time_of_day: time) -> datetime:
    return datetime(day.year, day.month, day.day, time_of_day.hour, time_of_day.minute)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def local_date_key(value: datetime | date) -> str:
    return f'{value.year:04d}-{value.month:02d}-{value.day:02d}'


def local_time_key(value: datetime | time) -> str:
    return f'{value.hour:02d}:{value.minute:02d}'


def minutes_since_midnight(value: datetime | time | str) -> int:
    if isinstance(value, str):
        value = parse_time(value)
    return value.hour * 60 + value.minute


def minutes_to_time_key(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'{minutes} minutes is outside a single day.')
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def format_12_hour(value: str | time) -> str:
    """Render a 24-hour time as a 12-hour clock label, e.g. ``9:00 AM``."""
    if isinstance(value, str):
        value = parse_time(value)

    hour12 = value.hour % 12 or 12
    period = 'PM' if value.hour >= 12 else 'AM'
    return f'{hour12}:{value.minute:02d} {period}'
