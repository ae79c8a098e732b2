"""Wall-clock helpers. All slot arithmetic is done in integer minutes since midnight."""

import re
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

_CLOCK_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')


def parse_clock(value: str) -> int:
    """Parse ``HH:MM`` (24-hour, leading zero optional) into minutes since midnight."""
    if not isinstance(value, str):
        raise ValueError(f'Invalid time {value!r}. Use HH:MM format.')
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f'Invalid time {value!r}. Use HH:MM format.')
    return int(match.group(1)) * 60 + int(match.group(2))


def format_clock(minutes: int) -> str:
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def canonical_clock(value: str) -> str:
    return format_clock(parse_clock(value))


def parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f'Invalid date {value!r}. Use YYYY-MM-DD format.') from exc


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f'Unknown time zone {name!r}.') from exc


def now_in(zone: ZoneInfo) -> datetime:
    return datetime.now(zone)
