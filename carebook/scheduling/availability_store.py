from typing import Any, Iterable, Mapping

from carebook.core.errors import ValidationError
from carebook.scheduling.clock import WEEKDAYS, parse_clock
from carebook.scheduling.domain import AvailabilityTemplate, BreakInterval, TemplateEntry
from carebook.scheduling.ports import AvailabilityRepository


def normalize_breaks(breaks: Iterable[BreakInterval]) -> tuple[BreakInterval, ...]:
    """Sort breaks and merge the ones that touch or overlap."""
    merged: list[BreakInterval] = []
    for interval in sorted(breaks, key=lambda item: (item.start, item.end)):
        if merged and interval.start <= merged[-1].end:
            previous = merged.pop()
            interval = BreakInterval(previous.start, max(previous.end, interval.end))
        merged.append(interval)
    return tuple(merged)


def _read(entry: Any, key: str, default: Any = None) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(key, default)
    return getattr(entry, key, default)


def _parse_clock_field(value: Any, label: str, errors: list[str]) -> int | None:
    try:
        return parse_clock(value)
    except ValueError:
        errors.append(f'{label}: invalid time {value!r}, use 24-hour HH:MM.')
        return None


def validate_entries(entries: Iterable[Any]) -> tuple[TemplateEntry, ...]:
    """Validate raw template entries and return them normalized.

    Entries may be mappings or objects exposing ``weekday``, ``start_time``,
    ``end_time``, ``breaks`` and ``is_available``. Every violation is collected
    and raised together in one ``ValidationError``.
    """
    if entries is None or isinstance(entries, (str, bytes, Mapping)):
        raise ValidationError('Availability must be a list of weekday entries.')

    errors: list[str] = []
    seen_weekdays: set[str] = set()
    validated: list[TemplateEntry] = []

    for position, entry in enumerate(entries):
        raw_weekday = _read(entry, 'weekday')
        weekday = raw_weekday.strip().lower() if isinstance(raw_weekday, str) else None
        label = f'Entry {position} ({weekday})' if weekday else f'Entry {position} ({raw_weekday!r})'
        entry_valid = True

        if weekday not in WEEKDAYS:
            errors.append(f'{label}: weekday must be one of {", ".join(WEEKDAYS)}.')
            entry_valid = False
        elif weekday in seen_weekdays:
            errors.append(f'{label}: weekday {weekday} appears more than once.')
            entry_valid = False
        else:
            seen_weekdays.add(weekday)

        start = _parse_clock_field(_read(entry, 'start_time'), f'{label} start time', errors)
        end = _parse_clock_field(_read(entry, 'end_time'), f'{label} end time', errors)
        if start is None or end is None:
            entry_valid = False
        elif end <= start:
            errors.append(f'{label}: end time must be after start time.')
            entry_valid = False

        breaks: list[BreakInterval] = []
        for break_position, raw_break in enumerate(_read(entry, 'breaks') or []):
            break_label = f'{label} break {break_position}'
            break_start = _parse_clock_field(_read(raw_break, 'start'), f'{break_label} start', errors)
            break_end = _parse_clock_field(_read(raw_break, 'end'), f'{break_label} end', errors)
            if break_start is None or break_end is None:
                entry_valid = False
                continue
            if break_end <= break_start:
                errors.append(f'{break_label}: end must be after start.')
                entry_valid = False
                continue
            if start is not None and end is not None and (break_start < start or break_end > end):
                errors.append(f'{break_label}: must lie inside the working window.')
                entry_valid = False
                continue
            breaks.append(BreakInterval(break_start, break_end))

        ordered = sorted(breaks, key=lambda item: (item.start, item.end))
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                errors.append(f'{label}: breaks must not overlap each other.')
                entry_valid = False
                break

        is_available = _read(entry, 'is_available', True)
        if not isinstance(is_available, bool):
            errors.append(f'{label}: is_available must be true or false.')
            entry_valid = False

        if entry_valid:
            validated.append(
                TemplateEntry(
                    weekday=weekday,
                    start=start,
                    end=end,
                    breaks=normalize_breaks(breaks),
                    is_available=is_available,
                )
            )

    if not validated and not errors:
        errors.append('Availability must contain at least one weekday entry.')

    if errors:
        raise ValidationError('Invalid availability template.', errors=errors)

    return tuple(sorted(validated, key=lambda item: WEEKDAYS.index(item.weekday)))


class AvailabilityStore:
    def __init__(self, repository: AvailabilityRepository) -> None:
        self._repository = repository

    def get_template(self, provider_id: int) -> AvailabilityTemplate:
        return self._repository.get(provider_id)

    def set_template(self, provider_id: int, entries: Iterable[Any]) -> AvailabilityTemplate:
        return self._repository.replace(provider_id, validate_entries(entries))
