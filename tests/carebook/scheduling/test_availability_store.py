import pytest

from carebook.core.errors import NotFoundError, ValidationError
from carebook.scheduling.availability_store import AvailabilityStore, normalize_breaks, validate_entries
from carebook.scheduling.domain import AvailabilityTemplate, BreakInterval


class InMemoryAvailabilityRepository:
    def __init__(self) -> None:
        self.templates: dict[int, AvailabilityTemplate] = {}

    def get(self, provider_id: int) -> AvailabilityTemplate:
        if provider_id not in self.templates:
            raise NotFoundError('Provider has not set their availability.')
        return self.templates[provider_id]

    def replace(self, provider_id, entries) -> AvailabilityTemplate:
        self.templates[provider_id] = AvailabilityTemplate(provider_id=provider_id, entries=tuple(entries))
        return self.templates[provider_id]


def test_validate_entries_normalizes_times_weekdays_and_order() -> None:
    entries = validate_entries(
        [
            {'weekday': 'Wednesday', 'start_time': '13:00', 'end_time': '17:30'},
            {'weekday': ' monday ', 'start_time': '9:00', 'end_time': '12:00', 'breaks': [{'start': '10:00', 'end': '10:30'}]},
        ]
    )

    assert [entry.weekday for entry in entries] == ['monday', 'wednesday']
    assert entries[0].start == 9 * 60
    assert entries[0].end == 12 * 60
    assert entries[0].breaks == (BreakInterval(600, 630),)
    assert entries[0].to_dict()['start_time'] == '09:00'
    assert entries[1].is_available is True


def test_validate_entries_reports_every_violation_at_once() -> None:
    with pytest.raises(ValidationError) as exception_info:
        validate_entries(
            [
                {'weekday': 'funday', 'start_time': '09:00', 'end_time': '10:00'},
                {'weekday': 'monday', 'start_time': '25:00', 'end_time': '10:00'},
                {'weekday': 'tuesday', 'start_time': '12:00', 'end_time': '09:00'},
                {
                    'weekday': 'friday',
                    'start_time': '09:00',
                    'end_time': '12:00',
                    'breaks': [{'start': '08:30', 'end': '09:30'}],
                },
            ]
        )

    errors = exception_info.value.errors
    assert len(errors) == 4
    assert any('weekday must be one of' in error for error in errors)
    assert any("invalid time '25:00'" in error for error in errors)
    assert any('end time must be after start time' in error for error in errors)
    assert any('inside the working window' in error for error in errors)


def test_validate_entries_rejects_duplicate_weekdays() -> None:
    with pytest.raises(ValidationError) as exception_info:
        validate_entries(
            [
                {'weekday': 'monday', 'start_time': '09:00', 'end_time': '12:00'},
                {'weekday': 'Monday', 'start_time': '13:00', 'end_time': '17:00'},
            ]
        )

    assert exception_info.value.errors == ['Entry 1 (monday): weekday monday appears more than once.']


def test_validate_entries_rejects_overlapping_breaks() -> None:
    with pytest.raises(ValidationError) as exception_info:
        validate_entries(
            [
                {
                    'weekday': 'monday',
                    'start_time': '09:00',
                    'end_time': '17:00',
                    'breaks': [{'start': '12:00', 'end': '13:00'}, {'start': '12:30', 'end': '13:30'}],
                },
            ]
        )

    assert 'breaks must not overlap each other' in exception_info.value.errors[0]


def test_validate_entries_merges_adjacent_breaks() -> None:
    (entry,) = validate_entries(
        [
            {
                'weekday': 'thursday',
                'start_time': '08:00',
                'end_time': '16:00',
                'breaks': [{'start': '12:30', 'end': '13:00'}, {'start': '12:00', 'end': '12:30'}],
            },
        ]
    )

    assert entry.breaks == (BreakInterval(720, 780),)


def test_validate_entries_rejects_non_list_payload() -> None:
    with pytest.raises(ValidationError):
        validate_entries({'weekday': 'monday'})


def test_normalize_breaks_merges_overlaps_and_sorts() -> None:
    merged = normalize_breaks([BreakInterval(700, 720), BreakInterval(600, 650), BreakInterval(640, 660)])

    assert merged == (BreakInterval(600, 660), BreakInterval(700, 720))


def test_store_persists_validated_template_and_reads_it_back() -> None:
    store = AvailabilityStore(InMemoryAvailabilityRepository())

    store.set_template(7, [{'weekday': 'monday', 'start_time': '09:00', 'end_time': '12:00', 'is_available': False}])
    template = store.get_template(7)

    assert template.provider_id == 7
    assert template.entry_for('monday').is_available is False
    assert template.entry_for('tuesday') is None


def test_store_does_not_persist_invalid_template() -> None:
    repository = InMemoryAvailabilityRepository()
    store = AvailabilityStore(repository)

    with pytest.raises(ValidationError):
        store.set_template(7, [{'weekday': 'monday', 'start_time': '09:00', 'end_time': '09:00'}])

    assert repository.templates == {}


def test_store_raises_not_found_for_unknown_provider() -> None:
    with pytest.raises(NotFoundError):
        AvailabilityStore(InMemoryAvailabilityRepository()).get_template(404)


def test_validate_entries_rejects_an_empty_template() -> None:
    with pytest.raises(ValidationError) as exception_info:
        validate_entries([])

    assert exception_info.value.errors == ['Availability must contain at least one weekday entry.']


def test_invalid_weekday_label_quotes_the_raw_value() -> None:
    with pytest.raises(ValidationError) as exception_info:
        validate_entries([{'weekday': 3, 'start_time': '09:00', 'end_time': '12:00'}])

    assert exception_info.value.errors[0].startswith('Entry 0 (3): weekday must be one of')


def test_empty_template_leaves_the_stored_template_readable() -> None:
    store = AvailabilityStore(InMemoryAvailabilityRepository())
    store.set_template(7, [{'weekday': 'monday', 'start_time': '09:00', 'end_time': '12:00'}])

    with pytest.raises(ValidationError):
        store.set_template(7, [])

    assert [entry.weekday for entry in store.get_template(7).entries] == ['monday']
