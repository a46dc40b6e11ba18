from datetime import date, datetime
from types import SimpleNamespace

import pytest

from backend.services.availability import (
    DEFAULT_SLOT_TEMPLATE,
    build_slot_template,
    calculate_available_slots,
    find_conflicts,
    get_available_times,
    overlaps,
)

SAMPLE_DAY = date(2024, 5, 28)
SHORT_TEMPLATE = ['09:00', '09:30', '10:00', '10:30', '11:00']


def _appointment(hour: int, minute: int = 0, *, provider_id: int = 2, duration=30, status='SCHEDULED', id=1):
    return SimpleNamespace(
        id=id,
        service_provider_id=provider_id,
        appointment_date=datetime(SAMPLE_DAY.year, SAMPLE_DAY.month, SAMPLE_DAY.day, hour, minute),
        duration=duration,
        status=status,
    )


def _values(result) -> list[str]:
    return [slot.value for slot in result.available_slots]


def test_default_template_runs_from_nine_to_five_in_half_hours() -> None:
    assert DEFAULT_SLOT_TEMPLATE[0] == '09:00'
    assert DEFAULT_SLOT_TEMPLATE[-1] == '17:00'
    assert len(DEFAULT_SLOT_TEMPLATE) == 17


def test_build_slot_template_is_inclusive() -> None:
    assert build_slot_template('09:00', '11:00', 30) == SHORT_TEMPLATE


def test_build_slot_template_rejects_non_positive_step() -> None:
    with pytest.raises(ValueError):
        build_slot_template('09:00', '11:00', 0)


@pytest.mark.parametrize(
    ('interval', 'other', 'expected'),
    [
        ((540, 570), (570, 600), False),
        ((600, 630), (570, 600), False),
        ((570, 600), (570, 600), True),
        ((540, 600), (570, 600), True),
        ((575, 580), (570, 600), True),
    ],
)
def test_overlaps_uses_half_open_intervals(interval, other, expected) -> None:
    assert overlaps(*interval, *other) is expected


def test_thirty_minute_appointment_removes_only_its_own_slot() -> None:
    result = calculate_available_slots([_appointment(9, 30)], provider_id=2, slot_template=SHORT_TEMPLATE)

    assert _values(result) == ['09:00', '10:00', '10:30', '11:00']


def test_sixty_minute_appointment_removes_two_slots() -> None:
    result = calculate_available_slots(
        [_appointment(10, 0, duration=60)],
        provider_id=2,
        slot_template=SHORT_TEMPLATE,
    )

    assert _values(result) == ['09:00', '09:30', '11:00']


def test_off_grid_appointment_blocks_every_slot_it_touches() -> None:
    result = calculate_available_slots(
        [_appointment(9, 45, duration=30)],
        provider_id=2,
        slot_template=SHORT_TEMPLATE,
    )

    assert _values(result) == ['09:00', '10:30', '11:00']


@pytest.mark.parametrize('duration', [None, 0])
def test_missing_duration_defaults_to_thirty_minutes(duration) -> None:
    result = calculate_available_slots(
        [_appointment(10, 0, duration=duration)],
        provider_id=2,
        slot_template=SHORT_TEMPLATE,
    )

    assert _values(result) == ['09:00', '09:30', '10:30', '11:00']


@pytest.mark.parametrize('status', ['CANCELLED', 'NO_SHOW', 'cancelled'])
def test_inactive_appointments_never_remove_slots(status: str) -> None:
    result = calculate_available_slots(
        [_appointment(9, 30, status=status)],
        provider_id=2,
        slot_template=SHORT_TEMPLATE,
    )

    assert _values(result) == SHORT_TEMPLATE
    assert result.booked_slots == 0


def test_completed_appointments_still_occupy_their_slot() -> None:
    result = calculate_available_slots(
        [_appointment(9, 30, status='COMPLETED')],
        provider_id=2,
        slot_template=SHORT_TEMPLATE,
    )

    assert '09:30' not in _values(result)


def test_other_providers_appointments_do_not_remove_slots() -> None:
    appointments = [_appointment(9, 30, provider_id=7), _appointment(10, 0, provider_id=7, duration=90)]

    result = calculate_available_slots(appointments, provider_id=2, slot_template=SHORT_TEMPLATE)

    assert _values(result) == SHORT_TEMPLATE


def test_result_counts_and_labels() -> None:
    appointments = [
        _appointment(9, 0, id=1),
        _appointment(13, 0, duration=60, id=2),
        _appointment(15, 0, status='CANCELLED', id=3),
        _appointment(16, 0, provider_id=9, id=4),
    ]

    result = calculate_available_slots(appointments, provider_id=2)

    assert result.total_slots == 17
    assert result.booked_slots == 2
    assert result.available_count == 14
    assert result.available_slots[0].value == '09:30'
    assert result.available_slots[0].label == '9:30 AM'
    assert [slot.label for slot in result.available_slots if slot.value == '12:00'] == ['12:00 PM']
    assert [slot.label for slot in result.available_slots if slot.value == '17:00'] == ['5:00 PM']


def test_output_is_an_ordered_subset_of_the_template_without_overlaps() -> None:
    appointments = [
        _appointment(9, 15, duration=20, id=1),
        _appointment(11, 0, duration=45, id=2),
        _appointment(14, 30, duration=90, id=3),
        _appointment(10, 0, status='NO_SHOW', id=4),
    ]

    result = calculate_available_slots(appointments, provider_id=2)
    values = _values(result)

    assert values == [slot for slot in DEFAULT_SLOT_TEMPLATE if slot in values]
    for value in values:
        hours, minutes = map(int, value.split(':'))
        slot_start = hours * 60 + minutes
        for appointment in appointments[:3]:
            start = appointment.appointment_date.hour * 60 + appointment.appointment_date.minute
            assert not overlaps(slot_start, slot_start + 30, start, start + appointment.duration)


def test_calculation_is_idempotent() -> None:
    appointments = [_appointment(9, 30), _appointment(12, 0, duration=60, id=2)]

    first = calculate_available_slots(appointments, provider_id=2)
    second = calculate_available_slots(appointments, provider_id=2)

    assert first == second


def test_get_available_times_reads_the_requested_day_from_the_store() -> None:
    requested_days = []

    class FakeStore:
        def find_by_date(self, day):
            requested_days.append(day)
            return [_appointment(9, 30)]

    result = get_available_times(FakeStore(), SAMPLE_DAY, provider_id=2, slot_template=SHORT_TEMPLATE)

    assert requested_days == [SAMPLE_DAY]
    assert _values(result) == ['09:00', '10:00', '10:30', '11:00']


def test_find_conflicts_applies_the_same_overlap_rule() -> None:
    appointments = [
        _appointment(10, 0, id=1),
        _appointment(10, 0, provider_id=5, id=2),
        _appointment(11, 0, status='CANCELLED', id=3),
    ]

    assert [a.id for a in find_conflicts(appointments, 2, start=datetime(2024, 5, 28, 10, 0), duration=30)] == [1]
    assert find_conflicts(appointments, 2, start=datetime(2024, 5, 28, 9, 30), duration=30) == []
    assert find_conflicts(appointments, 2, start=datetime(2024, 5, 28, 10, 30), duration=30) == []
    assert find_conflicts(appointments, 2, start=datetime(2024, 5, 28, 11, 0), duration=30) == []


def test_find_conflicts_can_exclude_the_appointment_being_moved() -> None:
    appointments = [_appointment(10, 0, id=1)]

    assert find_conflicts(appointments, 2, start=datetime(2024, 5, 28, 10, 15), duration=30, exclude_id=1) == []


def test_find_conflicts_sees_appointments_running_past_midnight() -> None:
    late = _appointment(23, 30, duration=120, id=1)

    next_morning = find_conflicts([late], 2, start=datetime(2024, 5, 29, 0, 30), duration=30)
    after_it_ends = find_conflicts([late], 2, start=datetime(2024, 5, 29, 1, 30), duration=30)

    assert [a.id for a in next_morning] == [1]
    assert after_it_ends == []


def test_find_conflicts_ignores_same_clock_time_on_another_day() -> None:
    appointments = [_appointment(10, 0, id=1)]

    assert find_conflicts(appointments, 2, start=datetime(2024, 5, 29, 10, 0), duration=30) == []
