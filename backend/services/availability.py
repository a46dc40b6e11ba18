"""Bookable time slots for a provider on a given day.

Availability is never stored. Each call re-reads the day's appointments and
removes every template slot that overlaps an active one, using half-open
intervals so back-to-back bookings do not block their neighbours.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Protocol

from backend.core import config
from backend.core.datetimes import (
    format_12_hour,
    minutes_since_midnight,
    minutes_to_time_key,
    to_local_naive,
)
from backend.models.appointment import INACTIVE_STATUSES

logger = logging.getLogger(__name__)


class AppointmentSource(Protocol):
    def find_by_date(self, day: date) -> list: ...


@dataclass(frozen=True)
class SlotOption:
    value: str
    label: str


@dataclass(frozen=True)
class AvailabilityResult:
    available_slots: list[SlotOption]
    total_slots: int
    booked_slots: int
    available_count: int


def build_slot_template(
    first_slot: str = config.CLINIC_FIRST_SLOT,
    last_slot: str = config.CLINIC_LAST_SLOT,
    step_minutes: int = config.SLOT_INCREMENT_MINUTES,
) -> list[str]:
    if step_minutes <= 0:
        raise ValueError('Slot step must be a positive number of minutes.')

    current = minutes_since_midnight(first_slot)
    last = minutes_since_midnight(last_slot)
    template: list[str] = []

    while current <= last:
        template.append(minutes_to_time_key(current))
        current += step_minutes

    return template


DEFAULT_SLOT_TEMPLATE = build_slot_template()


def is_active(appointment) -> bool:
    return (appointment.status or '').upper() not in INACTIVE_STATUSES


def appointment_duration_minutes(appointment) -> int:
    duration = appointment.duration
    if not duration or duration <= 0:
        return config.DEFAULT_APPOINTMENT_DURATION_MINUTES
    return int(duration)


def appointment_interval(appointment) -> tuple[int, int]:
    start = minutes_since_midnight(to_local_naive(appointment.appointment_date))
    return start, start + appointment_duration_minutes(appointment)


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    return start < other_end and end > other_start


def active_provider_appointments(appointments: Iterable, provider_id: int) -> list:
    return [
        appointment for appointment in appointments
        if appointment.service_provider_id == provider_id and is_active(appointment)
    ]


def calculate_available_slots(
    appointments: Iterable,
    provider_id: int,
    slot_template: list[str] | None = None,
    slot_duration: int = config.SLOT_INCREMENT_MINUTES,
) -> AvailabilityResult:
    template = DEFAULT_SLOT_TEMPLATE if slot_template is None else slot_template
    provider_appointments = active_provider_appointments(appointments, provider_id)
    busy_intervals = [appointment_interval(appointment) for appointment in provider_appointments]

    available: list[SlotOption] = []
    for slot in template:
        slot_start = minutes_since_midnight(slot)
        slot_end = slot_start + slot_duration

        if any(overlaps(slot_start, slot_end, busy_start, busy_end) for busy_start, busy_end in busy_intervals):
            logger.debug('Slot %s overlaps an appointment for provider %s', slot, provider_id)
            continue

        available.append(SlotOption(value=slot, label=format_12_hour(slot)))

    return AvailabilityResult(
        available_slots=available,
        total_slots=len(template),
        booked_slots=len(provider_appointments),
        available_count=len(available),
    )


def get_available_times(
    store: AppointmentSource,
    day: date,
    provider_id: int,
    slot_template: list[str] | None = None,
) -> AvailabilityResult:
    appointments = store.find_by_date(day)
    return calculate_available_slots(appointments, provider_id, slot_template)


def appointment_span(appointment) -> tuple[datetime, datetime]:
    start = to_local_naive(appointment.appointment_date)
    return start, start + timedelta(minutes=appointment_duration_minutes(appointment))


def find_conflicts(
    appointments: Iterable,
    provider_id: int,
    start: datetime,
    duration: int,
    exclude_id: int | None = None,
) -> list:
    """Active appointments of ``provider_id`` overlapping a proposed booking.

    Bookings are compared as absolute local datetimes, so an appointment that
    runs past midnight still blocks the first minutes of the next day.
    """
    start = to_local_naive(start)
    end = start + timedelta(minutes=duration)
    conflicts = []

    for appointment in active_provider_appointments(appointments, provider_id):
        if exclude_id is not None and appointment.id == exclude_id:
            continue

        busy_start, busy_end = appointment_span(appointment)
        if start < busy_end and end > busy_start:
            conflicts.append(appointment)

    return conflicts
