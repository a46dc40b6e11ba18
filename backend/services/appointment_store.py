"""SQLAlchemy-backed appointment storage used by the booking routes."""

from datetime import date

from sqlalchemy.orm import Session

from backend.core.datetimes import day_bounds
from backend.models.appointment import STATUS_CANCELLED, STATUS_COMPLETED, Appointment

_UPDATABLE_FIELDS = frozenset({
    'pet_id',
    'service_provider_id',
    'service_type',
    'appointment_date',
    'duration',
    'reason',
    'notes',
    'status',
})


class AppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, appointment_id: int) -> Appointment | None:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def find_by_date(self, day: date) -> list[Appointment]:
        """All appointments on ``day`` regardless of provider or status."""
        start, end = day_bounds(day)
        return self.db.query(Appointment).filter(
            Appointment.appointment_date >= start,
            Appointment.appointment_date < end,
        ).order_by(Appointment.appointment_date.asc()).all()

    def find_by_date_range(self, start_day: date, end_day: date) -> list[Appointment]:
        range_start, _ = day_bounds(start_day)
        _, range_end = day_bounds(end_day)
        return self.db.query(Appointment).filter(
            Appointment.appointment_date >= range_start,
            Appointment.appointment_date < range_end,
        ).order_by(Appointment.appointment_date.asc()).all()

    def find_by_provider(self, provider_id: int) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.service_provider_id == provider_id,
        ).order_by(Appointment.appointment_date.asc()).all()

    def find_by_pet(self, pet_id: int) -> list[Appointment]:
        return self.find_by_pets([pet_id])

    def find_by_pets(self, pet_ids: list[int]) -> list[Appointment]:
        if not pet_ids:
            return []
        return self.db.query(Appointment).filter(
            Appointment.pet_id.in_(pet_ids),
        ).order_by(Appointment.appointment_date.asc()).all()

    def create(self, **fields) -> Appointment:
        appointment = Appointment(**fields)
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def update(self, appointment: Appointment, **fields) -> Appointment:
        unknown_fields = set(fields) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValueError(f'Cannot update appointment fields: {", ".join(sorted(unknown_fields))}')

        for name, value in fields.items():
            setattr(appointment, name, value)

        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def cancel(self, appointment: Appointment) -> Appointment:
        return self.update(appointment, status=STATUS_CANCELLED)

    def complete(self, appointment: Appointment) -> Appointment:
        return self.update(appointment, status=STATUS_COMPLETED)
