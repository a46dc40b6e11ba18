import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import SessionUser, get_current_user
from backend.auth.roles import (
    ADMINISTRATOR,
    CUSTOMER,
    SECRETARY,
    STAFF_BOOKING_ROLES,
    VETERINARIAN,
    has_permission,
    is_admin,
)
from backend.core import config
from backend.core.datetimes import (
    combine_local,
    local_date_key,
    local_time_key,
    parse_date,
    parse_time,
    to_local_naive,
)
from backend.database import ensure_appointment_schema, get_db
from backend.models.appointment import (
    APPOINTMENT_STATUSES,
    INACTIVE_STATUSES,
    SERVICE_TYPE_GROOMING,
    SERVICE_TYPE_MEDICAL,
    STATUS_SCHEDULED,
    Appointment,
)
from backend.models.pet import Pet
from backend.models.user import User
from backend.services.appointment_store import AppointmentStore
from backend.services.availability import appointment_duration_minutes, find_conflicts, get_available_times

logger = logging.getLogger(__name__)

router = APIRouter(tags=['appointments'])

DEFAULT_APPOINTMENT_TIME = time(9, 0)
ADMIN_LIST_WINDOW_DAYS = 30
MIN_APPOINTMENT_DURATION_MINUTES = 5
MAX_APPOINTMENT_DURATION_MINUTES = 8 * 60
MAX_APPOINTMENT_NOTES_LENGTH = 1000
EMERGENCY_MARKER = 'EMERGENCY'


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


def map_service_type(value: str) -> str:
    upper_type = value.strip().upper()
    if 'GROOM' in upper_type:
        return SERVICE_TYPE_GROOMING
    return SERVICE_TYPE_MEDICAL


def _parse_optional_date(value):
    if value is None or isinstance(value, date):
        return value
    return parse_date(value)


def _parse_optional_time(value):
    if value is None or isinstance(value, time):
        return value
    return parse_time(value)


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class SlotOptionResponse(CamelModel):
    value: str
    label: str


class AvailableTimesResponse(CamelModel):
    success: bool
    available_slots: list[SlotOptionResponse]
    total_slots: int
    booked_slots: int
    available_count: int


class CreateAppointmentRequest(CamelModel):
    pet_id: int
    day: date = Field(alias='date')
    time_of_day: time = Field(default=DEFAULT_APPOINTMENT_TIME, alias='time')
    service_type: str = Field(alias='type')
    notes: str | None = None
    veterinarian_id: int | None = None
    duration: int = Field(
        default=config.DEFAULT_APPOINTMENT_DURATION_MINUTES,
        ge=MIN_APPOINTMENT_DURATION_MINUTES,
        le=MAX_APPOINTMENT_DURATION_MINUTES,
    )
    is_emergency: bool = False

    @field_validator('day', mode='before')
    @classmethod
    def validate_day(cls, value):
        return _parse_optional_date(value)

    @field_validator('time_of_day', mode='before')
    @classmethod
    def validate_time_of_day(cls, value):
        return _parse_optional_time(value)

    @field_validator('service_type')
    @classmethod
    def validate_service_type(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Appointment type is required.')
        return map_service_type(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateAppointmentRequest(CamelModel):
    day: date | None = Field(default=None, alias='date')
    time_of_day: time | None = Field(default=None, alias='time')
    service_type: str | None = Field(default=None, alias='type')
    notes: str | None = None
    status: str | None = None
    duration: int | None = Field(
        default=None,
        ge=MIN_APPOINTMENT_DURATION_MINUTES,
        le=MAX_APPOINTMENT_DURATION_MINUTES,
    )

    @field_validator('day', mode='before')
    @classmethod
    def validate_day(cls, value):
        return _parse_optional_date(value)

    @field_validator('time_of_day', mode='before')
    @classmethod
    def validate_time_of_day(cls, value):
        return _parse_optional_time(value)

    @field_validator('service_type')
    @classmethod
    def validate_service_type(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return map_service_type(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        # An empty string clears the stored notes.
        return _normalize_notes(value) or ''

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip().upper()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


class AppointmentResponse(CamelModel):
    id: str
    pet_id: str
    pet_name: str
    owner_id: str
    owner_name: str
    veterinarian_id: str
    veterinarian_name: str
    date: str
    time: str
    duration: int
    type: str
    notes: str
    status: str
    is_emergency: bool
    created_at: str


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        logger.exception('Appointment schema check failed.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Database unavailable.',
        ) from exc


def parse_identifier(value: str | None, name: str) -> int | None:
    if value is None or not value.strip():
        return None

    normalized = value.strip()
    if not normalized.isdigit():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'{name} must be a numeric identifier.',
        )
    return int(normalized)


def parse_date_param(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid date format; expected YYYY-MM-DD.',
        ) from exc


def require_permission(user: SessionUser, permission: str) -> None:
    if not has_permission(user.role, permission):
        logger.info('User %s (%s) lacks %s', user.id, user.role, permission)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Not authorized to access appointments.',
        )


def is_staff(user: SessionUser) -> bool:
    return user.role in STAFF_BOOKING_ROLES


def can_book_for_pet(user: SessionUser, pet: Pet) -> bool:
    return pet.owner_id == user.id or is_staff(user)


def can_view_pet_appointments(user: SessionUser, pet: Pet) -> bool:
    return pet.owner_id == user.id or user.role != CUSTOMER


def can_modify_appointment(user: SessionUser, appointment: Appointment, pet: Pet) -> bool:
    return (
        pet.owner_id == user.id
        or appointment.service_provider_id == user.id
        or user.role in {ADMINISTRATOR, SECRETARY}
    )


def find_default_veterinarian_id(db: Session) -> int | None:
    veterinarian = db.query(User).filter(
        User.role == VETERINARIAN,
        User.status == 'ACTIVE',
    ).order_by(User.id.asc()).first()
    return veterinarian.id if veterinarian else None


def serialize_appointment(appointment: Appointment) -> AppointmentResponse:
    pet = appointment.pet
    owner = pet.owner if pet else None
    provider = appointment.provider
    start = to_local_naive(appointment.appointment_date)
    reason = appointment.reason or ''

    return AppointmentResponse(
        id=str(appointment.id),
        pet_id=str(appointment.pet_id),
        pet_name=pet.name if pet else 'Unknown Pet',
        owner_id=str(owner.id) if owner else '',
        owner_name=owner.full_name if owner and owner.full_name else 'Unknown Owner',
        veterinarian_id=str(appointment.service_provider_id),
        veterinarian_name=provider.full_name if provider and provider.full_name else 'Unknown Veterinarian',
        date=local_date_key(start),
        time=local_time_key(start),
        duration=appointment_duration_minutes(appointment),
        type=appointment.service_type or SERVICE_TYPE_MEDICAL,
        notes=appointment.notes or '',
        status=(appointment.status or STATUS_SCHEDULED).lower(),
        is_emergency=reason.upper().startswith(EMERGENCY_MARKER),
        created_at=local_date_key(appointment.created_at) if appointment.created_at else '-',
    )


def raise_if_conflicting(
    store: AppointmentStore,
    provider_id: int,
    start: datetime,
    duration: int,
    exclude_id: int | None = None,
) -> None:
    # Durations stay under a day, so only the previous day can spill into this one.
    end = start + timedelta(minutes=duration)
    nearby = store.find_by_date_range(start.date() - timedelta(days=1), end.date())
    conflicts = find_conflicts(nearby, provider_id, start, duration, exclude_id=exclude_id)
    if conflicts:
        logger.info(
            'Rejected booking for provider %s at %s: overlaps appointment %s',
            provider_id,
            start,
            conflicts[0].id,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This veterinarian already has an appointment at this time. Please select a different time slot.',
        )


@router.get('/available-times', response_model=AvailableTimesResponse)
def list_available_times(
    day: str | None = Query(default=None, alias='date'),
    provider_id: str | None = Query(default=None, alias='providerId'),
    veterinarian_id: str | None = Query(default=None, alias='veterinarianId'),
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_permission(current_user, 'read:appointments')
    requested_provider = provider_id if provider_id and provider_id.strip() else veterinarian_id

    if not day or not day.strip() or not requested_provider or not requested_provider.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Date and providerId are required.',
        )

    requested_day = parse_date_param(day)
    requested_provider_id = parse_identifier(requested_provider, 'providerId')

    ensure_database_ready()

    try:
        result = get_available_times(AppointmentStore(db), requested_day, requested_provider_id)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching available time slots for %s on %s.', requested_provider_id, requested_day)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to fetch available time slots.',
        ) from exc

    return AvailableTimesResponse(
        success=True,
        available_slots=[
            SlotOptionResponse(value=slot.value, label=slot.label)
            for slot in result.available_slots
        ],
        total_slots=result.total_slots,
        booked_slots=result.booked_slots,
        available_count=result.available_count,
    )


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    day: str | None = Query(default=None, alias='date'),
    pet_id: str | None = Query(default=None, alias='petId'),
    status_filter: str | None = Query(default=None, alias='status'),
    veterinarian_id: str | None = Query(default=None, alias='veterinarianId'),
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_permission(current_user, 'read:appointments')
    requested_day = parse_date_param(day) if day and day.strip() else None
    requested_pet_id = parse_identifier(pet_id, 'petId')
    requested_provider_id = parse_identifier(veterinarian_id, 'veterinarianId')

    ensure_database_ready()

    try:
        store = AppointmentStore(db)

        if requested_pet_id is not None:
            pet = db.query(Pet).filter(Pet.id == requested_pet_id).first()
            if not pet:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Pet not found.')
            if not can_view_pet_appointments(current_user, pet):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail='Not authorized to view appointments for this pet.',
                )
            appointments = store.find_by_pet(requested_pet_id)
        elif is_admin(current_user.role):
            if requested_day:
                appointments = store.find_by_date(requested_day)
            else:
                today = date.today()
                appointments = store.find_by_date_range(
                    today - timedelta(days=ADMIN_LIST_WINDOW_DAYS),
                    today + timedelta(days=ADMIN_LIST_WINDOW_DAYS),
                )
        elif current_user.role == VETERINARIAN:
            appointments = store.find_by_provider(current_user.id)
        else:
            owned_pets = db.query(Pet.id).filter(Pet.owner_id == current_user.id).all()
            pet_ids = [owned_pet_id for (owned_pet_id,) in owned_pets]
            appointments = store.find_by_pets(pet_ids)

        if requested_day:
            day_key = local_date_key(requested_day)
            appointments = [
                appointment for appointment in appointments
                if local_date_key(to_local_naive(appointment.appointment_date)) == day_key
            ]

        if requested_provider_id is not None:
            appointments = [
                appointment for appointment in appointments
                if appointment.service_provider_id == requested_provider_id
            ]

        if status_filter and status_filter.strip():
            wanted_status = status_filter.strip().upper()
            appointments = [
                appointment for appointment in appointments
                if (appointment.status or '').upper() == wanted_status
            ]

        return [serialize_appointment(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        logger.exception('Error fetching appointments.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to fetch appointments.',
        ) from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_permission(current_user, 'write:appointments')
    ensure_database_ready()

    try:
        pet = db.query(Pet).filter(Pet.id == data.pet_id).first()
        if not pet:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Pet not found.')

        if not can_book_for_pet(current_user, pet):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Not authorized to book appointment for this pet.',
            )

        provider_id = data.veterinarian_id or find_default_veterinarian_id(db)
        if provider_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='No veterinarian available for appointment.',
            )

        if not db.query(User.id).filter(User.id == provider_id, User.role == VETERINARIAN).first():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Veterinarian not found.')

        start = combine_local(data.day, data.time_of_day)
        store = AppointmentStore(db)
        raise_if_conflicting(store, provider_id, start, data.duration)

        reason = data.notes
        if data.is_emergency:
            reason = f'{EMERGENCY_MARKER}: {data.notes}' if data.notes else EMERGENCY_MARKER

        appointment = store.create(
            pet_id=pet.id,
            service_provider_id=provider_id,
            creator_id=current_user.id,
            service_type=data.service_type,
            appointment_date=start,
            duration=data.duration,
            reason=reason,
            notes=data.notes,
            status=STATUS_SCHEDULED,
        )
        logger.info(
            'Booked appointment %s for pet %s with provider %s on %s at %s',
            appointment.id,
            pet.id,
            provider_id,
            local_date_key(start),
            local_time_key(start),
        )

        return serialize_appointment(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error creating appointment.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to create appointment.',
        ) from exc


def _load_modifiable_appointment(
    appointment_id: int,
    current_user: SessionUser,
    store: AppointmentStore,
    action: str,
) -> Appointment:
    appointment = store.find_by_id(appointment_id)
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    pet = appointment.pet
    if not pet:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Pet not found.')

    if not can_modify_appointment(current_user, appointment, pet):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f'Not authorized to {action} this appointment.',
        )

    return appointment


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_permission(current_user, 'write:appointments')
    ensure_database_ready()

    try:
        store = AppointmentStore(db)
        appointment = _load_modifiable_appointment(appointment_id, current_user, store, 'update')

        changes: dict = {}
        current_start = to_local_naive(appointment.appointment_date)
        new_start = combine_local(
            data.day or current_start.date(),
            data.time_of_day or current_start.time(),
        )
        new_duration = data.duration or appointment_duration_minutes(appointment)
        new_status = data.status or appointment.status or STATUS_SCHEDULED

        if new_start != current_start:
            changes['appointment_date'] = new_start
        if data.duration is not None:
            changes['duration'] = data.duration
        if data.service_type is not None:
            changes['service_type'] = data.service_type
        if data.notes is not None:
            changes['notes'] = data.notes or None
        if data.status is not None:
            changes['status'] = data.status

        reschedules = 'appointment_date' in changes or 'duration' in changes
        reactivates = (appointment.status or '').upper() in INACTIVE_STATUSES and new_status not in INACTIVE_STATUSES
        if (reschedules or reactivates) and new_status not in INACTIVE_STATUSES:
            raise_if_conflicting(
                store,
                appointment.service_provider_id,
                new_start,
                new_duration,
                exclude_id=appointment.id,
            )

        if changes:
            appointment = store.update(appointment, **changes)
            logger.info('Updated appointment %s: %s', appointment.id, ', '.join(sorted(changes)))

        return serialize_appointment(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error updating appointment %s.', appointment_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to update appointment.',
        ) from exc


@router.delete('/{appointment_id}')
def cancel_appointment(
    appointment_id: int,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_permission(current_user, 'write:appointments')
    ensure_database_ready()

    try:
        store = AppointmentStore(db)
        appointment = _load_modifiable_appointment(appointment_id, current_user, store, 'delete')
        store.cancel(appointment)
        logger.info('Cancelled appointment %s', appointment_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error cancelling appointment %s.', appointment_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to cancel appointment.',
        ) from exc

    return {'success': True}
