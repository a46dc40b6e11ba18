"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.pet import Pet
from backend.models.user import User

STATUS_SCHEDULED = "SCHEDULED"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"
STATUS_NO_SHOW = "NO_SHOW"

APPOINTMENT_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW)
INACTIVE_STATUSES = frozenset({STATUS_CANCELLED, STATUS_NO_SHOW})

SERVICE_TYPE_MEDICAL = "MEDICAL"
SERVICE_TYPE_GROOMING = "GROOMING"


class Appointment(Base):
    """A booked visit with a service provider.

    ``appointment_date`` holds the clinic's local wall-clock date and time.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    pet_id = Column(Integer, ForeignKey("pets.id"), nullable=False)
    service_provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"))
    service_type = Column(String(20), default=SERVICE_TYPE_MEDICAL)
    appointment_date = Column(DateTime, nullable=False)
    duration = Column(Integer, default=30)
    reason = Column(String)
    notes = Column(String)
    status = Column(String(20), default=STATUS_SCHEDULED)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    pet = relationship(Pet, foreign_keys=[pet_id])
    provider = relationship(User, foreign_keys=[service_provider_id])
