"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    hashed_password = Column(String)
    role = Column(String)  # ADMINISTRATOR/VETERINARIAN/SECRETARY/PET_GROOMER/CUSTOMER
    status = Column(String, default="ACTIVE")
    created_at = Column(DateTime, default=datetime.now)
    last_login = Column(DateTime)
