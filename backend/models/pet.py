"""Pet model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.user import User


class Pet(Base):
    """A patient registered by its owner."""
    __tablename__ = "pets"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String, nullable=False)
    species = Column(String)
    breed = Column(String)
    status = Column(String, default="ACTIVE")

    owner = relationship(User)
