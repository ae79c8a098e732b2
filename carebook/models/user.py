"""User model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from carebook.database import Base


class User(Base):
    """Identity record the bearer token subject is resolved against."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # patient/provider/admin
    is_active = Column(Boolean, default=True)
