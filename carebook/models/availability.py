"""Availability model definitions."""

from sqlalchemy import JSON, Boolean, Column, Index, Integer, String
from carebook.database import Base


class Availability(Base):
    """One weekday entry of a provider's recurring weekly template."""
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False)
    weekday = Column(String(9), nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    breaks = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("uq_availability_provider_weekday", "provider_id", "weekday", unique=True),
    )
