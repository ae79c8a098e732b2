"""Appointment model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import func

from carebook.database import Base


class Appointment(Base):
    """A ledger entry for one booked slot. Rows are never deleted."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    patient_id = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    appointment_type = Column(String(20), nullable=False, default="in-person")
    notes = Column(Text, nullable=True)
    follow_up_of = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    # 1 while pending/confirmed, NULL once terminal; NULLs never collide in the unique index.
    active_slot = Column(Integer, nullable=True, default=1)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("uq_appointments_active_slot", "provider_id", "date", "time", "active_slot", unique=True),
        Index("idx_appointments_patient_date", "patient_id", "date"),
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, provider_id={self.provider_id}, "
            f"date='{self.date}', time='{self.time}', status='{self.status}')>"
        )
