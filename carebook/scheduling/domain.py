"""Value types passed between the scheduling components."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from carebook.scheduling.clock import format_clock


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


class ActorRole(str, Enum):
    PATIENT = "patient"
    PROVIDER = "provider"
    ADMIN = "admin"


class AppointmentType(str, Enum):
    IN_PERSON = "in-person"
    ONLINE = "online"


class EventType(str, Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Actor:
    """Identity context supplied with every call. The core only authorizes."""

    actor_id: int
    role: ActorRole


@dataclass(frozen=True)
class BreakInterval:
    start: int
    end: int

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end

    def to_dict(self) -> dict:
        return {"start": format_clock(self.start), "end": format_clock(self.end)}


@dataclass(frozen=True)
class TemplateEntry:
    weekday: str
    start: int
    end: int
    breaks: tuple[BreakInterval, ...] = ()
    is_available: bool = True

    def to_dict(self) -> dict:
        return {
            "weekday": self.weekday,
            "start_time": format_clock(self.start),
            "end_time": format_clock(self.end),
            "breaks": [interval.to_dict() for interval in self.breaks],
            "is_available": self.is_available,
        }


@dataclass(frozen=True)
class AvailabilityTemplate:
    provider_id: int
    entries: tuple[TemplateEntry, ...] = ()

    def entry_for(self, weekday: str) -> Optional[TemplateEntry]:
        for entry in self.entries:
            if entry.weekday == weekday:
                return entry
        return None


@dataclass(frozen=True)
class NewAppointment:
    provider_id: int
    patient_id: int
    date: date
    time: str
    duration_minutes: int
    reason: str
    appointment_type: AppointmentType = AppointmentType.IN_PERSON
    notes: Optional[str] = None
    follow_up_of: Optional[int] = None


@dataclass(frozen=True)
class AppointmentRecord:
    id: int
    provider_id: int
    patient_id: int
    date: date
    time: str
    duration_minutes: int
    reason: str
    status: AppointmentStatus
    appointment_type: AppointmentType = AppointmentType.IN_PERSON
    notes: Optional[str] = None
    follow_up_of: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active
