"""Interfaces the scheduling core consumes. SQLAlchemy implementations live in
``carebook.scheduling.repositories``; tests may pass in any object with the same shape."""

from datetime import date
from typing import Iterable, Optional, Protocol

from carebook.scheduling.domain import (
    AppointmentRecord,
    AppointmentStatus,
    AppointmentType,
    AvailabilityTemplate,
    EventType,
    NewAppointment,
    TemplateEntry,
)


class AppointmentRepository(Protocol):
    def get(self, appointment_id: int) -> AppointmentRecord:
        """Raise ``NotFoundError`` when the id is unknown."""

    def find_active_by(self, provider_id: int, slot_date: date) -> list[AppointmentRecord]:
        ...

    def insert_if_absent(self, appointment: NewAppointment) -> AppointmentRecord:
        """Insert a pending appointment unless its slot already holds an active one.

        Raise ``ConflictError`` when it does. Must be a single atomic write.
        """

    def update_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        expected_status: Optional[AppointmentStatus] = None,
    ) -> AppointmentRecord:
        ...

    def find(
        self,
        provider_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        appointment_type: Optional[AppointmentType] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[AppointmentRecord]:
        ...


class AvailabilityRepository(Protocol):
    def get(self, provider_id: int) -> AvailabilityTemplate:
        """Raise ``NotFoundError`` when the provider has no template."""

    def replace(self, provider_id: int, entries: Iterable[TemplateEntry]) -> AvailabilityTemplate:
        ...


class EventSink(Protocol):
    def publish(self, event_type: EventType, appointment: AppointmentRecord) -> None:
        ...
