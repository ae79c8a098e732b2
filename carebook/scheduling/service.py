"""Scheduling facade: the operations the rest of the platform calls.

Every public method returns a ``ServiceResult``. Expected outcomes such as a
lost slot or a forbidden transition come back in ``result.error``; they are
never raised to the caller.
"""

import functools
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from carebook.core import config
from carebook.core.errors import (
    ConflictError,
    ForbiddenError,
    SchedulingError,
    UnavailableError,
    ValidationError,
)
from carebook.scheduling.availability_store import AvailabilityStore
from carebook.scheduling.clock import format_clock, load_zone, now_in, parse_clock, parse_date
from carebook.scheduling.domain import (
    Actor,
    ActorRole,
    AppointmentRecord,
    AppointmentStatus,
    AppointmentType,
    AvailabilityTemplate,
    EventType,
)
from carebook.scheduling.events import LoggingEventSink
from carebook.scheduling.ledger import BookingLedger
from carebook.scheduling.ports import AppointmentRepository, AvailabilityRepository, EventSink
from carebook.scheduling.slot_generator import SlotGenerator
from carebook.scheduling.state_machine import check_transition

logger = logging.getLogger(__name__)

STATUS_EVENTS = {
    AppointmentStatus.CONFIRMED: EventType.CONFIRMED,
    AppointmentStatus.COMPLETED: EventType.COMPLETED,
    AppointmentStatus.CANCELLED: EventType.CANCELLED,
}


@dataclass(frozen=True)
class ServiceResult:
    value: Any = None
    error: Optional[SchedulingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _returns_result(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs) -> ServiceResult:
        try:
            return ServiceResult(value=method(self, *args, **kwargs))
        except UnavailableError as exc:
            logger.error('Storage unavailable during %s: %s', method.__name__, exc.message, exc_info=exc)
            return ServiceResult(error=exc)
        except SchedulingError as exc:
            return ServiceResult(error=exc)

    return wrapper


class SchedulingService:
    def __init__(
        self,
        appointments: AppointmentRepository,
        availability: AvailabilityRepository,
        events: Optional[EventSink] = None,
        duration_minutes: int = config.SLOT_DURATION_MINUTES,
        timezone: str = config.SCHEDULING_TIMEZONE,
        cancellation_cutoff_hours: Optional[int] = config.CANCELLATION_CUTOFF_HOURS,
        retry_attempts: int = config.BOOKING_RETRY_ATTEMPTS,
        max_reason_length: int = config.MAX_REASON_LENGTH,
        max_notes_length: int = config.MAX_NOTES_LENGTH,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._zone = load_zone(timezone)
        self._clock = clock or (lambda: now_in(self._zone))
        self._events = events or LoggingEventSink()
        self._cancellation_cutoff_hours = cancellation_cutoff_hours
        self._max_reason_length = max_reason_length
        self._max_notes_length = max_notes_length

        self.availability = AvailabilityStore(availability)
        self.ledger = BookingLedger(appointments, retry_attempts=retry_attempts)
        self.slots = SlotGenerator(
            self.availability,
            appointments,
            duration_minutes=duration_minutes,
            today=self.today,
        )

    def today(self) -> date:
        return self._clock().date()

    # Availability

    @_returns_result
    def get_availability(self, provider_id: int) -> AvailabilityTemplate:
        return self.availability.get_template(provider_id)

    @_returns_result
    def set_availability(self, provider_id: int, entries: Iterable[Any], actor: Actor) -> AvailabilityTemplate:
        if actor.role != ActorRole.ADMIN and not (
            actor.role == ActorRole.PROVIDER and actor.actor_id == provider_id
        ):
            raise ForbiddenError('Only the provider or an admin can change this availability.')
        return self.availability.set_template(provider_id, entries)

    # Slots and booking

    @_returns_result
    def list_available_slots(self, provider_id: int, slot_date: date | str) -> list[str]:
        return self.slots.generate_slots(provider_id, self._parse_date(slot_date))

    @_returns_result
    def book_appointment(
        self,
        patient_id: int,
        provider_id: int,
        slot_date: date | str,
        slot_time: str,
        reason: str,
        appointment_type: AppointmentType | str = AppointmentType.IN_PERSON,
        notes: Optional[str] = None,
        follow_up_of: Optional[int] = None,
    ) -> AppointmentRecord:
        errors: list[str] = []

        try:
            parsed_date = parse_date(slot_date)
        except ValueError as exc:
            errors.append(str(exc))
            parsed_date = None
        try:
            minute = parse_clock(slot_time)
        except ValueError as exc:
            errors.append(str(exc))
            minute = None

        reason = (reason or '').strip()
        if not reason:
            errors.append('A reason for the appointment is required.')
        elif len(reason) > self._max_reason_length:
            errors.append(f'Reason must be {self._max_reason_length} characters or fewer.')

        notes = (notes.strip() or None) if notes else None
        if notes and len(notes) > self._max_notes_length:
            errors.append(f'Notes must be {self._max_notes_length} characters or fewer.')

        try:
            appointment_type = AppointmentType(appointment_type)
        except ValueError:
            errors.append('Appointment type must be in-person or online.')

        if errors:
            raise ValidationError('Invalid booking request.', errors=errors)

        if parsed_date < self.today():
            raise ValidationError('Appointment date cannot be in the past.')

        if follow_up_of is not None:
            self._check_follow_up(follow_up_of, patient_id)

        # Checked against a freshly read template, never a cached one.
        if minute not in self.slots.template_ticks(provider_id, parsed_date):
            raise ValidationError(f'{format_clock(minute)} is not a bookable slot for this provider on {parsed_date}.')
        if minute not in self.slots.generate_ticks(provider_id, parsed_date):
            raise ConflictError('This time slot is already booked.')

        appointment = self.ledger.book(
            provider_id=provider_id,
            patient_id=patient_id,
            slot_date=parsed_date,
            slot_time=format_clock(minute),
            reason=reason,
            duration_minutes=self.slots.duration_minutes,
            appointment_type=appointment_type,
            notes=notes,
            follow_up_of=follow_up_of,
        )
        self._publish(EventType.BOOKED, appointment)
        return appointment

    # Lifecycle

    @_returns_result
    def confirm_appointment(self, appointment_id: int, actor: Actor) -> AppointmentRecord:
        return self._change_status(appointment_id, actor, AppointmentStatus.CONFIRMED)

    @_returns_result
    def complete_appointment(self, appointment_id: int, actor: Actor) -> AppointmentRecord:
        return self._change_status(appointment_id, actor, AppointmentStatus.COMPLETED)

    @_returns_result
    def cancel_appointment(self, appointment_id: int, actor: Actor) -> AppointmentRecord:
        return self._change_status(appointment_id, actor, AppointmentStatus.CANCELLED)

    # Reads

    @_returns_result
    def get_appointment(self, appointment_id: int, actor: Actor) -> AppointmentRecord:
        appointment = self.ledger.get(appointment_id)
        if actor.role != ActorRole.ADMIN and not self._is_party(appointment, actor):
            raise ForbiddenError('You are not allowed to view this appointment.')
        return appointment

    @_returns_result
    def list_appointments(
        self,
        actor: Actor,
        status: AppointmentStatus | str | None = None,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
        appointment_type: AppointmentType | str | None = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[AppointmentRecord]:
        if offset < 0:
            raise ValidationError('Offset cannot be negative.')
        if limit is not None and limit < 1:
            raise ValidationError('Limit must be at least 1.')

        filters: dict[str, Any] = {'offset': offset, 'limit': limit}
        if status is not None:
            try:
                filters['status'] = AppointmentStatus(status)
            except ValueError as exc:
                raise ValidationError(f'Unknown appointment status {status!r}.') from exc
        if date_from is not None:
            filters['date_from'] = self._parse_date(date_from)
        if date_to is not None:
            filters['date_to'] = self._parse_date(date_to)
        if appointment_type is not None:
            try:
                filters['appointment_type'] = AppointmentType(appointment_type)
            except ValueError as exc:
                raise ValidationError('Appointment type must be in-person or online.') from exc

        if actor.role == ActorRole.PATIENT:
            filters['patient_id'] = actor.actor_id
        elif actor.role == ActorRole.PROVIDER:
            filters['provider_id'] = actor.actor_id
        return self.ledger.find(**filters)

    # Internals

    def _change_status(self, appointment_id: int, actor: Actor, target: AppointmentStatus) -> AppointmentRecord:
        appointment = self.ledger.get(appointment_id)
        is_owner = self._is_party(appointment, actor)

        check_transition(appointment.status, target, actor.role, is_owner)

        if actor.role == ActorRole.PROVIDER and not is_owner:
            raise ForbiddenError('Providers can only manage their own appointments.')
        if target == AppointmentStatus.CANCELLED and actor.role == ActorRole.PATIENT:
            self._check_cancellation_cutoff(appointment)

        updated = self.ledger.transition(appointment_id, appointment.status, target)
        self._publish(STATUS_EVENTS[target], updated)
        return updated

    def _check_cancellation_cutoff(self, appointment: AppointmentRecord) -> None:
        if self._cancellation_cutoff_hours is None:
            return
        minute = parse_clock(appointment.time)
        starts_at = datetime.combine(appointment.date, datetime.min.time(), tzinfo=self._zone) + timedelta(minutes=minute)
        if starts_at - self._clock() < timedelta(hours=self._cancellation_cutoff_hours):
            raise ValidationError(
                f'Appointment cannot be cancelled less than {self._cancellation_cutoff_hours} hours '
                'before the scheduled time.'
            )

    def _check_follow_up(self, follow_up_of: int, patient_id: int) -> None:
        previous = self.ledger.get(follow_up_of)
        if previous.patient_id != patient_id:
            raise ValidationError('A follow-up must reference one of the patient\'s own appointments.')
        if previous.status != AppointmentStatus.COMPLETED:
            raise ValidationError('A follow-up can only be booked for a completed appointment.')

    def _publish(self, event_type: EventType, appointment: AppointmentRecord) -> None:
        try:
            self._events.publish(event_type, appointment)
        except Exception:
            logger.exception('Failed to publish %s event for appointment %s', event_type.value, appointment.id)

    @staticmethod
    def _is_party(appointment: AppointmentRecord, actor: Actor) -> bool:
        if actor.role == ActorRole.PATIENT:
            return appointment.patient_id == actor.actor_id
        if actor.role == ActorRole.PROVIDER:
            return appointment.provider_id == actor.actor_id
        return False

    @staticmethod
    def _parse_date(value: date | str) -> date:
        try:
            return parse_date(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
