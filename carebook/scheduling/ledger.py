import logging
import time as _time
from datetime import date
from typing import Callable, Optional

from carebook.core.errors import InvalidTransitionError, UnavailableError, ValidationError
from carebook.scheduling.clock import canonical_clock
from carebook.scheduling.domain import AppointmentRecord, AppointmentStatus, AppointmentType, NewAppointment
from carebook.scheduling.ports import AppointmentRepository

logger = logging.getLogger(__name__)


class BookingLedger:
    """The only writer of appointment records.

    Owns the rule that a ``(provider, date, time)`` slot holds at most one
    active appointment. The rule is enforced by the repository's conditional
    insert, so it holds across processes, not just threads.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.05,
        sleep: Callable[[float], None] = _time.sleep,
    ) -> None:
        self._repository = repository
        self._retry_attempts = max(1, retry_attempts)
        self._retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    def book(
        self,
        provider_id: int,
        patient_id: int,
        slot_date: date,
        slot_time: str,
        reason: str,
        duration_minutes: int,
        appointment_type: AppointmentType = AppointmentType.IN_PERSON,
        notes: Optional[str] = None,
        follow_up_of: Optional[int] = None,
    ) -> AppointmentRecord:
        try:
            slot_time = canonical_clock(slot_time)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        appointment = NewAppointment(
            provider_id=provider_id,
            patient_id=patient_id,
            date=slot_date,
            time=slot_time,
            duration_minutes=duration_minutes,
            reason=reason,
            appointment_type=appointment_type,
            notes=notes,
            follow_up_of=follow_up_of,
        )

        # Retrying is safe: a second insert on the same slot can only conflict.
        for attempt in range(1, self._retry_attempts + 1):
            try:
                return self._repository.insert_if_absent(appointment)
            except UnavailableError:
                if attempt == self._retry_attempts:
                    raise
                logger.warning(
                    'Booking write for provider %s on %s %s failed (attempt %s/%s), retrying',
                    provider_id, slot_date, slot_time, attempt, self._retry_attempts,
                )
                self._sleep(self._retry_backoff_seconds * attempt)

        raise UnavailableError('Booking could not be stored.')

    def withdraw(self, appointment_id: int) -> AppointmentRecord:
        current = self._repository.get(appointment_id)
        if not current.is_active:
            raise InvalidTransitionError(
                f'Cannot change status from {current.status.value} to {AppointmentStatus.CANCELLED.value}.'
            )
        return self.transition(appointment_id, current.status, AppointmentStatus.CANCELLED)

    def transition(
        self,
        appointment_id: int,
        expected_status: AppointmentStatus,
        new_status: AppointmentStatus,
    ) -> AppointmentRecord:
        return self._repository.update_status(appointment_id, new_status, expected_status=expected_status)

    def get(self, appointment_id: int) -> AppointmentRecord:
        return self._repository.get(appointment_id)

    def active_on(self, provider_id: int, slot_date: date) -> list[AppointmentRecord]:
        return self._repository.find_active_by(provider_id, slot_date)

    def find(self, **filters) -> list[AppointmentRecord]:
        return self._repository.find(**filters)
