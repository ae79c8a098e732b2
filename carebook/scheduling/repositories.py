"""SQLAlchemy implementations of the scheduling ports.

Every call opens its own session from the injected factory so one repository
instance can be shared by concurrent requests.
"""

from datetime import date
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from carebook.core.errors import ConflictError, InvalidTransitionError, NotFoundError, UnavailableError
from carebook.database import SessionLocal
from carebook.models.appointment import Appointment
from carebook.models.availability import Availability
from carebook.scheduling.clock import WEEKDAYS, format_clock, parse_clock
from carebook.scheduling.domain import (
    ACTIVE_STATUSES,
    AppointmentRecord,
    AppointmentStatus,
    AppointmentType,
    AvailabilityTemplate,
    BreakInterval,
    NewAppointment,
    TemplateEntry,
)

STORAGE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def appointment_to_record(row: Appointment) -> AppointmentRecord:
    return AppointmentRecord(
        id=row.id,
        provider_id=row.provider_id,
        patient_id=row.patient_id,
        date=row.date,
        time=row.time,
        duration_minutes=row.duration_minutes,
        reason=row.reason,
        status=AppointmentStatus(row.status),
        appointment_type=AppointmentType(row.appointment_type or AppointmentType.IN_PERSON.value),
        notes=row.notes,
        follow_up_of=row.follow_up_of,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def availability_to_entry(row: Availability) -> TemplateEntry:
    breaks = tuple(
        BreakInterval(parse_clock(item['start']), parse_clock(item['end']))
        for item in (row.breaks or [])
    )
    return TemplateEntry(
        weekday=row.weekday,
        start=parse_clock(row.start_time),
        end=parse_clock(row.end_time),
        breaks=breaks,
        is_available=bool(row.is_available),
    )


class SqlAppointmentRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def get(self, appointment_id: int) -> AppointmentRecord:
        db = self._session_factory()
        try:
            row = db.get(Appointment, appointment_id)
            if row is None:
                raise NotFoundError('Appointment not found.')
            return appointment_to_record(row)
        except SQLAlchemyError as exc:
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()

    def find_active_by(self, provider_id: int, slot_date: date) -> list[AppointmentRecord]:
        db = self._session_factory()
        try:
            rows = db.query(Appointment).filter(
                Appointment.provider_id == provider_id,
                Appointment.date == slot_date,
                Appointment.status.in_([status.value for status in ACTIVE_STATUSES]),
            ).order_by(Appointment.time.asc()).all()
            return [appointment_to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()

    def insert_if_absent(self, appointment: NewAppointment) -> AppointmentRecord:
        db = self._session_factory()
        try:
            row = Appointment(
                provider_id=appointment.provider_id,
                patient_id=appointment.patient_id,
                date=appointment.date,
                time=appointment.time,
                duration_minutes=appointment.duration_minutes,
                reason=appointment.reason,
                status=AppointmentStatus.PENDING.value,
                appointment_type=appointment.appointment_type.value,
                notes=appointment.notes,
                follow_up_of=appointment.follow_up_of,
                active_slot=1,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return appointment_to_record(row)
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError('This time slot is already booked.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()

    def update_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        expected_status: Optional[AppointmentStatus] = None,
    ) -> AppointmentRecord:
        db = self._session_factory()
        try:
            query = db.query(Appointment).filter(Appointment.id == appointment_id)
            if expected_status is not None:
                query = query.filter(Appointment.status == expected_status.value)

            updated = query.update(
                {
                    Appointment.status: status.value,
                    Appointment.active_slot: 1 if status.is_active else None,
                },
                synchronize_session=False,
            )
            db.commit()

            row = db.get(Appointment, appointment_id)
            if row is None:
                raise NotFoundError('Appointment not found.')
            if not updated:
                raise InvalidTransitionError(
                    f'Cannot change status from {row.status} to {status.value}.'
                )
            db.refresh(row)
            return appointment_to_record(row)
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError('This time slot is already booked.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()

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
        db = self._session_factory()
        try:
            query = db.query(Appointment)
            if provider_id is not None:
                query = query.filter(Appointment.provider_id == provider_id)
            if patient_id is not None:
                query = query.filter(Appointment.patient_id == patient_id)
            if status is not None:
                query = query.filter(Appointment.status == status.value)
            if date_from is not None:
                query = query.filter(Appointment.date >= date_from)
            if date_to is not None:
                query = query.filter(Appointment.date <= date_to)
            if appointment_type is not None:
                query = query.filter(Appointment.appointment_type == appointment_type.value)
            query = query.order_by(
                Appointment.date.asc(), Appointment.time.asc(), Appointment.id.asc()
            ).offset(offset)
            if limit is not None:
                query = query.limit(limit)
            rows = query.all()
            return [appointment_to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()


class SqlAvailabilityRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def get(self, provider_id: int) -> AvailabilityTemplate:
        db = self._session_factory()
        try:
            rows = db.query(Availability).filter(Availability.provider_id == provider_id).all()
        except SQLAlchemyError as exc:
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()

        if not rows:
            raise NotFoundError('Provider has not set their availability.')

        entries = sorted((availability_to_entry(row) for row in rows), key=lambda entry: WEEKDAYS.index(entry.weekday))
        return AvailabilityTemplate(provider_id=provider_id, entries=tuple(entries))

    def replace(self, provider_id: int, entries: Iterable[TemplateEntry]) -> AvailabilityTemplate:
        entries = tuple(entries)
        db = self._session_factory()
        try:
            db.query(Availability).filter(Availability.provider_id == provider_id).delete(
                synchronize_session=False
            )
            for entry in entries:
                db.add(
                    Availability(
                        provider_id=provider_id,
                        weekday=entry.weekday,
                        start_time=format_clock(entry.start),
                        end_time=format_clock(entry.end),
                        is_available=entry.is_available,
                        breaks=[interval.to_dict() for interval in entry.breaks],
                    )
                )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise UnavailableError(STORAGE_UNAVAILABLE_DETAIL) from exc
        finally:
            db.close()

        return AvailabilityTemplate(provider_id=provider_id, entries=entries)
