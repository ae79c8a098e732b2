from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from carebook.core.errors import ValidationError
from carebook.database import SessionLocal, ensure_appointment_schema, ensure_availability_schema
from carebook.scheduling.repositories import (
    STORAGE_UNAVAILABLE_DETAIL,
    SqlAppointmentRepository,
    SqlAvailabilityRepository,
)
from carebook.scheduling.service import SchedulingService, ServiceResult

_service: SchedulingService | None = None


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORAGE_UNAVAILABLE_DETAIL,
        ) from exc


def get_scheduling_service() -> SchedulingService:
    global _service

    ensure_database_ready()
    if _service is None:
        _service = SchedulingService(
            appointments=SqlAppointmentRepository(SessionLocal),
            availability=SqlAvailabilityRepository(SessionLocal),
        )
    return _service


def unwrap(result: ServiceResult):
    if result.ok:
        return result.value

    error = result.error
    if isinstance(error, ValidationError):
        raise HTTPException(
            status_code=error.status_code,
            detail={'message': error.message, 'errors': error.errors},
        )
    raise HTTPException(status_code=error.status_code, detail=error.message)
