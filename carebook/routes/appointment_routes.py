from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from carebook.auth.dependencies import get_current_actor
from carebook.routes.common import get_scheduling_service, unwrap
from carebook.scheduling.domain import Actor, ActorRole, AppointmentRecord
from carebook.scheduling.service import SchedulingService

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    date: date
    time: str
    reason: str
    appointment_type: str = 'in-person'
    notes: str | None = None
    follow_up_of: int | None = None
    patient_id: int | None = None

    @field_validator('appointment_type')
    @classmethod
    def validate_appointment_type(cls, value: str) -> str:
        return value.strip().lower()


class AppointmentResponse(BaseModel):
    id: int
    provider_id: int
    patient_id: int
    date: date
    time: str
    duration_minutes: int
    reason: str
    status: str
    appointment_type: str
    notes: str | None = None
    follow_up_of: int | None = None
    created_at: datetime | None = None


def to_appointment_response(appointment: AppointmentRecord) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        provider_id=appointment.provider_id,
        patient_id=appointment.patient_id,
        date=appointment.date,
        time=appointment.time,
        duration_minutes=appointment.duration_minutes,
        reason=appointment.reason,
        status=appointment.status.value,
        appointment_type=appointment.appointment_type.value,
        notes=appointment.notes,
        follow_up_of=appointment.follow_up_of,
        created_at=appointment.created_at,
    )


def resolve_patient_id(actor: Actor, requested_patient_id: int | None) -> int:
    if actor.role == ActorRole.PATIENT:
        if requested_patient_id is not None and requested_patient_id != actor.actor_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Patients can only book appointments for themselves.',
            )
        return actor.actor_id

    if actor.role == ActorRole.ADMIN:
        if requested_patient_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='patient_id is required when an admin books an appointment.',
            )
        return requested_patient_id

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail='Only patients or admins can book appointments.',
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: CreateAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    patient_id = resolve_patient_id(actor, data.patient_id)
    appointment = unwrap(
        service.book_appointment(
            patient_id=patient_id,
            provider_id=data.provider_id,
            slot_date=data.date,
            slot_time=data.time,
            reason=data.reason,
            appointment_type=data.appointment_type,
            notes=data.notes,
            follow_up_of=data.follow_up_of,
        )
    )
    return to_appointment_response(appointment)


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    appointment_status: str | None = Query(default=None, alias='status'),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    appointment_type: str | None = Query(default=None, alias='type'),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    offset = (page - 1) * limit if limit else 0
    appointments = unwrap(
        service.list_appointments(
            actor,
            status=appointment_status,
            date_from=date_from,
            date_to=date_to,
            appointment_type=appointment_type.strip().lower() if appointment_type else None,
            offset=offset,
            limit=limit,
        )
    )
    return [to_appointment_response(appointment) for appointment in appointments]


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_appointment_response(unwrap(service.get_appointment(appointment_id, actor)))


@router.post('/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_appointment_response(unwrap(service.confirm_appointment(appointment_id, actor)))


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_appointment_response(unwrap(service.complete_appointment(appointment_id, actor)))


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_appointment_response(unwrap(service.cancel_appointment(appointment_id, actor)))
