from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from carebook.auth.dependencies import get_current_actor
from carebook.routes.common import get_scheduling_service, unwrap
from carebook.scheduling.domain import Actor, AvailabilityTemplate
from carebook.scheduling.service import SchedulingService

router = APIRouter(tags=['availability'])


class BreakRequest(BaseModel):
    start: str
    end: str


class AvailabilityEntryRequest(BaseModel):
    weekday: str
    start_time: str
    end_time: str
    breaks: list[BreakRequest] = []
    is_available: bool = True

    @field_validator('weekday')
    @classmethod
    def normalize_weekday(cls, value: str) -> str:
        return value.strip().lower()


class SetAvailabilityRequest(BaseModel):
    entries: list[AvailabilityEntryRequest]


class BreakResponse(BaseModel):
    start: str
    end: str


class AvailabilityEntryResponse(BaseModel):
    weekday: str
    start_time: str
    end_time: str
    breaks: list[BreakResponse]
    is_available: bool


class AvailabilityResponse(BaseModel):
    provider_id: int
    entries: list[AvailabilityEntryResponse]


class SlotListResponse(BaseModel):
    provider_id: int
    date: date
    duration_minutes: int
    slots: list[str]


def to_availability_response(template: AvailabilityTemplate) -> AvailabilityResponse:
    return AvailabilityResponse(
        provider_id=template.provider_id,
        entries=[AvailabilityEntryResponse(**entry.to_dict()) for entry in template.entries],
    )


@router.get('/{provider_id}/availability', response_model=AvailabilityResponse)
def get_availability(
    provider_id: int,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_availability_response(unwrap(service.get_availability(provider_id)))


@router.put('/{provider_id}/availability', response_model=AvailabilityResponse)
def set_availability(
    provider_id: int,
    data: SetAvailabilityRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    entries = [entry.model_dump() for entry in data.entries]
    return to_availability_response(unwrap(service.set_availability(provider_id, entries, actor)))


@router.get('/{provider_id}/slots', response_model=SlotListResponse)
def list_available_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    service: SchedulingService = Depends(get_scheduling_service),
):
    slots = unwrap(service.list_available_slots(provider_id, slot_date))
    return SlotListResponse(
        provider_id=provider_id,
        date=slot_date,
        duration_minutes=service.slots.duration_minutes,
        slots=slots,
    )
