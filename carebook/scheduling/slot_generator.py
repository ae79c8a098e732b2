from datetime import date
from typing import Callable

from carebook.scheduling.availability_store import AvailabilityStore, normalize_breaks
from carebook.scheduling.clock import format_clock, parse_clock, weekday_name
from carebook.scheduling.domain import TemplateEntry
from carebook.scheduling.ports import AppointmentRepository


def grid_ticks(entry: TemplateEntry, duration_minutes: int) -> list[int]:
    """Start minutes the weekday template allows, before bookings are considered.

    A tick is dropped when ``[tick, tick + duration)`` runs past the end of the
    window or touches any break, even partially.
    """
    if not entry.is_available:
        return []

    breaks = normalize_breaks(entry.breaks)
    ticks: list[int] = []
    tick = entry.start
    while tick + duration_minutes <= entry.end:
        slot_end = tick + duration_minutes
        if not any(interval.overlaps(tick, slot_end) for interval in breaks):
            ticks.append(tick)
        tick += duration_minutes
    return ticks


class SlotGenerator:
    """Turns a provider's weekly template into the bookable start times of one date.

    Nothing is cached: booked times are read from the ledger on every call.
    """

    def __init__(
        self,
        availability: AvailabilityStore,
        appointments: AppointmentRepository,
        duration_minutes: int,
        today: Callable[[], date],
    ) -> None:
        self._availability = availability
        self._appointments = appointments
        self.duration_minutes = duration_minutes
        self._today = today

    def template_ticks(self, provider_id: int, slot_date: date) -> list[int]:
        if slot_date < self._today():
            return []

        template = self._availability.get_template(provider_id)
        entry = template.entry_for(weekday_name(slot_date))
        if entry is None:
            return []
        return grid_ticks(entry, self.duration_minutes)

    def generate_ticks(self, provider_id: int, slot_date: date) -> list[int]:
        ticks = self.template_ticks(provider_id, slot_date)
        if not ticks:
            return []

        booked = {
            parse_clock(appointment.time)
            for appointment in self._appointments.find_active_by(provider_id, slot_date)
        }
        return [tick for tick in ticks if tick not in booked]

    def generate_slots(self, provider_id: int, slot_date: date) -> list[str]:
        return [format_clock(tick) for tick in self.generate_ticks(provider_id, slot_date)]
