import logging

from carebook.scheduling.domain import AppointmentRecord, EventType

logger = logging.getLogger('carebook.events')


class LoggingEventSink:
    """Default sink: writes each domain event to the ``carebook.events`` logger.

    The notification system subscribes downstream; nothing here delivers mail.
    """

    def publish(self, event_type: EventType, appointment: AppointmentRecord) -> None:
        logger.info(
            'appointment.%s id=%s provider=%s patient=%s date=%s time=%s status=%s',
            EventType(event_type).value,
            appointment.id,
            appointment.provider_id,
            appointment.patient_id,
            appointment.date.isoformat(),
            appointment.time,
            appointment.status.value,
        )
