"""Appointment lifecycle rules.

``pending`` is the only initial state; ``completed`` and ``cancelled`` are
terminal. ``check_transition`` is a pure function of its arguments.
"""

from carebook.core.errors import ForbiddenError, InvalidTransitionError
from carebook.scheduling.domain import ActorRole, AppointmentStatus

PATIENT_OWN = "patient_own"

TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentStatus], frozenset] = {
    (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED): frozenset({ActorRole.PROVIDER, ActorRole.ADMIN}),
    (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED): frozenset({PATIENT_OWN, ActorRole.PROVIDER, ActorRole.ADMIN}),
    (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED): frozenset({ActorRole.PROVIDER, ActorRole.ADMIN}),
    (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED): frozenset({PATIENT_OWN, ActorRole.PROVIDER, ActorRole.ADMIN}),
}


def allowed_targets(current: AppointmentStatus) -> list[AppointmentStatus]:
    return [target for (source, target) in TRANSITIONS if source == AppointmentStatus(current)]


def check_transition(
    current: AppointmentStatus | str,
    requested: AppointmentStatus | str,
    role: ActorRole | str,
    is_owner: bool,
) -> AppointmentStatus:
    """Return the new status, or raise.

    An undefined ``(current, requested)`` pair raises ``InvalidTransitionError``
    whoever asks; a defined pair requested by an actor the table does not list
    raises ``ForbiddenError``. Patients may only act on their own appointments.
    """
    try:
        current = AppointmentStatus(current)
        requested = AppointmentStatus(requested)
    except ValueError as exc:
        raise InvalidTransitionError(f'Unknown appointment status: {exc}') from exc

    allowed = TRANSITIONS.get((current, requested))
    if allowed is None:
        raise InvalidTransitionError(
            f'Cannot change status from {current.value} to {requested.value}.'
        )

    try:
        role = ActorRole(role)
    except ValueError as exc:
        raise ForbiddenError(f'Unknown actor role {role!r}.') from exc

    if role == ActorRole.PATIENT:
        permitted = PATIENT_OWN in allowed and is_owner
    else:
        permitted = role in allowed

    if not permitted:
        raise ForbiddenError(
            f'A {role.value} may not change this appointment from {current.value} to {requested.value}.'
        )
    return requested
