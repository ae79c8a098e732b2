"""Error taxonomy shared by the scheduling components.

Components raise these; ``SchedulingService`` turns them into
``ServiceResult.error`` values and the routes turn them into HTTP responses.
"""


class SchedulingError(Exception):
    """Base class for every expected scheduling outcome other than success."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed input. ``errors`` lists every violated rule, not just the first."""

    status_code = 400

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class NotFoundError(SchedulingError):
    status_code = 404


class ConflictError(SchedulingError):
    """The slot was taken by another booking. Refresh the slot list and pick again."""

    status_code = 409


class ForbiddenError(SchedulingError):
    status_code = 403


class InvalidTransitionError(SchedulingError):
    status_code = 400


class UnavailableError(SchedulingError):
    """Storage could not complete the operation. Safe to retry with backoff."""

    status_code = 503
