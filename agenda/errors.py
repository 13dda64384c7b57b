"""
Error taxonomy for the scheduling core.

Services raise these; the HTTP layer turns them into ``{"detail": ...}``
responses using ``status_code``.
"""


class AgendaError(Exception):
    status_code = 500
    detail = "Internal error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(AgendaError):
    status_code = 400
    detail = "Invalid request data"


class InvalidTimeRange(ValidationError):
    detail = "End time must be after start time and within the maximum slot length"


class InvalidCapacity(ValidationError):
    detail = "Capacity must be at least 1"


class AuthError(AgendaError):
    status_code = 401
    detail = "Not authenticated"


class InvalidCredential(AuthError):
    detail = "Invalid access code"


class Unauthenticated(AuthError):
    detail = "Unauthorized. Please log in."


class AuthzError(AgendaError):
    status_code = 403
    detail = "Forbidden. Insufficient permissions."


class Forbidden(AuthzError):
    pass


class NotFound(AgendaError):
    status_code = 404
    detail = "Not found"


class AvailabilityNotFound(NotFound):
    detail = "Availability not found"


class Conflict(AgendaError):
    status_code = 409
    detail = "Conflict"


class DuplicateCode(Conflict):
    detail = "Access code already exists"


class SlotsExhausted(Conflict):
    detail = "No slots available for this time"


class AvailabilityInUse(Conflict):
    detail = "Availability has bookings and cannot be deleted"


class PersistenceFailure(AgendaError):
    """A write could not be committed; the unit of work was rolled back."""

    status_code = 500
    detail = "Storage failure while saving changes"
