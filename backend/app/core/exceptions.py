"""
Domain errors for the booking core.

Each error is an HTTPException carrying its own status code, so services can
raise them directly and FastAPI renders them as {"detail": message}.
"""

from fastapi import HTTPException, status


class BookingError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Booking operation failed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class ValidationError(BookingError):
    """Bad date range, missing field, unparseable amount."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AvailabilityConflictError(BookingError):
    """A requested room already has an overlapping reservation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "One or more selected rooms are no longer available for the selected dates"


class StateConflictError(BookingError):
    """The booking's current status does not allow the requested operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not allowed in the current booking status"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class AuthorizationError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Unauthorized"
