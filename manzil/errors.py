"""Errors raised by the booking, favorites and listing services.

Each error carries the HTTP status the API answers with; the handler in
``manzil.main`` turns them into ``{"detail": ...}`` responses.
"""


class BookingError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRange(BookingError):
    status_code = 400
    default_message = "end_date must be after start_date"


class Forbidden(BookingError):
    status_code = 403
    default_message = "Not allowed"


class NotFound(BookingError):
    status_code = 404
    default_message = "Not found"


class Conflict(BookingError):
    status_code = 409
    default_message = "Conflict: overlapping reservation exists"


class StoreError(BookingError):
    status_code = 503
    default_message = "Storage is unavailable, please try again"
