from datetime import date


class ReservationError(Exception):
    """Base class for business rule violations; retrying never changes the outcome."""

    error_code = "RESERVATION_ERROR"


class PastDateNotAllowed(ReservationError):
    error_code = "PAST_DATE_NOT_ALLOWED"

    def __init__(self, requested: date):
        self.requested = requested
        super().__init__("Reservations cannot be made for a past date. Please choose today or later.")


class TooFarInFuture(ReservationError):
    error_code = "TOO_FAR_IN_FUTURE"

    def __init__(self, requested: date, max_advance_days: int):
        self.requested = requested
        self.max_advance_days = max_advance_days
        super().__init__(f"Reservations are accepted up to {max_advance_days} days in advance.")


class FullyBooked(ReservationError):
    error_code = "FULLY_BOOKED"

    def __init__(self, slot_label: str):
        self.slot_label = slot_label
        super().__init__(f"Sorry, {slot_label} is fully booked. Please choose another date or time.")


class ReservationNotFound(ReservationError):
    error_code = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id: int):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} was not found.")


class AlreadyCancelled(ReservationError):
    error_code = "ALREADY_CANCELLED"

    def __init__(self, reservation_id: int):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} is already cancelled.")


class StoreUnavailable(Exception):
    """The database could not complete the operation; the caller may retry later."""
