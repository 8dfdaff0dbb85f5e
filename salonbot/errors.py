"""
Error taxonomy for the booking flow.

Everything except PersistenceFailure is recoverable: the flow controller
turns it into a re-prompt for the current step. PersistenceFailure means
the database could not be reached or rejected the write for a reason other
than a slot conflict, and is reported to the customer as a generic apology.
"""

from typing import Optional


class BookingFlowError(Exception):
    """Base class for errors raised while driving a booking conversation."""


class InputNotUnderstood(BookingFlowError):
    """The message does not fit what the current step expects."""

    def __init__(self, expected: str, hint: Optional[str] = None) -> None:
        super().__init__(f"Expected {expected}")
        self.expected = expected
        self.hint = hint


class NoAvailability(BookingFlowError):
    """No qualified staff member is free at any time on the requested date."""

    def __init__(self, service_name: str, date_label: str) -> None:
        super().__init__(f"No availability for {service_name} on {date_label}")
        self.service_name = service_name
        self.date_label = date_label


class StaffUnassignable(BookingFlowError):
    """The chosen time no longer has a qualified, available staff member."""


class PersistenceConflict(BookingFlowError):
    """A confirmed booking already holds the staff member at that time."""

    def __init__(self, staff_id: str, scheduled_at: object) -> None:
        super().__init__(f"Staff {staff_id} is already booked at {scheduled_at}")
        self.staff_id = staff_id
        self.scheduled_at = scheduled_at


class PersistenceFailure(BookingFlowError):
    """The storage layer failed; nothing was written."""


class SessionExpired(BookingFlowError):
    """A session was idle past the inactivity window and has been reset."""
