"""Typed failures surfaced by the reservation engine.

Recoverable outcomes (insufficient stock, stale or conflicting reservation
references, bad owner) are subclasses of ``ReservationError`` so callers can
catch them as a family and tell them apart. Storage failures are not wrapped.
"""


class ReservationError(Exception):
    """Base class for recoverable reservation failures."""

    code = "reservation_error"


class InsufficientStock(ReservationError):
    code = "insufficient_stock"

    def __init__(self, *, available: int, requested: int):
        self.available = max(0, int(available))
        self.requested = int(requested)
        super().__init__(f"Requested {self.requested}, only {self.available} available")


class ReservationNotFound(ReservationError):
    code = "reservation_not_found"

    def __init__(self, reservation_id=None, message=None):
        self.reservation_id = reservation_id
        super().__init__(message or f"Reservation {reservation_id} not found")


class ReservationNotPending(ReservationError):
    code = "reservation_not_pending"

    def __init__(self, reservation_id, status: str):
        self.reservation_id = reservation_id
        self.status = status
        super().__init__(f"Reservation {reservation_id} is {status}")


class InvalidOwner(ReservationError):
    code = "invalid_owner"


class InvalidQuantity(ReservationError):
    code = "invalid_quantity"


class LedgerError(Exception):
    """Raised for manual stock adjustments that would break ledger invariants."""


class IllegalTransition(Exception):
    """A status change outside the transition table was requested."""
