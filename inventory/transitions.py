"""Reservation state machine.

Legal moves are listed once, here. Everything else is illegal, including any
move out of a terminal status.
"""

from typing import Optional

from common.choices import ReservationStatus

RESERVE = "reserve"
COMMIT = "commit"
RELEASE = "release"
EXPIRE = "expire"
EXTEND = "extend"
REOWN = "reown"

OPERATIONS = (RESERVE, COMMIT, RELEASE, EXPIRE, EXTEND, REOWN)

# ``None`` stands for "no reservation yet"
TRANSITIONS = {
    (None, RESERVE): ReservationStatus.PENDING.value,
    (ReservationStatus.PENDING.value, COMMIT): ReservationStatus.COMMITTED.value,
    (ReservationStatus.PENDING.value, RELEASE): ReservationStatus.RELEASED.value,
    (ReservationStatus.PENDING.value, EXPIRE): ReservationStatus.EXPIRED.value,
    (ReservationStatus.PENDING.value, EXTEND): ReservationStatus.PENDING.value,
    (ReservationStatus.PENDING.value, REOWN): ReservationStatus.PENDING.value,
}

TERMINAL_STATUSES = frozenset(
    {ReservationStatus.COMMITTED.value, ReservationStatus.RELEASED.value, ReservationStatus.EXPIRED.value}
)


def next_status(status: Optional[str], operation: str) -> Optional[str]:
    """Return the status ``operation`` leads to from ``status``, or None if illegal."""
    return TRANSITIONS.get((status, operation))


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def is_legal_move(from_status: str, to_status: str) -> bool:
    return any(src == from_status and dst == to_status for (src, _op), dst in TRANSITIONS.items())
