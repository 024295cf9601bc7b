"""Reservation services: the public face of the inventory engine.

Each operation is one database transaction spanning the reservation row and
the stock ledger row, so a hold and its counter update land together or not
at all.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import transitions
from .exceptions import (
    InsufficientStock,
    InvalidQuantity,
    ReservationNotFound,
    ReservationNotPending,
)
from .ledger import StockKey, StockLedger
from .models import StockItem, StockReservation
from .owners import Owner
from .store import ReservationStore

logger = logging.getLogger("stockhold.inventory")


@dataclass(frozen=True)
class Availability:
    on_hand: int
    reserved: int
    available: int


@dataclass(frozen=True)
class ReservationLine:
    product_id: int
    quantity: int
    variant_id: Optional[int] = None


def default_ttl() -> timedelta:
    return timedelta(minutes=int(getattr(settings, "RESERVATION_TTL_MINUTES", 15)))


def max_ttl() -> timedelta:
    return timedelta(minutes=int(getattr(settings, "RESERVATION_MAX_TTL_MINUTES", 120)))


def validated_quantity(quantity) -> int:
    """Return ``quantity`` if it is a positive integer, else raise ``InvalidQuantity``."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity("Quantity must be a positive integer")
    return quantity


def _key_of(reservation: StockReservation) -> StockKey:
    return StockKey(product_id=reservation.product_id, variant_id=reservation.variant_id)


class ReservationManager:
    def __init__(
        self,
        *,
        ledger: Optional[StockLedger] = None,
        store: Optional[ReservationStore] = None,
        clock: Callable = timezone.now,
    ):
        self.ledger = ledger or StockLedger()
        self.store = store or ReservationStore()
        self.clock = clock

    # Reserve

    @transaction.atomic
    def reserve(
        self,
        *,
        product_id: int,
        quantity: int,
        owner: Owner,
        variant_id: Optional[int] = None,
        ttl: Optional[timedelta] = None,
    ) -> StockReservation:
        """Hold ``quantity`` units for ``owner`` until ``now + ttl``.

        Raises ``InsufficientStock`` (carrying the live available count) when
        the units are not there; no reservation row is written in that case.
        """
        quantity = validated_quantity(quantity)
        owner = owner.validated()
        key = StockKey(product_id=product_id, variant_id=variant_id)
        reservation_id = uuid.uuid4()

        try:
            self.ledger.try_decrement_available(key, quantity, idempotency_key=str(reservation_id))
        except InsufficientStock as exc:
            logger.info(
                "reservation.insufficient_stock",
                extra={
                    "event": "reservation.insufficient_stock",
                    "stock_key": str(key),
                    "requested": exc.requested,
                    "available": exc.available,
                    "owner_kind": str(owner.kind),
                },
            )
            raise

        now = self.clock()
        reservation = self.store.create(
            id=reservation_id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
            status=transitions.next_status(None, transitions.RESERVE),
            expires_at=now + (ttl or default_ttl()),
            **owner.field_values(),
        )
        logger.info(
            "reservation.created",
            extra={
                "event": "reservation.created",
                "reservation_id": str(reservation.id),
                "stock_key": str(key),
                "quantity": quantity,
                "owner_kind": str(owner.kind),
                "expires_at": reservation.expires_at.isoformat(),
            },
        )
        return reservation

    @transaction.atomic
    def reserve_many(
        self, *, lines: Iterable[ReservationLine], owner: Owner, ttl: Optional[timedelta] = None
    ) -> List[StockReservation]:
        """Hold every line or none of them (checkout-time hold of a whole cart)."""
        return [
            self.reserve(
                product_id=line.product_id,
                variant_id=line.variant_id,
                quantity=line.quantity,
                owner=owner,
                ttl=ttl,
            )
            for line in lines
        ]

    # Release / expire

    @transaction.atomic
    def release(self, reservation_id) -> bool:
        """Cancel a pending hold. Releasing a terminal reservation is a no-op."""
        reservation = self.store.get_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        if transitions.is_terminal(reservation.status):
            return True
        to_status = transitions.next_status(reservation.status, transitions.RELEASE)
        if not self.store.transition_status(
            reservation.id, reservation.status, to_status, released_at=self.clock()
        ):
            # Lost the race to a concurrent release/expire/commit
            return True
        self.ledger.restore_available(_key_of(reservation), reservation.quantity, idempotency_key=str(reservation.id))
        logger.info(
            "reservation.released",
            extra={
                "event": "reservation.released",
                "reservation_id": str(reservation.id),
                "stock_key": str(_key_of(reservation)),
                "quantity": reservation.quantity,
            },
        )
        return True

    @transaction.atomic
    def expire(self, reservation_id, now=None) -> bool:
        """Expire a pending hold whose deadline has passed. False means nothing to do."""
        now = now or self.clock()
        reservation = self.store.get_by_id(reservation_id)
        if reservation is None or reservation.status != StockReservation.STATUS_PENDING:
            return False
        if reservation.expires_at >= now:
            return False
        to_status = transitions.next_status(reservation.status, transitions.EXPIRE)
        if not self.store.transition_status(
            reservation.id, reservation.status, to_status, guard={"expires_at__lt": now}, released_at=now
        ):
            return False
        self.ledger.restore_available(_key_of(reservation), reservation.quantity, idempotency_key=str(reservation.id))
        logger.info(
            "reservation.expired",
            extra={
                "event": "reservation.expired",
                "reservation_id": str(reservation.id),
                "stock_key": str(_key_of(reservation)),
                "quantity": reservation.quantity,
            },
        )
        return True

    # Commit

    @transaction.atomic
    def commit(self, reservation_id, order_id) -> StockReservation:
        """Turn a pending hold into a permanent stock decrement for ``order_id``."""
        reservation = self.store.get_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        to_status = transitions.next_status(reservation.status, transitions.COMMIT)
        if to_status is None:
            raise ReservationNotPending(reservation.id, reservation.status)
        now = self.clock()
        if not self.store.transition_status(
            reservation.id, reservation.status, to_status, committed_at=now, order_id=order_id
        ):
            current = self.store.get_by_id(reservation.id)
            raise ReservationNotPending(reservation.id, current.status if current else reservation.status)
        self.ledger.commit_decrement(
            _key_of(reservation), reservation.quantity, idempotency_key=str(reservation.id), reason=f"order:{order_id}"
        )
        reservation.refresh_from_db()
        logger.info(
            "reservation.committed",
            extra={
                "event": "reservation.committed",
                "reservation_id": str(reservation.id),
                "stock_key": str(_key_of(reservation)),
                "quantity": reservation.quantity,
                "order_id": order_id,
            },
        )
        return reservation

    @transaction.atomic
    def commit_for_owner(self, *, owner: Owner, order_id) -> List[StockReservation]:
        """Commit every pending hold of ``owner``; any failure aborts all of them."""
        pending = self.store.list_for_owner(owner.validated(), status=StockReservation.STATUS_PENDING)
        return [self.commit(reservation.id, order_id) for reservation in pending]

    # Extend

    @transaction.atomic
    def extend(self, reservation_id, ttl: Optional[timedelta] = None) -> StockReservation:
        """Push ``expires_at`` out to ``now + ttl``. Never shortens a hold."""
        reservation = self.store.get_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        if transitions.next_status(reservation.status, transitions.EXTEND) is None:
            raise ReservationNotPending(reservation.id, reservation.status)
        ttl = min(ttl or default_ttl(), max_ttl())
        expires_at = max(reservation.expires_at, self.clock() + ttl)
        if not self.store.update_pending(reservation.id, expires_at=expires_at):
            current = self.store.get_by_id(reservation.id)
            raise ReservationNotPending(reservation.id, current.status if current else reservation.status)
        reservation.refresh_from_db()
        logger.info(
            "reservation.extended",
            extra={
                "event": "reservation.extended",
                "reservation_id": str(reservation.id),
                "expires_at": reservation.expires_at.isoformat(),
            },
        )
        return reservation

    # Owner-scoped helpers

    @transaction.atomic
    def release_for_owner(self, *, owner: Owner) -> int:
        pending = self.store.list_for_owner(owner.validated(), status=StockReservation.STATUS_PENDING)
        for reservation in pending:
            self.release(reservation.id)
        return len(pending)

    @transaction.atomic
    def extend_for_owner(self, *, owner: Owner, ttl: Optional[timedelta] = None) -> int:
        pending = self.store.list_for_owner(owner.validated(), status=StockReservation.STATUS_PENDING)
        for reservation in pending:
            self.extend(reservation.id, ttl)
        return len(pending)

    def reservations_for_owner(self, *, owner: Owner) -> List[dict]:
        now = self.clock()
        return [
            {
                "id": reservation.id,
                "product_id": reservation.product_id,
                "variant_id": reservation.variant_id,
                "quantity": reservation.quantity,
                "expires_at": reservation.expires_at,
                "is_expired": reservation.expires_at < now,
            }
            for reservation in self.store.list_for_owner(owner.validated(), status=StockReservation.STATUS_PENDING)
        ]

    # Reads

    def get_availability(self, *, product_id: int, variant_id: Optional[int] = None) -> Availability:
        """Advisory snapshot; not locked and never used to gate a reserve."""
        key = StockKey(product_id=product_id, variant_id=variant_id)
        item = StockItem.objects.filter(**key.filter_kwargs()).only("on_hand", "reserved").first()
        if item is None:
            return Availability(on_hand=0, reserved=0, available=0)
        return Availability(on_hand=int(item.on_hand), reserved=int(item.reserved), available=item.available)


# EOF
