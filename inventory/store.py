"""Persistence for ``StockReservation`` rows.

Status changes go through ``transition_status``: a conditional update that
only lands while the row still has the expected status, so a reaper and a
shopper racing on the same reservation cannot both win.
"""

from typing import Iterable, List, Optional, Tuple

from django.core.exceptions import ValidationError
from django.db.models import Q
from django.utils import timezone

from .exceptions import IllegalTransition
from .models import StockReservation
from .owners import Owner
from .transitions import is_legal_move


class ReservationStore:
    def create(self, **fields) -> StockReservation:
        return StockReservation.objects.create(**fields)

    def get_by_id(self, reservation_id, *, for_update: bool = False) -> Optional[StockReservation]:
        qs = StockReservation.objects.all()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(id=reservation_id)
        except (StockReservation.DoesNotExist, ValidationError, ValueError):
            # Malformed ids are as unknown as missing ones
            return None

    def find_pending_expired_before(
        self, timestamp, limit: int, after: Optional[Tuple] = None
    ) -> List[StockReservation]:
        """Page through pending holds whose ``expires_at`` is before ``timestamp``.

        ``after`` is the ``(expires_at, id)`` of the last row of the previous
        page; ordering is stable on that pair.
        """
        qs = StockReservation.objects.filter(status=StockReservation.STATUS_PENDING, expires_at__lt=timestamp)
        if after is not None:
            last_expires_at, last_id = after
            qs = qs.filter(Q(expires_at__gt=last_expires_at) | Q(expires_at=last_expires_at, id__gt=last_id))
        return list(qs.order_by("expires_at", "id")[:limit])

    def transition_status(
        self, reservation_id, from_status: str, to_status: str, *, guard: Optional[dict] = None, **extra_fields
    ) -> bool:
        """Move one reservation from ``from_status`` to ``to_status``.

        ``guard`` adds lookups the row must still satisfy at write time, e.g.
        ``{"expires_at__lt": now}`` so a hold extended after it was read is
        not expired.
        """
        if not is_legal_move(from_status, to_status):
            raise IllegalTransition(f"{from_status} -> {to_status}")
        updated = StockReservation.objects.filter(id=reservation_id, status=from_status, **(guard or {})).update(
            status=to_status, updated_at=timezone.now(), **extra_fields
        )
        return updated == 1

    def update_pending(self, reservation_id, **fields) -> bool:
        """Change fields of a reservation that is still pending; status is untouched."""
        updated = StockReservation.objects.filter(
            id=reservation_id, status=StockReservation.STATUS_PENDING
        ).update(updated_at=timezone.now(), **fields)
        return updated == 1

    def list_for_owner(self, owner: Owner, status: Optional[str] = None) -> List[StockReservation]:
        qs = StockReservation.objects.filter(**owner.filter_kwargs())
        if status is not None:
            qs = qs.filter(status=status)
        return list(qs.order_by("created_at", "id"))

    def reown(self, reservation_ids: Iterable, from_owner: Owner, to_owner: Owner) -> int:
        """Point pending reservations held by ``from_owner`` at ``to_owner``."""
        return (
            StockReservation.objects.filter(
                id__in=list(reservation_ids), status=StockReservation.STATUS_PENDING, **from_owner.filter_kwargs()
            ).update(updated_at=timezone.now(), **to_owner.field_values())
        )


# EOF
