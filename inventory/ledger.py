"""Stock ledger: the only writer of ``StockItem.on_hand`` / ``StockItem.reserved``.

Every mutation locks the stock item row with ``select_for_update()`` inside
``transaction.atomic()``, so two callers touching the same stock-keying-unit
are serialized by the database, across processes and hosts. Calls that carry
an idempotency key journal a ``StockMovement`` under it; replaying the key is
a no-op.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction

from .exceptions import InsufficientStock, LedgerError
from .models import StockItem, StockMovement

logger = logging.getLogger("stockhold.inventory")


@dataclass(frozen=True)
class StockKey:
    """Identity of a stock-keying-unit: a product, optionally one of its variants."""

    product_id: int
    variant_id: Optional[int] = None

    def filter_kwargs(self) -> dict:
        if self.variant_id is None:
            return {"product_id": self.product_id, "variant__isnull": True}
        return {"product_id": self.product_id, "variant_id": self.variant_id}

    def __str__(self) -> str:
        return f"{self.product_id}/{self.variant_id or '-'}"


class StockLedger:
    def _lock(self, key: StockKey) -> Optional[StockItem]:
        return StockItem.objects.select_for_update().filter(**key.filter_kwargs()).first()

    def _lock_or_create(self, key: StockKey) -> StockItem:
        item = self._lock(key)
        if item is None:
            StockItem.objects.get_or_create(
                product_id=key.product_id,
                variant_id=key.variant_id,
                defaults={"on_hand": 0, "reserved": 0},
            )
            item = self._lock(key)
        return item

    @staticmethod
    def _already_applied(item: StockItem, movement_type: str, idempotency_key: str) -> bool:
        return StockMovement.objects.filter(
            stock_item=item, movement_type=movement_type, reference=idempotency_key
        ).exists()

    @staticmethod
    def _journal(item: StockItem, movement_type: str, quantity: int, reference: str, reason: str = "") -> None:
        StockMovement.objects.create(
            stock_item=item,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
        )

    @transaction.atomic
    def try_decrement_available(self, key: StockKey, qty: int, idempotency_key: str) -> StockItem:
        """Move ``qty`` units from available to reserved, or raise ``InsufficientStock``."""
        idempotency_key = str(idempotency_key)
        item = self._lock(key)
        if item is None:
            raise InsufficientStock(available=0, requested=qty)
        if self._already_applied(item, StockMovement.TYPE_RESERVE, idempotency_key):
            return item
        available = int(item.on_hand) - int(item.reserved)
        if qty > available:
            raise InsufficientStock(available=available, requested=qty)
        item.reserved = int(item.reserved) + int(qty)
        item.save(update_fields=["reserved", "updated_at"])
        self._journal(item, StockMovement.TYPE_RESERVE, qty, idempotency_key)
        return item

    @transaction.atomic
    def restore_available(self, key: StockKey, qty: int, idempotency_key: str) -> Optional[StockItem]:
        """Return ``qty`` reserved units to available. ``reserved`` never goes below zero."""
        idempotency_key = str(idempotency_key)
        item = self._lock(key)
        if item is None:
            logger.warning(
                "ledger.restore_missing_item",
                extra={"event": "ledger.restore_missing_item", "stock_key": str(key), "quantity": qty},
            )
            return None
        if self._already_applied(item, StockMovement.TYPE_RELEASE, idempotency_key):
            return item
        reserved = int(item.reserved) - int(qty)
        if reserved < 0:
            logger.warning(
                "ledger.reserved_clamped",
                extra={
                    "event": "ledger.reserved_clamped",
                    "stock_key": str(key),
                    "reserved": int(item.reserved),
                    "quantity": qty,
                    "reference": idempotency_key,
                },
            )
            reserved = 0
        item.reserved = reserved
        item.save(update_fields=["reserved", "updated_at"])
        self._journal(item, StockMovement.TYPE_RELEASE, qty, idempotency_key)
        return item

    @transaction.atomic
    def commit_decrement(self, key: StockKey, qty: int, idempotency_key: str, reason: str = "order") -> StockItem:
        """Take ``qty`` units out of stock for good: both on_hand and reserved drop."""
        idempotency_key = str(idempotency_key)
        item = self._lock(key)
        if item is None:
            raise LedgerError(f"No stock item for {key}")
        if self._already_applied(item, StockMovement.TYPE_COMMIT, idempotency_key):
            return item
        on_hand = int(item.on_hand) - int(qty)
        reserved = int(item.reserved) - int(qty)
        if on_hand < 0 or reserved < 0:
            logger.warning(
                "ledger.commit_clamped",
                extra={
                    "event": "ledger.commit_clamped",
                    "stock_key": str(key),
                    "on_hand": int(item.on_hand),
                    "reserved": int(item.reserved),
                    "quantity": qty,
                    "reference": idempotency_key,
                },
            )
        item.on_hand = max(0, on_hand)
        item.reserved = min(max(0, reserved), item.on_hand)
        item.save(update_fields=["on_hand", "reserved", "updated_at"])
        self._journal(item, StockMovement.TYPE_COMMIT, -int(qty), idempotency_key, reason=reason)
        return item

    @transaction.atomic
    def restock(self, key: StockKey, qty: int, reason: str = "", reference: str = "") -> StockItem:
        """Receive ``qty`` units into on_hand, creating the stock item if needed."""
        if qty <= 0:
            raise LedgerError("Restock quantity must be positive")
        item = self._lock_or_create(key)
        if reference and self._already_applied(item, StockMovement.TYPE_RESTOCK, reference):
            return item
        item.on_hand = int(item.on_hand) + int(qty)
        item.save(update_fields=["on_hand", "updated_at"])
        self._journal(item, StockMovement.TYPE_RESTOCK, qty, reference, reason=reason)
        return item

    @transaction.atomic
    def adjust(self, key: StockKey, delta: int, reason: str = "", reference: str = "") -> Optional[StockItem]:
        """Apply a signed correction to on_hand (stock counts, shrinkage).

        Units currently held by pending reservations cannot be adjusted away.
        """
        if delta == 0:
            return None
        item = self._lock_or_create(key)
        if reference and self._already_applied(item, StockMovement.TYPE_ADJUST, reference):
            return item
        on_hand = int(item.on_hand) + int(delta)
        if on_hand < int(item.reserved):
            raise LedgerError("Adjustment would leave fewer units on hand than are reserved")
        item.on_hand = on_hand
        item.save(update_fields=["on_hand", "updated_at"])
        self._journal(item, StockMovement.TYPE_ADJUST, delta, reference, reason=reason)
        return item


# EOF
