"""Background sweep that expires abandoned holds.

A sweep pages through pending reservations past their deadline and expires
each one in its own transaction. One bad row is logged and skipped; it never
stops the rest of the batch.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from .services import ReservationManager
from .store import ReservationStore

logger = logging.getLogger("stockhold.reaper")

LEASE_KEY = "inventory:reaper:lease"


@dataclass
class SweepResult:
    expired: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.expired + self.skipped + self.failed


class ExpiryReaper:
    def __init__(
        self,
        *,
        manager: Optional[ReservationManager] = None,
        store: Optional[ReservationStore] = None,
        batch_size: Optional[int] = None,
        interval: Optional[float] = None,
        clock: Optional[Callable] = None,
        use_lease: bool = True,
    ):
        self.clock = clock or timezone.now
        self.manager = manager or ReservationManager(clock=self.clock)
        self.store = store or self.manager.store
        self.batch_size = int(batch_size or getattr(settings, "RESERVATION_REAPER_BATCH_SIZE", 100))
        self.interval = float(interval or getattr(settings, "RESERVATION_REAPER_INTERVAL_SECONDS", 60))
        self.use_lease = use_lease

    def _acquire_lease(self) -> bool:
        # One replica sweeps per interval; a duplicate sweep would only waste work
        if not self.use_lease:
            return True
        try:
            return bool(cache.add(LEASE_KEY, "1", timeout=max(1, int(self.interval))))
        except Exception:
            logger.exception("reaper.lease_error", extra={"event": "reaper.lease_error"})
            return True

    def sweep(self, now=None) -> SweepResult:
        now = now or self.clock()
        result = SweepResult()
        cursor = None
        while True:
            batch = self.store.find_pending_expired_before(now, self.batch_size, after=cursor)
            if not batch:
                break
            for reservation in batch:
                try:
                    if self.manager.expire(reservation.id, now=now):
                        result.expired += 1
                    else:
                        result.skipped += 1
                except Exception:
                    result.failed += 1
                    logger.exception(
                        "reaper.expire_failed",
                        extra={"event": "reaper.expire_failed", "reservation_id": str(reservation.id)},
                    )
            cursor = (batch[-1].expires_at, batch[-1].id)
            if len(batch) < self.batch_size:
                break
        if result.processed:
            logger.info(
                "reaper.sweep_completed",
                extra={
                    "event": "reaper.sweep_completed",
                    "expired": result.expired,
                    "skipped": result.skipped,
                    "failed": result.failed,
                },
            )
        return result

    def run_once(self) -> Optional[SweepResult]:
        if not self._acquire_lease():
            logger.debug("reaper.lease_held_elsewhere", extra={"event": "reaper.lease_held_elsewhere"})
            return None
        return self.sweep()

    def run_forever(self, stop_event: Optional[threading.Event] = None, max_sweeps: Optional[int] = None) -> int:
        """Sweep every ``interval`` seconds until ``stop_event`` is set. Returns sweeps run."""
        stop_event = stop_event or threading.Event()
        sweeps = 0
        logger.info("reaper.started", extra={"event": "reaper.started", "interval": self.interval})
        while not stop_event.is_set():
            try:
                self.run_once()
            except DatabaseError:
                # Storage outage: keep the loop alive and retry next tick
                logger.exception("reaper.sweep_failed", extra={"event": "reaper.sweep_failed"})
            sweeps += 1
            if max_sweeps is not None and sweeps >= max_sweeps:
                break
            stop_event.wait(self.interval)
        logger.info("reaper.stopped", extra={"event": "reaper.stopped", "sweeps": sweeps})
        return sweeps


# EOF
