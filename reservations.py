"""Time-bounded soft locks on yard slots.

A reservation keeps a suggested slot away from other searches until the
request is committed or the TTL runs out. Expiry is checked lazily against
the `now` passed in (or the injected clock), so nothing runs in the
background.
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from models import ContainerSize, Reservation, SlotKey
from occupancy import footprint_bays

logger = logging.getLogger(__name__)

RESERVATION_TTL = timedelta(minutes=3)


class ReservationLedger:
    """Reservation table shared by concurrent placement searches.

    Every read and write takes `lock`. The lock is re-entrant so a caller
    can hold it across a whole check-then-reserve sequence.
    """

    def __init__(self, ttl: timedelta = RESERVATION_TTL,
                 clock: Callable[[], datetime] = datetime.now):
        self.ttl = ttl
        self.clock = clock
        self.lock = threading.RLock()
        self._by_id: Dict[str, Reservation] = {}
        self._by_slot: Dict[SlotKey, str] = {}

    def now(self) -> datetime:
        return self.clock()

    def _live_holder(self, slot: SlotKey, now: datetime) -> Optional[Reservation]:
        res_id = self._by_slot.get(slot)
        if res_id is None:
            return None
        res = self._by_id.get(res_id)
        if res is None or not res.is_live(now):
            # Expired entries count as absent; drop them on the way.
            self._by_slot.pop(slot, None)
            if res is not None and not res.is_live(now):
                self._drop(res)
            return None
        return res

    def _drop(self, res: Reservation) -> None:
        self._by_id.pop(res.id, None)
        for slot in res.footprint:
            if self._by_slot.get(slot) == res.id:
                del self._by_slot[slot]

    def reserve(self, slot: SlotKey, request_id: str, now: Optional[datetime] = None,
                size: ContainerSize = ContainerSize.SHORT,
                prefix: str = "RES") -> Reservation:
        """Claim `slot` for `request_id`. The caller has already checked it is free."""
        now = now or self.now()
        footprint = tuple(slot.with_bay(b) for b in footprint_bays(slot.bay, size))
        res = Reservation(
            id=f"{prefix}-{uuid.uuid4().hex[:12].upper()}",
            slot=slot,
            footprint=footprint,
            request_id=request_id,
            expiry=now + self.ttl,
        )
        with self.lock:
            self._by_id[res.id] = res
            for s in footprint:
                self._by_slot[s] = res.id
        logger.debug("Reserved %s for %s as %s until %s", slot, request_id, res.id, res.expiry)
        return res

    def try_reserve(self, slot: SlotKey, request_id: str, now: Optional[datetime] = None,
                    size: ContainerSize = ContainerSize.SHORT,
                    prefix: str = "RES") -> Optional[Reservation]:
        """Reserve only if no footprint slot is held by a live reservation."""
        now = now or self.now()
        with self.lock:
            for b in footprint_bays(slot.bay, size):
                if self._live_holder(slot.with_bay(b), now) is not None:
                    return None
            return self.reserve(slot, request_id, now, size, prefix)

    def is_reserved(self, slot: SlotKey, now: Optional[datetime] = None) -> bool:
        now = now or self.now()
        with self.lock:
            return self._live_holder(slot, now) is not None

    def holder(self, slot: SlotKey, now: Optional[datetime] = None) -> Optional[Reservation]:
        now = now or self.now()
        with self.lock:
            return self._live_holder(slot, now)

    def get(self, reservation_id: str, now: Optional[datetime] = None) -> Optional[Reservation]:
        """Return the reservation if it is still live."""
        now = now or self.now()
        with self.lock:
            res = self._by_id.get(reservation_id)
            if res is None or not res.is_live(now):
                return None
            return res

    def release(self, reservation_id: str) -> Optional[Reservation]:
        with self.lock:
            res = self._by_id.get(reservation_id)
            if res is None:
                return None
            self._drop(res)
        logger.debug("Released %s (%s)", reservation_id, res.slot)
        return res

    def active(self, now: Optional[datetime] = None) -> List[Reservation]:
        now = now or self.now()
        with self.lock:
            return sorted(
                (r for r in self._by_id.values() if r.is_live(now)),
                key=lambda r: r.expiry,
            )

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Forget expired reservations. Returns how many were removed."""
        now = now or self.now()
        with self.lock:
            expired = [r for r in self._by_id.values() if not r.is_live(now)]
            for res in expired:
                self._drop(res)
        if expired:
            logger.info("Swept %d expired reservation(s)", len(expired))
        return len(expired)

    def remaining_seconds(self, res: Reservation, now: Optional[datetime] = None) -> int:
        now = now or self.now()
        return max(0, int((res.expiry - now).total_seconds()))

    def __len__(self) -> int:
        with self.lock:
            return len(self._by_id)
