"""Stacking safety rules for a candidate slot."""

from datetime import datetime
from typing import Optional

from models import ContainerSize, PlacementRequest, SlotKey, weight_group
from occupancy import OccupancyIndex, footprint_bays
from reservations import ReservationLedger


def parity_ok(bay: int, size: ContainerSize) -> bool:
    """Short boxes go on odd bays, long boxes on even (logical) bays."""
    if size == ContainerSize.LONG:
        return bay % 2 == 0
    return bay % 2 != 0


def is_safe(block: str, bay: int, row: int, tier: int, request: PlacementRequest,
            index: OccupancyIndex, ledger: ReservationLedger, now: datetime,
            owner: Optional[str] = None) -> bool:
    """Check whether `request` may be placed at (block, bay, row, tier).

    The slot is rejected when:
      * the bay parity does not fit the container size,
      * any footprint bay is occupied or held by a live reservation
        (reservations made for request id `owner` count as free),
      * above tier 1, any footprint bay has nothing underneath, a long box
        would rest on anything but a long box with the same footprint, or
        the weight group below differs from the request's.
    """
    if tier < 1 or row < 1 or bay < 1:
        return False
    if not parity_ok(bay, request.size):
        return False

    is_long = request.size == ContainerSize.LONG
    slots = [SlotKey(block, b, row, tier) for b in footprint_bays(bay, request.size)]

    for slot in slots:
        if slot in index:
            return False
        held = ledger.holder(slot, now)
        if held is not None and (owner is None or held.request_id != owner):
            return False

    if tier > 1:
        wanted = request.weight_group
        for slot in slots:
            below = index.get(slot.below())
            if below is None:
                return False
            if is_long and (below.size != ContainerSize.LONG or below.logical_bay != bay):
                return False
            if weight_group(below.weight) != wanted:
                return False

    return True
