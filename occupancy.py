"""Slot occupancy lookup built from inventory and committed assignments."""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from models import (
    Container,
    ContainerSize,
    PlacementRequest,
    SlotKey,
    logical_bay,
)


@dataclass(frozen=True)
class Occupant:
    """Whatever sits in a slot: an inventory box or a committed request."""

    block: str
    bay: int          # physical bay of this record
    logical_bay: int
    row: int
    tier: int
    size: ContainerSize
    weight: float
    vessel: str
    destination_port: str
    source_id: str
    committed: bool = False

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.block, self.bay, self.row, self.tier)


def footprint_bays(bay: int, size: ContainerSize) -> List[int]:
    """Physical bays covered by a box addressed at `bay`."""
    if size == ContainerSize.LONG:
        return [bay - 1, bay + 1]
    return [bay]


def _from_container(c: Container) -> Occupant:
    return Occupant(
        block=c.block,
        bay=c.bay,
        logical_bay=logical_bay(c.bay, c.size, c.part_type),
        row=c.row,
        tier=c.tier,
        size=c.size,
        weight=c.weight or 0.0,
        vessel=c.vessel or "",
        destination_port=c.destination_port or "",
        source_id=c.id,
    )


def _from_request(r: PlacementRequest, slot: SlotKey, bay: int) -> Occupant:
    return Occupant(
        block=slot.block,
        bay=bay,
        logical_bay=slot.bay,
        row=slot.row,
        tier=slot.tier,
        size=r.size,
        weight=r.weight or 0.0,
        vessel=r.vessel,
        destination_port=r.destination_port,
        source_id=r.id,
        committed=True,
    )


class OccupancyIndex:
    """Maps physical slots to their occupant.

    Built once per search from a snapshot; never mutated afterwards.
    """

    def __init__(self, slots: Dict[SlotKey, Occupant], units: List[Occupant]):
        self._slots = slots
        self._units = units

    @classmethod
    def build(cls, containers: Iterable[Container],
              requests: Iterable[PlacementRequest]) -> "OccupancyIndex":
        slots: Dict[SlotKey, Occupant] = {}
        units: List[Occupant] = []

        for c in containers:
            if not c.is_mapped:
                continue
            occupant = _from_container(c)
            slots[c.slot] = occupant
            # A long box is counted once, through its start part
            if not c.is_end_part:
                units.append(occupant)

        for r in requests:
            if not r.is_committed:
                continue
            try:
                slot = SlotKey.parse(r.assigned_location)
            except ValueError:
                continue
            occupants = [_from_request(r, slot, b) for b in footprint_bays(slot.bay, r.size)]
            for occupant in occupants:
                slots.setdefault(occupant.slot, occupant)
            units.append(occupants[0])

        return cls(slots, units)

    def get(self, slot: SlotKey) -> Optional[Occupant]:
        return self._slots.get(slot)

    def __contains__(self, slot: SlotKey) -> bool:
        return slot in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[SlotKey]:
        return iter(self._slots)

    def units(self) -> List[Occupant]:
        """One entry per logical box, for grouping decisions."""
        return list(self._units)
