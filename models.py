"""Data models for the container yard placement engine."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


HEAVY_WEIGHT_THRESHOLD = 18.0  # tons
DEFAULT_MAX_TIER = 5
DEFAULT_BERTH = "BARGING"
UNMAPPED_LOCATION = "Unmapped"


class ContainerSize(str, Enum):
    SHORT = "20"
    LONG = "40"

    @classmethod
    def parse(cls, value) -> "ContainerSize":
        """Accept 20, "20", "20FT", 40, ... and return the matching size."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper().replace("FT", "").replace("'", "")
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown container size: {value!r}") from None


class WeightGroup(str, Enum):
    LIGHT = "LT18"
    HEAVY = "GE18"


class MachineType(str, Enum):
    RTG = "RTG"
    RS = "RS"


class BlockType(str, Enum):
    GRID = "GRID"
    HEAP = "HEAP"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"


class RequestState(str, Enum):
    """Lifecycle of a request as seen by the planner."""
    PENDING = "PENDING"
    SUGGESTED = "SUGGESTED"
    ASSIGNED = "ASSIGNED"
    NOT_FOUND = "NOT_FOUND"


class Priority(str, Enum):
    CLUSTER = "CLUSTER"
    BERTH = "BERTH"
    NONE = "NONE"


_LOCATION_RE = re.compile(r"^(?P<block>.+)-(?P<bay>\d+)-(?P<row>\d+)-(?P<tier>\d+)$")


@dataclass(frozen=True)
class SlotKey:
    """A physical (or logical) yard coordinate."""

    block: str
    bay: int
    row: int
    tier: int

    def format(self) -> str:
        """Render the wire format BLOCK-BB-RR-T."""
        return f"{self.block}-{self.bay:02d}-{self.row:02d}-{self.tier}"

    @classmethod
    def parse(cls, text: str) -> "SlotKey":
        match = _LOCATION_RE.match((text or "").strip())
        if not match:
            raise ValueError(f"Malformed yard location: {text!r}")
        return cls(
            block=match.group("block"),
            bay=int(match.group("bay")),
            row=int(match.group("row")),
            tier=int(match.group("tier")),
        )

    def with_bay(self, bay: int) -> "SlotKey":
        return SlotKey(self.block, bay, self.row, self.tier)

    def below(self) -> "SlotKey":
        return SlotKey(self.block, self.bay, self.row, self.tier - 1)

    def __str__(self) -> str:
        return self.format()


def weight_group(weight: Optional[float]) -> WeightGroup:
    if (weight or 0) >= HEAVY_WEIGHT_THRESHOLD:
        return WeightGroup.HEAVY
    return WeightGroup.LIGHT


def logical_bay(bay: int, size: ContainerSize, part_type: Optional[str] = None) -> int:
    """Bay number a container is addressed by.

    Short boxes live on odd bays. A long box spans two odd bays and is
    addressed by the even bay between them; its end part sits above it.
    """
    if size != ContainerSize.LONG:
        return bay if bay % 2 != 0 else bay - 1
    if bay % 2 == 0:
        return bay
    if part_type == "end":
        return bay - 1
    return bay + 1


@dataclass
class BlockConfig:
    """A storage block of the yard."""

    name: str
    total_bays: int
    rows_per_bay: int
    tiers_per_bay: int
    machine_type: MachineType = MachineType.RTG
    block_type: BlockType = BlockType.GRID
    capacity: Optional[int] = None
    group: Optional[str] = None

    @property
    def is_heap(self) -> bool:
        return self.block_type == BlockType.HEAP


@dataclass
class BerthAssignment:
    """Blocks eligible for fallback placement of vessels at a berth."""

    berth_name: str
    assigned_blocks: List[str] = field(default_factory=list)


@dataclass
class ScheduleEntry:
    """A vessel call from the berth schedule."""

    vessel_name: str
    voyage: Optional[str] = None
    discharge: int = 0
    load: int = 0
    berth: Optional[str] = None


@dataclass
class Container:
    """A box already recorded in the yard inventory."""

    id: str
    block: str
    bay: int
    row: int
    tier: int
    size: ContainerSize = ContainerSize.SHORT
    weight: Optional[float] = None
    vessel: str = ""
    destination_port: str = ""
    location: Optional[str] = None
    is_multi_bay: bool = False
    part_type: Optional[str] = None  # "start" / "end" for multi-bay records

    def __post_init__(self):
        if self.location is None:
            self.location = SlotKey(self.block, self.bay, self.row, self.tier).format()

    @property
    def is_mapped(self) -> bool:
        return bool(self.location) and self.location != UNMAPPED_LOCATION

    @property
    def is_end_part(self) -> bool:
        return self.is_multi_bay and self.part_type == "end"

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.block, self.bay, self.row, self.tier)


@dataclass
class PlacementRequest:
    """A gate declaration waiting for (or holding) a yard slot."""

    id: str
    vessel: str
    destination_port: str
    size: ContainerSize
    weight: float
    status: RequestStatus = RequestStatus.PENDING
    assigned_location: Optional[str] = None
    timestamp: Optional[datetime] = None
    reservation_id: Optional[str] = None

    @property
    def weight_group(self) -> WeightGroup:
        return weight_group(self.weight)

    @property
    def is_committed(self) -> bool:
        return self.status == RequestStatus.ASSIGNED and bool(self.assigned_location)


@dataclass
class Reservation:
    """A short-lived soft lock on a slot."""

    id: str
    slot: SlotKey
    footprint: Tuple[SlotKey, ...]
    request_id: str
    expiry: datetime

    def is_live(self, now: datetime) -> bool:
        return self.expiry > now


@dataclass
class YardSettings:
    """Planning rules. Grouping and weight policy are fixed."""

    max_tier_by_block: Dict[str, int] = field(default_factory=dict)
    berth_mapping: List[BerthAssignment] = field(default_factory=list)
    default_berth: str = DEFAULT_BERTH
    default_max_tier: int = DEFAULT_MAX_TIER

    def max_tier(self, block: str) -> int:
        return self.max_tier_by_block.get(block) or self.default_max_tier

    def blocks_for_berth(self, berth: str) -> List[str]:
        """Candidate blocks for a berth, falling back to the default berth."""
        by_name = {m.berth_name.strip().upper(): m for m in self.berth_mapping}
        mapping = by_name.get(berth.strip().upper()) or by_name.get(self.default_berth.upper())
        return list(mapping.assigned_blocks) if mapping else []


@dataclass
class YardContext:
    """Read-only snapshot the engine plans against."""

    containers: List[Container]
    requests: List[PlacementRequest]
    blocks: List[BlockConfig]
    schedule: List[ScheduleEntry] = field(default_factory=list)

    def block(self, name: str) -> Optional[BlockConfig]:
        for b in self.blocks:
            if b.name == name:
                return b
        return None


@dataclass
class Suggestion:
    """Result of a placement search."""

    block: str
    bay: str
    row: str
    tier: str
    priority: Priority
    reasoning: str
    trace: List[str] = field(default_factory=list)
    not_found: bool = False
    reservation_id: Optional[str] = None

    @property
    def location(self) -> Optional[str]:
        if self.not_found:
            return None
        return f"{self.block}-{self.bay}-{self.row}-{self.tier}"

    @property
    def slot(self) -> Optional[SlotKey]:
        if self.not_found:
            return None
        return SlotKey(self.block, int(self.bay), int(self.row), int(self.tier))

    @classmethod
    def at(cls, slot: SlotKey, priority: Priority, reasoning: str,
           trace: List[str]) -> "Suggestion":
        return cls(
            block=slot.block,
            bay=f"{slot.bay:02d}",
            row=f"{slot.row:02d}",
            tier=str(slot.tier),
            priority=priority,
            reasoning=reasoning,
            trace=trace,
        )

    @classmethod
    def none(cls, reasoning: str, trace: List[str]) -> "Suggestion":
        return cls("", "", "", "", Priority.NONE, reasoning, trace, not_found=True)
