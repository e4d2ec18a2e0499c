"""Yard placement engine: pick one safe slot for an incoming container."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from matching import normalize, ports_match, vessels_match
from models import (
    ContainerSize,
    PlacementRequest,
    Priority,
    SlotKey,
    Suggestion,
    YardContext,
    YardSettings,
    weight_group,
)
from occupancy import OccupancyIndex, Occupant
from reservations import ReservationLedger
from safety import is_safe

logger = logging.getLogger(__name__)

# Outer rows first, matching how yard machines reach the stacks.
ROW_ORDER = (6, 5, 4, 3, 2, 1)
FALLBACK_TOTAL_BAYS = 70
NOT_FOUND_REASON = "No safe location satisfies the weight and berth rules."


def find_optimal_location(
    request: PlacementRequest,
    context: YardContext,
    settings: YardSettings,
    ledger: ReservationLedger,
    now: Optional[datetime] = None,
) -> Suggestion:
    """Find a slot for `request` and reserve it.

    Args:
        request: The container waiting for a slot.
        context: Snapshot of inventory, requests, blocks and schedule.
        settings: Berth mapping and per-block tier limits.
        ledger: Shared reservation table; a successful search adds to it.
        now: Evaluation time for reservation expiry (defaults to the ledger clock).

    Returns:
        A Suggestion. When nothing is safe, `not_found` is set and the
        priority is NONE; this is a normal outcome, not an error.
    """
    now = now or ledger.now()
    index = OccupancyIndex.build(context.containers, context.requests)

    # Search and reserve as one step so two searches never converge on a slot.
    with ledger.lock:
        suggestion, step = _search(request, context, settings, ledger, index, now)
        if suggestion.not_found:
            logger.info("No slot for %s (%s/%s %sft)", request.id, request.vessel,
                        request.destination_port, request.size.value)
            return suggestion

        res = ledger.reserve(suggestion.slot, request.id, now, request.size,
                             prefix=f"RES-S{step}")
        suggestion.reservation_id = res.id

    logger.info("Suggested %s for %s via %s (%s)", suggestion.location, request.id,
                suggestion.priority.value, res.id)
    return suggestion


def _search(
    request: PlacementRequest,
    context: YardContext,
    settings: YardSettings,
    ledger: ReservationLedger,
    index: OccupancyIndex,
    now: datetime,
) -> Tuple[Suggestion, int]:
    trace: List[str] = []
    group = request.weight_group.value

    def safe(slot: SlotKey) -> bool:
        if not _in_topology(context, slot.block, slot.row):
            return False
        return is_safe(slot.block, slot.bay, slot.row, slot.tier, request, index, ledger, now)

    trace.append(
        f"REQ: {normalize(request.vessel)} | POD: {normalize(request.destination_port)} "
        f"| SIZE: {request.size.value} | WG: {group}"
    )
    trace.append("Strict policy: only same weight group stacking allowed.")

    # =============================================
    # STEP 1: CORE GROUP
    # =============================================
    core = core_group(request, index.units())
    trace.append(f"Step 1: core group size {len(core)} (same vessel/POD/size)")
    logger.debug("Core group for %s: %d unit(s)", request.id, len(core))

    if core:
        # =============================================
        # STEP 2: STACK CONTINUATION (same weight group only)
        # =============================================
        trace.append("Step 2: stacking on existing group...")
        same_group = [u for u in core if weight_group(u.weight) == request.weight_group]
        for unit in sorted(same_group, key=lambda u: u.tier, reverse=True):
            target_tier = unit.tier + 1
            max_tier = settings.max_tier(unit.block)
            if target_tier > max_tier:
                continue
            slot = SlotKey(unit.block, unit.logical_bay, unit.row, target_tier)
            if safe(slot):
                reason = (f"CLUSTER: stack on tier {target_tier} with {group} group "
                          f"at {unit.block}-{unit.logical_bay:02d}")
                trace.append(f"Step 2: {slot} accepted")
                return Suggestion.at(slot, Priority.CLUSTER, reason, trace), 2
        trace.append(f"Step 2: no stack continuation ({len(same_group)} same-group unit(s))")

        # =============================================
        # STEP 3: NEW ROW IN A BAY THE GROUP ALREADY USES
        # =============================================
        trace.append("Step 3: expansion in existing bays...")
        for block, bay in group_bays(core):
            for row in ROW_ORDER:
                slot = SlotKey(block, bay, row, 1)
                if safe(slot):
                    reason = f"CLUSTER: open row {row:02d} in bay {bay:02d} (clean tier 1)"
                    trace.append(f"Step 3: {slot} accepted")
                    return Suggestion.at(slot, Priority.CLUSTER, reason, trace), 3
        trace.append("Step 3: group bays are full")

    # =============================================
    # STEP 4: BERTH FALLBACK
    # =============================================
    trace.append("Step 4: berth fallback search...")
    berth = berth_for_vessel(request.vessel, context, settings)
    candidates = settings.blocks_for_berth(berth)
    trace.append(f"Checking blocks assigned to {berth}: {', '.join(candidates)}")

    start_bay = 2 if request.size == ContainerSize.LONG else 1
    for name in candidates:
        block = context.block(name)
        if block is None or block.is_heap:
            continue
        last_bay = block.total_bays or FALLBACK_TOTAL_BAYS
        if request.size == ContainerSize.LONG:
            # Both footprint bays must lie inside the block.
            last_bay -= 1
        for bay in range(start_bay, last_bay + 1, 2):
            for row in ROW_ORDER:
                slot = SlotKey(name, bay, row, 1)
                if safe(slot):
                    reason = f"BERTH: ground slot in block {name} serving berth {berth}"
                    trace.append(f"Step 4: {slot} accepted")
                    return Suggestion.at(slot, Priority.BERTH, reason, trace), 4

    trace.append("Step 4: no free ground slot in berth blocks")
    return Suggestion.none(NOT_FOUND_REASON, trace), 0


def core_group(request: PlacementRequest, units: Iterable[Occupant]) -> List[Occupant]:
    """Boxes sharing vessel, destination port and size with `request`."""
    return [
        u for u in units
        if vessels_match(u.vessel, request.vessel)
        and ports_match(u.destination_port, request.destination_port)
        and u.size == request.size
    ]


def group_bays(units: Iterable[Occupant]) -> List[Tuple[str, int]]:
    """Distinct (block, logical bay) pairs in first-seen order."""
    seen = []
    for u in units:
        key = (u.block, u.logical_bay)
        if key not in seen:
            seen.append(key)
    return seen


def berth_for_vessel(vessel: str, context: YardContext, settings: YardSettings) -> str:
    for entry in context.schedule:
        if vessels_match(entry.vessel_name, vessel):
            return normalize(entry.berth) or settings.default_berth
    return settings.default_berth


def _in_topology(context: YardContext, block: str, row: int) -> bool:
    """Heap blocks are never planned; rows must exist when the block is known."""
    config = context.block(block)
    if config is None:
        return True
    if config.is_heap:
        return False
    return not config.rows_per_bay or row <= config.rows_per_bay
