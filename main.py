"""Main entry point: builds an example yard and runs a few placement requests."""

import logging
import os
from datetime import datetime
from typing import List

from models import (
    BerthAssignment,
    BlockConfig,
    BlockType,
    Container,
    ContainerSize,
    MachineType,
    ScheduleEntry,
    Suggestion,
    YardSettings,
)
from planner import YardPlanner

LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")


def create_blocks() -> List[BlockConfig]:
    """A small slice of the terminal: RTG blocks, one RS block and a heap."""
    blocks = []
    for name in ("A1", "B1", "C1", "D1", "E1"):
        blocks.append(BlockConfig(name, total_bays=30, rows_per_bay=6, tiers_per_bay=5,
                                  machine_type=MachineType.RTG))
    blocks.append(BlockConfig("B0", total_bays=26, rows_per_bay=11, tiers_per_bay=5,
                              machine_type=MachineType.RS))
    blocks.append(BlockConfig("CFS 1", total_bays=0, rows_per_bay=0, tiers_per_bay=0,
                              machine_type=MachineType.RS, block_type=BlockType.HEAP,
                              capacity=500))
    return blocks


def create_settings() -> YardSettings:
    return YardSettings(
        max_tier_by_block={"A1": 5, "B1": 5, "C1": 5, "B0": 6},
        berth_mapping=[
            BerthAssignment("1A", ["A1", "B1", "C1"]),
            BerthAssignment("BARGING", ["CFS 1", "D1", "E1"]),
        ],
    )


def create_inventory() -> List[Container]:
    """Boxes already in the yard, including one 40ft box split in two parts."""
    return [
        Container("MSKU0000011", "A1", 1, 6, 1, ContainerSize.SHORT, 10.0,
                  vessel="MAERSK SEOUL", destination_port="SINGAPORE"),
        Container("MSKU0000022", "A1", 1, 6, 2, ContainerSize.SHORT, 12.5,
                  vessel="MAERSK SEOUL", destination_port="SINGAPORE"),
        Container("TGHU0000033", "B1", 1, 6, 1, ContainerSize.LONG, 24.0,
                  vessel="EVER GIVEN", destination_port="ROTTERDAM",
                  is_multi_bay=True, part_type="start"),
        Container("TGHU0000033", "B1", 3, 6, 1, ContainerSize.LONG, 24.0,
                  vessel="EVER GIVEN", destination_port="ROTTERDAM",
                  is_multi_bay=True, part_type="end"),
    ]


def create_schedule() -> List[ScheduleEntry]:
    return [
        ScheduleEntry("MAERSK SEOUL", voyage="612W", discharge=420, load=380, berth="1A"),
        ScheduleEntry("EVER GIVEN", voyage="077E", discharge=900, load=750, berth="1A"),
    ]


def print_suggestion(label: str, suggestion: Suggestion) -> None:
    print(f"\n>>> {label}")
    if suggestion.not_found:
        print(f"  NOT FOUND: {suggestion.reasoning}")
    else:
        print(f"  {suggestion.priority.value:8s} {suggestion.location}  ({suggestion.reservation_id})")
        print(f"  {suggestion.reasoning}")
    for line in suggestion.trace:
        print(f"    | {line}")


def main():
    logging.basicConfig(level=LOG_LEVEL)

    print("=" * 70)
    print("  Container Yard Placement Planner")
    print("=" * 70)

    planner = YardPlanner(
        blocks=create_blocks(),
        settings=create_settings(),
        schedule=create_schedule(),
        containers=create_inventory(),
    )
    now = datetime.now()

    demo = [
        ("Light 20ft for MAERSK SEOUL (stacks on its group)", "MAERSK SEOUL", "SINGAPORE", "20", 11.0),
        ("Heavy 20ft for MAERSK SEOUL (new row in the group bay)", "MAERSK SEOUL", "SINGAPORE", "20", 25.0),
        ("Heavy 40ft for EVER GIVEN (stacks on the 40ft box)", "EVER GIVEN", "ROTTERDAM", "40", 26.0),
        ("Unknown vessel (berth fallback)", "COSCO TAURUS", "HONG KONG", "20", 8.0),
    ]
    for label, vessel, port, size, weight in demo:
        req = planner.submit(vessel, port, size, weight, now=now)
        suggestion = planner.suggest(req.id, now=now)
        print_suggestion(label, suggestion)
        if not suggestion.not_found:
            planner.assign(req.id, now=now)
            print(f"  committed -> {planner.get(req.id).assigned_location}")


if __name__ == "__main__":
    main()
