"""Grid-based cargo placement and the ULD container catalogue.

The placement here is deliberately simple: containers are dealt round-robin
over the hold sections in arrival order and stacked into a two-column grid,
with only the aircraft-wide weight limit enforced. It is not a bin-packing
or balance optimiser.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .aircraft import SCALE_FACTOR, get_aircraft_model, get_cargo_hold, resolve_aircraft_type
from .schemas import (
    OVERFLOW_SECTION,
    Container,
    PlacedContainer,
    PlacementResult,
    Position,
    format_number,
)


logger = logging.getLogger(__name__)

GRID_COLUMNS = 2
SLOT_WIDTH = 0.35
SLOT_DEPTH = 0.4
SLOT_GAP = 0.08
FLOOR_CLEARANCE = 0.15

MIN_BALANCE_SCORE = 50

AUTO_MAX_CONTAINERS = 12
AUTO_MIN_REMAINING_KG = 100
AUTO_MIN_CONTAINER_KG = 50
AUTO_DEFAULT_FILL_RATIO = 0.8
AUTO_FILL_RANGE = (0.7, 0.9)
MANUAL_DEFAULT_FILL_RATIO = 0.6


@dataclass(frozen=True)
class ContainerType:
    """A catalogue entry for a ULD, pallet or bulk load."""

    id: str
    name: str
    max_weight: float
    volume: float
    width: float
    height: float
    depth: float
    color: str


CONTAINER_TYPES: Dict[str, ContainerType] = {
    "LD3": ContainerType("LD3", "LD3 Container", 1588, 4.5, 1.56, 1.14, 1.53, "#00fff5"),
    "LD6": ContainerType("LD6", "LD6 Container", 3175, 8.9, 3.18, 1.14, 1.53, "#ff00ff"),
    "LD11": ContainerType("LD11", "LD11 Container", 3176, 7.0, 3.18, 1.14, 1.53, "#39ff14"),
    "PALLET": ContainerType("PALLET", "Standard Pallet", 4626, 10.0, 3.18, 1.5, 2.44, "#ffd700"),
    "BULK": ContainerType("BULK", "Bulk Cargo", 1000, 3.0, 1.2, 0.8, 1.2, "#ff8c00"),
}


def container_color_for_weight(weight: float) -> str:
    if weight < 500:
        return "#39ff14"
    if weight < 1500:
        return "#ffd700"
    if weight < 2500:
        return "#ff8c00"
    return "#ff073a"


def build_container(
    type_id: str,
    index: int,
    *,
    weight: Optional[float] = None,
    id_prefix: Optional[str] = None,
) -> Container:
    """Create a container of a catalogue type.

    ``index`` is zero-based and drives both the id and the ``#n`` display
    suffix. Weight defaults to 60 % of the type's rated maximum.
    """

    container_type = CONTAINER_TYPES[type_id]
    if weight is None:
        weight = math.floor(container_type.max_weight * MANUAL_DEFAULT_FILL_RATIO)
    prefix = id_prefix or container_type.id
    return Container(
        id=f"{prefix}-{index}",
        name=f"{container_type.name} #{index + 1}",
        weight=max(0.0, float(weight)),
        volume=container_type.volume,
        width=container_type.width,
        height=container_type.height,
        depth=container_type.depth,
        color=container_type.color,
        type_id=container_type.id,
    )


def _auto_type_for(remaining: float) -> ContainerType:
    if remaining > 3000:
        return CONTAINER_TYPES["PALLET"]
    if remaining > 1500:
        return CONTAINER_TYPES["LD6"]
    if remaining > 800:
        return CONTAINER_TYPES["LD3"]
    return CONTAINER_TYPES["BULK"]


def auto_generate_containers(
    cargo_weight: float,
    *,
    fill_ratio: Optional[float] = None,
    rng: Optional[random.Random] = None,
    id_prefix: str = "auto",
) -> List[Container]:
    """Split a flight's cargo weight into a plausible list of containers.

    Without ``rng`` every container is filled to ``fill_ratio`` (default 0.8)
    so the split is reproducible; with ``rng`` each fill ratio is drawn from
    ``[0.7, 0.9)``.
    """

    if not cargo_weight or cargo_weight <= 0:
        return []

    containers: List[Container] = []
    remaining = float(cargo_weight)
    while remaining > AUTO_MIN_REMAINING_KG and len(containers) < AUTO_MAX_CONTAINERS:
        container_type = _auto_type_for(remaining)
        if rng is not None:
            low, high = AUTO_FILL_RANGE
            ratio = low + rng.random() * (high - low)
        else:
            ratio = AUTO_DEFAULT_FILL_RATIO if fill_ratio is None else fill_ratio
        weight = min(remaining, math.floor(container_type.max_weight * ratio))
        if weight < AUTO_MIN_CONTAINER_KG:
            break

        index = len(containers)
        containers.append(
            build_container(
                container_type.id,
                index,
                weight=weight,
                id_prefix=f"{id_prefix}-{container_type.id}",
            )
        )
        remaining -= weight
    return containers


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_balance_score(forward_weight: float, aft_weight: float, total_weight: float) -> int:
    """Heuristic 50-100 symmetry score; mid-section weight counts half forward."""

    mid_weight = total_weight - forward_weight - aft_weight
    if total_weight > 0:
        ratio = (forward_weight + mid_weight * 0.5) / total_weight
    else:
        ratio = 0.5
    score = _round_half_up(100 - abs(0.5 - ratio) * 100)
    return max(MIN_BALANCE_SCORE, score)


def generate_grid_placement(containers: Sequence[Container], aircraft_type: Optional[str]) -> PlacementResult:
    """Assign containers to hold sections in arrival order.

    A container that would push the placed total over the aircraft's
    capacity is marked ``overflow`` and so is every container after it.
    Per-section ``max_weight`` is not enforced.
    """

    matched_type = resolve_aircraft_type(aircraft_type)
    model = get_aircraft_model(matched_type)
    hold = get_cargo_hold(matched_type)
    sections = model.sections
    max_capacity = hold.max_weight
    total_cargo_weight = sum(container.weight for container in containers)

    logger.debug(
        "Grid placement requested=%r matched=%s capacity=%s requested_weight=%s sections=%d",
        aircraft_type,
        matched_type,
        max_capacity,
        total_cargo_weight,
        len(sections),
    )

    running_weight = 0.0
    section_counts: Dict[str, int] = {section.id: 0 for section in sections}
    capacity_reached = False
    placed: List[PlacedContainer] = []

    for index, container in enumerate(containers):
        if capacity_reached or running_weight + container.weight > max_capacity:
            capacity_reached = True
            placed.append(PlacedContainer(container, OVERFLOW_SECTION, False, Position(0, 0, 0)))
            continue

        section = sections[index % len(sections)]
        count = section_counts[section.id]
        col = count % GRID_COLUMNS
        row = count // GRID_COLUMNS

        position = Position(
            x=(col - 0.5) * (SLOT_WIDTH + SLOT_GAP),
            y=section.position.y * SCALE_FACTOR + FLOOR_CLEARANCE,
            z=section.position.z * SCALE_FACTOR + row * (SLOT_DEPTH + SLOT_GAP),
        )

        running_weight += container.weight
        section_counts[section.id] = count + 1
        placed.append(PlacedContainer(container, section.id, True, position))

    placed_items = [item for item in placed if item.placed]
    total_placed_weight = sum(item.weight for item in placed_items)
    forward_weight = sum(item.weight for item in placed_items if item.section == "fwd")
    aft_weight = sum(item.weight for item in placed_items if item.section == "aft")
    overflow_count = len(placed) - len(placed_items)

    suggestions = [
        f"{len(placed_items)} containers placed in {matched_type}",
        f"Capacity: {format_number(total_cargo_weight)}kg / {format_number(max_capacity)}kg",
        "Weight distributed across cargo sections",
    ]
    warnings = []
    if overflow_count > 0:
        warnings.append(f"{overflow_count} container(s) exceed {format_number(max_capacity)}kg capacity")

    return PlacementResult(
        containers=placed,
        balance_score=compute_balance_score(forward_weight, aft_weight, total_placed_weight),
        forward_weight=forward_weight,
        aft_weight=aft_weight,
        suggestions=suggestions,
        warnings=warnings,
        aircraft_type=matched_type,
        max_capacity=max_capacity,
        source="grid",
    )


def summarize_cargo(placement: PlacementResult) -> Dict[str, float]:
    placed = placement.placed_containers
    unplaced = placement.unplaced_containers
    return {
        "placed_count": len(placed),
        "placed_weight": sum(item.weight for item in placed),
        "unplaced_count": len(unplaced),
        "unplaced_weight": sum(item.weight for item in unplaced),
        "unplaced_volume": sum(item.container.volume for item in unplaced),
    }
