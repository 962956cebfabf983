"""Floor, block and campus capacity accounting. Pure functions, no I/O."""

from typing import Dict, Iterable, List, Optional

from models.building import Block, Campus, FloorCapacity, floor_sort_key, sort_floor_labels
from models.company import Company
from models.allocation import BlockUsage, CampusUsage, FloorUsage
from models.unit import Unit
from engine.errors import FloorNotFound, InvalidArea
from config.defaults import (
    AREA_DECIMALS, MIN_SQM_PER_EMPLOYEE,
    OCCUPANCY_CRITICAL_PCT, OCCUPANCY_HIGH_PCT,
)

__all__ = [
    "floor_usage", "block_usage", "campus_usage",
    "occupancy_pct", "occupancy_band",
    "min_required_area", "density_warning",
    "check_floor_capacity_edit", "validate_sqm_per_employee",
    "floor_sort_key", "sort_floor_labels",
]


def _round(value: float) -> float:
    return round(value, AREA_DECIMALS)


def occupancy_pct(used: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return max(0.0, used / total * 100)


def occupancy_band(pct: float) -> str:
    if pct >= OCCUPANCY_CRITICAL_PCT:
        return "critical"
    if pct >= OCCUPANCY_HIGH_PCT:
        return "high"
    return "normal"


def _used_area(
    units: Iterable[Unit],
    block_id: str,
    floor: str,
    exclude_unit_id: Optional[str] = None,
) -> float:
    return sum(
        u.area_sqm for u in units
        if u.block_id == block_id
        and u.floor == floor
        and u.is_active
        and u.unit_id != exclude_unit_id
    )


def floor_usage(
    block: Block,
    floor: str,
    units: List[Unit],
    exclude_unit_id: Optional[str] = None,
) -> FloorUsage:
    """Used / remaining / occupancy for one floor of a block.

    RESERVED units consume capacity exactly like OCCUPIED ones. When
    ``exclude_unit_id`` is given that unit is left out of the used area,
    which is what a resize needs.
    """
    capacity = block.floor_capacity(floor)
    if capacity is None:
        raise FloorNotFound(f"Floor '{floor}' is not declared on block {block.name or block.block_id}.")

    total = capacity.total_sqm
    used = _used_area(units, block.block_id, floor, exclude_unit_id)
    count = sum(
        1 for u in units
        if u.block_id == block.block_id and u.floor == floor
        and u.is_active and u.unit_id != exclude_unit_id
    )
    return FloorUsage(
        block_id=block.block_id,
        floor=floor,
        total_sqm=_round(total),
        used_sqm=_round(used),
        remaining_sqm=_round(max(0.0, total - used)),
        occupancy_pct=occupancy_pct(used, total),
        unit_count=count,
    )


def block_usage(block: Block, units: List[Unit]) -> BlockUsage:
    floors = [floor_usage(block, label, units) for label in block.sorted_floors]
    total = sum(f.total_sqm for f in floors)
    used = sum(f.used_sqm for f in floors)
    return BlockUsage(
        block_id=block.block_id,
        total_sqm=_round(total),
        used_sqm=_round(used),
        remaining_sqm=_round(max(0.0, total - used)),
        occupancy_pct=occupancy_pct(used, total),
        floors=floors,
    )


def campus_usage(campus: Campus, blocks: List[Block], units: List[Unit]) -> CampusUsage:
    """Campus aggregate. Occupancy is used area over total area, not a mean of block percentages."""
    block_rows = [block_usage(b, units) for b in blocks if b.campus_id == campus.campus_id]
    total = sum(b.total_sqm for b in block_rows)
    used = sum(b.used_sqm for b in block_rows)
    return CampusUsage(
        campus_id=campus.campus_id,
        total_sqm=_round(total),
        used_sqm=_round(used),
        remaining_sqm=_round(max(0.0, total - used)),
        occupancy_pct=occupancy_pct(used, total),
        blocks=block_rows,
    )


def min_required_area(company: Company, sqm_per_employee: float) -> float:
    return company.employee_count * sqm_per_employee


def density_warning(company: Company, area_sqm: float, sqm_per_employee: float) -> Optional[str]:
    """Advisory only: a cramped allocation is allowed but flagged."""
    required = min_required_area(company, sqm_per_employee)
    if required > area_sqm:
        return (
            f"{company.name}: {company.employee_count} çalışan için önerilen minimum alan "
            f"{required:.2f} m², atanan alan {area_sqm:.2f} m²."
        )
    return None


def validate_sqm_per_employee(value: float) -> float:
    if value is None or value < MIN_SQM_PER_EMPLOYEE:
        raise InvalidArea(f"m² per employee must be at least {MIN_SQM_PER_EMPLOYEE}.")
    return value


def check_floor_capacity_edit(
    block: Block,
    new_capacities: List[FloorCapacity],
    units: List[Unit],
) -> List[str]:
    """Errors for a floor-capacity edit that would strand already allocated area."""
    errors = []
    new_by_floor: Dict[str, float] = {}
    for fc in new_capacities:
        if fc.floor in new_by_floor:
            errors.append(f"Floor '{fc.floor}' is declared more than once.")
        if fc.total_sqm < 0:
            errors.append(f"Floor '{fc.floor}' capacity cannot be negative.")
        new_by_floor[fc.floor] = fc.total_sqm

    current_floors = {u.floor for u in units if u.block_id == block.block_id and u.is_active}
    for floor in sorted(current_floors, key=floor_sort_key, reverse=True):
        used = _round(_used_area(units, block.block_id, floor))
        if floor not in new_by_floor:
            errors.append(f"Floor '{floor}' still holds {used:.2f} m² of allocated space and cannot be removed.")
        elif new_by_floor[floor] < used:
            errors.append(
                f"Floor '{floor}' capacity {new_by_floor[floor]:.2f} m² is below "
                f"the allocated {used:.2f} m²."
            )
    return errors
