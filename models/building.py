import re
from dataclasses import dataclass, field
from typing import List, Optional

from config.defaults import (
    DEFAULT_OPERATING_FEE, DEFAULT_SQM_PER_EMPLOYEE,
    MEZZANINE_FLOOR_LABEL, MEZZANINE_FLOOR_KEY,
    HALF_FLOOR_SUFFIX, HALF_FLOOR_OFFSET,
)

_LEADING_NUMBER = re.compile(r"\s*[-+]?\d+(?:\.\d+)?")


def floor_sort_key(label: str) -> float:
    """Numeric key for a floor label: mezzanine = 0.5, "<n>A" = n + 0.5."""
    if label == MEZZANINE_FLOOR_LABEL:
        return MEZZANINE_FLOOR_KEY
    match = _LEADING_NUMBER.match(label)
    if not match:
        return 0.0
    num = float(match.group(0))
    if label.endswith(HALF_FLOOR_SUFFIX):
        return num + HALF_FLOOR_OFFSET
    return num


def sort_floor_labels(labels: List[str]) -> List[str]:
    """Order floor labels top floor first."""
    return sorted(labels, key=floor_sort_key, reverse=True)


@dataclass
class Campus:
    campus_id: str
    name: str
    address: str = ""
    max_office_cap: int = 0
    max_area_cap: float = 0.0
    max_floors_cap: int = 0


@dataclass
class FloorCapacity:
    floor: str
    total_sqm: float


@dataclass
class Block:
    block_id: str
    campus_id: str
    name: str
    max_floors: int = 0
    max_offices: int = 0
    max_area_sqm: float = 0.0
    default_operating_fee: float = DEFAULT_OPERATING_FEE
    sqm_per_employee: float = DEFAULT_SQM_PER_EMPLOYEE
    floor_capacities: List[FloorCapacity] = field(default_factory=list)

    def floor_capacity(self, floor: str) -> Optional[FloorCapacity]:
        for fc in self.floor_capacities:
            if fc.floor == floor:
                return fc
        return None

    @property
    def sorted_floors(self) -> List[str]:
        return sort_floor_labels([fc.floor for fc in self.floor_capacities])

    @property
    def total_sqm(self) -> float:
        return sum(fc.total_sqm for fc in self.floor_capacities)
