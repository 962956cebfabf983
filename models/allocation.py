from dataclasses import dataclass, field
from typing import List, Optional

from models.unit import ReservationMeta, Unit


@dataclass
class FloorUsage:
    block_id: str
    floor: str
    total_sqm: float
    used_sqm: float          # OCCUPIED + RESERVED
    remaining_sqm: float     # never negative
    occupancy_pct: float     # not capped at 100, over-allocation stays visible
    unit_count: int = 0

    @property
    def is_over_allocated(self) -> bool:
        return self.used_sqm > self.total_sqm


@dataclass
class BlockUsage:
    block_id: str
    total_sqm: float
    used_sqm: float
    remaining_sqm: float
    occupancy_pct: float
    floors: List[FloorUsage] = field(default_factory=list)


@dataclass
class CampusUsage:
    campus_id: str
    total_sqm: float
    used_sqm: float
    remaining_sqm: float
    occupancy_pct: float
    blocks: List[BlockUsage] = field(default_factory=list)


@dataclass
class AllocationRequest:
    company_id: str
    block_id: str
    floor: str
    area_sqm: float
    is_reserved: bool = False
    reservation: Optional[ReservationMeta] = None


@dataclass
class AllocationOutcome:
    """Result of a successful assign or resize."""
    unit: Unit
    monthly_rent: float = 0.0
    unit_price: float = 0.0
    warnings: List[str] = field(default_factory=list)
    explanation_steps: List[str] = field(default_factory=list)


@dataclass
class UnitEditSession:
    """Rate captured when editing of a unit starts; reused by every save."""
    unit_id: str
    original_area_sqm: float
    fixed_unit_price: float
    current_area_sqm: float = 0.0
    saves: int = 0


@dataclass
class RemovalOutcome:
    unit_id: str
    company_id: Optional[str]
    preserved_unit_price: float
