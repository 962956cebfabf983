from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from config.defaults import ACTIVE_UNIT_STATUSES


class UnitStatus(str, Enum):
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    VACANT = "VACANT"
    MAINTENANCE = "MAINTENANCE"


@dataclass
class ReservationMeta:
    fee: float = 0.0
    duration: Optional[str] = None      # e.g. "3 Ay"
    reserved_at: Optional[datetime] = None


@dataclass
class Unit:
    """Leasable sub-area of a floor, the only link between a company and space."""
    unit_id: str
    block_id: str
    floor: str
    area_sqm: float
    status: UnitStatus = UnitStatus.OCCUPIED
    company_id: Optional[str] = None
    number: str = ""                    # e.g. "TEK-ABL-3-1"
    reservation: Optional[ReservationMeta] = None

    @property
    def is_active(self) -> bool:
        """Active units consume floor capacity."""
        return self.status.value in ACTIVE_UNIT_STATUSES

    @property
    def is_reserved(self) -> bool:
        return self.status == UnitStatus.RESERVED
