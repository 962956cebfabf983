from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union

from config.defaults import DEFAULT_OPERATING_FEE
from models.building import Block, Campus
from models.company import Company, LeaseDocument
from models.unit import Unit


@dataclass
class Lease:
    lease_id: Optional[str]             # None until the collaborator assigns one
    company_id: str
    unit_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: float = 0.0
    operating_fee: float = DEFAULT_OPERATING_FEE
    unit_price_per_sqm: Optional[float] = None  # preserved rate while unallocated
    documents: List[LeaseDocument] = field(default_factory=list)

    @property
    def status(self) -> "LeaseStatus":
        return lease_status(self)


# --- Lease status (tagged union) ---

@dataclass(frozen=True)
class Unregistered:
    """Company has no lease record at all."""


@dataclass(frozen=True)
class PendingAllocation:
    """Registered with the company, never allocated a unit."""


@dataclass(frozen=True)
class Allocated:
    unit_id: str


@dataclass(frozen=True)
class Detached:
    """Previously allocated, space since removed; the agreed rate is kept."""
    preserved_unit_price: Optional[float] = None


LeaseStatus = Union[Unregistered, PendingAllocation, Allocated, Detached]


def lease_status(lease: Optional[Lease]) -> LeaseStatus:
    if lease is None:
        return Unregistered()
    if lease.unit_id:
        return Allocated(lease.unit_id)
    if lease.lease_id is None:
        return PendingAllocation()
    return Detached(lease.unit_price_per_sqm)


def is_unallocated(status: LeaseStatus) -> bool:
    return not isinstance(status, Allocated)


@dataclass
class ExtendedLeaseData:
    """Read-model join used by lease listings. Derived, never authoritative."""
    company: Company
    lease: Optional[Lease]
    unit: Optional[Unit] = None
    block: Optional[Block] = None
    campus: Optional[Campus] = None

    @property
    def status(self) -> LeaseStatus:
        return lease_status(self.lease)
