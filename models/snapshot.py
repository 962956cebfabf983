"""Last successfully fetched copy of the leasing data, with lookup helpers."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.building import Block, Campus
from models.company import Company
from models.lease import ExtendedLeaseData, Lease
from models.unit import Unit


@dataclass
class SpaceSnapshot:
    campuses: List[Campus] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    units: List[Unit] = field(default_factory=list)
    companies: List[Company] = field(default_factory=list)
    leases: List[Lease] = field(default_factory=list)

    def campus(self, campus_id: str) -> Optional[Campus]:
        return next((c for c in self.campuses if c.campus_id == campus_id), None)

    def block(self, block_id: str) -> Optional[Block]:
        return next((b for b in self.blocks if b.block_id == block_id), None)

    def unit(self, unit_id: str) -> Optional[Unit]:
        return next((u for u in self.units if u.unit_id == unit_id), None)

    def company(self, company_id: str) -> Optional[Company]:
        return next((c for c in self.companies if c.company_id == company_id), None)

    def lease_for(self, company_id: str) -> Optional[Lease]:
        return next((ls for ls in self.leases if ls.company_id == company_id), None)

    def blocks_of(self, campus_id: str) -> List[Block]:
        return [b for b in self.blocks if b.campus_id == campus_id]

    def units_on(self, block_id: str, floor: str) -> List[Unit]:
        return [u for u in self.units if u.block_id == block_id and u.floor == floor]

    def active_unit_of(self, company_id: str) -> Optional[Unit]:
        """The company's capacity-consuming unit, if any."""
        return next(
            (u for u in self.units if u.company_id == company_id and u.is_active),
            None,
        )

    def extended_leases(self) -> List[ExtendedLeaseData]:
        """Join every company with its lease, unit, block and campus."""
        units_by_id: Dict[str, Unit] = {u.unit_id: u for u in self.units}
        rows = []
        for company in self.companies:
            lease = self.lease_for(company.company_id)
            unit = None
            if lease is not None and lease.unit_id:
                unit = units_by_id.get(lease.unit_id)
            if unit is None:
                unit = self.active_unit_of(company.company_id)
            block = self.block(unit.block_id) if unit else None
            campus = self.campus(block.campus_id) if block else None
            rows.append(ExtendedLeaseData(company, lease, unit, block, campus))
        return rows
