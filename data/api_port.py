"""Data-access port the leasing core talks to.

Two adapters implement it: ``data.http_api.RequestsLeasingApi`` for the REST
backend and ``data.memory_api.InMemoryLeasingApi`` for tests and demos.
Every write is audited by the collaborator, not by the core.
"""

from typing import Any, Dict, List, Optional, Protocol

from models.allocation import AllocationRequest
from models.audit import AuditLogEntry, RollbackPreview
from models.building import Block, Campus, FloorCapacity
from models.company import Company, LeaseDocument, ScoreEntry
from models.lease import Lease
from models.unit import Unit


class LeasingApi(Protocol):
    # --- reads ---
    def get_campuses(self) -> List[Campus]: ...

    def get_blocks(self) -> List[Block]: ...

    def get_units(self) -> List[Unit]: ...

    def get_companies(self) -> List[Company]: ...

    def get_leases(self) -> List[Lease]: ...

    def get_logs(self) -> List[AuditLogEntry]: ...

    # --- allocation ---
    def assign_company_to_floor(self, request: AllocationRequest) -> Unit: ...

    def update_unit_and_company(self, unit_id: str, fields: Dict[str, Any]) -> None: ...

    def remove_allocation(self, unit_id: str) -> None: ...

    # --- lease ---
    def update_lease(
        self,
        company_id: str,
        monthly_rent: Optional[float] = None,
        operating_fee: Optional[float] = None,
    ) -> None: ...

    def update_lease_dates(self, company_id: str, start_iso: str, end_iso: str) -> None: ...

    def delete_lease(self, company_id: str) -> None: ...

    # --- rollback ---
    def get_rollback_preview(self, entry_id: str) -> Optional[RollbackPreview]: ...

    def rollback_transaction(self, entry_id: str) -> None: ...

    # --- structure ---
    def add_campus(self, campus: Campus) -> Campus: ...

    def update_campus(self, campus_id: str, fields: Dict[str, Any]) -> Campus: ...

    def delete_campus(self, campus_id: str) -> None: ...

    def add_block(self, block: Block) -> Block: ...

    def update_block(
        self,
        block_id: str,
        fields: Dict[str, Any],
        floor_capacities: Optional[List[FloorCapacity]] = None,
    ) -> Block: ...

    def delete_block(self, block_id: str) -> None: ...

    # --- companies ---
    def register_company(self, company: Company) -> Company: ...

    def update_company(self, company_id: str, fields: Dict[str, Any]) -> None: ...

    def delete_company(self, company_id: str) -> None: ...

    def add_company_score(self, company_id: str, entry: ScoreEntry) -> ScoreEntry: ...

    def delete_company_score(self, company_id: str, entry_id: str) -> None: ...

    def add_document(self, company_id: str, document: LeaseDocument, is_pending: bool = True) -> None: ...

    def delete_document(self, company_id: str, document_name: str, is_pending: bool = True) -> None: ...
