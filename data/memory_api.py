"""In-process collaborator used by tests and demos.

Follows the backend's rules: capacity is re-checked on every write, deletes
are soft and audited with rollback data, rollbacks append a RESTORE entry.
"""

import copy
import itertools
import logging
import math
import re
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from models.allocation import AllocationRequest
from models.audit import AuditAction, AuditLogEntry, PreviewType, RollbackPreview
from models.building import Block, Campus, FloorCapacity
from models.company import Company, LeaseDocument, ScoreEntry
from models.lease import Lease
from models.unit import ReservationMeta, Unit, UnitStatus
from engine.errors import ConflictError
from config.defaults import DEFAULT_OPERATING_FEE, ROLLBACK_WINDOW

logger = logging.getLogger(__name__)

COMPANY_FIELDS = {
    "company_name": "name",
    "name": "name",
    "sector": "sector",
    "business_areas": "business_areas",
    "manager_name": "manager_name",
    "manager_phone": "manager_phone",
    "manager_email": "manager_email",
    "employee_count": "employee_count",
    "registration_number": "registration_number",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _fmt(value: float) -> str:
    return f"{round(value, 2):g}"


def _lease_state(lease: Lease) -> dict:
    return {
        "id": lease.lease_id,
        "company_id": lease.company_id,
        "unit_id": lease.unit_id,
        "monthly_rent": lease.monthly_rent,
        "unit_price_per_sqm": lease.unit_price_per_sqm,
        "start_date": lease.start_date.isoformat() if lease.start_date else None,
        "end_date": lease.end_date.isoformat() if lease.end_date else None,
    }


def _unit_state(unit: Unit) -> dict:
    return {
        "id": unit.unit_id,
        "block_id": unit.block_id,
        "number": unit.number,
        "floor": unit.floor,
        "area_sqm": unit.area_sqm,
        "status": unit.status.value,
        "company_id": unit.company_id,
    }


class InMemoryLeasingApi:
    def __init__(self, clock: Callable[[], datetime] = _utc_now, user: str = "admin", user_role: str = "ADMIN"):
        self.clock = clock
        self.user = user
        self.user_role = user_role
        self.campuses: Dict[str, Campus] = {}
        self.blocks: Dict[str, Block] = {}
        self.units: Dict[str, Unit] = {}
        self.companies: Dict[str, Company] = {}
        self.leases: Dict[str, Lease] = {}          # by company_id
        self.logs: List[AuditLogEntry] = []
        self._deleted_campuses: Dict[str, Campus] = {}
        self._deleted_blocks: Dict[str, Block] = {}
        self._deleted_units: Dict[str, Unit] = {}
        self._ids = itertools.count(1)
        self._log_ids = itertools.count(1)

    # --- helpers ---

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _audit(
        self,
        entity_type: str,
        action: AuditAction,
        details: str,
        rollback_data: Optional[dict] = None,
        impact: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            entry_id=str(next(self._log_ids)),
            timestamp=self.clock(),
            action=action,
            entity_type=entity_type,
            details=details,
            user=self.user,
            user_role=self.user_role,
            trace_id=uuid.uuid4().hex,
            impact=impact,
            rollback_data=rollback_data,
        )
        self.logs.append(entry)
        return entry

    def append_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Store an externally built entry (imports, fixtures)."""
        self.logs.append(entry)
        return entry

    def _used_area(self, block_id: str, floor: str, exclude_unit_id: Optional[str] = None) -> float:
        return sum(
            u.area_sqm for u in self.units.values()
            if u.block_id == block_id and u.floor == floor
            and u.is_active and u.unit_id != exclude_unit_id
        )

    def _check_capacity(self, block: Block, floor: str, area: float, exclude_unit_id: Optional[str] = None):
        capacity = block.floor_capacity(floor)
        if capacity is None:
            raise ConflictError("Geçersiz kat.")
        used = self._used_area(block.block_id, floor, exclude_unit_id)
        if used + area > capacity.total_sqm:
            raise ConflictError(f"Kapasite Aşımı! Kalan m2: {_fmt(capacity.total_sqm - used)}")

    def _unit_number(self, block: Block, floor: str) -> str:
        campus = self.campuses.get(block.campus_id) or self._deleted_campuses.get(block.campus_id)
        campus_code = campus.name[:3].upper() if campus else "XXX"
        block_code = re.sub(r"\s+", "", block.name)[:3].upper()
        existing = [
            u for u in itertools.chain(self.units.values(), self._deleted_units.values())
            if u.block_id == block.block_id and u.floor == floor
        ]
        return f"{campus_code}-{block_code}-{floor}-{len(existing) + 1}"

    def _company(self, company_id: str) -> Company:
        company = self.companies.get(company_id)
        if company is None:
            raise ConflictError("Company not found")
        return company

    def _detach_leases(self, unit: Unit) -> List[dict]:
        """Detach every lease bound to ``unit``; returns their prior state."""
        states = []
        for lease in self.leases.values():
            if lease.unit_id != unit.unit_id:
                continue
            states.append(_lease_state(lease))
            price = lease.unit_price_per_sqm or 0.0
            if price == 0 and unit.area_sqm > 0:
                price = lease.monthly_rent / unit.area_sqm
            lease.unit_id = None
            lease.monthly_rent = 0.0
            lease.unit_price_per_sqm = price
        return states

    def _reattach_leases(self, states: List[dict]):
        for state in states:
            lease = self.leases.get(state["company_id"])
            if lease is None:
                continue
            lease.unit_id = state["unit_id"]
            lease.monthly_rent = state["monthly_rent"]
            lease.start_date = date.fromisoformat(state["start_date"]) if state["start_date"] else None
            lease.end_date = date.fromisoformat(state["end_date"]) if state["end_date"] else None

    # --- reads ---

    def get_campuses(self) -> List[Campus]:
        return copy.deepcopy(list(self.campuses.values()))

    def get_blocks(self) -> List[Block]:
        return copy.deepcopy(list(self.blocks.values()))

    def get_units(self) -> List[Unit]:
        return copy.deepcopy(list(self.units.values()))

    def get_companies(self) -> List[Company]:
        return copy.deepcopy(list(self.companies.values()))

    def get_leases(self) -> List[Lease]:
        return copy.deepcopy(list(self.leases.values()))

    def get_logs(self) -> List[AuditLogEntry]:
        """Newest first."""
        return list(reversed(self.logs))

    # --- allocation ---

    def assign_company_to_floor(self, request: AllocationRequest) -> Unit:
        block = self.blocks.get(request.block_id)
        if block is None:
            raise ConflictError("Blok bulunamadı.")
        self._check_capacity(block, request.floor, request.area_sqm)
        company = self.companies.get(request.company_id)
        if company is None:
            raise ConflictError("Firma bulunamadı.")

        number = self._unit_number(block, request.floor)
        reservation = None
        if request.is_reserved:
            meta = request.reservation or ReservationMeta()
            reservation = ReservationMeta(fee=meta.fee, duration=meta.duration, reserved_at=self.clock())
        unit = Unit(
            unit_id=self._next_id("unit"),
            block_id=block.block_id,
            floor=request.floor,
            area_sqm=request.area_sqm,
            status=UnitStatus.RESERVED if request.is_reserved else UnitStatus.OCCUPIED,
            company_id=company.company_id,
            number=number,
            reservation=reservation,
        )
        self.units[unit.unit_id] = unit

        if request.is_reserved:
            self._audit("UNIT", AuditAction.CREATE, f"{company.name} için rezervasyon yapıldı.")
            return copy.deepcopy(unit)

        lease = self.leases.get(company.company_id)
        template = company.contract_template
        if lease is not None:
            if lease.unit_price_per_sqm and lease.unit_price_per_sqm > 0:
                rate = lease.unit_price_per_sqm
            else:
                rate = template.rent_per_sqm if template else 0.0
            if lease.lease_id is None:
                lease.lease_id = self._next_id("lease")
            lease.unit_id = unit.unit_id
            lease.monthly_rent = request.area_sqm * rate
            lease.unit_price_per_sqm = rate
            self._audit("UNIT", AuditAction.UPDATE, f"Fiziksel tahsis yapıldı: {number}")
        elif template is not None:
            self.leases[company.company_id] = Lease(
                lease_id=self._next_id("lease"),
                company_id=company.company_id,
                unit_id=unit.unit_id,
                start_date=template.start_date,
                end_date=template.end_date,
                monthly_rent=request.area_sqm * template.rent_per_sqm,
                operating_fee=block.default_operating_fee or DEFAULT_OPERATING_FEE,
                unit_price_per_sqm=template.rent_per_sqm,
            )
            self._audit("LEASE", AuditAction.CREATE, f"Sözleşme ve Tahsis Oluşturuldu: {number}")
        else:
            self._audit("UNIT", AuditAction.UPDATE, f"Fiziksel tahsis yapıldı (Sözleşmesiz): {number}")
        return copy.deepcopy(unit)

    def update_unit_and_company(self, unit_id: str, fields: Dict[str, Any]) -> None:
        unit = self.units.get(unit_id)
        if unit is None:
            raise ConflictError("Unit not found")
        area = fields.get("area_sqm")
        if area is not None and area != unit.area_sqm:
            self._check_capacity(self.blocks[unit.block_id], unit.floor, area, exclude_unit_id=unit_id)
            unit.area_sqm = area
        if unit.company_id and unit.company_id in self.companies:
            company = self.companies[unit.company_id]
            for key, value in fields.items():
                if key in COMPANY_FIELDS and value is not None:
                    setattr(company, COMPANY_FIELDS[key], value)
        self._audit("UNIT", AuditAction.UPDATE, "Tahsisat ve firma bilgileri güncellendi.")

    def remove_allocation(self, unit_id: str) -> None:
        unit = self.units.pop(unit_id, None)
        if unit is None:
            raise ConflictError("Unit not found")
        leases = self._detach_leases(unit)
        self._deleted_units[unit_id] = unit
        self._audit(
            "UNIT", AuditAction.DELETE,
            f"Tahsis silindi (soft delete): {unit.number}",
            rollback_data={"unit": _unit_state(unit), "leases": leases},
            impact=f"{len(leases)} sözleşme güncellendi",
        )

    # --- lease ---

    def _lease(self, company_id: str) -> Lease:
        lease = self.leases.get(company_id)
        if lease is None:
            raise ConflictError("Lease not found")
        return lease

    def update_lease(
        self,
        company_id: str,
        monthly_rent: Optional[float] = None,
        operating_fee: Optional[float] = None,
    ) -> None:
        lease = self._lease(company_id)
        if monthly_rent is not None:
            lease.monthly_rent = monthly_rent
            unit = self.units.get(lease.unit_id) if lease.unit_id else None
            if unit is not None and unit.area_sqm > 0:
                lease.unit_price_per_sqm = monthly_rent / unit.area_sqm
        if operating_fee is not None:
            lease.operating_fee = operating_fee
        self._audit("LEASE", AuditAction.UPDATE, f"{self._company(company_id).name} sözleşmesi güncellendi.")

    def update_lease_dates(self, company_id: str, start_iso: str, end_iso: str) -> None:
        lease = self._lease(company_id)
        lease.start_date = date.fromisoformat(start_iso)
        lease.end_date = date.fromisoformat(end_iso)
        template = self._company(company_id).contract_template
        if lease.lease_id is None and template is not None:
            template.start_date = lease.start_date
            template.end_date = lease.end_date
        self._audit("LEASE", AuditAction.UPDATE, f"{self._company(company_id).name} sözleşme tarihleri güncellendi.")

    def delete_lease(self, company_id: str) -> None:
        """Terminate: vacate the company's units, then drop its lease and the company."""
        company = self.companies.pop(company_id, None)
        if company is None:
            raise ConflictError("Company not found")
        for unit in self.units.values():
            if unit.company_id == company_id:
                unit.company_id = None
                unit.status = UnitStatus.VACANT
                unit.reservation = None
        self.leases.pop(company_id, None)
        self._audit("LEASE", AuditAction.DELETE, f"Sözleşme ve firma silindi (soft delete): {company.name}")

    # --- rollback ---

    def _entry(self, entry_id: str) -> AuditLogEntry:
        entry = next((e for e in self.logs if e.entry_id == entry_id), None)
        if entry is None:
            raise ConflictError("Audit log not found")
        return entry

    def _restore_overflows(self, units: List[dict]) -> List[str]:
        """Floors that could not take the soft-deleted units back."""
        extra: Dict[tuple, float] = {}
        for state in units:
            unit = self._deleted_units.get(state["id"])
            if unit is not None and unit.is_active:
                key = (unit.block_id, unit.floor)
                extra[key] = extra.get(key, 0.0) + unit.area_sqm
        problems = []
        for (block_id, floor), area in extra.items():
            block = self.blocks.get(block_id) or self._deleted_blocks.get(block_id)
            capacity = block.floor_capacity(floor) if block else None
            if capacity is None:
                continue
            used = self._used_area(block_id, floor)
            if used + area > capacity.total_sqm:
                problems.append(
                    f"Kat {floor}: geri alma sonrası kapasite aşılır "
                    f"(kalan {_fmt(max(0.0, capacity.total_sqm - used))} m²)."
                )
        return problems

    def get_rollback_preview(self, entry_id: str) -> Optional[RollbackPreview]:
        entry = self._entry(entry_id)
        if not entry.rollback_data:
            return RollbackPreview(PreviewType.WARN, ("Bu işlem için geri alma verisi bulunmuyor.",), "UNSAFE")

        data = entry.rollback_data
        messages = []
        raw_type = "SAFE"
        if entry.entity_type == "CAMPUS":
            messages.append(
                f"{data.get('campus', {}).get('name')} kampüsü ve bağlı {len(data.get('blocks', []))} blok, "
                f"{len(data.get('units', []))} ünite geri getirilecek."
            )
            messages.append(f"{len(data.get('leases', []))} sözleşme eski haline döndürülecek.")
            units = data.get("units", [])
        elif entry.entity_type == "BLOCK":
            units = data.get("units", [])
            messages.append(f"{data.get('block', {}).get('name')} bloğu ve bağlı {len(units)} ünite geri getirilecek.")
        else:
            messages.append(f"{data.get('unit', {}).get('number')} ünitesi geri getirilecek.")
            units = [data["unit"]] if data.get("unit") else []

        overflows = self._restore_overflows(units)
        if overflows:
            raw_type = "CONFLICT"
            messages.extend(overflows)

        age = self.clock() - entry.timestamp
        if math.ceil(age / timedelta(days=1)) > ROLLBACK_WINDOW.days:
            raw_type = "UNSAFE"
            messages.append("7 günden eski kayıtlar geri alınamaz (Güvenlik Politikası).")

        preview_type = PreviewType.SAFE if raw_type == "SAFE" else PreviewType.WARN
        return RollbackPreview(preview_type, tuple(messages), raw_type)

    def rollback_transaction(self, entry_id: str) -> None:
        entry = self._entry(entry_id)
        if not entry.rollback_data:
            raise ConflictError("No rollback data available for this action")
        data = entry.rollback_data
        if entry.action != AuditAction.DELETE or entry.entity_type not in ("UNIT", "BLOCK", "CAMPUS"):
            raise ConflictError("Rollback not supported for this action type")

        if entry.entity_type == "UNIT":
            unit_states = [data["unit"]]
        else:
            unit_states = data.get("units", [])
        if entry.entity_type == "UNIT" and data["unit"]["id"] not in self._deleted_units:
            raise ConflictError("Bu kayıt zaten geri alınmış.")
        if entry.entity_type == "CAMPUS" and data["campus"]["id"] not in self._deleted_campuses:
            raise ConflictError("Bu kayıt zaten geri alınmış.")
        if entry.entity_type == "BLOCK" and data["block"]["id"] not in self._deleted_blocks:
            raise ConflictError("Bu kayıt zaten geri alınmış.")
        overflows = self._restore_overflows(unit_states)
        if overflows:
            raise ConflictError(overflows[0])

        if entry.entity_type == "CAMPUS":
            campus = self._deleted_campuses.pop(data["campus"]["id"])
            self.campuses[campus.campus_id] = campus
            for state in data.get("blocks", []):
                block = self._deleted_blocks.pop(state["id"], None)
                if block is not None:
                    self.blocks[block.block_id] = block
        elif entry.entity_type == "BLOCK":
            block = self._deleted_blocks.pop(data["block"]["id"])
            self.blocks[block.block_id] = block
        for state in unit_states:
            unit = self._deleted_units.pop(state["id"], None)
            if unit is not None:
                self.units[unit.unit_id] = unit
        self._reattach_leases(data.get("leases", []))

        self._audit(entry.entity_type, AuditAction.RESTORE, f"Rollback performed for audit #{entry_id}")
        logger.info("Rollback applied for audit entry %s", entry_id, extra={"entry_id": entry_id})

    # --- structure ---

    def add_campus(self, campus: Campus) -> Campus:
        stored = copy.deepcopy(campus)
        stored.campus_id = self._next_id("campus")
        self.campuses[stored.campus_id] = stored
        self._audit("CAMPUS", AuditAction.CREATE, f"Yeni kampüs eklendi: {stored.name}")
        return copy.deepcopy(stored)

    def update_campus(self, campus_id: str, fields: Dict[str, Any]) -> Campus:
        campus = self.campuses.get(campus_id)
        if campus is None:
            raise ConflictError("Campus not found")
        if not fields:
            raise ConflictError("No fields to update")
        for key, value in fields.items():
            if hasattr(campus, key) and key != "campus_id":
                setattr(campus, key, value)
        self._audit("CAMPUS", AuditAction.UPDATE, f"{campus.name} kampüsü güncellendi.")
        return copy.deepcopy(campus)

    def delete_campus(self, campus_id: str) -> None:
        campus = self.campuses.pop(campus_id, None)
        if campus is None:
            raise ConflictError("Campus not found")
        blocks = [b for b in self.blocks.values() if b.campus_id == campus_id]
        block_ids = {b.block_id for b in blocks}
        units = [u for u in self.units.values() if u.block_id in block_ids]
        leases = []
        for unit in units:
            leases.extend(self._detach_leases(unit))
            self._deleted_units[unit.unit_id] = self.units.pop(unit.unit_id)
        for block in blocks:
            self._deleted_blocks[block.block_id] = self.blocks.pop(block.block_id)
        self._deleted_campuses[campus_id] = campus

        self._audit(
            "CAMPUS", AuditAction.DELETE,
            f"Kampüs silindi: {campus.name}",
            rollback_data={
                "campus": {"id": campus.campus_id, "name": campus.name},
                "blocks": [{"id": b.block_id, "name": b.name} for b in blocks],
                "units": [_unit_state(u) for u in units],
                "leases": leases,
            },
            impact=f"{len(blocks)} blok, {len(units)} ünite, {len(leases)} sözleşme etkilendi",
        )

    def add_block(self, block: Block) -> Block:
        if block.campus_id not in self.campuses:
            raise ConflictError("Campus not found")
        if any(b.campus_id == block.campus_id and b.name == block.name for b in self.blocks.values()):
            raise ConflictError("Bu kampüste aynı isimde bir blok zaten var.")
        stored = copy.deepcopy(block)
        stored.block_id = self._next_id("block")
        self.blocks[stored.block_id] = stored
        self._audit("BLOCK", AuditAction.CREATE, f"Yeni blok eklendi: {stored.name}")
        return copy.deepcopy(stored)

    def update_block(
        self,
        block_id: str,
        fields: Dict[str, Any],
        floor_capacities: Optional[List[FloorCapacity]] = None,
    ) -> Block:
        block = self.blocks.get(block_id)
        if block is None:
            raise ConflictError("Block not found")
        for key, value in fields.items():
            if hasattr(block, key) and key not in ("block_id", "campus_id"):
                setattr(block, key, value)
        if floor_capacities is not None:
            block.floor_capacities = copy.deepcopy(floor_capacities)
        self._audit("BLOCK", AuditAction.UPDATE, f"Blok güncellendi: {block.name}")
        return copy.deepcopy(block)

    def delete_block(self, block_id: str) -> None:
        block = self.blocks.pop(block_id, None)
        if block is None:
            raise ConflictError("Block not found")
        units = [u for u in self.units.values() if u.block_id == block_id]
        leases = []
        for unit in units:
            leases.extend(self._detach_leases(unit))
            self._deleted_units[unit.unit_id] = self.units.pop(unit.unit_id)
        self._deleted_blocks[block_id] = block

        self._audit(
            "BLOCK", AuditAction.DELETE,
            f"{block.name} bloğu ve bağlı {len(units)} ünite silindi. {len(leases)} sözleşme boşa çıkarıldı.",
            rollback_data={
                "block": {"id": block.block_id, "name": block.name},
                "units": [_unit_state(u) for u in units],
                "leases": leases,
            },
            impact=f"{len(units)} Ünite, {len(leases)} Sözleşme etkilendi.",
        )

    # --- companies ---

    def register_company(self, company: Company) -> Company:
        if any(c.name == company.name for c in self.companies.values()):
            raise ConflictError("Bu isimde bir firma zaten kayıtlı.")
        stored = copy.deepcopy(company)
        stored.company_id = self._next_id("company")
        self.companies[stored.company_id] = stored
        template = stored.contract_template
        self.leases[stored.company_id] = Lease(
            lease_id=None,
            company_id=stored.company_id,
            start_date=template.start_date if template else None,
            end_date=template.end_date if template else None,
        )
        self._audit("COMPANY", AuditAction.CREATE, f"Yeni firma kaydı: {stored.name}")
        return copy.deepcopy(stored)

    def update_company(self, company_id: str, fields: Dict[str, Any]) -> None:
        company = self._company(company_id)
        for key, value in fields.items():
            if key in COMPANY_FIELDS:
                setattr(company, COMPANY_FIELDS[key], value)
        self._audit("COMPANY", AuditAction.UPDATE, f"Firma bilgileri güncellendi: {company.name}")

    def delete_company(self, company_id: str) -> None:
        """Soft delete; the company's units and lease are left as they are."""
        company = self.companies.pop(company_id, None)
        if company is None:
            raise ConflictError("Company not found")
        self._audit("COMPANY", AuditAction.DELETE, f"{company.name} firması silindi (soft delete).")

    def add_company_score(self, company_id: str, entry: ScoreEntry) -> ScoreEntry:
        company = self._company(company_id)
        stored = copy.deepcopy(entry)
        company.score_entries.append(stored)
        self._audit("COMPANY", AuditAction.UPDATE, f"{company.name} karnesine puan eklendi: {stored.points:g}")
        return copy.deepcopy(stored)

    def delete_company_score(self, company_id: str, entry_id: str) -> None:
        company = self._company(company_id)
        remaining = [s for s in company.score_entries if s.entry_id != entry_id]
        if len(remaining) == len(company.score_entries):
            raise ConflictError("Score entry not found")
        company.score_entries = remaining
        self._audit("COMPANY", AuditAction.UPDATE, f"{company.name} karnesinden puan silindi.")

    def _document_list(self, company_id: str, is_pending: bool) -> List[LeaseDocument]:
        if is_pending:
            return self._company(company_id).documents
        return self._lease(company_id).documents

    def add_document(self, company_id: str, document: LeaseDocument, is_pending: bool = True) -> None:
        self._document_list(company_id, is_pending).append(copy.deepcopy(document))
        self._audit("LEASE", AuditAction.UPDATE, f"Belge eklendi: {document.name}")

    def delete_document(self, company_id: str, document_name: str, is_pending: bool = True) -> None:
        documents = self._document_list(company_id, is_pending)
        match = next((d for d in documents if d.name == document_name), None)
        if match is None:
            raise ConflictError("Document not found")
        documents.remove(match)
        self._audit("LEASE", AuditAction.UPDATE, f"Belge silindi: {document_name}")
