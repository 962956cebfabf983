"""Wire JSON (camelCase) <-> model dataclasses."""

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from models.allocation import AllocationRequest
from models.audit import AuditAction, AuditLogEntry, PreviewType, RollbackPreview
from models.building import Block, Campus, FloorCapacity
from models.company import Company, ContractTemplate, LeaseDocument, ScoreEntry
from models.lease import Lease
from models.unit import ReservationMeta, Unit, UnitStatus
from config.defaults import DEFAULT_OPERATING_FEE, DEFAULT_SQM_PER_EMPLOYEE, PENDING_LEASE_ID

logger = logging.getLogger(__name__)

# snake_case field -> camelCase wire key, for partial updates
FIELD_NAMES = {
    "area_sqm": "areaSqM",
    "name": "name",
    "company_name": "companyName",
    "sector": "sector",
    "business_areas": "businessAreas",
    "manager_name": "managerName",
    "manager_phone": "managerPhone",
    "manager_email": "managerEmail",
    "employee_count": "employeeCount",
    "registration_number": "registrationNumber",
    "address": "address",
    "max_office_cap": "maxOfficeCap",
    "max_area_cap": "maxAreaCap",
    "max_floors_cap": "maxFloorsCap",
    "max_floors": "maxFloors",
    "max_offices": "maxOffices",
    "max_area_sqm": "maxAreaSqM",
    "default_operating_fee": "defaultOperatingFee",
    "sqm_per_employee": "sqMPerEmployee",
    "monthly_rent": "monthlyRent",
    "operating_fee": "operatingFee",
}


def unwrap_list(payload: Any) -> List[dict]:
    """Paginated endpoints answer ``{"data": [...], "pagination": {...}}``."""
    if isinstance(payload, dict):
        return payload.get("data") or []
    return payload or []


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date_parser.isoparse(value).date()


def _float(value, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


def fields_to_json(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {FIELD_NAMES.get(k, k): v for k, v in fields.items()}


# --- structure ---

def campus_from_json(data: dict) -> Campus:
    return Campus(
        campus_id=str(data["id"]),
        name=data.get("name", ""),
        address=data.get("address") or "",
        max_office_cap=int(data.get("maxOfficeCap") or 0),
        max_area_cap=_float(data.get("maxAreaCap")),
        max_floors_cap=int(data.get("maxFloorsCap") or 0),
    )


def campus_to_json(campus: Campus) -> dict:
    return {
        "name": campus.name,
        "address": campus.address,
        "maxOfficeCap": campus.max_office_cap,
        "maxAreaCap": campus.max_area_cap,
        "maxFloorsCap": campus.max_floors_cap,
    }


def floor_capacities_to_json(capacities: List[FloorCapacity]) -> List[dict]:
    return [{"floor": fc.floor, "totalSqM": fc.total_sqm} for fc in capacities]


def block_from_json(data: dict) -> Block:
    return Block(
        block_id=str(data["id"]),
        campus_id=str(data.get("campusId", "")),
        name=data.get("name", ""),
        max_floors=int(data.get("maxFloors") or 0),
        max_offices=int(data.get("maxOffices") or 0),
        max_area_sqm=_float(data.get("maxAreaSqM")),
        default_operating_fee=_float(data.get("defaultOperatingFee"), DEFAULT_OPERATING_FEE),
        sqm_per_employee=_float(data.get("sqMPerEmployee"), DEFAULT_SQM_PER_EMPLOYEE),
        floor_capacities=[
            FloorCapacity(str(fc["floor"]), _float(fc.get("totalSqM")))
            for fc in data.get("floorCapacities") or []
        ],
    )


def block_to_json(block: Block) -> dict:
    return {
        "campusId": block.campus_id,
        "name": block.name,
        "maxFloors": block.max_floors,
        "maxOffices": block.max_offices,
        "maxAreaSqM": block.max_area_sqm,
        "defaultOperatingFee": block.default_operating_fee,
        "sqMPerEmployee": block.sqm_per_employee,
        "floorCapacities": floor_capacities_to_json(block.floor_capacities),
    }


def unit_from_json(data: dict) -> Unit:
    status = UnitStatus(data.get("status") or UnitStatus.VACANT.value)
    if data.get("isMaintenance") and status not in (UnitStatus.OCCUPIED, UnitStatus.RESERVED):
        status = UnitStatus.MAINTENANCE
    reservation = None
    if status == UnitStatus.RESERVED or data.get("reservationFee") is not None:
        reservation = ReservationMeta(
            fee=_float(data.get("reservationFee")),
            duration=data.get("reservationDuration"),
            reserved_at=parse_datetime(data.get("reservedAt")),
        )
    company_id = data.get("companyId") or (data.get("company") or {}).get("id")
    return Unit(
        unit_id=str(data["id"]),
        block_id=str(data.get("blockId", "")),
        floor=str(data.get("floor", "")),
        area_sqm=_float(data.get("areaSqM")),
        status=status,
        company_id=str(company_id) if company_id else None,
        number=data.get("number") or "",
        reservation=reservation,
    )


def allocation_request_to_json(request: AllocationRequest) -> dict:
    payload = {
        "blockId": request.block_id,
        "companyId": request.company_id,
        "floor": request.floor,
        "areaSqM": request.area_sqm,
        "isReserved": request.is_reserved,
    }
    if request.reservation is not None:
        payload["reservationFee"] = request.reservation.fee
        if request.reservation.duration:
            payload["reservationDuration"] = request.reservation.duration
    return payload


# --- companies and leases ---

def document_from_json(data: dict) -> LeaseDocument:
    return LeaseDocument(
        name=data.get("name", ""),
        url=data.get("url", ""),
        doc_type=data.get("type") or "application/pdf",
    )


def document_to_json(document: LeaseDocument) -> dict:
    return {"name": document.name, "url": document.url, "type": document.doc_type}


def score_entry_from_json(data: dict) -> ScoreEntry:
    return ScoreEntry(
        entry_id=str(data["id"]),
        score_type=data.get("type", "OTHER"),
        description=data.get("description") or "",
        points=_float(data.get("points")),
        awarded_on=parse_date(data.get("date")),
        note=data.get("note") or "",
        documents=[document_from_json(d) for d in data.get("documents") or []],
    )


def score_entry_to_json(entry: ScoreEntry) -> dict:
    return {
        "type": entry.score_type,
        "description": entry.description,
        "points": entry.points,
        "note": entry.note,
        "documents": [document_to_json(d) for d in entry.documents],
    }


def company_from_json(data: dict) -> Company:
    template = None
    raw_template = data.get("contractTemplate")
    if raw_template:
        template = ContractTemplate(
            rent_per_sqm=_float(raw_template.get("rentPerSqM")),
            start_date=parse_date(raw_template.get("startDate")),
            end_date=parse_date(raw_template.get("endDate")),
        )
    return Company(
        company_id=str(data["id"]),
        name=data.get("name", ""),
        sector=data.get("sector") or "",
        business_areas=list(data.get("businessAreas") or []),
        manager_name=data.get("managerName") or "",
        manager_phone=data.get("managerPhone") or "",
        manager_email=data.get("managerEmail") or "",
        employee_count=int(data.get("employeeCount") or 0),
        registration_number=data.get("registrationNumber") or "",
        contract_template=template,
        score_entries=[score_entry_from_json(s) for s in data.get("scoreEntries") or []],
        documents=[document_from_json(d) for d in data.get("documents") or []],
    )


def company_to_json(company: Company) -> dict:
    payload = {
        "name": company.name,
        "registrationNumber": company.registration_number,
        "sector": company.sector,
        "businessAreas": list(company.business_areas),
        "managerName": company.manager_name,
        "managerPhone": company.manager_phone,
        "managerEmail": company.manager_email,
        "employeeCount": company.employee_count,
    }
    if company.contract_template is not None:
        t = company.contract_template
        payload["contractTemplate"] = {
            "rentPerSqM": t.rent_per_sqm,
            "startDate": t.start_date.isoformat() if t.start_date else None,
            "endDate": t.end_date.isoformat() if t.end_date else None,
        }
    return payload


def lease_from_json(data: dict) -> Lease:
    lease_id = data.get("id")
    if lease_id == PENDING_LEASE_ID:
        lease_id = None
    unit_price = data.get("unitPricePerSqm")
    return Lease(
        lease_id=str(lease_id) if lease_id else None,
        company_id=str(data.get("companyId", "")),
        unit_id=str(data["unitId"]) if data.get("unitId") else None,
        start_date=parse_date(data.get("startDate")),
        end_date=parse_date(data.get("endDate")),
        monthly_rent=_float(data.get("monthlyRent")),
        operating_fee=_float(data.get("operatingFee"), DEFAULT_OPERATING_FEE),
        unit_price_per_sqm=_float(unit_price) if unit_price is not None else None,
        documents=[document_from_json(d) for d in data.get("documents") or []],
    )


# --- audit ---

def _rollback_data(raw) -> Optional[dict]:
    if not raw:
        return None
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Unreadable rollback data ignored")
            return None
    return raw


def audit_action(label: Optional[str]) -> AuditAction:
    try:
        return AuditAction(label)
    except ValueError:
        logger.warning("Unknown audit action %r read as OTHER", label)
        return AuditAction.OTHER


def audit_entry_from_json(data: dict) -> AuditLogEntry:
    return AuditLogEntry(
        entry_id=str(data["id"]),
        timestamp=parse_datetime(data.get("timestamp") or data.get("createdAt")),
        action=audit_action(data.get("action")),
        entity_type=data.get("entityType", ""),
        details=data.get("details") or "",
        user=data.get("user") or "",
        user_role=data.get("userRole") or "",
        trace_id=data.get("traceId") or "",
        impact=data.get("impact"),
        rollback_data=_rollback_data(data.get("rollbackData")),
    )


def preview_from_json(data: Optional[dict]) -> Optional[RollbackPreview]:
    """Anything other than SAFE is treated as WARN; the raw label is kept."""
    if not data or not data.get("type"):
        return None
    raw_type = str(data["type"])
    preview_type = PreviewType.SAFE if raw_type == PreviewType.SAFE.value else PreviewType.WARN
    return RollbackPreview(
        preview_type=preview_type,
        messages=tuple(data.get("messages") or ()),
        raw_type=raw_type,
    )
