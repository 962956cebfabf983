"""REST adapter for the leasing backend."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from config.settings import Settings, get_settings
from data import codec
from engine.errors import AuthenticationExpired, CollaboratorError, ConflictError
from models.allocation import AllocationRequest
from models.audit import AuditLogEntry, RollbackPreview
from models.building import Block, Campus, FloorCapacity
from models.company import Company, LeaseDocument, ScoreEntry
from models.lease import Lease
from models.unit import Unit

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Oturum süresi doldu. Lütfen tekrar giriş yapın."
CONFLICT_STATUSES = (400, 404, 409)


def error_message(response: requests.Response) -> str:
    """Server error text, with validation details appended as ``field - message``."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or f"Request failed: {response.reason}"
    details = body.get("details")
    if isinstance(details, list) and details:
        message += ": " + ", ".join(f"{d.get('field')} - {d.get('message')}" for d in details)
    return message


class RequestsLeasingApi:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["Content-Type"] = "application/json"
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RequestsLeasingApi":
        settings = settings or get_settings()
        return cls(settings.api_base_url, settings.api_token, settings.api_timeout_seconds)

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise CollaboratorError(f"Sunucuya ulaşılamadı: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationExpired(SESSION_EXPIRED_MESSAGE, response.status_code)
        if not response.ok:
            message = error_message(response)
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, message)
            if response.status_code in CONFLICT_STATUSES:
                raise ConflictError(message)
            raise CollaboratorError(message, response.status_code)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.error("%s %s returned a non-JSON body", method, path)
            raise CollaboratorError("Sunucudan geçersiz yanıt alındı.", response.status_code) from exc

    # --- reads ---

    def get_campuses(self) -> List[Campus]:
        return [codec.campus_from_json(c) for c in self._request("GET", "/campuses")]

    def get_blocks(self) -> List[Block]:
        return [codec.block_from_json(b) for b in self._request("GET", "/blocks")]

    def get_units(self) -> List[Unit]:
        return [codec.unit_from_json(u) for u in self._request("GET", "/units")]

    def get_companies(self) -> List[Company]:
        payload = self._request("GET", "/companies")
        return [codec.company_from_json(c) for c in codec.unwrap_list(payload)]

    def get_leases(self) -> List[Lease]:
        return [codec.lease_from_json(ls) for ls in self._request("GET", "/leases")]

    def get_logs(self) -> List[AuditLogEntry]:
        payload = self._request("GET", "/audit")
        return [codec.audit_entry_from_json(e) for e in codec.unwrap_list(payload)]

    # --- allocation ---

    def assign_company_to_floor(self, request: AllocationRequest) -> Unit:
        data = self._request("POST", "/units/assign", codec.allocation_request_to_json(request))
        return codec.unit_from_json(data)

    def update_unit_and_company(self, unit_id: str, fields: Dict[str, Any]) -> None:
        self._request("PUT", f"/units/{unit_id}", codec.fields_to_json(fields))

    def remove_allocation(self, unit_id: str) -> None:
        self._request("DELETE", f"/units/{unit_id}")

    # --- lease ---

    def update_lease(
        self,
        company_id: str,
        monthly_rent: Optional[float] = None,
        operating_fee: Optional[float] = None,
    ) -> None:
        payload = {}
        if monthly_rent is not None:
            payload["monthlyRent"] = monthly_rent
        if operating_fee is not None:
            payload["operatingFee"] = operating_fee
        self._request("PUT", f"/leases/{company_id}", payload)

    def update_lease_dates(self, company_id: str, start_iso: str, end_iso: str) -> None:
        self._request("PUT", f"/leases/{company_id}", {"startDate": start_iso, "endDate": end_iso})

    def delete_lease(self, company_id: str) -> None:
        self._request("DELETE", f"/leases/{company_id}")

    # --- rollback ---

    def get_rollback_preview(self, entry_id: str) -> Optional[RollbackPreview]:
        return codec.preview_from_json(self._request("GET", f"/rollback/{entry_id}/preview"))

    def rollback_transaction(self, entry_id: str) -> None:
        self._request("POST", f"/rollback/{entry_id}")

    # --- structure ---

    def add_campus(self, campus: Campus) -> Campus:
        return codec.campus_from_json(self._request("POST", "/campuses", codec.campus_to_json(campus)))

    def update_campus(self, campus_id: str, fields: Dict[str, Any]) -> Campus:
        self._request("PUT", f"/campuses/{campus_id}", codec.fields_to_json(fields))
        campus = next((c for c in self.get_campuses() if c.campus_id == campus_id), None)
        if campus is None:
            raise ConflictError("Campus not found")
        return campus

    def delete_campus(self, campus_id: str) -> None:
        self._request("DELETE", f"/campuses/{campus_id}")

    def add_block(self, block: Block) -> Block:
        return codec.block_from_json(self._request("POST", "/blocks", codec.block_to_json(block)))

    def update_block(
        self,
        block_id: str,
        fields: Dict[str, Any],
        floor_capacities: Optional[List[FloorCapacity]] = None,
    ) -> Block:
        payload = codec.fields_to_json(fields)
        if floor_capacities is not None:
            payload["floorCapacities"] = codec.floor_capacities_to_json(floor_capacities)
        self._request("PUT", f"/blocks/{block_id}", payload)
        block = next((b for b in self.get_blocks() if b.block_id == block_id), None)
        if block is None:
            raise ConflictError("Block not found")
        return block

    def delete_block(self, block_id: str) -> None:
        self._request("DELETE", f"/blocks/{block_id}")

    # --- companies ---

    def register_company(self, company: Company) -> Company:
        return codec.company_from_json(self._request("POST", "/companies", codec.company_to_json(company)))

    def update_company(self, company_id: str, fields: Dict[str, Any]) -> None:
        self._request("PUT", f"/companies/{company_id}", codec.fields_to_json(fields))

    def delete_company(self, company_id: str) -> None:
        self._request("DELETE", f"/companies/{company_id}")

    def add_company_score(self, company_id: str, entry: ScoreEntry) -> ScoreEntry:
        data = self._request("POST", f"/companies/{company_id}/scores", codec.score_entry_to_json(entry))
        return codec.score_entry_from_json(data)

    def delete_company_score(self, company_id: str, entry_id: str) -> None:
        self._request("DELETE", f"/companies/{company_id}/scores/{entry_id}")

    def add_document(self, company_id: str, document: LeaseDocument, is_pending: bool = True) -> None:
        owner = "companies" if is_pending else "leases"
        self._request("POST", f"/{owner}/{company_id}/documents", codec.document_to_json(document))

    def delete_document(self, company_id: str, document_name: str, is_pending: bool = True) -> None:
        owner = "companies" if is_pending else "leases"
        self._request("DELETE", f"/{owner}/{company_id}/documents/{quote(document_name, safe='')}")
