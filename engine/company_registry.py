"""Company registration, score entries, documents and lease terms."""

import logging
import uuid
from datetime import date
from typing import Callable, List, Optional

from data.api_port import LeasingApi
from models.company import Company, ContractTemplate, LeaseDocument, ScoreEntry
from models.lease import Allocated, Detached, lease_status
from engine.confirmation import ConfirmationGate, ConfirmationToken
from engine.errors import ConfirmationRequired, LimitExceeded, ResourceNotFound, ValidationError
from engine.lease_accounting import validate_lease_dates
from engine.notifier import ChangeNotifier
from config.defaults import MAX_BUSINESS_AREAS, MAX_LEASE_DOCUMENTS, SCORE_TYPES

logger = logging.getLogger(__name__)

MIN_SCORE_POINTS = -100
MAX_SCORE_POINTS = 100

DELETE_COMPANY_ACTION = "delete_company"
TERMINATE_LEASE_ACTION = "terminate_lease"


def normalize_business_areas(areas: Optional[List[str]]) -> List[str]:
    """Trimmed, de-duplicated tags in input order; at most MAX_BUSINESS_AREAS."""
    result = []
    for area in areas or []:
        tag = (area or "").strip()
        if tag and tag not in result:
            result.append(tag)
    if len(result) > MAX_BUSINESS_AREAS:
        raise LimitExceeded(f"En fazla {MAX_BUSINESS_AREAS} iş alanı seçilebilir.")
    return result


def _validate_employee_count(value: int) -> int:
    if value is None or value < 0:
        raise ValidationError("Employee count cannot be negative")
    return int(value)


class CompanyRegistry:
    def __init__(
        self,
        api: LeasingApi,
        notifier: Optional[ChangeNotifier] = None,
        today: Callable[[], date] = date.today,
        gate: Optional[ConfirmationGate] = None,
    ):
        self.api = api
        self.notifier = notifier or ChangeNotifier()
        self.today = today
        self.gate = gate or ConfirmationGate()

    def _company(self, company_id: str) -> Company:
        company = next((c for c in self.api.get_companies() if c.company_id == company_id), None)
        if company is None:
            raise ResourceNotFound("Company", company_id)
        return company

    # --- companies ---

    def register_company(
        self,
        name: str,
        sector: str,
        business_areas: Optional[List[str]] = None,
        manager_name: str = "",
        manager_phone: str = "",
        manager_email: str = "",
        employee_count: int = 0,
        registration_number: str = "",
        contract_template: Optional[ContractTemplate] = None,
    ) -> Company:
        """Register a company. Its lease starts out pending allocation."""
        name = (name or "").strip()
        if not 2 <= len(name) <= 100:
            raise ValidationError("Company name must be 2-100 characters")
        if contract_template is not None:
            if contract_template.rent_per_sqm < 0:
                raise ValidationError("Rent per m² cannot be negative")
            if contract_template.start_date and contract_template.end_date:
                validate_lease_dates(contract_template.start_date, contract_template.end_date, self.today())

        company = self.api.register_company(Company(
            company_id="",
            name=name,
            sector=sector,
            business_areas=normalize_business_areas(business_areas),
            manager_name=manager_name,
            manager_phone=manager_phone,
            manager_email=manager_email,
            employee_count=_validate_employee_count(employee_count),
            registration_number=registration_number,
            contract_template=contract_template,
        ))
        logger.info("Company registered: %s", company.name, extra={"company_id": company.company_id})
        self.notifier.trigger_data_change("company", "create")
        return company

    def update_company(self, company_id: str, **fields) -> None:
        self._company(company_id)
        if "business_areas" in fields:
            fields["business_areas"] = normalize_business_areas(fields["business_areas"])
        if "employee_count" in fields:
            fields["employee_count"] = _validate_employee_count(fields["employee_count"])
        self.api.update_company(company_id, fields)
        self.notifier.trigger_data_change("company", "update")

    def request_company_deletion(self, company_id: str) -> ConfirmationToken:
        company = self._company(company_id)
        return self.gate.issue(DELETE_COMPANY_ACTION, company_id, f"{company.name} firması silinecek")

    def confirm_company_deletion(self, token: ConfirmationToken, user_input: str) -> None:
        if token.action != DELETE_COMPANY_ACTION:
            raise ConfirmationRequired("Token was not issued for a company deletion.")
        self.gate.confirm(token, user_input)
        self.api.delete_company(token.target_id)
        logger.info("Company deleted", extra={"company_id": token.target_id})
        self.notifier.trigger_data_change("company", "delete")

    # --- score entries ---

    def add_score_entry(
        self,
        company_id: str,
        score_type: str,
        description: str,
        points: float,
        awarded_on: Optional[date] = None,
        note: str = "",
        documents: Optional[List[LeaseDocument]] = None,
    ) -> ScoreEntry:
        self._company(company_id)
        if score_type not in SCORE_TYPES:
            raise ValidationError(f"Unknown score type: {score_type}")
        if not MIN_SCORE_POINTS <= points <= MAX_SCORE_POINTS:
            raise ValidationError(f"Points must be between {MIN_SCORE_POINTS} and {MAX_SCORE_POINTS}")
        entry = self.api.add_company_score(company_id, ScoreEntry(
            entry_id=uuid.uuid4().hex,
            score_type=score_type,
            description=description,
            points=points,
            awarded_on=awarded_on or self.today(),
            note=note,
            documents=list(documents or []),
        ))
        self.notifier.trigger_data_change("score", "create")
        return entry

    def delete_score_entry(self, company_id: str, entry_id: str) -> None:
        self.api.delete_company_score(company_id, entry_id)
        self.notifier.trigger_data_change("score", "delete")

    # --- documents ---

    def _is_pending(self, company_id: str) -> bool:
        """Documents live on the lease once one exists, on the company while pending."""
        lease = next((ls for ls in self.api.get_leases() if ls.company_id == company_id), None)
        return not isinstance(lease_status(lease), (Allocated, Detached))

    def _documents(self, company: Company) -> List[LeaseDocument]:
        if self._is_pending(company.company_id):
            return company.documents
        lease = next(ls for ls in self.api.get_leases() if ls.company_id == company.company_id)
        return lease.documents

    def add_document(self, company_id: str, name: str, url: str, doc_type: str = "application/pdf") -> LeaseDocument:
        company = self._company(company_id)
        if not (name or "").strip():
            raise ValidationError("Document name is required")
        existing = self._documents(company)
        if len(existing) >= MAX_LEASE_DOCUMENTS:
            raise LimitExceeded(f"En fazla {MAX_LEASE_DOCUMENTS} belge yüklenebilir.")
        document = LeaseDocument(name=name.strip(), url=url, doc_type=doc_type)
        self.api.add_document(company_id, document, self._is_pending(company_id))
        self.notifier.trigger_data_change("document", "create")
        return document

    def delete_document(self, company_id: str, document_name: str) -> None:
        self.api.delete_document(company_id, document_name, self._is_pending(company_id))
        self.notifier.trigger_data_change("document", "delete")

    # --- lease terms ---

    def update_lease_dates(self, company_id: str, start: date, end: date) -> None:
        validate_lease_dates(start, end, self.today())
        self.api.update_lease_dates(company_id, start.isoformat(), end.isoformat())
        logger.info("Lease dates updated", extra={"company_id": company_id})
        self.notifier.trigger_data_change("lease", "update")

    def update_lease_fees(
        self,
        company_id: str,
        monthly_rent: Optional[float] = None,
        operating_fee: Optional[float] = None,
    ) -> None:
        for label, value in (("Monthly rent", monthly_rent), ("Operating fee", operating_fee)):
            if value is not None and value < 0:
                raise ValidationError(f"{label} cannot be negative")
        if monthly_rent is None and operating_fee is None:
            return
        self.api.update_lease(company_id, monthly_rent=monthly_rent, operating_fee=operating_fee)
        self.notifier.trigger_data_change("lease", "update")

    def request_lease_termination(self, company_id: str) -> ConfirmationToken:
        """First step of terminating a lease; the company and its units are released on confirm."""
        company = self._company(company_id)
        units = [u for u in self.api.get_units() if u.company_id == company_id and u.is_active]
        summary = f"{company.name}: sözleşme ve firma silinecek, {len(units)} ünite boşaltılacak"
        return self.gate.issue(TERMINATE_LEASE_ACTION, company_id, summary)

    def confirm_lease_termination(self, token: ConfirmationToken, user_input: str) -> None:
        if token.action != TERMINATE_LEASE_ACTION:
            raise ConfirmationRequired("Token was not issued for a lease termination.")
        self.gate.confirm(token, user_input)
        self.api.delete_lease(token.target_id)
        logger.info("Lease terminated", extra={"company_id": token.target_id})
        self.notifier.trigger_data_change("lease", "delete")
