"""Monthly rent and per-m² rate derivation."""

from datetime import date
from typing import Optional, Union

from models.company import Company
from models.lease import Lease
from models.unit import Unit
from engine.errors import DateRangeInvalid
from config.defaults import PRESENTATION_MASK


def _template_rate(company: Optional[Company]) -> float:
    if company is not None and company.contract_template is not None:
        return company.contract_template.rent_per_sqm or 0.0
    return 0.0


def unit_price_from_lease(
    lease: Optional[Lease],
    unit: Optional[Unit],
    company: Optional[Company] = None,
) -> float:
    """Per-m² rate implied by a lease.

    Allocated: monthly rent over unit area. Unallocated: the preserved rate,
    falling back to the contract template.
    """
    if lease is not None and lease.unit_id and unit is not None:
        if unit.area_sqm <= 0:
            return 0.0
        return lease.monthly_rent / unit.area_sqm
    return assignment_unit_price(lease, company)


def assignment_unit_price(lease: Optional[Lease], company: Optional[Company]) -> float:
    """Rate applied when a company is (re)allocated space."""
    if lease is not None and lease.unit_price_per_sqm and lease.unit_price_per_sqm > 0:
        return lease.unit_price_per_sqm
    return _template_rate(company)


def recompute_rent_on_resize(old_area: float, new_area: float, fixed_unit_price: float) -> float:
    """Rent for the new area at the rate fixed when editing began."""
    return new_area * fixed_unit_price


def estimated_rent(company: Company, area_sqm: float) -> float:
    return _template_rate(company) * area_sqm


def preserved_unit_price(lease: Optional[Lease], unit: Optional[Unit]) -> float:
    """Rate kept on the lease when its unit is removed."""
    if lease is None:
        return 0.0
    if lease.unit_price_per_sqm and lease.unit_price_per_sqm > 0:
        return lease.unit_price_per_sqm
    if unit is not None and unit.area_sqm > 0:
        return lease.monthly_rent / unit.area_sqm
    return 0.0


def validate_lease_dates(start: date, end: date, today: Optional[date] = None) -> None:
    today = today or date.today()
    if end < start:
        raise DateRangeInvalid("Bitiş tarihi başlangıç tarihinden önce olamaz.")
    if end < today:
        raise DateRangeInvalid("Bitiş tarihi geçmiş bir tarih olamaz.")


def display_amount(value: float, presentation_mode: bool) -> Union[float, str]:
    """Money figure as shown to the user; masked in presentation mode."""
    if presentation_mode:
        return PRESENTATION_MASK
    return value
