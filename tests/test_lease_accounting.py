"""Tests for rent and per-m² rate derivation."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date

import pytest

from models.company import Company, ContractTemplate
from models.lease import (
    Allocated, Detached, ExtendedLeaseData, Lease, PendingAllocation, Unregistered,
    is_unallocated, lease_status,
)
from models.unit import Unit
from engine.errors import DateRangeInvalid
from engine.lease_accounting import (
    assignment_unit_price,
    display_amount,
    estimated_rent,
    preserved_unit_price,
    recompute_rent_on_resize,
    unit_price_from_lease,
    validate_lease_dates,
)


def make_company(rent=None):
    template = ContractTemplate(rent) if rent is not None else None
    return Company("co1", "Acme", contract_template=template)


def make_unit(area=200):
    return Unit("u1", "b1", "3", area)


class TestLeaseStatus:
    def test_no_lease(self):
        assert isinstance(lease_status(None), Unregistered)

    def test_pending(self):
        assert isinstance(lease_status(Lease(None, "co1")), PendingAllocation)

    def test_allocated(self):
        status = lease_status(Lease("l1", "co1", unit_id="u1"))
        assert status == Allocated("u1")
        assert not is_unallocated(status)

    def test_detached_keeps_rate(self):
        status = lease_status(Lease("l1", "co1", unit_price_per_sqm=155.0))
        assert status == Detached(155.0)
        assert is_unallocated(status)

    def test_extended_lease_status(self):
        row = ExtendedLeaseData(make_company(), Lease("l1", "co1", unit_id="u1"), make_unit())
        assert isinstance(row.status, Allocated)


class TestUnitPrice:
    def test_allocated_rent_over_area(self):
        lease = Lease("l1", "co1", unit_id="u1", monthly_rent=31000)
        assert unit_price_from_lease(lease, make_unit(200)) == pytest.approx(155.0)

    def test_zero_area_unit(self):
        lease = Lease("l1", "co1", unit_id="u1", monthly_rent=31000)
        assert unit_price_from_lease(lease, make_unit(0)) == 0

    def test_unallocated_uses_preserved_rate(self):
        lease = Lease("l1", "co1", unit_price_per_sqm=155.0)
        assert unit_price_from_lease(lease, None, make_company(100)) == 155.0

    def test_unallocated_falls_back_to_template(self):
        lease = Lease(None, "co1")
        assert unit_price_from_lease(lease, None, make_company(100)) == 100

    def test_assignment_without_any_rate(self):
        assert assignment_unit_price(Lease(None, "co1"), make_company()) == 0
        assert assignment_unit_price(None, None) == 0

    def test_zero_preserved_rate_ignored(self):
        lease = Lease("l1", "co1", unit_price_per_sqm=0.0)
        assert assignment_unit_price(lease, make_company(90)) == 90


class TestRentChanges:
    def test_resize_uses_fixed_rate(self):
        assert recompute_rent_on_resize(200, 250, 155.0) == pytest.approx(38750)

    def test_estimated_rent(self):
        assert estimated_rent(make_company(120), 50) == 6000
        assert estimated_rent(make_company(), 50) == 0

    def test_preserved_prefers_stored_rate(self):
        lease = Lease("l1", "co1", unit_id="u1", monthly_rent=40000, unit_price_per_sqm=150.0)
        assert preserved_unit_price(lease, make_unit(200)) == 150.0

    def test_preserved_derived_from_rent(self):
        lease = Lease("l1", "co1", unit_id="u1", monthly_rent=40000)
        assert preserved_unit_price(lease, make_unit(200)) == 200.0

    def test_preserved_without_lease(self):
        assert preserved_unit_price(None, make_unit()) == 0


class TestDatesAndDisplay:
    def test_end_before_start(self):
        with pytest.raises(DateRangeInvalid):
            validate_lease_dates(date(2027, 1, 1), date(2026, 12, 31), today=date(2026, 10, 18))

    def test_end_in_past(self):
        with pytest.raises(DateRangeInvalid):
            validate_lease_dates(date(2025, 1, 1), date(2026, 1, 1), today=date(2026, 10, 18))

    def test_valid_range(self):
        validate_lease_dates(date(2026, 1, 1), date(2029, 12, 31), today=date(2026, 10, 18))

    def test_same_day_range(self):
        validate_lease_dates(date(2026, 10, 18), date(2026, 10, 18), today=date(2026, 10, 18))

    def test_presentation_mode_masks_money(self):
        assert display_amount(31000.0, presentation_mode=True) == "****"
        assert display_amount(31000.0, presentation_mode=False) == 31000.0
