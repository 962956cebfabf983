"""Company-to-floor allocation: assign, resize and remove against floor capacity."""

import logging
import math
from typing import Callable, List, Optional

from data.api_port import LeasingApi
from models.allocation import (
    AllocationOutcome, AllocationRequest, BlockUsage, CampusUsage,
    FloorUsage, RemovalOutcome, UnitEditSession,
)
from models.building import Block
from models.company import Company
from models.lease import is_unallocated, lease_status
from models.snapshot import SpaceSnapshot
from models.unit import ReservationMeta, Unit
from engine.capacity import (
    block_usage, campus_usage, density_warning, floor_usage, min_required_area,
)
from engine.confirmation import ConfirmationGate, ConfirmationToken
from engine.errors import (
    CapacityExceeded, CompanyAlreadyAllocated, ConfirmationRequired,
    ConflictError, InvalidArea, ResourceNotFound, StaleSnapshot,
)
from engine.explainer import explain_assignment, explain_resize
from engine.lease_accounting import (
    assignment_unit_price, preserved_unit_price,
    recompute_rent_on_resize, unit_price_from_lease,
)
from engine.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

REMOVE_UNIT_ACTION = "remove_unit"


def validate_area(area_sqm) -> float:
    """Coerce a user-entered area to a positive float or raise InvalidArea."""
    if isinstance(area_sqm, bool):
        raise InvalidArea("Alan sayısal bir değer olmalıdır.")
    try:
        area = float(area_sqm)
    except (TypeError, ValueError):
        raise InvalidArea("Alan sayısal bir değer olmalıdır.")
    if math.isnan(area) or math.isinf(area):
        raise InvalidArea("Alan sayısal bir değer olmalıdır.")
    if area <= 0:
        raise InvalidArea("Alan 0'dan büyük olmalıdır.")
    return area


class AllocationEngine:
    """Validates allocations against the last fetched snapshot, then calls the collaborator.

    The collaborator re-validates every write. When it rejects one, the
    snapshot is considered stale and no further mutation is accepted until
    :meth:`refresh` succeeds.
    """

    def __init__(
        self,
        api: LeasingApi,
        notifier: Optional[ChangeNotifier] = None,
        gate: Optional[ConfirmationGate] = None,
    ):
        self.api = api
        self.notifier = notifier or ChangeNotifier()
        self.gate = gate or ConfirmationGate()
        self.snapshot = SpaceSnapshot()
        self.is_stale = True

    # --- snapshot ---

    def refresh(self) -> SpaceSnapshot:
        self.is_stale = True
        self.snapshot = SpaceSnapshot(
            campuses=self.api.get_campuses(),
            blocks=self.api.get_blocks(),
            units=self.api.get_units(),
            companies=self.api.get_companies(),
            leases=self.api.get_leases(),
        )
        self.is_stale = False
        logger.debug(
            "Snapshot refreshed: %d blocks, %d units, %d companies",
            len(self.snapshot.blocks), len(self.snapshot.units), len(self.snapshot.companies),
        )
        return self.snapshot

    def _ensure_fresh(self):
        if self.is_stale:
            raise StaleSnapshot()

    def _call(self, fn: Callable, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ConflictError as exc:
            self.is_stale = True
            logger.warning("Collaborator rejected write: %s", exc.message, extra={"error_code": exc.code})
            raise
        except Exception:
            # the write may have landed; only a refresh tells
            self.is_stale = True
            logger.exception("Collaborator call %s failed", getattr(fn, "__name__", fn))
            raise

    def _block(self, block_id: str) -> Block:
        block = self.snapshot.block(block_id)
        if block is None:
            raise ResourceNotFound("Block", block_id)
        return block

    def _company(self, company_id: str) -> Company:
        company = self.snapshot.company(company_id)
        if company is None:
            raise ResourceNotFound("Company", company_id)
        return company

    def _unit(self, unit_id: str) -> Unit:
        unit = self.snapshot.unit(unit_id)
        if unit is None:
            raise ResourceNotFound("Unit", unit_id)
        return unit

    # --- aggregates ---

    def floor_usage(self, block_id: str, floor: str) -> FloorUsage:
        return floor_usage(self._block(block_id), floor, self.snapshot.units)

    def block_usage(self, block_id: str) -> BlockUsage:
        return block_usage(self._block(block_id), self.snapshot.units)

    def campus_usage(self, campus_id: str) -> CampusUsage:
        campus = self.snapshot.campus(campus_id)
        if campus is None:
            raise ResourceNotFound("Campus", campus_id)
        return campus_usage(campus, self.snapshot.blocks, self.snapshot.units)

    def unallocated_companies(self) -> List[Company]:
        """Companies that may be offered space: pending, detached or without a lease."""
        return [
            c for c in self.snapshot.companies
            if self.snapshot.active_unit_of(c.company_id) is None
            and is_unallocated(lease_status(self.snapshot.lease_for(c.company_id)))
        ]

    # --- assign ---

    def assign(
        self,
        company_id: str,
        block_id: str,
        floor: str,
        area_sqm,
        is_reserved: bool = False,
        reservation: Optional[ReservationMeta] = None,
    ) -> AllocationOutcome:
        self._ensure_fresh()
        area = validate_area(area_sqm)
        company = self._company(company_id)
        if self.snapshot.active_unit_of(company_id) is not None:
            raise CompanyAlreadyAllocated(f"{company.name} already has allocated space.")

        block = self._block(block_id)
        usage = floor_usage(block, floor, self.snapshot.units)
        if area > usage.remaining_sqm:
            raise CapacityExceeded(area, usage.remaining_sqm, floor)

        lease = self.snapshot.lease_for(company_id)
        unit_price = assignment_unit_price(lease, company)
        if lease is not None and lease.unit_price_per_sqm and lease.unit_price_per_sqm > 0:
            price_source = "the preserved lease rate"
        elif company.contract_template is not None:
            price_source = "the contract template"
        else:
            price_source = "no rate on file"

        request = AllocationRequest(
            company_id=company_id,
            block_id=block_id,
            floor=floor,
            area_sqm=area,
            is_reserved=is_reserved,
            reservation=reservation,
        )
        unit = self._call(self.api.assign_company_to_floor, request)
        logger.info(
            "Assigned %.2f m² on floor %s to %s", area, floor, company.name,
            extra={"unit_id": unit.unit_id, "company_id": company_id, "block_id": block_id, "floor": floor},
        )
        self.notifier.trigger_data_change("unit", "update")
        self.refresh()

        # the collaborator binds the lease and sets its rent
        monthly_rent = 0.0
        bound = self.snapshot.lease_for(company_id)
        if not is_reserved and bound is not None and bound.unit_id == unit.unit_id:
            monthly_rent = bound.monthly_rent

        warnings = []
        warning = density_warning(company, area, block.sqm_per_employee)
        if warning:
            warnings.append(warning)

        steps = explain_assignment(
            company_name=company.name,
            block_name=block.name,
            floor=floor,
            area_sqm=area,
            total_sqm=usage.total_sqm,
            used_before=usage.used_sqm,
            remaining_before=usage.remaining_sqm,
            unit_price=unit_price,
            price_source=price_source,
            monthly_rent=monthly_rent,
            is_reserved=is_reserved,
            min_required_area=min_required_area(company, block.sqm_per_employee),
        )
        return AllocationOutcome(
            unit=self.snapshot.unit(unit.unit_id) or unit,
            monthly_rent=monthly_rent,
            unit_price=unit_price,
            warnings=warnings,
            explanation_steps=steps,
        )

    # --- resize ---

    def start_edit(self, unit_id: str) -> UnitEditSession:
        """Open an edit session; the per-m² rate is captured here and reused by every save."""
        unit = self._unit(unit_id)
        lease = self.snapshot.lease_for(unit.company_id) if unit.company_id else None
        company = self.snapshot.company(unit.company_id) if unit.company_id else None
        price = unit_price_from_lease(lease, unit, company)
        return UnitEditSession(
            unit_id=unit_id,
            original_area_sqm=unit.area_sqm,
            fixed_unit_price=price,
            current_area_sqm=unit.area_sqm,
        )

    def resize(
        self,
        unit_id: str,
        new_area_sqm,
        session: Optional[UnitEditSession] = None,
    ) -> AllocationOutcome:
        self._ensure_fresh()
        area = validate_area(new_area_sqm)
        unit = self._unit(unit_id)
        if session is None:
            session = self.start_edit(unit_id)
        elif session.unit_id != unit_id:
            raise ValueError(f"Edit session belongs to unit {session.unit_id}, not {unit_id}")

        block = self._block(unit.block_id)
        usage = floor_usage(block, unit.floor, self.snapshot.units, exclude_unit_id=unit_id)
        if area > usage.remaining_sqm:
            raise CapacityExceeded(area, usage.remaining_sqm, unit.floor)

        self._call(self.api.update_unit_and_company, unit_id, {"area_sqm": area})

        monthly_rent = recompute_rent_on_resize(session.current_area_sqm, area, session.fixed_unit_price)
        lease = self.snapshot.lease_for(unit.company_id) if unit.company_id else None
        if lease is not None and lease.unit_id == unit_id:
            self._call(self.api.update_lease, unit.company_id, monthly_rent=monthly_rent)
        else:
            monthly_rent = 0.0

        old_area = session.current_area_sqm
        session.current_area_sqm = area
        session.saves += 1

        warnings = []
        company = self.snapshot.company(unit.company_id) if unit.company_id else None
        if company is not None:
            warning = density_warning(company, area, block.sqm_per_employee)
            if warning:
                warnings.append(warning)

        steps = explain_resize(
            unit_number=unit.number or unit_id,
            old_area=old_area,
            new_area=area,
            remaining_excluding_unit=usage.remaining_sqm,
            fixed_unit_price=session.fixed_unit_price,
            monthly_rent=monthly_rent,
        )

        logger.info(
            "Resized unit %s: %.2f -> %.2f m²", unit.number or unit_id, old_area, area,
            extra={"unit_id": unit_id, "block_id": unit.block_id, "floor": unit.floor},
        )
        self.notifier.trigger_data_change("unit", "update")
        self.refresh()
        return AllocationOutcome(
            unit=self.snapshot.unit(unit_id) or unit,
            monthly_rent=monthly_rent,
            unit_price=session.fixed_unit_price,
            warnings=warnings,
            explanation_steps=steps,
        )

    # --- remove ---

    def request_removal(self, unit_id: str) -> ConfirmationToken:
        """First step of removal. Nothing is sent to the collaborator yet."""
        self._ensure_fresh()
        unit = self._unit(unit_id)
        company = self.snapshot.company(unit.company_id) if unit.company_id else None
        summary = f"{unit.number or unit_id} ({unit.area_sqm:.2f} m²)"
        if company is not None:
            summary += f" - {company.name}"
        return self.gate.issue(REMOVE_UNIT_ACTION, unit_id, summary)

    def confirm_removal(self, token: ConfirmationToken, user_input: str) -> RemovalOutcome:
        if token.action != REMOVE_UNIT_ACTION:
            raise ConfirmationRequired("Token was not issued for a unit removal.")
        self._ensure_fresh()
        self.gate.confirm(token, user_input)

        unit = self._unit(token.target_id)
        lease = self.snapshot.lease_for(unit.company_id) if unit.company_id else None
        preserved = 0.0
        if lease is not None and lease.unit_id == unit.unit_id:
            preserved = preserved_unit_price(lease, unit)

        self._call(self.api.remove_allocation, unit.unit_id)

        logger.info(
            "Removed unit %s, preserved rate %.2f", unit.number or unit.unit_id, preserved,
            extra={"unit_id": unit.unit_id, "company_id": unit.company_id},
        )
        self.notifier.trigger_data_change("unit", "delete")
        self.refresh()
        return RemovalOutcome(
            unit_id=unit.unit_id,
            company_id=unit.company_id,
            preserved_unit_price=preserved,
        )
