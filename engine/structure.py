"""Campus and block maintenance."""

import logging
from typing import List, Optional

from data.api_port import LeasingApi
from models.building import Block, Campus, FloorCapacity
from engine.capacity import check_floor_capacity_edit, validate_sqm_per_employee
from engine.confirmation import ConfirmationGate, ConfirmationToken
from engine.errors import (
    CapacityEditRejected, ConfirmationRequired, ResourceNotFound, ValidationError,
)
from engine.notifier import ChangeNotifier
from config.defaults import DEFAULT_OPERATING_FEE, DEFAULT_SQM_PER_EMPLOYEE

logger = logging.getLogger(__name__)

DELETE_CAMPUS_ACTION = "delete_campus"
DELETE_BLOCK_ACTION = "delete_block"


def _validate_name(name: str, label: str, min_len: int, max_len: int) -> str:
    name = (name or "").strip()
    if not min_len <= len(name) <= max_len:
        raise ValidationError(f"{label} name must be {min_len}-{max_len} characters")
    return name


def validate_floor_capacities(floor_capacities: List[FloorCapacity]) -> None:
    seen = set()
    for fc in floor_capacities:
        if not fc.floor:
            raise ValidationError("Floor label is required")
        if fc.floor in seen:
            raise ValidationError(f"Floor '{fc.floor}' is declared more than once")
        if fc.total_sqm < 0:
            raise ValidationError(f"Floor '{fc.floor}' capacity cannot be negative")
        seen.add(fc.floor)


class StructureService:
    def __init__(
        self,
        api: LeasingApi,
        notifier: Optional[ChangeNotifier] = None,
        gate: Optional[ConfirmationGate] = None,
    ):
        self.api = api
        self.notifier = notifier or ChangeNotifier()
        self.gate = gate or ConfirmationGate()

    def _block(self, block_id: str) -> Block:
        block = next((b for b in self.api.get_blocks() if b.block_id == block_id), None)
        if block is None:
            raise ResourceNotFound("Block", block_id)
        return block

    def _campus(self, campus_id: str) -> Campus:
        campus = next((c for c in self.api.get_campuses() if c.campus_id == campus_id), None)
        if campus is None:
            raise ResourceNotFound("Campus", campus_id)
        return campus

    def create_campus(
        self,
        name: str,
        address: str = "",
        max_office_cap: int = 0,
        max_area_cap: float = 0.0,
        max_floors_cap: int = 0,
    ) -> Campus:
        name = _validate_name(name, "Campus", 2, 100)
        if min(max_office_cap, max_area_cap, max_floors_cap) < 0:
            raise ValidationError("Campus caps cannot be negative")
        campus = self.api.add_campus(Campus(
            campus_id="",
            name=name,
            address=address,
            max_office_cap=max_office_cap,
            max_area_cap=max_area_cap,
            max_floors_cap=max_floors_cap,
        ))
        logger.info("Campus created: %s", campus.name)
        self.notifier.trigger_data_change("campus", "create")
        return campus

    def update_campus(
        self,
        campus_id: str,
        name: Optional[str] = None,
        address: Optional[str] = None,
        max_office_cap: Optional[int] = None,
        max_area_cap: Optional[float] = None,
        max_floors_cap: Optional[int] = None,
    ) -> Campus:
        self._campus(campus_id)
        fields = {}
        if name is not None:
            fields["name"] = _validate_name(name, "Campus", 2, 100)
        if address is not None:
            if len(address.strip()) > 500:
                raise ValidationError("Address must not exceed 500 characters")
            fields["address"] = address.strip()
        for key, value in (
            ("max_office_cap", max_office_cap),
            ("max_area_cap", max_area_cap),
            ("max_floors_cap", max_floors_cap),
        ):
            if value is not None:
                if value < 0:
                    raise ValidationError("Campus caps cannot be negative")
                fields[key] = value
        if not fields:
            raise ValidationError("No fields to update")

        campus = self.api.update_campus(campus_id, fields)
        logger.info("Campus updated: %s", campus.name, extra={"campus_id": campus_id})
        self.notifier.trigger_data_change("campus", "update")
        return campus

    def add_block(
        self,
        campus_id: str,
        name: str,
        floor_capacities: List[FloorCapacity],
        default_operating_fee: float = DEFAULT_OPERATING_FEE,
        sqm_per_employee: float = DEFAULT_SQM_PER_EMPLOYEE,
        max_offices: int = 0,
    ) -> Block:
        name = _validate_name(name, "Block", 2, 50)
        self._campus(campus_id)
        validate_floor_capacities(floor_capacities)
        validate_sqm_per_employee(sqm_per_employee)
        if default_operating_fee < 0:
            raise ValidationError("Default operating fee cannot be negative")

        block = self.api.add_block(Block(
            block_id="",
            campus_id=campus_id,
            name=name,
            max_floors=len(floor_capacities),
            max_offices=max_offices,
            max_area_sqm=sum(fc.total_sqm for fc in floor_capacities),
            default_operating_fee=default_operating_fee,
            sqm_per_employee=sqm_per_employee,
            floor_capacities=list(floor_capacities),
        ))
        logger.info("Block created: %s", block.name, extra={"block_id": block.block_id})
        self.notifier.trigger_data_change("block", "create")
        return block

    def update_block(
        self,
        block_id: str,
        name: Optional[str] = None,
        floor_capacities: Optional[List[FloorCapacity]] = None,
        default_operating_fee: Optional[float] = None,
        sqm_per_employee: Optional[float] = None,
    ) -> Block:
        """Edit a block. Floor capacities may not drop below the area already allocated."""
        block = self._block(block_id)
        fields = {}
        if name is not None:
            fields["name"] = _validate_name(name, "Block", 2, 50)
        if default_operating_fee is not None:
            if default_operating_fee < 0:
                raise ValidationError("Default operating fee cannot be negative")
            fields["default_operating_fee"] = default_operating_fee
        if sqm_per_employee is not None:
            fields["sqm_per_employee"] = validate_sqm_per_employee(sqm_per_employee)
        if floor_capacities is not None:
            validate_floor_capacities(floor_capacities)
            errors = check_floor_capacity_edit(block, floor_capacities, self.api.get_units())
            if errors:
                raise CapacityEditRejected(errors)
            fields["max_floors"] = len(floor_capacities)
            fields["max_area_sqm"] = sum(fc.total_sqm for fc in floor_capacities)

        updated = self.api.update_block(block_id, fields, floor_capacities)
        logger.info("Block updated: %s", updated.name, extra={"block_id": block_id})
        self.notifier.trigger_data_change("block", "update")
        return updated

    def request_campus_deletion(self, campus_id: str) -> ConfirmationToken:
        campus = self._campus(campus_id)
        blocks = [b for b in self.api.get_blocks() if b.campus_id == campus_id]
        block_ids = {b.block_id for b in blocks}
        units = [u for u in self.api.get_units() if u.block_id in block_ids and u.is_active]
        summary = f"{campus.name}: {len(blocks)} blok, {len(units)} ünite silinecek"
        return self.gate.issue(DELETE_CAMPUS_ACTION, campus_id, summary)

    def confirm_campus_deletion(self, token: ConfirmationToken, user_input: str) -> None:
        if token.action != DELETE_CAMPUS_ACTION:
            raise ConfirmationRequired("Token was not issued for a campus deletion.")
        self.gate.confirm(token, user_input)
        self.api.delete_campus(token.target_id)
        logger.info("Campus deleted: %s", token.target_id)
        self.notifier.trigger_data_change("campus", "delete")

    def request_block_deletion(self, block_id: str) -> ConfirmationToken:
        block = self._block(block_id)
        units = [u for u in self.api.get_units() if u.block_id == block_id and u.is_active]
        summary = f"{block.name}: {len(units)} ünite silinecek"
        return self.gate.issue(DELETE_BLOCK_ACTION, block_id, summary)

    def confirm_block_deletion(self, token: ConfirmationToken, user_input: str) -> None:
        if token.action != DELETE_BLOCK_ACTION:
            raise ConfirmationRequired("Token was not issued for a block deletion.")
        self.gate.confirm(token, user_input)
        self.api.delete_block(token.target_id)
        logger.info("Block deleted: %s", token.target_id, extra={"block_id": token.target_id})
        self.notifier.trigger_data_change("block", "delete")
