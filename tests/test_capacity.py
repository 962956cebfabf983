"""Tests for floor, block and campus capacity accounting."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from models.building import Block, Campus, FloorCapacity, floor_sort_key, sort_floor_labels
from models.company import Company
from models.unit import Unit, UnitStatus
from engine.capacity import (
    block_usage,
    campus_usage,
    check_floor_capacity_edit,
    density_warning,
    floor_usage,
    min_required_area,
    occupancy_band,
    validate_sqm_per_employee,
)
from engine.errors import FloorNotFound, InvalidArea


def make_block(block_id="b1", campus_id="c1", floors=None, sqm_per_employee=5):
    floors = floors if floors is not None else {"1": 500, "2": 1000}
    return Block(
        block_id=block_id,
        campus_id=campus_id,
        name="A Blok",
        sqm_per_employee=sqm_per_employee,
        floor_capacities=[FloorCapacity(f, t) for f, t in floors.items()],
    )


def make_unit(unit_id="u1", block_id="b1", floor="1", area=100, status=UnitStatus.OCCUPIED, company_id="co1"):
    return Unit(unit_id, block_id, floor, area, status, company_id)


class TestFloorSortKey:
    def test_mezzanine_sits_between_ground_and_first(self):
        assert floor_sort_key("Zemin Asma") == 0.5

    def test_half_floor_suffix(self):
        assert floor_sort_key("2A") == 2.5

    def test_plain_number(self):
        assert floor_sort_key("3") == 3.0

    def test_unparseable_label_is_zero(self):
        assert floor_sort_key("Zemin") == 0.0

    def test_leading_number_is_used(self):
        assert floor_sort_key("4. Kat") == 4.0

    def test_descending_order(self):
        labels = ["1", "Zemin Asma", "3", "2A", "0", "2"]
        assert sort_floor_labels(labels) == ["3", "2A", "2", "1", "Zemin Asma", "0"]


class TestFloorUsage:
    def test_empty_floor(self):
        usage = floor_usage(make_block(), "1", [])
        assert usage.used_sqm == 0
        assert usage.remaining_sqm == 500
        assert usage.occupancy_pct == 0

    def test_reserved_counts_like_occupied(self):
        units = [
            make_unit("u1", area=100),
            make_unit("u2", area=150, status=UnitStatus.RESERVED),
        ]
        usage = floor_usage(make_block(), "1", units)
        assert usage.used_sqm == 250
        assert usage.remaining_sqm == 250
        assert usage.occupancy_pct == pytest.approx(50.0)
        assert usage.unit_count == 2

    def test_vacant_and_maintenance_do_not_count(self):
        units = [
            make_unit("u1", area=100, status=UnitStatus.VACANT),
            make_unit("u2", area=100, status=UnitStatus.MAINTENANCE),
        ]
        usage = floor_usage(make_block(), "1", units)
        assert usage.used_sqm == 0

    def test_other_floors_and_blocks_ignored(self):
        units = [
            make_unit("u1", floor="2", area=300),
            make_unit("u2", block_id="b2", area=300),
        ]
        assert floor_usage(make_block(), "1", units).used_sqm == 0

    def test_exclude_unit(self):
        units = [make_unit("u1", area=400), make_unit("u2", area=50)]
        usage = floor_usage(make_block(), "1", units, exclude_unit_id="u1")
        assert usage.used_sqm == 50
        assert usage.remaining_sqm == 450

    def test_over_allocation_visible(self):
        units = [make_unit("u1", area=600)]
        usage = floor_usage(make_block(), "1", units)
        assert usage.remaining_sqm == 0
        assert usage.occupancy_pct == pytest.approx(120.0)
        assert usage.is_over_allocated

    def test_zero_capacity_floor(self):
        usage = floor_usage(make_block(floors={"1": 0}), "1", [])
        assert usage.occupancy_pct == 0
        assert usage.remaining_sqm == 0

    def test_rounding_to_two_decimals(self):
        units = [make_unit("u1", area=100.004), make_unit("u2", area=0.003)]
        usage = floor_usage(make_block(), "1", units)
        assert usage.used_sqm == 100.01
        assert usage.remaining_sqm == 399.99

    def test_unknown_floor(self):
        with pytest.raises(FloorNotFound):
            floor_usage(make_block(), "9", [])


class TestBlockAndCampusUsage:
    def test_block_aggregate(self):
        units = [make_unit("u1", floor="1", area=250), make_unit("u2", floor="2", area=500)]
        usage = block_usage(make_block(), units)
        assert usage.total_sqm == 1500
        assert usage.used_sqm == 750
        assert usage.remaining_sqm == 750
        assert usage.occupancy_pct == pytest.approx(50.0)
        assert [f.floor for f in usage.floors] == ["2", "1"]

    def test_campus_is_area_weighted(self):
        small = make_block("b1", floors={"1": 100})
        large = make_block("b2", floors={"1": 900})
        units = [
            make_unit("u1", block_id="b1", area=100),   # small block 100% full
            make_unit("u2", block_id="b2", area=0.0),
        ]
        usage = campus_usage(Campus("c1", "Teknopark"), [small, large], units)
        assert usage.total_sqm == 1000
        assert usage.used_sqm == 100
        # mean of block percentages would be 50
        assert usage.occupancy_pct == pytest.approx(10.0)

    def test_campus_ignores_other_campus_blocks(self):
        mine = make_block("b1", campus_id="c1", floors={"1": 100})
        other = make_block("b2", campus_id="c2", floors={"1": 100})
        usage = campus_usage(Campus("c1", "Teknopark"), [mine, other], [])
        assert [b.block_id for b in usage.blocks] == ["b1"]


class TestOccupancyBand:
    def test_bands(self):
        assert occupancy_band(96) == "critical"
        assert occupancy_band(95) == "critical"
        assert occupancy_band(70) == "high"
        assert occupancy_band(69.9) == "normal"


class TestDensity:
    def test_min_required_area(self):
        company = Company("co1", "Acme", employee_count=20)
        assert min_required_area(company, 5) == 100

    def test_warning_when_cramped(self):
        company = Company("co1", "Acme", employee_count=20)
        assert density_warning(company, 80, 5) is not None

    def test_no_warning_when_enough_room(self):
        company = Company("co1", "Acme", employee_count=20)
        assert density_warning(company, 100, 5) is None

    def test_sqm_per_employee_minimum(self):
        assert validate_sqm_per_employee(1) == 1
        with pytest.raises(InvalidArea):
            validate_sqm_per_employee(0.5)


class TestCapacityEdit:
    def test_cannot_shrink_below_used(self):
        block = make_block(floors={"1": 500})
        units = [make_unit("u1", area=300)]
        errors = check_floor_capacity_edit(block, [FloorCapacity("1", 250)], units)
        assert len(errors) == 1
        assert "300.00" in errors[0]

    def test_cannot_remove_occupied_floor(self):
        block = make_block(floors={"1": 500, "2": 500})
        units = [make_unit("u1", floor="2", area=100)]
        errors = check_floor_capacity_edit(block, [FloorCapacity("1", 500)], units)
        assert len(errors) == 1
        assert "'2'" in errors[0]

    def test_valid_edit(self):
        block = make_block(floors={"1": 500})
        units = [make_unit("u1", area=300)]
        assert check_floor_capacity_edit(block, [FloorCapacity("1", 300), FloorCapacity("2", 100)], units) == []

    def test_reserved_space_protected(self):
        block = make_block(floors={"1": 500})
        units = [make_unit("u1", area=300, status=UnitStatus.RESERVED)]
        assert check_floor_capacity_edit(block, [FloorCapacity("1", 200)], units)
