"""Generates human-readable explanations for allocation outcomes."""

from typing import List, Optional


def explain_assignment(
    company_name: str,
    block_name: str,
    floor: str,
    area_sqm: float,
    total_sqm: float,
    used_before: float,
    remaining_before: float,
    unit_price: float,
    price_source: str,
    monthly_rent: float,
    is_reserved: bool,
    min_required_area: Optional[float] = None,
) -> List[str]:
    """Produce step-by-step explanation for a floor assignment."""
    steps = []

    steps.append(
        f"Step 1 - Floor capacity: {block_name} floor {floor} declares {total_sqm:.2f} m², "
        f"{used_before:.2f} m² already allocated => {remaining_before:.2f} m² remaining"
    )

    steps.append(
        f"Step 2 - Request: {company_name} asks for {area_sqm:.2f} m² "
        f"=> {remaining_before - area_sqm:.2f} m² left after assignment"
    )

    if is_reserved:
        steps.append("Step 3 - Reservation: space is held and counts against capacity; no rent is set yet")
    else:
        steps.append(
            f"Step 3 - Rate: {unit_price:.2f} per m² taken from {price_source} "
            f"=> monthly rent {area_sqm:.2f} x {unit_price:.2f} = {monthly_rent:.2f}"
        )

    if min_required_area is not None and min_required_area > area_sqm:
        steps.append(
            f"Note: employee density suggests at least {min_required_area:.2f} m²; "
            f"allocation proceeds with a warning"
        )

    return steps


def explain_resize(
    unit_number: str,
    old_area: float,
    new_area: float,
    remaining_excluding_unit: float,
    fixed_unit_price: float,
    monthly_rent: float,
) -> List[str]:
    steps = [
        f"Step 1 - Capacity: {remaining_excluding_unit:.2f} m² available on the floor "
        f"without unit {unit_number}",
        f"Step 2 - Area: {old_area:.2f} m² => {new_area:.2f} m²",
        f"Step 3 - Rate: fixed at {fixed_unit_price:.2f} per m² for this edit "
        f"=> monthly rent {monthly_rent:.2f}",
    ]
    return steps
