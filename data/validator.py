"""Schema validation for uploaded master data files."""

from dataclasses import dataclass, field
from typing import List
import pandas as pd

from config.defaults import MAX_BUSINESS_AREAS, MIN_SQM_PER_EMPLOYEE


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


FLOOR_REQUIRED_COLUMNS = [
    "Campus",
    "Block",
    "Floor",
    "Total SqM",
]

COMPANY_REQUIRED_COLUMNS = [
    "Company Name",
    "Sector",
    "Employee Count",
]


def _check_required_columns(df: pd.DataFrame, required: List[str], file_label: str) -> ValidationResult:
    result = ValidationResult()
    missing = [col for col in required if col not in df.columns]
    if missing:
        result.is_valid = False
        result.errors.append(f"{file_label}: Missing required columns: {', '.join(missing)}")
    if df.empty:
        result.is_valid = False
        result.errors.append(f"{file_label}: File contains no data rows.")
    return result


def validate_floor_capacities(df: pd.DataFrame) -> ValidationResult:
    result = _check_required_columns(df, FLOOR_REQUIRED_COLUMNS, "Floor Capacities")
    if not result.is_valid:
        return result

    if (df["Total SqM"] < 0).any():
        result.is_valid = False
        result.errors.append("Floor Capacities: Total SqM cannot be negative.")

    if "SqM Per Employee" in df.columns and (df["SqM Per Employee"].dropna() < MIN_SQM_PER_EMPLOYEE).any():
        result.is_valid = False
        result.errors.append(f"Floor Capacities: SqM Per Employee must be at least {MIN_SQM_PER_EMPLOYEE}.")

    # Same floor declared twice for one block
    keys = df[["Campus", "Block", "Floor"]].astype(str)
    dupes = keys.duplicated(keep=False)
    if dupes.any():
        result.is_valid = False
        dupe_rows = keys[dupes].drop_duplicates().to_dict("records")
        result.errors.append(f"Floor Capacities: Duplicate floor entries: {dupe_rows}")

    if (df["Total SqM"] == 0).any():
        result.warnings.append("Floor Capacities: Floors with 0 m² cannot take any allocation.")

    return result


def validate_companies(df: pd.DataFrame) -> ValidationResult:
    result = _check_required_columns(df, COMPANY_REQUIRED_COLUMNS, "Companies")
    if not result.is_valid:
        return result

    if (df["Employee Count"] < 0).any():
        result.is_valid = False
        result.errors.append("Companies: Employee Count cannot be negative.")

    dupes = df.duplicated(subset=["Company Name"], keep=False)
    if dupes.any():
        result.is_valid = False
        result.errors.append(f"Companies: Duplicate company names: {df[dupes]['Company Name'].unique().tolist()}")

    if "Business Areas" in df.columns:
        counts = df["Business Areas"].fillna("").astype(str).apply(
            lambda s: len({a.strip() for a in s.split(";") if a.strip()})
        )
        too_many = df.loc[counts > MAX_BUSINESS_AREAS, "Company Name"].tolist()
        if too_many:
            result.is_valid = False
            result.errors.append(
                f"Companies: More than {MAX_BUSINESS_AREAS} business areas for: {', '.join(too_many)}"
            )

    if "Rent Per SqM" in df.columns:
        if (df["Rent Per SqM"].dropna() < 0).any():
            result.is_valid = False
            result.errors.append("Companies: Rent Per SqM cannot be negative.")
        missing_rent = df.loc[df["Rent Per SqM"].isna(), "Company Name"].tolist()
        if missing_rent:
            result.warnings.append(
                f"Companies without a contract rent: {', '.join(missing_rent)}. "
                "Their allocations will start with 0 rent."
            )

    if "Contract Start" in df.columns and "Contract End" in df.columns:
        start = pd.to_datetime(df["Contract Start"], errors="coerce")
        end = pd.to_datetime(df["Contract End"], errors="coerce")
        inverted = df.loc[end < start, "Company Name"].tolist()
        if inverted:
            result.is_valid = False
            result.errors.append(f"Companies: Contract ends before it starts for: {', '.join(inverted)}")

    return result
