"""File upload parsing: CSV/XLSX master data into typed model lists."""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

import pandas as pd

from models.building import FloorCapacity
from models.company import Company, ContractTemplate
from config.defaults import DEFAULT_OPERATING_FEE, DEFAULT_SQM_PER_EMPLOYEE

BUSINESS_AREA_SEPARATOR = ";"


def _floor_label(value) -> str:
    """Excel hands numeric floors back as floats; "3.0" must stay "3"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _optional_str(row, column: str) -> str:
    if column in row.index and pd.notna(row.get(column)):
        return str(row[column]).strip()
    return ""


def _optional_float(row, column: str, default: float) -> float:
    if column in row.index and pd.notna(row.get(column)):
        return float(row[column])
    return default


def _optional_date(row, column: str) -> Optional[date]:
    if column in row.index and pd.notna(row.get(column)):
        return pd.to_datetime(row[column]).date()
    return None


@dataclass
class BlockDefinition:
    """A block as described by the floor master sheet, before it has an id."""
    campus_name: str
    block_name: str
    default_operating_fee: float = DEFAULT_OPERATING_FEE
    sqm_per_employee: float = DEFAULT_SQM_PER_EMPLOYEE
    floor_capacities: List[FloorCapacity] = field(default_factory=list)


def parse_floor_capacities(df: pd.DataFrame) -> List[BlockDefinition]:
    """Group floor rows into one BlockDefinition per (campus, block), in file order."""
    definitions: "OrderedDict[Tuple[str, str], BlockDefinition]" = OrderedDict()
    for _, row in df.iterrows():
        key = (str(row["Campus"]).strip(), str(row["Block"]).strip())
        definition = definitions.get(key)
        if definition is None:
            definition = BlockDefinition(
                campus_name=key[0],
                block_name=key[1],
                default_operating_fee=_optional_float(row, "Operating Fee", DEFAULT_OPERATING_FEE),
                sqm_per_employee=_optional_float(row, "SqM Per Employee", DEFAULT_SQM_PER_EMPLOYEE),
            )
            definitions[key] = definition
        definition.floor_capacities.append(FloorCapacity(
            floor=_floor_label(row["Floor"]),
            total_sqm=float(row["Total SqM"]),
        ))
    return list(definitions.values())


def parse_companies(df: pd.DataFrame) -> List[Company]:
    """Convert a companies DataFrame into Company objects (ids assigned on registration)."""
    companies = []
    for _, row in df.iterrows():
        areas = [a.strip() for a in _optional_str(row, "Business Areas").split(BUSINESS_AREA_SEPARATOR) if a.strip()]
        template = None
        if "Rent Per SqM" in df.columns and pd.notna(row.get("Rent Per SqM")):
            template = ContractTemplate(
                rent_per_sqm=float(row["Rent Per SqM"]),
                start_date=_optional_date(row, "Contract Start"),
                end_date=_optional_date(row, "Contract End"),
            )
        companies.append(Company(
            company_id="",
            name=str(row["Company Name"]).strip(),
            sector=str(row["Sector"]).strip(),
            business_areas=areas,
            manager_name=_optional_str(row, "Manager Name"),
            manager_phone=_optional_str(row, "Manager Phone"),
            manager_email=_optional_str(row, "Manager Email"),
            employee_count=int(row["Employee Count"]),
            registration_number=_optional_str(row, "Registration Number"),
            contract_template=template,
        ))
    return companies


def load_file(uploaded_file) -> pd.DataFrame:
    """Load an uploaded file or local path (CSV or XLSX) into a DataFrame."""
    name = (uploaded_file if isinstance(uploaded_file, str) else uploaded_file.name).lower()
    if name.endswith(".csv"):
        return pd.read_csv(uploaded_file)
    elif name.endswith(".xlsx") or name.endswith(".xls"):
        return pd.read_excel(uploaded_file, engine="openpyxl")
    else:
        raise ValueError(f"Unsupported file format: {name}. Use CSV or XLSX.")


# Expected sheet names for multi-tab Excel (case-insensitive matching)
SHEET_ALIASES = {
    "floors": ["floors", "floor", "floor capacities", "katlar", "kat kapasiteleri", "blocks"],
    "companies": ["companies", "company", "firmalar", "firma", "tenants"],
}


def _match_sheet(sheet_names: List[str], category: str) -> str:
    """Find a sheet name matching the given category. Returns the matched name or raises."""
    aliases = SHEET_ALIASES[category]
    lower_map = {s.lower().strip(): s for s in sheet_names}
    for alias in aliases:
        if alias in lower_map:
            return lower_map[alias]
    raise ValueError(
        f"Could not find a sheet for '{category}'. "
        f"Expected one of: {aliases}. "
        f"Found sheets: {sheet_names}"
    )


def load_multi_sheet_excel(uploaded_file) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Load a single Excel file with 2 tabs: Floors and Companies.

    Returns (floors_df, companies_df).
    """
    xl = pd.ExcelFile(uploaded_file, engine="openpyxl")
    sheet_names = xl.sheet_names

    floors_df = pd.read_excel(xl, sheet_name=_match_sheet(sheet_names, "floors"))
    companies_df = pd.read_excel(xl, sheet_name=_match_sheet(sheet_names, "companies"))
    return floors_df, companies_df


def import_master_data(structure, registry, block_definitions: List[BlockDefinition], companies: List[Company]) -> dict:
    """Create campuses, blocks and companies through the validating services.

    ``structure`` is an ``engine.structure.StructureService`` and ``registry``
    an ``engine.company_registry.CompanyRegistry``. Campuses are matched by
    name and created on first sight.
    """
    campus_ids = {c.name: c.campus_id for c in structure.api.get_campuses()}
    created = {"campuses": 0, "blocks": 0, "companies": 0}

    for definition in block_definitions:
        if definition.campus_name not in campus_ids:
            campus = structure.create_campus(definition.campus_name)
            campus_ids[definition.campus_name] = campus.campus_id
            created["campuses"] += 1
        structure.add_block(
            campus_ids[definition.campus_name],
            definition.block_name,
            definition.floor_capacities,
            default_operating_fee=definition.default_operating_fee,
            sqm_per_employee=definition.sqm_per_employee,
        )
        created["blocks"] += 1

    for company in companies:
        registry.register_company(
            company.name,
            company.sector,
            business_areas=company.business_areas,
            manager_name=company.manager_name,
            manager_phone=company.manager_phone,
            manager_email=company.manager_email,
            employee_count=company.employee_count,
            registration_number=company.registration_number,
            contract_template=company.contract_template,
        )
        created["companies"] += 1
    return created
