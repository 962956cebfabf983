"""Generate synthetic master data for the tech-park leasing core."""

import os
import random
from datetime import date

import pandas as pd

from config.observability import setup_logging
from config.settings import get_settings
from data.loader import import_master_data, parse_companies, parse_floor_capacities
from data.memory_api import InMemoryLeasingApi
from engine.company_registry import CompanyRegistry
from engine.notifier import ChangeNotifier
from engine.structure import StructureService


def generate_floor_capacities_df() -> pd.DataFrame:
    """Floor master data: 1 campus, 2 blocks, mezzanine plus 4 floors and a half floor each."""
    random.seed(42)
    rows = []
    blocks = [("A Blok", 400, 5), ("B Blok", 450, 6)]
    floors = ["Zemin Asma", "1", "2", "2A", "3", "4"]
    for block_name, fee, sqm_per_employee in blocks:
        for floor in floors:
            rows.append({
                "Campus": "Teknopark İstanbul",
                "Block": block_name,
                "Floor": floor,
                "Total SqM": random.choice([250, 500, 750, 1000]),
                "Operating Fee": fee,
                "SqM Per Employee": sqm_per_employee,
            })
    return pd.DataFrame(rows)


def generate_companies_df() -> pd.DataFrame:
    """Tenant master data for 8 companies, two of them without a contract rent."""
    start = date(2026, 1, 1)
    end = date(2029, 12, 31)
    profiles = [
        {"Company Name": "Anadolu Yazılım", "Sector": "Yazılım",   "Employee Count": 40, "Business Areas": "Yapay Zeka; Bulut",      "Rent Per SqM": 450},
        {"Company Name": "Boğaziçi Robotik", "Sector": "Robotik",  "Employee Count": 25, "Business Areas": "Otomasyon",              "Rent Per SqM": 420},
        {"Company Name": "Ege Biyoteknoloji", "Sector": "Biyotek", "Employee Count": 18, "Business Areas": "Genetik; Laboratuvar",   "Rent Per SqM": 480},
        {"Company Name": "Marmara Enerji",  "Sector": "Enerji",    "Employee Count": 60, "Business Areas": "Güneş; Rüzgar; Depolama", "Rent Per SqM": 400},
        {"Company Name": "Kapadokya Oyun",  "Sector": "Oyun",      "Employee Count": 12, "Business Areas": "Mobil Oyun",             "Rent Per SqM": 430},
        {"Company Name": "Trakya Tarım",    "Sector": "Tarım",     "Employee Count": 8,  "Business Areas": "Akıllı Tarım",           "Rent Per SqM": None},
        {"Company Name": "Karadeniz Siber", "Sector": "Güvenlik",  "Employee Count": 30, "Business Areas": "Siber Güvenlik",         "Rent Per SqM": 460},
        {"Company Name": "Fırat Medikal",   "Sector": "Sağlık",    "Employee Count": 15, "Business Areas": "Medikal Cihaz",          "Rent Per SqM": None},
    ]
    for p in profiles:
        p["Contract Start"] = start.isoformat() if p["Rent Per SqM"] else None
        p["Contract End"] = end.isoformat() if p["Rent Per SqM"] else None
    return pd.DataFrame(profiles)


def build_demo_api() -> InMemoryLeasingApi:
    """An in-memory collaborator seeded with the sample master data."""
    api = InMemoryLeasingApi()
    notifier = ChangeNotifier()
    import_master_data(
        StructureService(api, notifier),
        CompanyRegistry(api, notifier),
        parse_floor_capacities(generate_floor_capacities_df()),
        parse_companies(generate_companies_df()),
    )
    return api


def generate_sample_csvs(output_dir: str):
    """Write sample CSV files to the given directory."""
    os.makedirs(output_dir, exist_ok=True)
    generate_floor_capacities_df().to_csv(os.path.join(output_dir, "floors.csv"), index=False)
    generate_companies_df().to_csv(os.path.join(output_dir, "companies.csv"), index=False)


def generate_sample_excel(output_dir: str):
    """Write a single multi-tab Excel file with both datasets."""
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, "sample_data.xlsx")
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        generate_floor_capacities_df().to_excel(writer, sheet_name="Floors", index=False)
        generate_companies_df().to_excel(writer, sheet_name="Companies", index=False)


if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    out = os.path.join(os.path.dirname(__file__), "..", "sample_files")
    generate_sample_csvs(out)
    generate_sample_excel(out)
    print("Sample CSV and Excel files generated in sample_files/")
