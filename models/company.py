from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


@dataclass
class LeaseDocument:
    name: str
    url: str
    doc_type: str = "application/pdf"


@dataclass
class ContractTemplate:
    """Terms agreed with a company before any physical allocation."""
    rent_per_sqm: float
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class ScoreEntry:
    entry_id: str
    score_type: str                     # "TUBITAK", "KOSGEB", "PATENT", "ARGE", "OTHER"
    description: str
    points: float
    awarded_on: Optional[date] = None
    note: str = ""
    documents: List[LeaseDocument] = field(default_factory=list)


@dataclass
class Company:
    company_id: str
    name: str
    sector: str = ""
    business_areas: List[str] = field(default_factory=list)
    manager_name: str = ""
    manager_phone: str = ""
    manager_email: str = ""
    employee_count: int = 0
    registration_number: str = ""
    contract_template: Optional[ContractTemplate] = None
    score_entries: List[ScoreEntry] = field(default_factory=list)
    documents: List[LeaseDocument] = field(default_factory=list)

    @property
    def score(self) -> float:
        """Achievement score: sum of all score entry points."""
        return sum(e.points for e in self.score_entries)
