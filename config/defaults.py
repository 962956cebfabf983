"""Default configuration constants for the tech-park leasing core."""

from datetime import timedelta

# Typed phrase that unlocks destructive operations (exact, case-sensitive match)
CONFIRMATION_PHRASE = "ONAYLIYORUM"

# Unit statuses that consume floor capacity
ACTIVE_UNIT_STATUSES = ("OCCUPIED", "RESERVED")

# Floor labels that are not plain numbers
MEZZANINE_FLOOR_LABEL = "Zemin Asma"
MEZZANINE_FLOOR_KEY = 0.5
HALF_FLOOR_SUFFIX = "A"
HALF_FLOOR_OFFSET = 0.5

# Area figures are shown and compared at this precision (m²)
AREA_DECIMALS = 2

# Block defaults
DEFAULT_SQM_PER_EMPLOYEE = 5
MIN_SQM_PER_EMPLOYEE = 1
DEFAULT_OPERATING_FEE = 400

# Occupancy bands (percent)
OCCUPANCY_CRITICAL_PCT = 95
OCCUPANCY_HIGH_PCT = 70

# Company / lease limits
MAX_BUSINESS_AREAS = 10
MAX_LEASE_DOCUMENTS = 4
SCORE_TYPES = ["TUBITAK", "KOSGEB", "PATENT", "ARGE", "OTHER"]

# Lease id the collaborator uses for "registered, never allocated"
PENDING_LEASE_ID = "PENDING"

# Presentation mode replaces every money figure with this mask
PRESENTATION_MASK = "****"

# Audit trail
ROLLBACK_WINDOW = timedelta(days=7)
AUDIT_PAGE_SIZE = 20
AUTH_ENTITY_TYPE = "AUTH"
ALL = "ALL"

TIME_WINDOWS = {
    "1H": timedelta(hours=1),
    "6H": timedelta(hours=6),
    "12H": timedelta(hours=12),
    "24H": timedelta(hours=24),
    "3D": timedelta(days=3),
    "7D": timedelta(days=7),
    ALL: None,
}

# Change notification vocabulary
DATA_TYPES = ("company", "lease", "campus", "block", "unit", "document", "score")
CHANGE_ACTIONS = ("create", "update", "delete")
ALL_TOPICS = "*"

# Audit entity type -> change notification data type
ENTITY_DATA_TYPES = {
    "LEASE": "lease",
    "UNIT": "unit",
    "BLOCK": "block",
    "CAMPUS": "campus",
    "COMPANY": "company",
}
