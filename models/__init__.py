from models.building import Campus, Block, FloorCapacity, floor_sort_key, sort_floor_labels
from models.unit import Unit, UnitStatus, ReservationMeta
from models.company import Company, ContractTemplate, LeaseDocument, ScoreEntry
from models.lease import (
    Lease, LeaseStatus, Unregistered, PendingAllocation, Allocated, Detached,
    ExtendedLeaseData, lease_status, is_unallocated,
)
from models.allocation import (
    FloorUsage, BlockUsage, CampusUsage,
    AllocationRequest, AllocationOutcome, UnitEditSession, RemovalOutcome,
)
from models.audit import AuditAction, AuditLogEntry, PreviewType, RollbackPreview
from models.snapshot import SpaceSnapshot
