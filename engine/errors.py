"""Error taxonomy for the leasing core.

Validation errors are raised before any collaborator call. Conflict and
infrastructure errors come back from the collaborator and are surfaced
verbatim.
"""

from typing import List, Optional


class LeasingError(Exception):
    code = "LEASING_ERROR"
    category = "internal"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "category": self.category, "message": self.message}


# --- Validation ---

class ValidationError(LeasingError):
    code = "VALIDATION_ERROR"
    category = "validation"


class CapacityExceeded(ValidationError):
    code = "CAPACITY_EXCEEDED"

    def __init__(self, requested: float, remaining: float, floor: str = ""):
        self.requested = requested
        self.remaining = remaining
        self.floor = floor
        super().__init__(
            f"Kapasite aşımı: kat {floor} için talep edilen {requested:.2f} m², "
            f"kalan alan {remaining:.2f} m²."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(requested=self.requested, remaining=self.remaining, floor=self.floor)
        return data


class InvalidArea(ValidationError):
    code = "INVALID_AREA"


class FloorNotFound(ValidationError):
    code = "FLOOR_NOT_FOUND"


class DateRangeInvalid(ValidationError):
    code = "DATE_RANGE_INVALID"


class CompanyAlreadyAllocated(ValidationError):
    code = "COMPANY_ALREADY_ALLOCATED"


class LimitExceeded(ValidationError):
    code = "LIMIT_EXCEEDED"


class CapacityEditRejected(ValidationError):
    """A floor-capacity edit would leave allocated area without room."""
    code = "CAPACITY_EDIT_REJECTED"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = list(self.errors)
        return data


class ConfirmationMismatch(ValidationError):
    code = "CONFIRMATION_MISMATCH"


class ConfirmationRequired(ValidationError):
    code = "CONFIRMATION_REQUIRED"


class RollbackIneligible(ValidationError):
    code = "ROLLBACK_INELIGIBLE"


# --- Lookup ---

class ResourceNotFound(LeasingError):
    code = "NOT_FOUND"
    category = "not_found"

    def __init__(self, kind: str, resource_id: str):
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(f"{kind} not found: {resource_id}")


# --- Conflict ---

class ConflictError(LeasingError):
    """The collaborator rejected a write. The message is shown as-is."""
    code = "CONFLICT"
    category = "conflict"


class StaleSnapshot(LeasingError):
    code = "STALE_SNAPSHOT"
    category = "conflict"

    def __init__(self, message: str = "Data changed on the server; refresh before retrying."):
        super().__init__(message)


# --- Rollback protocol ---

class RollbackNotAuthorized(LeasingError):
    code = "ROLLBACK_NOT_AUTHORIZED"
    category = "rollback"


class PreviewUnavailable(LeasingError):
    code = "PREVIEW_UNAVAILABLE"
    category = "rollback"


class RollbackCommitFailed(LeasingError):
    code = "ROLLBACK_COMMIT_FAILED"
    category = "rollback"


# --- Infrastructure ---

class CollaboratorError(LeasingError):
    code = "COLLABORATOR_ERROR"
    category = "infrastructure"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationExpired(CollaboratorError):
    code = "AUTHENTICATION_EXPIRED"
