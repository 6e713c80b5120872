"""
shared/utils/errors.py
Domain error taxonomy. Routers let these propagate; main.py maps each
class to an HTTP status via `status_code` and `code`.
"""

from typing import Optional


class DomainError(Exception):
    status_code: int = 400
    code: str = "DOMAIN_ERROR"

    def __init__(self, detail: str, code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if code:
            self.code = code


class RecordNotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found")
        self.kind = kind
        self.record_id = record_id


class InvalidTransitionError(DomainError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, kind: str, from_status: Optional[str], to_status: str):
        super().__init__(f"Cannot move {kind} from '{from_status or 'unset'}' to '{to_status}'")
        self.from_status = from_status
        self.to_status = to_status


class PermissionDeniedError(DomainError):
    status_code = 403
    code = "FORBIDDEN"


class ValidationFailedError(DomainError):
    status_code = 422
    code = "VALIDATION_FAILED"


class StorageWriteError(DomainError):
    """Substrate refused a write (quota, outage, disabled storage). Recoverable."""
    status_code = 503
    code = "STORAGE_UNAVAILABLE"

    def __init__(self, namespace: str, reason: str):
        super().__init__(
            f"Your changes could not be saved right now ({namespace}). Please try again."
        )
        self.namespace = namespace
        self.reason = reason
