"""
Error taxonomy shared by the store and the HTTP layer.

Every error carries a machine-checkable ``kind`` and the HTTP status the API
maps it to, so the transport never has to inspect messages.
"""

from typing import Any, Dict, List, Optional


class JinderError(Exception):
    """Base class for all errors raised by jinder."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "details": list(self.details)}


class ValidationError(JinderError):
    """One or more fields violate the job application schema."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message, details=errors)
        self.errors = errors

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    def __str__(self) -> str:
        parts = "; ".join(f"{e['field']}: {e['message']}" for e in self.errors)
        return f"{self.message}: {parts}" if parts else self.message


class UnauthorizedError(JinderError):
    """The request carries no owner while ownership is mandatory."""

    kind = "unauthorized"
    status_code = 401


class NotFoundError(JinderError):
    """The job application does not exist or belongs to another owner."""

    kind = "not_found"
    status_code = 404

    def __init__(self, job_id: str):
        super().__init__(f"Job application {job_id} not found")
        self.job_id = job_id


class ConflictError(JinderError):
    """Duplicate record or stale version on update."""

    kind = "conflict"
    status_code = 409


class InternalError(JinderError):
    """Unexpected failure; details stay server-side unless exposed."""

    kind = "internal_error"
    status_code = 500


class StorageError(InternalError):
    """The persistence engine failed or is unavailable."""
