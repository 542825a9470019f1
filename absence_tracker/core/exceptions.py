"""
Exception hierarchy shared by services and routers.

Handlers registered in main.py translate these into the standard response
envelope, so services never build HTTP responses themselves.
"""

from typing import Any, Optional


class AbsenceTrackerError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(AbsenceTrackerError):
    """Field-scoped validation failure. Raised before any remote call."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class NotAuthenticatedError(AbsenceTrackerError):
    pass


class NotFoundError(AbsenceTrackerError):
    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class RemoteOperationError(AbsenceTrackerError):
    """A call to the hosted database or storage failed."""

    def __init__(self, operation: str, table: Optional[str] = None, detail: str = ""):
        self.operation = operation
        self.table = table
        self.detail = detail
        target = f" on {table}" if table else ""
        super().__init__(f"{operation}{target} failed: {detail}" if detail else f"{operation}{target} failed")


class BulkGenerationError(AbsenceTrackerError):
    """Some per-day creates of a bulk generation failed. Nothing is rolled back."""

    def __init__(self, result):
        self.result = result
        super().__init__(
            f"{len(result.failed)} of {result.total} absences could not be created"
        )
