"""
Custom exception classes for the stock movement core.

Every error carries a stable code, a human-readable message and a details
dict that is rich enough for a caller to render actionable feedback.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP-style status code for the presentation layer
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# CATALOG ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found in the catalog."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class WarehouseNotFoundError(NotFoundError):
    """Warehouse not found in the catalog."""

    def __init__(self, warehouse_id: str):
        super().__init__(
            resource="Warehouse",
            identifier=warehouse_id,
            code="WAREHOUSE_NOT_FOUND"
        )


class VehicleNotFoundError(NotFoundError):
    """Vehicle not found in the catalog."""

    def __init__(self, vehicle_id: str):
        super().__init__(
            resource="Vehicle",
            identifier=vehicle_id,
            code="VEHICLE_NOT_FOUND"
        )


# ===================
# INGEST / MAPPING ERRORS
# ===================

class IngestError(ValidationError):
    """Uploaded content is not a decodable CSV or workbook."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="INGEST_ERROR",
            message=message,
            details=details
        )


class MappingError(ValidationError):
    """
    Columns could not be mapped to canonical fields.

    Lists every unresolved and every ambiguous field so the caller
    can fix all of them in one pass.
    """

    def __init__(
        self,
        unresolved: list[str],
        ambiguous: Optional[dict[str, list[str]]] = None,
        available: Optional[list[str]] = None
    ):
        self.unresolved = list(unresolved)
        self.ambiguous = dict(ambiguous or {})
        parts = []
        if self.unresolved:
            parts.append(f"unresolved: {', '.join(self.unresolved)}")
        if self.ambiguous:
            parts.append(f"ambiguous: {', '.join(self.ambiguous)}")
        super().__init__(
            code="COLUMN_MAPPING_FAILED",
            message=f"Column mapping failed ({'; '.join(parts)})",
            details={
                "unresolved": self.unresolved,
                "ambiguous": self.ambiguous,
                "available_headers": list(available or []),
            }
        )


class ImportValidationError(ValidationError):
    """Import batch has validation issues and cannot be submitted."""

    def __init__(self, issues: list[dict]):
        super().__init__(
            code="IMPORT_VALIDATION_FAILED",
            message=f"Import validation failed with {len(issues)} issues",
            details={"issues": issues}
        )


class MovementValidationError(ValidationError):
    """Movement failed business rules before submission."""

    def __init__(self, issues: list[dict]):
        super().__init__(
            code="MOVEMENT_VALIDATION_FAILED",
            message=f"Movement validation failed with {len(issues)} issues",
            details={"issues": issues}
        )


# ===================
# SUBMISSION ERRORS
# ===================

class TransientSinkError(ExternalServiceError):
    """Sink was unreachable or temporarily unavailable. Safe to retry."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="persistence",
            message=message,
            details=details
        )


class SubmissionError(AppError):
    """Sink rejected a unit or stayed unreachable after the retry budget."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
        committed_records: int = 0
    ):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            code="SUBMISSION_FAILED",
            message=message,
            status_code=502,
            details={
                "attempts": attempts,
                "committed_records": committed_records,
                "last_error": str(last_error) if last_error else None,
                "last_error_type": type(last_error).__name__ if last_error else None,
            }
        )


class SubmissionCancelledError(AppError):
    """Caller cancelled the submission between sink calls."""

    def __init__(self, committed_records: int, total_records: int):
        super().__init__(
            code="SUBMISSION_CANCELLED",
            message="Submission cancelled by caller",
            status_code=499,
            details={
                "committed_records": committed_records,
                "total_records": total_records,
            }
        )


# ===================
# MOVEMENT ERRORS
# ===================

class InvalidStatusTransitionError(ValidationError):
    """Invalid movement status transition."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
                "reason": "Receipts can only be recorded for dispatched movements"
            }
        )
