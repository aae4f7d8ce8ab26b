"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Catalog
    ProductNotFoundError,
    WarehouseNotFoundError,
    VehicleNotFoundError,

    # Ingest / mapping
    IngestError,
    MappingError,
    ImportValidationError,
    MovementValidationError,

    # Submission
    TransientSinkError,
    SubmissionError,
    SubmissionCancelledError,

    # Movements
    InvalidStatusTransitionError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Catalog
    "ProductNotFoundError",
    "WarehouseNotFoundError",
    "VehicleNotFoundError",

    # Ingest / mapping
    "IngestError",
    "MappingError",
    "ImportValidationError",
    "MovementValidationError",

    # Submission
    "TransientSinkError",
    "SubmissionError",
    "SubmissionCancelledError",

    # Movements
    "InvalidStatusTransitionError",
]
