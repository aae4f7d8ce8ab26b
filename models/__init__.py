"""
Pydantic models and value types for validation and serialization.
"""

from models.base import BaseSchema
from models.ingest import (
    Cell,
    CellKind,
    RawRow,
    IngestHint,
    IngestResult,
    ValidationIssue,
    ColumnMapping,
    MappedRow,
)
from models.product import Product, ProductImportRecord
from models.warehouse import Warehouse, WarehouseImportRecord
from models.vehicle import Vehicle, VehicleImportRecord
from models.reconciliation import (
    LineStatus,
    CompleteStatus,
    ReconciliationAnomaly,
    LineReconciliation,
    MovementReconciliation,
)
from models.movement import (
    MovementType,
    MovementStatus,
    SerialNumber,
    MovementLine,
    LineReceipt,
    Movement,
    is_valid_movement_status_transition,
)
from models.submission import ProgressPhase, ProgressEvent

__all__ = [
    # Base
    "BaseSchema",

    # Ingest
    "Cell",
    "CellKind",
    "RawRow",
    "IngestHint",
    "IngestResult",
    "ValidationIssue",
    "ColumnMapping",
    "MappedRow",

    # Catalog entities
    "Product",
    "ProductImportRecord",
    "Warehouse",
    "WarehouseImportRecord",
    "Vehicle",
    "VehicleImportRecord",

    # Reconciliation
    "LineStatus",
    "CompleteStatus",
    "ReconciliationAnomaly",
    "LineReconciliation",
    "MovementReconciliation",

    # Movements
    "MovementType",
    "MovementStatus",
    "SerialNumber",
    "MovementLine",
    "LineReceipt",
    "Movement",
    "is_valid_movement_status_transition",

    # Submission
    "ProgressPhase",
    "ProgressEvent",
]
