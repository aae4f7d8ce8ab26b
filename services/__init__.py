"""
Business logic services.

Each service handles one stage of the import and movement pipeline.
"""

from services.catalog_service import (
    EntityCatalog,
    SupabaseCatalog,
    CachedCatalog,
    require_product,
    require_warehouse,
    require_vehicle,
)
from services.persistence_service import MovementSink, SupabaseMovementSink
from services.batch_submitter import (
    BatchSubmitter,
    CancellationToken,
    Submission,
    SubmissionUnit,
)
from services.validation_service import validate, validate_movement, policy_for
from services.reconciliation_service import reconcile_line, reconcile_movement
from services.import_service import EntityImportService, MovementUploadService, ImportPreview
from services.movement_service import MovementService, add_line

__all__ = [
    "EntityCatalog",
    "SupabaseCatalog",
    "CachedCatalog",
    "require_product",
    "require_warehouse",
    "require_vehicle",
    "MovementSink",
    "SupabaseMovementSink",
    "BatchSubmitter",
    "CancellationToken",
    "Submission",
    "SubmissionUnit",
    "validate",
    "validate_movement",
    "policy_for",
    "reconcile_line",
    "reconcile_movement",
    "EntityImportService",
    "MovementUploadService",
    "ImportPreview",
    "MovementService",
    "add_line",
]
