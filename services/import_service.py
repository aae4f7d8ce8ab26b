"""
Import pipelines.

Entity imports (products, warehouses, vehicles):
    ingest -> map with alias table -> validate -> preview -> submit

Movement uploads (serial numbers for one product line):
    read headers -> operator binds columns -> build line

Nothing reaches the sink unless the preview has zero issues.
"""

from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional
import structlog

from models.ingest import ColumnMapping, IngestHint, ValidationIssue
from models.movement import MovementLine, SerialNumber
from models.submission import ProgressEvent
from parsers.tabular_parser import ingest, read_headers
from parsers.column_mapper import (
    ALIAS_TABLES,
    BATCH_NUMBER,
    BL_NUMBER,
    CONTAINER_NUMBER,
    SERIAL_NUMBER,
    apply_mapping,
    bind_columns,
    resolve_mapping,
)
from services.batch_submitter import BatchSubmitter, Submission, SubmissionUnit
from services.catalog_service import EntityCatalog, require_product
from services.persistence_service import MovementSink
from services.validation_service import (
    BATCH_ROW,
    policy_for,
    validate,
    validate_file_size,
)
from exceptions import ImportValidationError

logger = structlog.get_logger(__name__)


@dataclass
class ImportPreview:
    """What an import would submit, shown to the operator before confirming."""
    import_type: str
    headers: list[str] = field(default_factory=list)
    mapping: Optional[ColumnMapping] = None
    records: list = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    total_rows: int = 0
    max_rows: int = 0

    @property
    def submittable(self) -> bool:
        return not self.issues and 1 <= self.total_rows <= self.max_rows

    @property
    def valid_count(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict:
        return {
            "import_type": self.import_type,
            "headers": self.headers,
            "mapping": self.mapping.to_dict() if self.mapping else {},
            "total_rows": self.total_rows,
            "valid_count": self.valid_count,
            "issues": [issue.to_dict() for issue in self.issues],
            "submittable": self.submittable,
        }


class EntityImportService:
    """
    Bulk import of catalog entities from CSV or workbook uploads.
    """

    def __init__(self, submitter: Optional[BatchSubmitter] = None):
        self.submitter = submitter or BatchSubmitter()

    def preview(
        self,
        content: bytes,
        import_type: str,
        hint: Optional[IngestHint] = None
    ) -> ImportPreview:
        """
        Parse and validate an upload without submitting anything.

        Args:
            content: Uploaded file bytes
            import_type: "product", "warehouse" or "vehicle"
            hint: Optional sheet / delimiter / filename

        Returns:
            ImportPreview with every issue found

        Raises:
            ValueError: Unknown import type
            IngestError: Content is not a CSV or workbook
            MappingError: Required columns could not be found
        """
        policy = policy_for(import_type)
        alias_table = ALIAS_TABLES[import_type]

        size_issues = validate_file_size(len(content))
        if size_issues:
            logger.warning("import_file_too_large", import_type=import_type, size_bytes=len(content))
            return ImportPreview(
                import_type=import_type,
                issues=size_issues,
                max_rows=policy.max_rows,
            )

        ingested = ingest(content, hint)
        mapping = resolve_mapping(ingested.headers, alias_table)
        mapped = [apply_mapping(row, mapping) for row in ingested.rows]

        result = validate(mapped, policy)

        # Skipped ragged rows still count toward the row limit
        total_rows = ingested.row_count + len(ingested.issues)
        issues = sorted(ingested.issues + result.issues, key=lambda issue: issue.row)

        preview = ImportPreview(
            import_type=import_type,
            headers=ingested.headers,
            mapping=mapping,
            records=result.records,
            issues=issues,
            total_rows=total_rows,
            max_rows=policy.max_rows,
        )

        logger.info(
            "import_previewed",
            import_type=import_type,
            rows=total_rows,
            valid=preview.valid_count,
            issue_count=len(issues),
            submittable=preview.submittable
        )

        return preview

    def submit(self, preview: ImportPreview, sink: MovementSink) -> Submission:
        """
        Submit a clean preview as one all-or-nothing batch.

        Iterate the returned Submission for progress; the created rows are
        in submission.results[0] once it completes.

        Raises:
            ImportValidationError: Preview has issues or no rows
        """
        if not preview.submittable:
            issues = [issue.to_dict() for issue in preview.issues]
            if not issues:
                issues = [ValidationIssue(BATCH_ROW, "rows", "File contains no data rows").to_dict()]
            logger.warning(
                "import_not_submittable",
                import_type=preview.import_type,
                issue_count=len(issues)
            )
            raise ImportValidationError(issues)

        payloads = [record.to_payload() for record in preview.records]
        unit = SubmissionUnit(
            payload=payloads,
            record_count=len(payloads),
            label=preview.import_type,
        )

        logger.info("import_submitting", import_type=preview.import_type, records=len(payloads))
        return self.submitter.submit(
            [unit],
            lambda batch: sink.create_entities_batch(preview.import_type, batch)
        )

    def run(
        self,
        content: bytes,
        import_type: str,
        sink: MovementSink,
        hint: Optional[IngestHint] = None
    ) -> Iterator[ProgressEvent]:
        """Preview and submit in one go, yielding submission progress."""
        preview = self.preview(content, import_type, hint)
        yield from self.submit(preview, sink)


class MovementUploadService:
    """
    Serial-number uploads for serialized movement lines.

    The operator first sees the file's headers, then binds them to roles
    (serial number required; batch, container and BL optional).
    """

    def __init__(self, catalog: EntityCatalog):
        self.catalog = catalog

    def read_headers(self, content: bytes, hint: Optional[IngestHint] = None) -> list[str]:
        return read_headers(content, hint)

    def build_line(
        self,
        content: bytes,
        binding: Mapping[str, Optional[str]],
        product_id: str,
        hint: Optional[IngestHint] = None
    ) -> MovementLine:
        """
        Build one serialized MovementLine from an upload.

        Each non-empty row is one unit; quantity_sent is the row count.

        Raises:
            ProductNotFoundError: Product is not in the catalog
            MappingError: Binding is incomplete or ambiguous
            ImportValidationError: Product is not serialized, or rows are
                                   missing or repeating serial numbers
        """
        product = require_product(self.catalog, product_id)
        if not product.serialized:
            raise ImportValidationError([
                ValidationIssue(BATCH_ROW, "product_id", f"Product {product.code} is not serialized").to_dict()
            ])

        size_issues = validate_file_size(len(content))
        if size_issues:
            raise ImportValidationError([issue.to_dict() for issue in size_issues])

        ingested = ingest(content, hint)
        mapping = bind_columns(ingested.headers, binding)

        issues = list(ingested.issues)
        serials: list[SerialNumber] = []
        first_seen: dict[str, int] = {}

        for raw in ingested.rows:
            row = apply_mapping(raw, mapping)
            value = row.get(SERIAL_NUMBER).as_text()
            if not value:
                issues.append(ValidationIssue(row.index, SERIAL_NUMBER, "Serial number is required"))
                continue
            if value in first_seen:
                issues.append(ValidationIssue(
                    row.index,
                    SERIAL_NUMBER,
                    f"Duplicate serial number '{value}' (first seen on row {first_seen[value]})"
                ))
                continue
            first_seen[value] = row.index
            serials.append(SerialNumber(
                serial_number=value,
                batch_number=row.get(BATCH_NUMBER).as_text(),
                container_number=row.get(CONTAINER_NUMBER).as_text(),
                bl_number=row.get(BL_NUMBER).as_text(),
            ))

        if not ingested.rows and not issues:
            issues.append(ValidationIssue(BATCH_ROW, "rows", "File contains no serial numbers"))

        if issues:
            issues.sort(key=lambda issue: issue.row)
            logger.warning(
                "movement_upload_invalid",
                product_id=product_id,
                rows=ingested.row_count,
                issue_count=len(issues)
            )
            raise ImportValidationError([issue.to_dict() for issue in issues])

        logger.info(
            "movement_line_built",
            product_id=product_id,
            serials=len(serials),
            bound_roles=list(mapping.fields)
        )

        return MovementLine(
            product_id=product_id,
            serialized=True,
            quantity_sent=float(len(serials)),
            serial_numbers_sent=serials,
        )
