"""
Business-rule validation for imports and movements.

Validation is total: every rule runs on every row and the complete issue
list is returned, so a caller can show all problems at once.

Boolean-like cells are coerced leniently. Unrecognized values become False
without an issue; quantities are never clamped.
"""

from dataclasses import dataclass, field
import math
import re
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError
import structlog

from config import settings
from models.ingest import Cell, CellKind, MappedRow, ValidationIssue
from models.movement import Movement, MovementType
from models.product import ProductImportRecord
from models.warehouse import WarehouseImportRecord
from models.vehicle import VehicleImportRecord
from services.catalog_service import EntityCatalog

logger = structlog.get_logger(__name__)


TRUE_TEXT = frozenset({"yes", "y", "true", "t", "1"})

SERIAL_SEPARATORS = re.compile(r"[,;|\n]+")

# Batch-level issues use row 0
BATCH_ROW = 0


# ===================
# POLICIES
# ===================

@dataclass(frozen=True)
class ImportPolicy:
    """Rules for one import type."""
    import_type: str
    required_fields: tuple[str, ...]
    max_rows: int = 500
    unique_field: Optional[str] = None


def policy_for(import_type: str, max_rows: Optional[int] = None) -> ImportPolicy:
    """Build the policy for an import type using configured limits."""
    limit = max_rows if max_rows is not None else settings.max_import_rows
    if import_type == "product":
        return ImportPolicy("product", ("code", "name", "barcode"), limit, "code")
    if import_type == "warehouse":
        return ImportPolicy("warehouse", ("code", "name"), limit, "code")
    if import_type == "vehicle":
        return ImportPolicy("vehicle", ("plate_number",), limit, "plate_number")
    raise ValueError(f"Unknown import type: {import_type}")


@dataclass
class ValidationResult:
    """Valid records plus every issue found."""
    policy: ImportPolicy
    records: list[BaseModel] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    total_rows: int = 0

    @property
    def submittable(self) -> bool:
        """No issues and a row count within [1, max_rows]."""
        return not self.issues and 1 <= self.total_rows <= self.policy.max_rows

    def issues_as_dicts(self) -> list[dict]:
        return [issue.to_dict() for issue in self.issues]


# ===================
# COERCION
# ===================

def coerce_bool(value: Union[Cell, Any]) -> bool:
    """
    Coerce a boolean-like value.

    "Yes"/"TRUE"/"1"/1/True -> True. Everything else, including
    unrecognized text, -> False.
    """
    if isinstance(value, Cell):
        if value.kind == CellKind.BOOLEAN:
            return bool(value.value)
        if value.kind == CellKind.NUMBER:
            return value.value == 1
        if value.kind == CellKind.TEXT:
            return str(value.value).strip().lower() in TRUE_TEXT
        return False

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUE_TEXT
    return False


def coerce_quantity(cell: Cell) -> tuple[Optional[float], Optional[str]]:
    """
    Parse a non-negative quantity.

    Returns:
        (value, None) on success, (None, message) on failure,
        (None, None) for an empty cell
    """
    if cell.kind == CellKind.EMPTY:
        return None, None
    if cell.kind == CellKind.NUMBER:
        number = float(cell.value)
    elif cell.kind == CellKind.TEXT:
        try:
            number = float(str(cell.value).strip())
        except ValueError:
            return None, "Must be a number"
    else:
        return None, "Must be a number"

    if not math.isfinite(number):
        return None, "Must be a number"
    if number < 0:
        return None, "Must be a non-negative number"
    return number, None


def parse_serial_numbers(cell: Cell) -> list[str]:
    """Split a serial-number cell on commas, semicolons, pipes or newlines."""
    text = cell.as_text()
    if not text:
        return []
    return [part.strip() for part in SERIAL_SEPARATORS.split(text) if part.strip()]


def _duplicates(values: list[str]) -> list[str]:
    seen: set[str] = set()
    repeated: list[str] = []
    for value in values:
        if value in seen and value not in repeated:
            repeated.append(value)
        seen.add(value)
    return repeated


# ===================
# IMPORT VALIDATION
# ===================

def validate(rows: list[MappedRow], policy: ImportPolicy) -> ValidationResult:
    """
    Validate mapped rows against an import policy.

    Per row: required fields, type coercion, record constraints.
    Per batch: row count within [1, max_rows], unique codes.

    Args:
        rows: Rows projected onto canonical fields
        policy: Import rules

    Returns:
        ValidationResult with valid records and the complete issue list
    """
    logger.info("validating_import", import_type=policy.import_type, rows=len(rows))

    result = ValidationResult(policy=policy, total_rows=len(rows))
    build = _RECORD_BUILDERS[policy.import_type]

    # Batch rules
    if not rows:
        result.issues.append(ValidationIssue(BATCH_ROW, "rows", "File contains no data rows"))
    elif len(rows) > policy.max_rows:
        result.issues.append(ValidationIssue(
            BATCH_ROW,
            "rows",
            f"Too many rows: {len(rows)} (maximum {policy.max_rows})"
        ))

    first_seen: dict[str, int] = {}

    for row in rows:
        row_issues: list[ValidationIssue] = []

        for field_name in policy.required_fields:
            if row.get(field_name).is_empty:
                row_issues.append(ValidationIssue(row.index, field_name, "Required field is empty"))

        # Field checks always run; the record is only built for a clean row
        record = build(row, row_issues)

        if policy.unique_field and record is not None:
            key = str(getattr(record, policy.unique_field)).upper()
            if key in first_seen:
                row_issues.append(ValidationIssue(
                    row.index,
                    policy.unique_field,
                    f"Duplicate value '{getattr(record, policy.unique_field)}' "
                    f"(first seen on row {first_seen[key]})"
                ))
            else:
                first_seen[key] = row.index

        if row_issues:
            result.issues.extend(row_issues)
        elif record is not None:
            result.records.append(record)

    logger.info(
        "import_validated",
        import_type=policy.import_type,
        rows=len(rows),
        valid=len(result.records),
        issue_count=len(result.issues),
        submittable=result.submittable
    )

    return result


def validate_file_size(size_bytes: int, max_bytes: Optional[int] = None) -> list[ValidationIssue]:
    """Reject uploads above the configured size limit."""
    limit = max_bytes if max_bytes is not None else settings.max_file_size_bytes
    if size_bytes > limit:
        return [ValidationIssue(
            BATCH_ROW,
            "file",
            f"File is {size_bytes} bytes (maximum {limit})"
        )]
    return []


def _build_record(
    model: type[BaseModel],
    row: MappedRow,
    values: dict,
    issues: list[ValidationIssue]
) -> Optional[BaseModel]:
    """Construct a record, turning model constraint failures into issues."""
    try:
        return model(**values)
    except PydanticValidationError as e:
        for err in e.errors():
            loc = err.get("loc") or ("row",)
            issues.append(ValidationIssue(row.index, str(loc[0]), err["msg"]))
        return None


def _build_product(row: MappedRow, issues: list[ValidationIssue]) -> Optional[ProductImportRecord]:
    quantity, quantity_error = coerce_quantity(row.get("quantity"))
    if quantity_error:
        issues.append(ValidationIssue(row.index, "quantity", quantity_error))

    serials = parse_serial_numbers(row.get("serial_numbers"))
    repeated = _duplicates(serials)
    if repeated:
        issues.append(ValidationIssue(
            row.index,
            "serial_numbers",
            f"Duplicate serial numbers: {', '.join(repeated)}"
        ))

    if issues:
        return None

    return _build_record(ProductImportRecord, row, {
        "code": row.get("code").as_text(),
        "name": row.get("name").as_text(),
        "barcode": row.get("barcode").as_text(),
        "serialized": coerce_bool(row.get("serialized")),
        "quantity": quantity,
        "serial_numbers": tuple(serials),
    }, issues)


def _build_warehouse(row: MappedRow, issues: list[ValidationIssue]) -> Optional[WarehouseImportRecord]:
    if issues:
        return None
    return _build_record(WarehouseImportRecord, row, {
        "code": row.get("code").as_text(),
        "name": row.get("name").as_text(),
        "location": row.get("location").as_text(),
    }, issues)


def _build_vehicle(row: MappedRow, issues: list[ValidationIssue]) -> Optional[VehicleImportRecord]:
    if issues:
        return None
    return _build_record(VehicleImportRecord, row, {
        "plate_number": row.get("plate_number").as_text(),
        "description": row.get("description").as_text(),
    }, issues)


_RECORD_BUILDERS: dict[str, Callable[[MappedRow, list[ValidationIssue]], Optional[BaseModel]]] = {
    "product": _build_product,
    "warehouse": _build_warehouse,
    "vehicle": _build_vehicle,
}


# ===================
# MOVEMENT VALIDATION
# ===================

def validate_movement(movement: Movement, catalog: EntityCatalog) -> list[ValidationIssue]:
    """
    Check a movement before it is submitted.

    Header-level issues use row 0; line issues use the 1-based line number.

    Rules:
    - Source and destination warehouses exist and differ
    - Shipments name a driver and an existing vehicle
    - At least one line; one line per product
    - Each line references a known product with quantity > 0
    - Serialized lines carry exactly `quantity` unique serial numbers
    - Non-serialized lines carry no serial numbers
    """
    issues: list[ValidationIssue] = []

    for field_name in ("source_warehouse_id", "destination_warehouse_id"):
        warehouse_id = getattr(movement, field_name)
        if not warehouse_id:
            issues.append(ValidationIssue(BATCH_ROW, field_name, "Warehouse is required"))
        elif catalog.get_warehouse(warehouse_id) is None:
            issues.append(ValidationIssue(BATCH_ROW, field_name, f"Unknown warehouse: {warehouse_id}"))

    if (
        movement.source_warehouse_id
        and movement.source_warehouse_id == movement.destination_warehouse_id
    ):
        issues.append(ValidationIssue(
            BATCH_ROW,
            "destination_warehouse_id",
            "Source and destination warehouses cannot be the same"
        ))

    if movement.movement_type == MovementType.SHIPMENT:
        if not movement.driver_name:
            issues.append(ValidationIssue(BATCH_ROW, "driver_name", "Driver name is required"))
        if not movement.vehicle_id:
            issues.append(ValidationIssue(BATCH_ROW, "vehicle_id", "Vehicle is required"))
        elif catalog.get_vehicle(movement.vehicle_id) is None:
            issues.append(ValidationIssue(BATCH_ROW, "vehicle_id", f"Unknown vehicle: {movement.vehicle_id}"))

    if not movement.lines:
        issues.append(ValidationIssue(BATCH_ROW, "lines", "At least one line is required"))

    seen_products: dict[str, int] = {}
    for number, line in enumerate(movement.lines, start=1):
        if line.product_id in seen_products:
            issues.append(ValidationIssue(
                number,
                "product_id",
                f"Duplicate product line (first on line {seen_products[line.product_id]})"
            ))
            continue
        seen_products[line.product_id] = number

        product = catalog.get_product(line.product_id)
        if product is None:
            issues.append(ValidationIssue(number, "product_id", f"Unknown product: {line.product_id}"))
            continue

        if line.quantity_sent <= 0:
            issues.append(ValidationIssue(number, "quantity_sent", "Quantity must be greater than 0"))
            continue

        serials = line.sent_serial_values
        if product.serialized:
            repeated = _duplicates(serials)
            if repeated:
                issues.append(ValidationIssue(
                    number,
                    "serial_numbers_sent",
                    f"Duplicate serial numbers: {', '.join(repeated)}"
                ))
            elif len(serials) != line.quantity_sent:
                issues.append(ValidationIssue(
                    number,
                    "serial_numbers_sent",
                    f"Expected {line.quantity_sent:g} serial numbers, found {len(serials)}"
                ))
        elif serials:
            issues.append(ValidationIssue(
                number,
                "serial_numbers_sent",
                "Serial numbers given for a non-serialized product"
            ))

    logger.info(
        "movement_validated",
        movement_type=movement.movement_type.value,
        lines=len(movement.lines),
        issue_count=len(issues)
    )

    return issues
