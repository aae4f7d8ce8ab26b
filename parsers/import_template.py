"""
Downloadable import templates.

Each template is a single-sheet xlsx workbook with the canonical headers of
one import type and two sample rows. The headers resolve through the same
alias tables the importer uses, so a filled-in template imports unchanged.
"""

from dataclasses import dataclass
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font
import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ImportTemplate:
    sheet_title: str
    filename: str
    headers: tuple[str, ...]
    sample_rows: tuple[tuple[str, ...], ...]


IMPORT_TEMPLATES = {
    "product": ImportTemplate(
        sheet_title="Products",
        filename="product_template.xlsx",
        headers=("Code", "Name", "Barcode", "Serialized"),
        sample_rows=(
            ("SAMPLE001", "Sample Product 1", "123456789012", "No"),
            ("SAMPLE002", "Sample Product 2", "234567890123", "Yes"),
        ),
    ),
    "warehouse": ImportTemplate(
        sheet_title="Warehouses",
        filename="warehouse_template.xlsx",
        headers=("Code", "Name", "Location"),
        sample_rows=(
            ("MAIN", "Main Warehouse", "Bogota"),
            ("NORTH", "North Depot", "Medellin"),
        ),
    ),
    "vehicle": ImportTemplate(
        sheet_title="Vehicles",
        filename="vehicle_template.xlsx",
        headers=("Plate Number", "Description"),
        sample_rows=(
            ("ABC123", "Delivery van"),
            ("XYZ987", "Box truck"),
        ),
    ),
}


def template_for(import_type: str) -> ImportTemplate:
    try:
        return IMPORT_TEMPLATES[import_type]
    except KeyError:
        raise ValueError(f"Unknown import type: {import_type}")


def build_import_template(import_type: str) -> bytes:
    """
    Generate the xlsx template for an import type.

    Args:
        import_type: "product", "warehouse" or "vehicle"

    Returns:
        Workbook bytes

    Raises:
        ValueError: Unknown import type
    """
    template = template_for(import_type)

    wb = Workbook()
    ws = wb.active
    ws.title = template.sheet_title

    bold_font = Font(bold=True)

    ws.append(list(template.headers))
    for cell in ws[1]:
        cell.font = bold_font

    for row in template.sample_rows:
        ws.append(list(row))

    for column in ws.columns:
        width = max(len(str(cell.value)) for cell in column) + 4
        ws.column_dimensions[column[0].column_letter].width = width

    output = BytesIO()
    wb.save(output)

    logger.info(
        "import_template_generated",
        import_type=import_type,
        filename=template.filename,
        sample_rows=len(template.sample_rows)
    )

    return output.getvalue()
