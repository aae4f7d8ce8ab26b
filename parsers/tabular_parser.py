"""
Tabular ingestion for CSV and spreadsheet uploads.

Decodes an uploaded byte buffer into header labels and RawRows. The header
row is the first non-empty row; every later non-empty row becomes a RawRow
keyed by header label. Rows whose column count does not match the header
are reported as row-level issues and skipped, the rest of the file still
ingests.

Pure transform over the buffer; nothing is persisted.
"""

import csv
import re
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Any, Optional

import numpy as np
import pandas as pd
import structlog

from exceptions import IngestError
from models.ingest import Cell, IngestHint, IngestResult, RawRow, ValidationIssue

logger = structlog.get_logger(__name__)


XLSX_SIGNATURE = b"PK\x03\x04"
XLS_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# latin-1 decodes any byte sequence, so it must stay last
CSV_ENCODINGS = ["utf-8-sig", "cp1252", "latin-1"]
CSV_DELIMITERS = [",", ";", "\t"]

# Control characters never found in CSV text (tab, CR and LF are allowed)
BINARY_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def ingest(content: bytes, hint: Optional[IngestHint] = None) -> IngestResult:
    """
    Decode an uploaded file into RawRows.

    Args:
        content: Raw file bytes
        hint: Optional sheet name / delimiter / filename

    Returns:
        IngestResult with headers, rows and row-level issues

    Raises:
        IngestError: If the bytes are not a supported container,
                     the requested sheet does not exist, or the
                     header row is empty
    """
    hint = hint or IngestHint()

    if not content:
        raise IngestError("File is empty")

    container = _detect_container(content)
    logger.info(
        "ingesting_file",
        container=container,
        size_bytes=len(content),
        filename=hint.filename,
        sheet_hint=hint.sheet_name
    )

    if container == "csv":
        text = _decode_text(content)
        delimiter = hint.delimiter or _detect_delimiter(text)
        grid = _read_csv_grid(text, delimiter)
        result = _grid_to_result(grid)
        result.container = "csv"
        result.delimiter = delimiter
    else:
        sheet_name, grid = _read_workbook_grid(content, container, hint.sheet_name)
        result = _grid_to_result(grid)
        result.container = container
        result.sheet_name = sheet_name

    logger.info(
        "file_ingested",
        container=result.container,
        sheet=result.sheet_name,
        delimiter=result.delimiter,
        headers=len(result.headers),
        rows=result.row_count,
        issue_count=len(result.issues)
    )

    return result


def read_headers(content: bytes, hint: Optional[IngestHint] = None) -> list[str]:
    """Return only the header labels of an upload."""
    return ingest(content, hint).headers


# ===================
# CONTAINER HANDLING
# ===================

def _detect_container(content: bytes) -> str:
    """Identify the container from its byte signature."""
    if content.startswith(XLSX_SIGNATURE):
        return "xlsx"
    if content.startswith(XLS_SIGNATURE):
        return "xls"
    if b"\x00" in content:
        raise IngestError(
            message="Unsupported file format (expected CSV, XLSX or XLS)",
            details={"signature": content[:8].hex()}
        )
    return "csv"


def _decode_text(content: bytes) -> str:
    """Decode CSV bytes, trying UTF-8 first and Windows/Latin encodings after."""
    for encoding in CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
        except UnicodeDecodeError:
            continue
        if BINARY_CHARS.search(text):
            raise IngestError(
                message="Unsupported file format (expected CSV, XLSX or XLS)",
                details={"signature": content[:8].hex()}
            )
        logger.debug("csv_decoded", encoding=encoding)
        return text

    # Unreachable while latin-1 is in the list
    raise IngestError("Could not decode CSV text")


def _detect_delimiter(text: str) -> str:
    """Pick the candidate delimiter that splits the first non-empty line the most."""
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    counts = {sep: first_line.count(sep) for sep in CSV_DELIMITERS}
    best = max(CSV_DELIMITERS, key=lambda sep: counts[sep])
    return best if counts[best] > 0 else ","


def _read_csv_grid(text: str, delimiter: str) -> list[list[Cell]]:
    """Tokenize CSV text into rows of TEXT cells, keeping ragged rows as-is."""
    try:
        reader = csv.reader(StringIO(text, newline=""), delimiter=delimiter)
        return [[Cell.text(value) for value in row] for row in reader]
    except csv.Error as e:
        logger.error("csv_read_failed", error=str(e))
        raise IngestError(
            message="Failed to read CSV file",
            details={"original_error": str(e)}
        )


def _read_workbook_grid(
    content: bytes,
    container: str,
    sheet_name: Optional[str]
) -> tuple[str, list[list[Cell]]]:
    """Read one sheet of a workbook as a grid of tagged cells."""
    engine = "openpyxl" if container == "xlsx" else "xlrd"

    try:
        excel = pd.ExcelFile(BytesIO(content), engine=engine)
    except Exception as e:
        logger.error("workbook_read_failed", engine=engine, error=str(e))
        raise IngestError(
            message="Failed to read workbook",
            details={"original_error": str(e), "container": container}
        )

    if not excel.sheet_names:
        raise IngestError("Workbook has no sheets")

    sheet = sheet_name or excel.sheet_names[0]
    if sheet not in excel.sheet_names:
        raise IngestError(
            message=f"Sheet not found: {sheet}",
            details={"requested": sheet, "available": list(excel.sheet_names)}
        )

    try:
        df = excel.parse(sheet, header=None, dtype=object)
    except Exception as e:
        logger.error("sheet_read_failed", sheet=sheet, error=str(e))
        raise IngestError(
            message=f"Failed to read sheet: {sheet}",
            details={"original_error": str(e)}
        )

    grid = [
        [to_cell(value) for value in row]
        for row in df.itertuples(index=False, name=None)
    ]
    return sheet, grid


# ===================
# GRID -> ROWS
# ===================

def _grid_to_result(grid: list[list[Cell]]) -> IngestResult:
    """Find the header row and turn every later non-empty row into a RawRow."""
    header_pos = next(
        (i for i, row in enumerate(grid) if not _is_blank(row)),
        None
    )
    if header_pos is None:
        raise IngestError("Header row is empty")

    headers = _header_labels(grid[header_pos])
    if not headers:
        raise IngestError("Header row is empty")

    width = len(headers)
    result = IngestResult(headers=headers)
    index = 0

    for row in grid[header_pos + 1:]:
        if _is_blank(row):
            continue
        index += 1

        # Trailing blank cells beyond the header are formatting noise
        extra = row[width:]
        if len(row) < width or any(not cell.is_empty for cell in extra):
            result.issues.append(ValidationIssue(
                row=index,
                field="row",
                message=f"Expected {width} columns, found {_used_width(row)}"
            ))
            continue

        result.rows.append(RawRow(
            index=index,
            cells={label: row[pos] for pos, label in enumerate(headers)}
        ))

    return result


def _header_labels(row: list[Cell]) -> list[str]:
    """
    Build unique header labels.

    Trailing empty cells are dropped. Interior blanks become "Unnamed: N"
    and repeated labels get ".1", ".2" suffixes, as pandas names them.
    """
    labels = [cell.as_text() or "" for cell in row]
    while labels and not labels[-1]:
        labels.pop()

    seen: dict[str, int] = {}
    unique = []
    for pos, label in enumerate(labels):
        label = label or f"Unnamed: {pos}"
        if label in seen:
            seen[label] += 1
            label = f"{label}.{seen[label]}"
        else:
            seen[label] = 0
        unique.append(label)
    return unique


def _is_blank(row: list[Cell]) -> bool:
    return all(cell.is_empty for cell in row)


def _used_width(row: list[Cell]) -> int:
    """Column count ignoring trailing blanks."""
    width = len(row)
    while width and row[width - 1].is_empty:
        width -= 1
    return width


def to_cell(value: Any) -> Cell:
    """
    Tag a value read by pandas.

    Native booleans keep their kind, ints and floats become NUMBER,
    NaN/None/blank become EMPTY, dates render as ISO text and
    everything else is TEXT.
    """
    if isinstance(value, np.generic):
        value = value.item()
    if value is None:
        return Cell.empty()
    if isinstance(value, bool):
        return Cell.boolean(value)
    if isinstance(value, (int, float)):
        if pd.isna(value):
            return Cell.empty()
        return Cell.number(value)
    if isinstance(value, (datetime, date)):
        if pd.isna(value):
            return Cell.empty()
        return Cell.text(value.isoformat())
    if pd.isna(value):
        return Cell.empty()
    return Cell.text(str(value))
