"""
Tabular ingestion models.

Spreadsheet cells arrive loosely typed. They are captured as a tagged
union (Cell) at ingest time and resolved explicitly during coercion.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union


class CellKind(str, Enum):
    """Tag for a spreadsheet cell value."""
    EMPTY = "EMPTY"
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"


@dataclass(frozen=True)
class Cell:
    """A single cell value with an explicit kind."""
    kind: CellKind
    value: Union[str, float, bool, None] = None

    @classmethod
    def empty(cls) -> "Cell":
        return cls(CellKind.EMPTY, None)

    @classmethod
    def text(cls, value: str) -> "Cell":
        stripped = value.strip()
        if not stripped:
            return cls.empty()
        return cls(CellKind.TEXT, stripped)

    @classmethod
    def number(cls, value: float) -> "Cell":
        return cls(CellKind.NUMBER, float(value))

    @classmethod
    def boolean(cls, value: bool) -> "Cell":
        return cls(CellKind.BOOLEAN, bool(value))

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    def as_text(self) -> Optional[str]:
        """
        Render the cell as text.

        Whole numbers drop the trailing ".0" so codes typed as numbers
        in a workbook (e.g. 102) come back as "102".
        """
        if self.kind == CellKind.EMPTY:
            return None
        if self.kind == CellKind.NUMBER:
            number = float(self.value)
            if number.is_integer():
                return str(int(number))
            return str(number)
        if self.kind == CellKind.BOOLEAN:
            return "TRUE" if self.value else "FALSE"
        return str(self.value)


@dataclass(frozen=True)
class RawRow:
    """
    One data row keyed by header label.

    index is the 1-based position among data rows (header excluded).
    """
    index: int
    cells: Mapping[str, Cell]

    def __post_init__(self):
        # Freeze the mapping; insertion order is sheet order
        object.__setattr__(self, "cells", MappingProxyType(dict(self.cells)))

    def get(self, header: str) -> Cell:
        return self.cells.get(header, Cell.empty())

    @property
    def headers(self) -> list[str]:
        return list(self.cells.keys())


@dataclass
class IngestHint:
    """Optional caller hints for ingestion."""
    sheet_name: Optional[str] = None
    delimiter: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class ValidationIssue:
    """
    Single business-rule violation.

    row is the 1-based data row; 0 marks a batch-level issue.
    """
    row: int
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "field": self.field, "message": self.message}


@dataclass
class IngestResult:
    """Result of decoding an uploaded file."""
    headers: list[str] = field(default_factory=list)
    rows: list[RawRow] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    container: str = "csv"
    sheet_name: Optional[str] = None
    delimiter: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class ColumnMapping:
    """Canonical field name -> raw header label."""
    fields: Mapping[str, str]

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def header_for(self, canonical: str) -> Optional[str]:
        return self.fields.get(canonical)

    def to_dict(self) -> dict[str, str]:
        return dict(self.fields)


@dataclass(frozen=True)
class MappedRow:
    """A RawRow projected onto canonical field names."""
    index: int
    values: Mapping[str, Cell]

    def get(self, canonical: str) -> Cell:
        return self.values.get(canonical, Cell.empty())
