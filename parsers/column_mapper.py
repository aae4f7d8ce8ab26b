"""
Column mapping from spreadsheet headers to canonical fields.

Two paths:
    - resolve_mapping: automatic alias resolution for fixed import schemas
      (products, warehouses, vehicles)
    - bind_columns: explicit operator binding for movement uploads, where the
      serial/batch/container/BL columns have no predictable names

Both raise MappingError listing every problem at once.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional
import unicodedata

import structlog

from exceptions import MappingError
from models.ingest import ColumnMapping, MappedRow, RawRow

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AliasTable:
    """
    Accepted header aliases per canonical field.

    Aliases are tried in order; the first one found in the headers wins.
    """
    name: str
    aliases: Mapping[str, tuple[str, ...]]
    required: frozenset[str]

    @property
    def fields(self) -> list[str]:
        return list(self.aliases.keys())


PRODUCT_ALIASES = AliasTable(
    name="product",
    aliases={
        "code": ("code", "product code", "item code", "sku"),
        "name": ("name", "product name", "item name", "description"),
        "barcode": ("barcode", "bar code", "ean", "upc"),
        "serialized": ("serialized", "serialised", "is serialized", "serial tracked"),
        "quantity": ("quantity", "qty", "count"),
        "serial_numbers": ("serial numbers", "serial number", "serials", "serial no", "sn"),
    },
    required=frozenset({"code", "name", "barcode"}),
)

WAREHOUSE_ALIASES = AliasTable(
    name="warehouse",
    aliases={
        "code": ("code", "warehouse code"),
        "name": ("name", "warehouse name", "warehouse"),
        "location": ("location", "address", "city"),
    },
    required=frozenset({"code", "name"}),
)

VEHICLE_ALIASES = AliasTable(
    name="vehicle",
    aliases={
        "plate_number": ("plate number", "plate", "registration", "registration number", "number plate"),
        "description": ("description", "model", "vehicle"),
    },
    required=frozenset({"plate_number"}),
)

ALIAS_TABLES = {
    table.name: table
    for table in (PRODUCT_ALIASES, WAREHOUSE_ALIASES, VEHICLE_ALIASES)
}


# Movement upload roles, bound by the operator
SERIAL_NUMBER = "serial_number"
BATCH_NUMBER = "batch_number"
CONTAINER_NUMBER = "container_number"
BL_NUMBER = "bl_number"

MOVEMENT_REQUIRED_ROLES = frozenset({SERIAL_NUMBER})


def resolve_mapping(headers: list[str], alias_table: AliasTable) -> ColumnMapping:
    """
    Map headers to canonical fields using the alias table.

    Matching is case-insensitive and ignores accents, surrounding spaces,
    underscores and hyphens. A header claimed by one field is never reused
    by another. The same headers always produce the same mapping.

    Raises:
        MappingError: Listing every required field that found no header
    """
    normalized = [(header, _normalize_header(header)) for header in headers]
    claimed: set[str] = set()
    fields: dict[str, str] = {}

    for canonical, aliases in alias_table.aliases.items():
        for alias in aliases:
            wanted = _normalize_header(alias)
            match = next(
                (h for h, norm in normalized if norm == wanted and h not in claimed),
                None
            )
            if match is not None:
                fields[canonical] = match
                claimed.add(match)
                break

    unresolved = [f for f in alias_table.fields if f in alias_table.required and f not in fields]
    if unresolved:
        logger.warning(
            "column_mapping_unresolved",
            table=alias_table.name,
            unresolved=unresolved,
            headers=headers
        )
        raise MappingError(unresolved=unresolved, available=headers)

    logger.debug("column_mapping_resolved", table=alias_table.name, mapping=fields)
    return ColumnMapping(fields)


def bind_columns(
    headers: list[str],
    binding: Mapping[str, Optional[str]],
    required: Iterable[str] = MOVEMENT_REQUIRED_ROLES,
) -> ColumnMapping:
    """
    Validate an explicit role -> header binding.

    Blank bindings count as unbound. A bound header must exist in the file
    (exact label, or a unique case-insensitive match). No header may be
    claimed by two roles.

    Raises:
        MappingError: Listing every unresolved and every ambiguous role
    """
    unresolved: list[str] = []
    ambiguous: dict[str, list[str]] = {}
    fields: dict[str, str] = {}

    for role, header in binding.items():
        if header is None or not str(header).strip():
            continue
        resolved = _find_header(headers, str(header))
        if resolved is None:
            unresolved.append(role)
        elif isinstance(resolved, list):
            ambiguous[role] = resolved
        else:
            fields[role] = resolved

    for role in sorted(set(required)):
        if role not in fields and role not in unresolved and role not in ambiguous:
            unresolved.append(role)

    # One header, one role
    owners: dict[str, list[str]] = {}
    for role, header in fields.items():
        owners.setdefault(header, []).append(role)
    for header, roles in owners.items():
        if len(roles) > 1:
            for role in roles:
                ambiguous[role] = [header]
                fields.pop(role)

    if unresolved or ambiguous:
        logger.warning(
            "column_binding_invalid",
            unresolved=unresolved,
            ambiguous=ambiguous,
            headers=headers
        )
        raise MappingError(unresolved=unresolved, ambiguous=ambiguous, available=headers)

    return ColumnMapping(fields)


def apply_mapping(row: RawRow, mapping: ColumnMapping) -> MappedRow:
    """Project a RawRow onto canonical field names."""
    return MappedRow(
        index=row.index,
        values={canonical: row.get(header) for canonical, header in mapping.fields.items()}
    )


# ===================
# HELPER FUNCTIONS
# ===================

def _normalize_header(header: str) -> str:
    """
    Normalize a header for comparison.

    "Serial_Number " -> "serial number"
    "Código" -> "codigo"
    """
    text = unicodedata.normalize("NFKD", str(header))
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.lower().replace("_", " ").replace("-", " ")
    return " ".join(text.split())


def _find_header(headers: list[str], wanted: str):
    """Exact label first, then a case-insensitive match. Returns a list when several match."""
    if wanted in headers:
        return wanted
    norm = _normalize_header(wanted)
    matches = [h for h in headers if _normalize_header(h) == norm]
    if not matches:
        return None
    if len(matches) > 1:
        return matches
    return matches[0]
