"""
Tabular file parsers and column mapping.
"""

from parsers.tabular_parser import ingest, read_headers
from parsers.column_mapper import (
    AliasTable,
    ALIAS_TABLES,
    resolve_mapping,
    bind_columns,
    apply_mapping,
)
from parsers.import_template import IMPORT_TEMPLATES, build_import_template, template_for

__all__ = [
    "ingest",
    "read_headers",
    "AliasTable",
    "ALIAS_TABLES",
    "resolve_mapping",
    "bind_columns",
    "apply_mapping",
    "IMPORT_TEMPLATES",
    "build_import_template",
    "template_for",
]
