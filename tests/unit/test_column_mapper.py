"""
Unit tests for column mapping and binding.

Run: pytest tests/unit/test_column_mapper.py -v
"""

import pytest

from models.ingest import Cell, RawRow
from parsers.column_mapper import (
    PRODUCT_ALIASES,
    VEHICLE_ALIASES,
    WAREHOUSE_ALIASES,
    SERIAL_NUMBER,
    BATCH_NUMBER,
    CONTAINER_NUMBER,
    apply_mapping,
    bind_columns,
    resolve_mapping,
)
from exceptions import MappingError


class TestResolveMapping:
    """Tests for resolve_mapping()"""

    def test_maps_exact_headers(self):
        mapping = resolve_mapping(["code", "name", "barcode"], PRODUCT_ALIASES)

        assert mapping.to_dict() == {"code": "code", "name": "name", "barcode": "barcode"}

    def test_matching_ignores_case_spacing_and_accents(self):
        headers = [" Product_Code ", "ITEM-NAME", "Bar Code", "Serialised"]

        mapping = resolve_mapping(headers, PRODUCT_ALIASES)

        assert mapping.header_for("code") == " Product_Code "
        assert mapping.header_for("name") == "ITEM-NAME"
        assert mapping.header_for("barcode") == "Bar Code"
        assert mapping.header_for("serialized") == "Serialised"

    def test_first_alias_wins(self):
        mapping = resolve_mapping(["SKU", "Code", "Name", "EAN"], PRODUCT_ALIASES)

        assert mapping.header_for("code") == "Code"

    def test_falls_back_to_later_alias(self):
        mapping = resolve_mapping(["Code", "Description", "Barcode"], PRODUCT_ALIASES)

        assert mapping.header_for("name") == "Description"
        assert len(set(mapping.fields.values())) == len(mapping.fields)

    def test_is_deterministic(self):
        headers = ["Qty", "Barcode", "Name", "Code", "Serial Numbers"]

        first = resolve_mapping(headers, PRODUCT_ALIASES)
        second = resolve_mapping(list(headers), PRODUCT_ALIASES)

        assert first == second

    def test_lists_every_unresolved_required_field(self):
        with pytest.raises(MappingError) as exc:
            resolve_mapping(["Quantity", "Notes"], PRODUCT_ALIASES)

        assert sorted(exc.value.unresolved) == ["barcode", "code", "name"]
        assert exc.value.details["available_headers"] == ["Quantity", "Notes"]
        assert exc.value.code == "COLUMN_MAPPING_FAILED"

    def test_optional_fields_may_be_missing(self):
        mapping = resolve_mapping(["Warehouse Code", "Warehouse Name"], WAREHOUSE_ALIASES)

        assert mapping.header_for("location") is None

    def test_vehicle_plate_aliases(self):
        mapping = resolve_mapping(["Registration", "Model"], VEHICLE_ALIASES)

        assert mapping.header_for("plate_number") == "Registration"
        assert mapping.header_for("description") == "Model"


class TestBindColumns:
    """Tests for bind_columns()"""

    HEADERS = ["Serial", "Lot", "Container No", "BL"]

    def test_explicit_binding(self):
        mapping = bind_columns(self.HEADERS, {
            SERIAL_NUMBER: "Serial",
            BATCH_NUMBER: "Lot",
            CONTAINER_NUMBER: None,
        })

        assert mapping.to_dict() == {SERIAL_NUMBER: "Serial", BATCH_NUMBER: "Lot"}

    def test_case_insensitive_binding(self):
        mapping = bind_columns(self.HEADERS, {SERIAL_NUMBER: "serial"})

        assert mapping.header_for(SERIAL_NUMBER) == "Serial"

    def test_missing_serial_role_is_unresolved(self):
        with pytest.raises(MappingError) as exc:
            bind_columns(self.HEADERS, {BATCH_NUMBER: "Lot", SERIAL_NUMBER: "  "})

        assert exc.value.unresolved == [SERIAL_NUMBER]

    def test_unknown_header_is_unresolved(self):
        with pytest.raises(MappingError) as exc:
            bind_columns(self.HEADERS, {SERIAL_NUMBER: "Serial", BATCH_NUMBER: "Batch"})

        assert exc.value.unresolved == [BATCH_NUMBER]

    def test_header_bound_to_two_roles_is_ambiguous(self):
        with pytest.raises(MappingError) as exc:
            bind_columns(self.HEADERS, {SERIAL_NUMBER: "Serial", BATCH_NUMBER: "Serial"})

        assert set(exc.value.ambiguous) == {SERIAL_NUMBER, BATCH_NUMBER}

    def test_several_case_insensitive_matches_are_ambiguous(self):
        with pytest.raises(MappingError) as exc:
            bind_columns(["serial ", "SERIAL"], {SERIAL_NUMBER: "Serial"})

        assert exc.value.ambiguous[SERIAL_NUMBER] == ["serial ", "SERIAL"]


class TestApplyMapping:
    def test_projects_row_onto_canonical_fields(self):
        row = RawRow(index=4, cells={"Item Code": Cell.text("A1"), "Other": Cell.text("x")})
        mapping = resolve_mapping(["Item Code", "Name", "EAN"], PRODUCT_ALIASES)

        mapped = apply_mapping(row, mapping)

        assert mapped.index == 4
        assert mapped.get("code") == Cell.text("A1")
        assert mapped.get("name").is_empty
        assert mapped.get("quantity").is_empty
