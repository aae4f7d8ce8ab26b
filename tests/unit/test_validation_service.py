"""
Unit tests for import and movement validation.

Run: pytest tests/unit/test_validation_service.py -v
"""

import pytest

from models.ingest import Cell, MappedRow
from models.movement import SerialNumber
from services.validation_service import (
    coerce_bool,
    coerce_quantity,
    parse_serial_numbers,
    policy_for,
    validate,
    validate_file_size,
    validate_movement,
)
from tests.factories import MovementFactory, MovementLineFactory


def product_row(index: int, code="A1", name="Widget", barcode="123", **extra) -> MappedRow:
    values = {
        "code": Cell.text(code) if code is not None else Cell.empty(),
        "name": Cell.text(name) if name is not None else Cell.empty(),
        "barcode": Cell.text(barcode) if barcode is not None else Cell.empty(),
    }
    values.update(extra)
    return MappedRow(index=index, values=values)


class TestCoerceBool:
    """Tests for coerce_bool()"""

    @pytest.mark.parametrize("value", ["Yes", "yes", "TRUE", "true", 1, True])
    def test_truthy_values(self, value):
        assert coerce_bool(value) is True

    @pytest.mark.parametrize("value", ["No", "no", "FALSE", "false", 0, False, "garbage"])
    def test_falsy_values(self, value):
        assert coerce_bool(value) is False

    def test_cells(self):
        assert coerce_bool(Cell.text("Y")) is True
        assert coerce_bool(Cell.number(1)) is True
        assert coerce_bool(Cell.boolean(True)) is True
        assert coerce_bool(Cell.number(2)) is False
        assert coerce_bool(Cell.empty()) is False


class TestCoerceQuantity:
    """Tests for coerce_quantity()"""

    def test_number_cell(self):
        assert coerce_quantity(Cell.number(4)) == (4.0, None)

    def test_text_cell(self):
        assert coerce_quantity(Cell.text("2.5")) == (2.5, None)

    def test_empty_cell(self):
        assert coerce_quantity(Cell.empty()) == (None, None)

    def test_negative_is_an_issue_not_a_clamp(self):
        assert coerce_quantity(Cell.text("-3")) == (None, "Must be a non-negative number")

    def test_non_numeric(self):
        assert coerce_quantity(Cell.text("lots")) == (None, "Must be a number")


class TestParseSerialNumbers:
    def test_splits_on_common_separators(self):
        assert parse_serial_numbers(Cell.text("SN1, SN2;SN3|SN4")) == ["SN1", "SN2", "SN3", "SN4"]

    def test_empty_cell(self):
        assert parse_serial_numbers(Cell.empty()) == []


class TestValidateImport:
    """Tests for validate()"""

    def test_valid_rows_become_records(self):
        rows = [
            product_row(1, "A1", serialized=Cell.text("Yes")),
            product_row(2, "A2", serialized=Cell.text("maybe")),
        ]

        result = validate(rows, policy_for("product"))

        assert result.issues == []
        assert result.submittable is True
        assert [r.code for r in result.records] == ["A1", "A2"]
        assert result.records[0].serialized is True
        assert result.records[1].serialized is False

    def test_n_violations_give_n_issues(self):
        rows = [
            product_row(1, code=None),
            product_row(2, "A2", name=None),
            product_row(3, "A3", barcode=None),
            product_row(4, "A4"),
        ]

        result = validate(rows, policy_for("product"))

        assert len(result.issues) == 3
        assert [(i.row, i.field) for i in result.issues] == [(1, "code"), (2, "name"), (3, "barcode")]
        assert len(result.records) == 1
        assert result.submittable is False

    def test_row_with_several_missing_fields_reports_each(self):
        result = validate([product_row(1, code=None, name=None)], policy_for("product"))

        assert {i.field for i in result.issues} == {"code", "name"}

    def test_missing_field_does_not_hide_other_row_problems(self):
        row = product_row(1, code=None, quantity=Cell.text("-4"), serial_numbers=Cell.text("A,A"))

        result = validate([row], policy_for("product"))

        assert [i.field for i in result.issues] == ["code", "quantity", "serial_numbers"]
        assert result.records == []

    def test_too_many_rows_is_batch_issue(self):
        rows = [product_row(i, f"A{i}") for i in range(1, 502)]

        result = validate(rows, policy_for("product"))

        assert result.submittable is False
        assert len(result.issues) == 1
        assert result.issues[0].row == 0
        assert result.issues[0].message == "Too many rows: 501 (maximum 500)"

    def test_no_rows_is_batch_issue(self):
        result = validate([], policy_for("warehouse"))

        assert result.submittable is False
        assert result.issues[0].message == "File contains no data rows"

    def test_duplicate_codes(self):
        rows = [product_row(1, "A1"), product_row(2, "B2"), product_row(3, "A1")]

        result = validate(rows, policy_for("product"))

        assert len(result.issues) == 1
        assert result.issues[0].row == 3
        assert result.issues[0].message == "Duplicate value 'A1' (first seen on row 1)"

    def test_duplicate_codes_ignore_case(self):
        rows = [
            MappedRow(1, {"code": Cell.text("main"), "name": Cell.text("Main")}),
            MappedRow(2, {"code": Cell.text("MAIN"), "name": Cell.text("Main 2")}),
        ]

        result = validate(rows, policy_for("warehouse"))

        assert [i.row for i in result.issues] == [2]

    def test_bad_quantity_is_field_issue(self):
        result = validate([product_row(1, quantity=Cell.text("-1"))], policy_for("product"))

        assert result.issues[0].field == "quantity"
        assert result.issues[0].message == "Must be a non-negative number"

    def test_duplicate_serials_within_record(self):
        row = product_row(1, serial_numbers=Cell.text("SN1,SN2,SN1"))

        result = validate([row], policy_for("product"))

        assert result.issues[0].field == "serial_numbers"
        assert "SN1" in result.issues[0].message

    def test_vehicle_plate_is_normalized(self):
        rows = [MappedRow(1, {"plate_number": Cell.text("abc 123")})]

        result = validate(rows, policy_for("vehicle"))

        assert result.records[0].plate_number == "ABC123"

    def test_numeric_code_renders_as_text(self):
        row = MappedRow(1, {
            "code": Cell.number(102),
            "name": Cell.text("Widget"),
            "barcode": Cell.number(7701234),
        })

        result = validate([row], policy_for("product"))

        assert result.records[0].code == "102"
        assert result.records[0].barcode == "7701234"

    def test_unknown_import_type(self):
        with pytest.raises(ValueError):
            policy_for("customer")

    def test_custom_row_limit(self):
        rows = [product_row(i, f"A{i}") for i in range(1, 4)]

        result = validate(rows, policy_for("product", max_rows=2))

        assert result.issues[0].message == "Too many rows: 3 (maximum 2)"


class TestValidateFileSize:
    def test_within_limit(self):
        assert validate_file_size(100, max_bytes=1000) == []

    def test_over_limit(self):
        issues = validate_file_size(2000, max_bytes=1000)

        assert issues[0].field == "file"
        assert issues[0].row == 0


class TestValidateMovement:
    """Tests for validate_movement()"""

    def test_valid_transfer(self, catalog):
        movement = MovementFactory.transfer(lines=[MovementLineFactory.create("p-cable", 5)])

        assert validate_movement(movement, catalog) == []

    def test_valid_shipment_with_serials(self, catalog):
        movement = MovementFactory.shipment(lines=[MovementLineFactory.serialized(["SN1", "SN2"])])

        assert validate_movement(movement, catalog) == []

    def test_same_source_and_destination(self, catalog):
        movement = MovementFactory.transfer(destination_warehouse_id="w-main")

        issues = validate_movement(movement, catalog)

        assert [i.message for i in issues] == ["Source and destination warehouses cannot be the same"]

    def test_unknown_warehouse(self, catalog):
        movement = MovementFactory.transfer(source_warehouse_id="w-gone")

        issues = validate_movement(movement, catalog)

        assert issues[0].field == "source_warehouse_id"
        assert issues[0].message == "Unknown warehouse: w-gone"

    def test_shipment_needs_driver_and_vehicle(self, catalog):
        movement = MovementFactory.shipment(driver_name=None, vehicle_id="v-missing")

        issues = validate_movement(movement, catalog)

        assert {i.field for i in issues} == {"driver_name", "vehicle_id"}

    def test_transfer_does_not_need_vehicle(self, catalog):
        movement = MovementFactory.transfer(driver_name=None, vehicle_id=None)

        assert validate_movement(movement, catalog) == []

    def test_no_lines(self, catalog):
        issues = validate_movement(MovementFactory.transfer(lines=[]), catalog)

        assert issues[0].message == "At least one line is required"

    def test_every_line_problem_is_reported(self, catalog):
        movement = MovementFactory.transfer(lines=[
            MovementLineFactory.create("p-unknown", 1),
            MovementLineFactory.create("p-cable", 0),
            MovementLineFactory.create(
                "p-phone", 3,
                serial_numbers_sent=[SerialNumber(serial_number="SN1")],
            ),
            MovementLineFactory.create("p-cable", 2),
        ])

        issues = validate_movement(movement, catalog)

        assert [(i.row, i.field) for i in issues] == [
            (1, "product_id"),
            (2, "quantity_sent"),
            (3, "serial_numbers_sent"),
            (4, "product_id"),
        ]
        assert issues[2].message == "Expected 3 serial numbers, found 1"

    def test_duplicate_serials_on_line(self, catalog):
        line = MovementLineFactory.serialized(["SN1", "SN1"])

        issues = validate_movement(MovementFactory.transfer(lines=[line]), catalog)

        assert issues[0].message == "Duplicate serial numbers: SN1"

    def test_serials_on_non_serialized_product(self, catalog):
        line = MovementLineFactory.create(
            "p-cable", 1,
            serial_numbers_sent=[SerialNumber(serial_number="SN1")],
        )

        issues = validate_movement(MovementFactory.transfer(lines=[line]), catalog)

        assert issues[0].message == "Serial numbers given for a non-serialized product"
