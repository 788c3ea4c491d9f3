"""Unit tests for billing report export."""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from messledger.errors import ValidationError
from messledger.models.charge import Charge, ChargeCategory, ChargeLineItem
from messledger.services.date_range import DateRange
from messledger.services.export_service import (
    ExportFormat,
    export_rollup,
    export_statement,
    format_value,
    rollup_filename,
    statement_filename,
)
from messledger.services.ledger_service import MemberStatement
from messledger.services.member_service import MemberInfo
from messledger.services.rollup_service import MemberBalanceRow

pytestmark = pytest.mark.unit


@pytest.fixture
def rows():
    return [
        MemberBalanceRow(2, "O-1002", "Capt", "A. Perera", Decimal("100"), Decimal("250.5"), Decimal("0"), Decimal("350.5")),
        MemberBalanceRow(1, "O-1001", "Lt", "Silva, K.", Decimal("10.1"), Decimal("0"), Decimal("40"), Decimal("-29.9")),
    ]


@pytest.fixture
def statement():
    lunch = Charge(
        member_id=1,
        charge_date=date(2025, 1, 10),
        category=ChargeCategory.MESSING,
        total_cost=Decimal("450.00"),
        items=[ChargeLineItem(position=0, label="Lunch - Extra Chicken", unit_cost=Decimal("450.00"), quantity=1)],
    )
    arrack = Charge(
        member_id=1,
        charge_date=date(2025, 1, 12),
        category=ChargeCategory.BAR,
        total_cost=Decimal("300.00"),
        items=[ChargeLineItem(position=0, label="Old Arrack (shot)", unit_cost=Decimal("150.00"), quantity=2)],
    )
    return MemberStatement(
        member=MemberInfo(1, "O-1001", "Lt", "K. Silva"),
        date_range=DateRange(date(2025, 1, 1), date(2025, 1, 31)),
        charges=[arrack, lunch],
        total=Decimal("750.00"),
    )


class TestFormatValue:
    def test_decimal_always_two_places(self):
        assert format_value(Decimal("5")) == "5.00"
        assert format_value(Decimal("2.345")) == "2.35"
        assert format_value(Decimal("-29.9")) == "-29.90"

    def test_other_values(self):
        assert format_value(None) == ""
        assert format_value(date(2025, 1, 2)) == "2025-01-02"
        assert format_value("Lt") == "Lt"


class TestRollupCsv:
    def test_header_and_rows_in_given_order(self, rows):
        content = export_rollup(rows, ExportFormat.CSV)

        parsed = list(csv.reader(io.StringIO(content)))
        assert parsed[0] == ["Member No", "Rank", "Name", "Mess Bill", "Bar Bill", "Paid", "Outstanding"]
        assert parsed[1] == ["O-1002", "Capt", "A. Perera", "100.00", "250.50", "0.00", "350.50"]
        assert parsed[2] == ["O-1001", "Lt", "Silva, K.", "10.10", "0.00", "40.00", "-29.90"]
        assert len(parsed) == 3

    def test_empty_roster_is_header_only(self):
        content = export_rollup([], ExportFormat.CSV)

        assert content == "Member No,Rank,Name,Mess Bill,Bar Bill,Paid,Outstanding\n"

    def test_unsupported_format(self, rows):
        with pytest.raises(ValidationError, match="Unsupported export format"):
            export_rollup(rows, "pdf")


class TestRollupExcel:
    def test_workbook_layout(self, rows):
        content = export_rollup(rows, ExportFormat.EXCEL)

        sheet = load_workbook(io.BytesIO(content)).active
        assert sheet.title == "Billing Summary"
        assert sheet.cell(row=1, column=1).value == "Member No"
        assert sheet.cell(row=2, column=3).value == "A. Perera"
        assert sheet.cell(row=2, column=7).value == 350.5
        assert sheet.cell(row=2, column=7).number_format == "0.00"
        assert sheet.max_row == 3

    def test_currency_labels_money_cells(self, rows):
        content = export_rollup(rows, ExportFormat.EXCEL, currency="LKR")

        sheet = load_workbook(io.BytesIO(content)).active
        assert sheet.cell(row=2, column=4).number_format == '#,##0.00 "LKR"'
        assert sheet.cell(row=2, column=4).value == 100

    def test_currency_does_not_touch_csv(self, rows):
        assert export_rollup(rows, ExportFormat.CSV, currency="LKR") == export_rollup(rows, ExportFormat.CSV)


class TestStatementExport:
    def test_csv_lines(self, statement):
        content = export_statement(statement, ExportFormat.CSV)

        parsed = list(csv.reader(io.StringIO(content)))
        assert parsed[0] == ["Date", "Description", "Category", "Cost"]
        assert parsed[1] == ["2025-01-12", "Old Arrack (shot) (x2)", "Bar", "300.00"]
        assert parsed[2] == ["2025-01-10", "Lunch - Extra Chicken", "Messing", "450.00"]


class TestFilenames:
    def test_rollup_filename_includes_date(self):
        assert rollup_filename(date(2025, 1, 31)) == "mess_billing_summary_2025-01-31.csv"
        assert rollup_filename(date(2025, 1, 31), ExportFormat.EXCEL) == "mess_billing_summary_2025-01-31.xlsx"

    def test_statement_filename(self, statement):
        assert statement_filename(statement) == "history_O-1001_2025-01-01_to_2025-01-31.csv"

    def test_statement_filename_open_range(self, statement):
        open_ended = statement._replace(date_range=None)

        assert statement_filename(open_ended) == "history_O-1001_start_to_end.csv"
