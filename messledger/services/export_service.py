"""
Export utilities for billing reports.
Supports CSV (.csv) and Excel (.xlsx) formats.
"""
import csv
import io
from datetime import date
from decimal import Decimal
from typing import Any, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from messledger.errors import ValidationError
from messledger.services.ledger_service import MemberStatement
from messledger.services.parsers import quantize_money
from messledger.services.rollup_service import MemberBalanceRow


class ExportFormat:
    CSV = 'csv'
    EXCEL = 'xlsx'

    CHOICES = [CSV, EXCEL]
    CONTENT_TYPES = {
        CSV: 'text/csv',
        EXCEL: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    }


MONEY_FORMAT = '0.00'


def money_format(currency: str | None = None) -> str:
    """Excel display format for money cells, e.g. #,##0.00 "LKR"."""
    if not currency:
        return MONEY_FORMAT
    return f'#,##0.00 "{currency}"'


ROLLUP_COLUMNS = [
    {'key': 'member_no', 'header': 'Member No', 'width': 14},
    {'key': 'rank', 'header': 'Rank', 'width': 10},
    {'key': 'name', 'header': 'Name', 'width': 28},
    {'key': 'messing_total', 'header': 'Mess Bill', 'numeric': True},
    {'key': 'bar_total', 'header': 'Bar Bill', 'numeric': True},
    {'key': 'paid_total', 'header': 'Paid', 'numeric': True},
    {'key': 'outstanding', 'header': 'Outstanding', 'numeric': True},
]

STATEMENT_COLUMNS = [
    {'key': 'date', 'header': 'Date', 'width': 12},
    {'key': 'description', 'header': 'Description', 'width': 40},
    {'key': 'category', 'header': 'Category', 'width': 10},
    {'key': 'cost', 'header': 'Cost', 'numeric': True},
]


def format_value(value: Any) -> str:
    """Format a value for export; money always carries exactly 2 decimals."""
    if value is None:
        return ''
    if isinstance(value, Decimal):
        return f"{quantize_money(value):.2f}"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    return str(value)


def rollup_filename(report_date: date, fmt: str = ExportFormat.CSV) -> str:
    """Download name for the billing summary, e.g. mess_billing_summary_2025-01-31.csv."""
    return f"mess_billing_summary_{report_date.isoformat()}.{fmt}"


def statement_filename(statement: MemberStatement, fmt: str = ExportFormat.CSV) -> str:
    """Download name for a member statement, e.g. history_2025-01-01_to_2025-01-31.csv."""
    date_range = statement.date_range
    start = date_range.start.isoformat() if date_range and date_range.start else 'start'
    end = date_range.end.isoformat() if date_range and date_range.end else 'end'
    return f"history_{statement.member.member_no}_{start}_to_{end}.{fmt}"


def rollup_records(rows: Sequence[MemberBalanceRow]) -> list[dict]:
    return [row._asdict() for row in rows]


def statement_records(statement: MemberStatement) -> list[dict]:
    return [
        {
            'date': charge.charge_date,
            'description': charge.description,
            'category': charge.category.value.capitalize(),
            'cost': charge.total_cost,
        }
        for charge in statement.charges
    ]


def export_to_csv(data: list[dict], columns: list[dict], delimiter: str = ',') -> str:
    """
    Export data to CSV format.

    Args:
        data: List of dictionaries containing the data
        columns: List of column definitions with 'key' and 'header'
        delimiter: CSV delimiter character

    Returns:
        CSV string
    """
    output = io.StringIO()
    writer = csv.writer(output, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')

    writer.writerow([col['header'] for col in columns])
    for row_data in data:
        writer.writerow([format_value(row_data.get(col['key'], '')) for col in columns])

    return output.getvalue()


def export_to_excel(
    data: list[dict],
    columns: list[dict],
    sheet_name: str = 'Data',
    number_format: str = MONEY_FORMAT,
) -> bytes:
    """
    Export data to Excel format.

    Header on the first row so the sheet imports as a plain table; numeric
    columns are written as numbers with the given display format.

    Returns:
        Bytes of the Excel file
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color='FFFFFF')
    header_fill = PatternFill(start_color='4B5320', end_color='4B5320', fill_type='solid')

    for col_idx, col in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=col['header'])
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center')
        ws.column_dimensions[get_column_letter(col_idx)].width = col.get('width', 14)

    for row_idx, row_data in enumerate(data, 2):
        for col_idx, col in enumerate(columns, 1):
            value = row_data.get(col['key'], '')
            if col.get('numeric'):
                cell = ws.cell(row=row_idx, column=col_idx, value=quantize_money(value))
                cell.number_format = number_format
                cell.alignment = Alignment(horizontal='right')
            else:
                ws.cell(row=row_idx, column=col_idx, value=format_value(value))

    ws.freeze_panes = ws.cell(row=2, column=1)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_rollup(
    rows: Sequence[MemberBalanceRow],
    fmt: str = ExportFormat.CSV,
    currency: str | None = None,
) -> str | bytes:
    """Encode an already sorted/filtered roster; rows are written in the given order.

    The currency only labels XLSX money cells; CSV numbers stay bare.
    """
    if fmt == ExportFormat.CSV:
        return export_to_csv(rollup_records(rows), ROLLUP_COLUMNS)
    if fmt == ExportFormat.EXCEL:
        return export_to_excel(
            rollup_records(rows), ROLLUP_COLUMNS, sheet_name='Billing Summary', number_format=money_format(currency)
        )
    raise ValidationError(f"Unsupported export format '{fmt}'")


def export_statement(
    statement: MemberStatement,
    fmt: str = ExportFormat.CSV,
    currency: str | None = None,
) -> str | bytes:
    """Encode a member's purchase history."""
    if fmt == ExportFormat.CSV:
        return export_to_csv(statement_records(statement), STATEMENT_COLUMNS)
    if fmt == ExportFormat.EXCEL:
        return export_to_excel(
            statement_records(statement), STATEMENT_COLUMNS, sheet_name='History', number_format=money_format(currency)
        )
    raise ValidationError(f"Unsupported export format '{fmt}'")
