"""
Excel export/import helpers built on openpyxl.

Import is two-step: a validate pass classifies each row (valid, duplicate in
file, already in the database, invalid) and the import pass saves the valid
rows of the same classification.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from django.http import HttpResponse
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

NA_SET = {"", "-", "na", "n/a", "null", "none", "nil"}


class ExcelReadError(Exception):
    pass


def _norm_header(h: Any) -> str:
    s = ("" if h is None else str(h)).strip().lower()
    s = s.replace("\ufeff", "")
    return re.sub(r"[\s_.]+", "", s)


def safe_text(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    s = str(v).strip()
    if s.lower() in NA_SET:
        return None
    return s


def parse_date(v: Any) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    s = str(v).strip()
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{v}'")


def build_workbook(headers: List[str], rows: List[List[Any]], sheet_name: str = "Sheet1") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    ws.append(headers)
    header_fill = PatternFill(start_color="F3F4F6", end_color="F3F4F6", fill_type="solid")
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.fill = header_fill

    for row in rows:
        ws.append(["" if value is None else value for value in row])

    for col in range(1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 20

    if rows:
        ws.auto_filter.ref = f"A1:{get_column_letter(len(headers))}{len(rows) + 1}"

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def excel_response(content: bytes, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


@dataclass
class SheetData:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0


def read_sheet(upload, columns: Dict[str, str]) -> SheetData:
    """
    Read the first worksheet of an uploaded xlsx.

    `columns` maps normalized header text (lowercase, no spaces/underscores)
    to the field name each row dict should use. Unknown headers are ignored
    and fully blank rows are skipped. Each row carries its sheet row number
    under the `_row` key.
    """
    try:
        wb = load_workbook(upload, read_only=True, data_only=True)
    except Exception as e:
        raise ExcelReadError(f"Could not read Excel file: {e}") from e

    ws = wb.worksheets[0] if wb.worksheets else None
    if ws is None:
        return SheetData()

    rows_iter = ws.iter_rows(values_only=True)
    try:
        header_row = next(rows_iter)
    except StopIteration:
        return SheetData()

    column_map = {}
    for index, header in enumerate(header_row):
        key = columns.get(_norm_header(header))
        if key:
            column_map[index] = key

    result = SheetData()
    for offset, values in enumerate(rows_iter, start=2):
        record = {}
        has_data = False
        for index, key in column_map.items():
            value = values[index] if index < len(values) else None
            if value not in (None, ""):
                has_data = True
            record[key] = value
        if not has_data:
            continue
        record['_row'] = offset
        result.rows.append(record)
    result.total_rows = len(result.rows)
    wb.close()
    return result


@dataclass
class RowEntry:
    row: int
    data: Dict[str, Any]
    message: Optional[str] = None

    def as_dict(self):
        return {
            'row': self.row,
            'data': {k: _jsonable(v) for k, v in self.data.items() if not k.startswith('_')},
            'message': self.message,
        }


def _jsonable(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass
class ImportValidation:
    total_rows: int = 0
    valid: List[RowEntry] = field(default_factory=list)
    duplicates: List[RowEntry] = field(default_factory=list)
    already_exists: List[RowEntry] = field(default_factory=list)
    invalid: List[RowEntry] = field(default_factory=list)

    def as_dict(self):
        return {
            'total_rows': self.total_rows,
            'valid': [e.as_dict() for e in self.valid],
            'duplicates': [e.as_dict() for e in self.duplicates],
            'already_exists': [e.as_dict() for e in self.already_exists],
            'invalid': [e.as_dict() for e in self.invalid],
        }

    def errors(self):
        """Rows that will not be imported, with the reason"""
        rejected = self.invalid + self.duplicates + self.already_exists
        return sorted(({'row': e.row, 'message': e.message or ''} for e in rejected), key=lambda e: e['row'])
