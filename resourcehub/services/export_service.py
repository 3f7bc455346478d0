"""
Tabular report export: CSV (stdlib csv) and styled XLSX (openpyxl).

Both writers take the same column spec, a list of ``(label, key)`` pairs;
nested values (lists/dicts) are serialized as JSON in a single cell.
"""

import csv
import io
import json
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _solid(rgb):
    return PatternFill(start_color=rgb, end_color=rgb, fill_type="solid")


RAG_FILLS = {"Green": _solid("27AE60"), "Amber": _solid("F39C12"), "Red": _solid("E74C3C")}
RAG_FONT = Font(color="FFFFFF", bold=True)
HEADER_FILL = _solid("354A5F")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
_EDGE = Side(style="thin")
CELL_BORDER = Border(left=_EDGE, right=_EDGE, top=_EDGE, bottom=_EDGE)
MAX_COLUMN_WIDTH = 50


def _cell_value(value):
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if value is None:
        return ""
    return value


def rows_to_csv(rows: list[dict], columns: list[tuple[str, str]]) -> str:
    """Render rows as CSV text with a header row of column labels."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([label for label, _ in columns])
    for row in rows:
        writer.writerow([_cell_value(row.get(key)) for _, key in columns])
    return buf.getvalue()


def rows_to_xlsx(title: str, rows: list[dict], columns: list[tuple[str, str]]) -> io.BytesIO:
    """
    Render rows into a single-sheet workbook: title, timestamp, then a styled
    header row and one row per record. Cells of a ``rag_status`` column are
    filled with their RAG colour.

    Returns a BytesIO buffer ready for a Flask Response.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]

    ws["A1"] = title
    ws["A1"].font = Font(size=14, bold=True)
    ws["A2"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")

    header_row = 4
    widths = []
    for col, (label, _) in enumerate(columns, 1):
        cell = ws.cell(row=header_row, column=col, value=label)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = CELL_BORDER
        widths.append(len(label))

    for r, row in enumerate(rows, header_row + 1):
        for col, (_, key) in enumerate(columns, 1):
            value = _cell_value(row.get(key))
            cell = ws.cell(row=r, column=col, value=value)
            cell.border = CELL_BORDER
            if key == "rag_status" and value in RAG_FILLS:
                cell.fill = RAG_FILLS[value]
                cell.font = RAG_FONT
                cell.alignment = Alignment(horizontal="center")
            widths[col - 1] = max(widths[col - 1], len(str(value)))

    for col, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = min(width + 2, MAX_COLUMN_WIDTH)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    logger.debug("XLSX rendered title=%s rows=%d", title, len(rows))
    return buf
