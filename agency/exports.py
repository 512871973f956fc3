# agency/exports.py
"""PDF (weasyprint) and Excel (openpyxl) exports."""

import re
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

import weasyprint
from django.http import HttpResponse
from django.template.loader import render_to_string
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

XLSX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)


# --- PDF ---
def render_pdf(template_name, context, base_url=None):
    html_string = render_to_string(template_name, context)
    return weasyprint.HTML(string=html_string, base_url=base_url).write_pdf()


def pdf_response(request, template_name, context, filename):
    pdf_file = render_pdf(
        template_name, context, base_url=request.build_absolute_uri()
    )
    response = HttpResponse(pdf_file, content_type="application/pdf")
    response["Content-Disposition"] = f'inline; filename="{filename}"'
    return response


# --- EXCEL ---
def _cell(value):
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, Decimal):
        return float(value)
    return value


def _auto_width(ws, max_cols=40):
    for col in range(1, min(ws.max_column, max_cols) + 1):
        letter = get_column_letter(col)
        longest = max(
            (len(str(cell.value)) for cell in ws[letter] if cell.value is not None),
            default=10,
        )
        ws.column_dimensions[letter].width = min(max(longest + 2, 12), 60)


def _wb_to_bytes(wb):
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def rows_to_workbook(title, columns, rows, totals=None):
    """
    ``columns`` is a list of (key, header) pairs, ``rows`` a list of dicts.
    An optional ``totals`` dict is appended as a bold last line.
    """
    wb = Workbook()
    ws = wb.active
    # Excel sheet names: 31 chars, no []:*?/\
    ws.title = re.sub(r"[\[\]:*?/\\]", " ", title)[:31]

    ws.append([header for _key, header in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in rows:
        ws.append([_cell(row.get(key)) for key, _header in columns])

    if totals:
        total_line = [_cell(totals.get(key, "")) for key, _header in columns]
        if total_line and total_line[0] == "":
            total_line[0] = "Total"
        ws.append(total_line)
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)

    _auto_width(ws)
    return _wb_to_bytes(wb)


def xlsx_response(content, filename):
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response
