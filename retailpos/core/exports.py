"""
Excel and PDF export helpers.

Excel files are produced with openpyxl, PDF documents with ReportLab.
Both are rendered in memory and returned as downloadable HTTP responses.
"""
import io
import logging
from xml.sax.saxutils import escape
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from django.conf import settings
from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
PDF_CONTENT_TYPE = 'application/pdf'

FORMULA_PREFIXES = ('=', '+', '-', '@')

HEADER_FILL = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")

DATA_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 9),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("BACKGROUND", (0, 1), (-1, -1), colors.beige),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 1), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
)


def format_money(value) -> str:
    """Format an amount with two decimals and the shop currency"""
    amount = Decimal(str(value or 0)).quantize(Decimal('0.01'))
    return f"{amount:,.2f} {settings.CURRENCY}"


def export_filename(prefix: str, extension: str) -> str:
    """e.g. sales_2024-05-01_143000.xlsx"""
    return f"{prefix}_{timezone.localtime().strftime('%Y-%m-%d_%H%M%S')}.{extension}"


def _cell_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, 'isoformat') and not isinstance(value, str):
        return value.isoformat()
    return value


def _write_cell(worksheet, row, column, value):
    """Write a data cell; text that looks like a formula stays text"""
    cell = worksheet.cell(row=row, column=column, value=_cell_value(value))
    if isinstance(cell.value, str) and cell.value.startswith(FORMULA_PREFIXES):
        cell.data_type = 's'
    return cell


def _adjust_excel_columns(worksheet):
    """Auto-adjust column widths in Excel worksheet."""
    for column in worksheet.columns:
        max_length = 0
        column_letter = column[0].column_letter
        for cell in column:
            if cell.value is not None and len(str(cell.value)) > max_length:
                max_length = len(str(cell.value))
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, 50)


def build_workbook(title: str, headers: Sequence[str], rows: List[Sequence[Any]],
                   summary: Optional[List[Tuple[str, Any]]] = None,
                   subtitle_lines: Optional[List[str]] = None) -> bytes:
    """
    Render a single-sheet workbook.

    Row 1 holds the title, row 2 the generation time and subtitle lines
    start on row 3. Headers follow after one blank row, then the data.
    Summary pairs are appended after one more blank row.
    """
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = title[:31]

    worksheet["A1"] = title
    worksheet["A1"].font = Font(size=14, bold=True)
    worksheet["A2"] = f"Generated on: {timezone.localtime().strftime('%Y-%m-%d %H:%M:%S')}"

    subtitle_lines = subtitle_lines or []
    for row_idx, line in enumerate(subtitle_lines, 3):
        _write_cell(worksheet, row_idx, 1, line)

    header_row = 4 + len(subtitle_lines)
    for col, header in enumerate(headers, 1):
        cell = worksheet.cell(row=header_row, column=col, value=header)
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL

    for row_idx, row in enumerate(rows, header_row + 1):
        for col_idx, value in enumerate(row, 1):
            _write_cell(worksheet, row_idx, col_idx, value)

    if summary:
        row_idx = header_row + len(rows) + 2
        for label, value in summary:
            worksheet.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
            _write_cell(worksheet, row_idx, 2, value)
            row_idx += 1

    _adjust_excel_columns(worksheet)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_table_pdf(title: str, headers: Sequence[str], rows: List[Sequence[Any]],
                    subtitle_lines: Optional[List[str]] = None,
                    summary: Optional[List[Tuple[str, Any]]] = None,
                    wide: bool = False) -> bytes:
    """Render a titled PDF report holding one data table"""
    buffer = io.BytesIO()
    pagesize = landscape(A4) if wide else A4
    doc = SimpleDocTemplate(buffer, pagesize=pagesize, title=title,
                            leftMargin=30, rightMargin=30, topMargin=30, bottomMargin=30)
    styles = getSampleStyleSheet()
    story = [
        Paragraph(escape(settings.SHOP_NAME), styles["Heading2"]),
        Paragraph(escape(title), styles["Title"]),
        Paragraph(f"Generated on: {timezone.localtime().strftime('%Y-%m-%d %H:%M:%S')}", styles["Normal"]),
    ]
    for line in subtitle_lines or []:
        story.append(Paragraph(escape(line), styles["Normal"]))
    story.append(Spacer(1, 12))

    if rows:
        table_data = [list(headers)] + [[str(_cell_value(v) if v is not None else '') for v in row] for row in rows]
        table = Table(table_data, repeatRows=1)
        table.setStyle(DATA_TABLE_STYLE)
        story.append(table)
    else:
        story.append(Paragraph("No data for the selected period.", styles["Italic"]))

    story.append(Spacer(1, 12))
    if summary:
        summary_table = Table([[label, str(_cell_value(value))] for label, value in summary])
        summary_table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("LINEABOVE", (0, 0), (-1, 0), 0.5, colors.black),
        ]))
        story.append(summary_table)
    story.append(Paragraph(f"Total rows: {len(rows)}", styles["Normal"]))

    doc.build(story)
    return buffer.getvalue()


def file_response(content: bytes, filename: str, content_type: str) -> HttpResponse:
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def excel_response(prefix: str, title: str, headers, rows, summary=None, subtitle_lines=None) -> HttpResponse:
    content = build_workbook(title, headers, rows, summary, subtitle_lines)
    logger.info(f"Excel export '{title}' generated with {len(rows)} rows")
    return file_response(content, export_filename(prefix, 'xlsx'), XLSX_CONTENT_TYPE)


def pdf_response(prefix: str, title: str, headers, rows, subtitle_lines=None, summary=None, wide=False) -> HttpResponse:
    content = build_table_pdf(title, headers, rows, subtitle_lines, summary, wide)
    logger.info(f"PDF export '{title}' generated with {len(rows)} rows")
    return file_response(content, export_filename(prefix, 'pdf'), PDF_CONTENT_TYPE)


def export_response(export_format: str, prefix: str, title: str, headers, rows,
                    subtitle_lines=None, summary=None, wide=False) -> HttpResponse:
    """Dispatch on `format` query parameter: 'pdf' or anything else for Excel"""
    if export_format == 'pdf':
        return pdf_response(prefix, title, headers, rows, subtitle_lines, summary, wide)
    return excel_response(prefix, title, headers, rows, summary, subtitle_lines)
