"""Invoice PDF rendered with ReportLab"""
import io
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from retailpos.core.exports import DATA_TABLE_STYLE, format_money
from .services import sale_lines


def build_invoice_pdf(sale):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"Invoice {sale.invoice_number}",
                            leftMargin=40, rightMargin=40, topMargin=40, bottomMargin=40)
    styles = getSampleStyleSheet()

    story = [Paragraph(escape(settings.SHOP_NAME), styles["Title"])]
    for line in (settings.SHOP_ADDRESS, settings.SHOP_PHONE):
        if line:
            story.append(Paragraph(escape(line), styles["Normal"]))
    story.append(Spacer(1, 16))

    header = Table(
        [
            ["Invoice", sale.invoice_number, "Customer", sale.customer_name],
            ["Date", sale.sale_date.strftime('%Y-%m-%d'), "Email", sale.customer_email or '-'],
            ["Payment", sale.get_payment_method_display(), "Phone", sale.customer_phone or '-'],
            ["Status", sale.get_status_display(), "Loyalty card",
             sale.customer.loyalty_card_number if sale.customer and sale.customer.loyalty_card_number else '-'],
        ],
        colWidths=[70, 160, 80, 190],
    )
    header.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    story.extend([header, Spacer(1, 16)])

    rows = [["Product", "Quantity", "Unit price", "Total"]]
    for line in sale_lines(sale):
        rows.append([line['product_name'], str(line['quantity']),
                     format_money(line['unit_price']), format_money(line['total'])])
    items = Table(rows, colWidths=[230, 70, 100, 100], repeatRows=1)
    items.setStyle(DATA_TABLE_STYLE)
    story.extend([items, Spacer(1, 12)])

    totals = Table(
        [
            ["Subtotal", format_money(sale.total_amount)],
            ["Discount", f"- {format_money(sale.discount)}"],
            ["Tax", format_money(sale.tax)],
            ["Total", format_money(sale.final_amount)],
        ],
        colWidths=[100, 100],
        hAlign="RIGHT",
    )
    totals.setStyle(TableStyle([
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
    ]))
    story.extend([totals, Spacer(1, 24)])

    if sale.notes:
        story.append(Paragraph(f"Notes: {escape(sale.notes)}", styles["Normal"]))
    story.append(Paragraph("Thank you for your purchase.", styles["Italic"]))

    doc.build(story)
    return buffer.getvalue()
