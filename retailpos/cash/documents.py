"""Cash transaction receipt rendered with ReportLab"""
import io
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A5
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from retailpos.core.exports import format_money


def receipt_number(transaction):
    return f"REC-{transaction.transaction_date.strftime('%Y%m%d')}-{transaction.pk:05d}"


def build_receipt_pdf(transaction):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A5, title=f"Receipt {receipt_number(transaction)}",
                            leftMargin=30, rightMargin=30, topMargin=30, bottomMargin=30)
    styles = getSampleStyleSheet()

    story = [Paragraph(escape(settings.SHOP_NAME), styles["Heading1"])]
    for line in (settings.SHOP_ADDRESS, settings.SHOP_PHONE):
        if line:
            story.append(Paragraph(escape(line), styles["Normal"]))
    story.append(Spacer(1, 12))
    story.append(Paragraph(f"{transaction.get_type_display()} receipt", styles["Heading2"]))

    details = [
        ["Receipt", receipt_number(transaction)],
        ["Date", transaction.transaction_date.strftime('%Y-%m-%d')],
        ["Description", transaction.description],
        ["Reference", transaction.reference or '-'],
        ["Payment method", transaction.payment_method or '-'],
        ["Recorded by", (transaction.user.name or transaction.user.email) if transaction.user else '-'],
        ["Amount", format_money(transaction.amount)],
    ]
    table = Table(details, colWidths=[110, 250])
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
        ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    story.extend([table, Spacer(1, 12)])

    if transaction.notes:
        story.append(Paragraph(f"Notes: {escape(transaction.notes)}", styles["Normal"]))
    story.append(Paragraph(
        f"Printed on {timezone.localtime().strftime('%Y-%m-%d %H:%M')}", styles["Italic"]
    ))

    doc.build(story)
    return buffer.getvalue()
