#!/usr/bin/env python3
"""
Forward Horizon Donation Receipt PDF

Renders the official tax receipt for a donation as a one-page PDF,
styled with the site's green palette.
"""

import io
import logging

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable
)

import org_info
from donor_automation import format_amount

logger = logging.getLogger(__name__)

# ── Color Palette (matches site CSS) ─────────────────────
FOREST = HexColor('#2c5530')
MOSS = HexColor('#4a7c59')
MINT = HexColor('#e8f5e8')
SLATE = HexColor('#2c3e50')
MUTED = HexColor('#666666')


def _build_styles():
    styles = {}
    styles['title'] = ParagraphStyle(
        'ReceiptTitle',
        fontName='Helvetica-Bold',
        fontSize=22,
        leading=28,
        textColor=FOREST,
        alignment=TA_CENTER,
        spaceAfter=4,
    )
    styles['subtitle'] = ParagraphStyle(
        'ReceiptSubtitle',
        fontName='Helvetica',
        fontSize=11,
        leading=15,
        textColor=MUTED,
        alignment=TA_CENTER,
    )
    styles['org'] = ParagraphStyle(
        'Organization',
        fontName='Helvetica-Bold',
        fontSize=13,
        leading=17,
        textColor=SLATE,
        alignment=TA_LEFT,
        spaceBefore=12,
    )
    styles['body'] = ParagraphStyle(
        'Body',
        fontName='Helvetica',
        fontSize=11,
        leading=15,
        textColor=SLATE,
    )
    styles['amount'] = ParagraphStyle(
        'Amount',
        fontName='Helvetica-Bold',
        fontSize=28,
        leading=34,
        textColor=FOREST,
        alignment=TA_CENTER,
    )
    styles['legal'] = ParagraphStyle(
        'Legal',
        fontName='Helvetica',
        fontSize=9,
        leading=13,
        textColor=MUTED,
        spaceBefore=6,
    )
    return styles


def _escape(text):
    """Escape text for use in reportlab Paragraph XML."""
    if text is None:
        return ''
    return str(text).replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def _divider():
    return HRFlowable(width='100%', thickness=1.5, color=FOREST, spaceBefore=8, spaceAfter=8)


def _footer(canvas, doc):
    canvas.saveState()
    canvas.setFont('Helvetica-Oblique', 8)
    canvas.setFillColor(MOSS)
    canvas.drawCentredString(
        letter[0] / 2, 0.5 * inch,
        f'{org_info.ORGANIZATION}  •  {org_info.PHONE}  •  {org_info.WEBSITE}'
    )
    canvas.restoreState()


def generate_receipt_pdf(donor_name, email, amount, receipt_number, donation_date=None):
    """
    Build the tax receipt PDF.

    Returns:
        bytes: the PDF file content
    """
    buffer = io.BytesIO()
    styles = _build_styles()
    gift_date = donation_date or org_info.format_short_date()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        topMargin=0.85 * inch,
        bottomMargin=0.85 * inch,
        leftMargin=0.9 * inch,
        rightMargin=0.9 * inch,
        title=f'Tax Receipt {receipt_number}',
        author=org_info.ORGANIZATION,
        subject=f'Donation receipt for {donor_name}',
    )

    story = [
        Paragraph('OFFICIAL TAX RECEIPT', styles['title']),
        Paragraph(f'Receipt #{_escape(receipt_number)}', styles['subtitle']),
        Paragraph(f'Date: {org_info.format_short_date()}', styles['subtitle']),
        _divider(),
        Paragraph(org_info.ORGANIZATION, styles['org']),
        Paragraph(f'{org_info.ADDRESS}<br/>Tax ID: {org_info.TAX_ID}', styles['body']),
        Spacer(1, 0.3 * inch),
    ]

    amount_box = Table(
        [[Paragraph(f'${format_amount(amount)}', styles['amount'])],
         [Paragraph('Total Tax-Deductible Contribution', styles['subtitle'])]],
        colWidths=[5.5 * inch],
    )
    amount_box.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), MINT),
        ('TOPPADDING', (0, 0), (-1, -1), 10),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 10),
    ]))
    story.append(amount_box)
    story.append(Spacer(1, 0.3 * inch))

    details = Table(
        [['Donor:', _escape(donor_name)],
         ['Email:', _escape(email)],
         ['Date of Gift:', _escape(gift_date)]],
        colWidths=[1.4 * inch, 4.1 * inch],
    )
    details.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
        ('TEXTCOLOR', (0, 0), (-1, -1), SLATE),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    story.append(details)
    story.append(Spacer(1, 0.3 * inch))

    for line in (
        f'This receipt confirms that {org_info.ORGANIZATION} received your charitable contribution. '
        'No goods or services were provided in exchange for this contribution.',
        f'{org_info.ORGANIZATION} is a 501(c)(3) nonprofit organization. '
        'Your contribution is tax-deductible to the full extent allowed by law.',
        'Please keep this receipt for your tax records.',
    ):
        story.append(Paragraph(line, styles['legal']))

    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.info(f"[Donations] Receipt PDF {receipt_number} rendered ({len(pdf_bytes)} bytes)")
    return pdf_bytes
