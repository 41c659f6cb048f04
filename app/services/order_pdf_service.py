"""PDF rendering for submitted quote requests."""

from io import BytesIO
from xml.sax.saxutils import escape
from typing import Dict, Any

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from app.models import Order
from app.utils.formatters import money_de, percent_de, datetime_de


def _render_order_pdf(order: Order, business_info: Dict[str, Any]) -> BytesIO:
    """Render one order: header, addresses, items, totals, footer."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'CustomHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph("ANGEBOTSANFRAGE", title_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{business_info['name']}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(business_info['address'], header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"E-Mail: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Order metadata and addresses
    info_data = [
        ['Anfrage-Nr.:', order.order_number],
        ['Datum:', datetime_de(order.created_at)],
        ['Status:', order.status],
        ['Kunde:', order.customer_name],
    ]
    if order.company_name:
        info_data.append(['Firma:', order.company_name])
    info_data.append(['Rechnungsadresse:', f"{order.billing_address}, {order.billing_postal_code} {order.billing_city}"])
    if order.use_different_shipping:
        info_data.append(['Lieferadresse:', f"{order.shipping_address}, {order.shipping_postal_code} {order.shipping_city}"])

    info_table = Table(info_data, colWidths=[1.6*inch, 5.1*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Items
    table_data = [['Artikel', 'Menge', 'Listenpreis', 'Rabatt', 'Einzelpreis', 'Summe']]
    for item in order.items:
        table_data.append([
            Paragraph(escape(item.product_name), styles['Normal']),
            str(item.quantity),
            money_de(item.original_unit_price) if item.original_unit_price is not None else '-',
            percent_de(item.discount_percentage) if item.discount_percentage else '-',
            money_de(item.unit_price),
            money_de(item.total_price),
        ])

    items_table = Table(table_data, colWidths=[2.5*inch, 0.6*inch, 1*inch, 0.6*inch, 1*inch, 1*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals_data = [['Zwischensumme netto:', money_de(order.items_total)]]
    if order.discount_amount:
        code = order.discount_code.code if order.discount_code else ''
        label = f'Rabattcode {code}:' if code else 'Rabattcode:'
        totals_data.append([label, f"-{money_de(order.discount_amount)}"])
    totals_data.append(['Summe netto:', money_de(order.total_amount)])
    totals_data.append(['MwSt.:', money_de(order.tax_amount)])
    totals_data.append(['GESAMT BRUTTO:', money_de((order.total_amount or 0) + (order.tax_amount or 0))])

    total_table = Table(totals_data, colWidths=[5.2*inch, 1.5*inch])
    total_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 13),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, -1), (-1, -1), 2, colors.HexColor('#27AE60')),
    ]))
    elements.append(total_table)
    elements.append(Spacer(1, 0.4*inch))

    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9, textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
    footer_text = "<b>HINWEIS:</b><br/>Unverbindliche Angebotsanfrage, kein Kaufvertrag.<br/><i>Dies ist keine Rechnung.</i>"
    if order.notes:
        footer_text += f"<br/><br/><b>Anmerkungen:</b> {escape(order.notes)}"
    elements.append(Paragraph(footer_text, footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_order_pdf(order: Order, business_info: Dict[str, Any]) -> BytesIO:
    """Generate the PDF of a persisted order."""
    return _render_order_pdf(order, business_info)
