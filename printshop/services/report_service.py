# services/report_service.py
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from ..models.quote import Quote


def format_minor_units(amount, currency) -> str:
    amount = amount or 0
    return f"{amount / 100:.2f} {currency or ''}".strip()


class QuoteReportService:
    @staticmethod
    def quote_rows(quote: Quote):
        """Table rows for a quote: header first, one row per item"""
        rows = [["Model", "Material", "Colour", "Process", "Qty", "Grams", "Subtotal"]]
        for item in quote.items:
            rows.append([
                item.model.filename if item.model else '-',
                item.material.name if item.material else '-',
                item.colour.name if item.colour else '-',
                item.process.name if item.process else '-',
                str(item.quantity),
                f"{item.grams:g}" if item.grams is not None else '-',
                format_minor_units(item.line_amount, quote.currency),
            ])
        return rows

    @classmethod
    def generate_pdf(cls, quote: Quote) -> BytesIO:
        """Generate a one-page PDF summary of a quote"""
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=letter)
        elements = []
        styles = getSampleStyleSheet()

        elements.append(Paragraph(f"Quote #{quote.id}", styles['Heading1']))
        elements.append(Spacer(1, 12))

        contact = quote.customer.email if quote.customer else quote.customer_email
        metadata = [
            f"Status: {quote.status.value.title()}",
            f"Contact: {contact or '-'}",
            f"Created: {quote.created_at.strftime('%Y-%m-%d %H:%M') if quote.created_at else '-'}",
            f"Total: {format_minor_units(quote.amount, quote.currency)}",
        ]
        for meta in metadata:
            elements.append(Paragraph(meta, styles['Normal']))
        elements.append(Spacer(1, 12))

        table = Table(cls.quote_rows(quote))
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 11),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('GRID', (0, 0), (-1, -1), 1, colors.black)
        ]))
        elements.append(table)

        if quote.notes:
            elements.append(Spacer(1, 12))
            elements.append(Paragraph("Notes", styles['Heading3']))
            elements.append(Paragraph(quote.notes, styles['Normal']))

        doc.build(elements)
        buffer.seek(0)
        return buffer
