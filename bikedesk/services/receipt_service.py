"""
services/receipt_service.py
---------------------------
Printable sale receipt for a sold bike, rendered with reportlab.
"""

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.errors import Conflict
from bikedesk.core.logging import get_logger
from bikedesk.models.bike import Bike
from bikedesk.schemas.common import mask_identity_number
from bikedesk.services.bike_service import BikeService

logger = get_logger(__name__)


def receipt_filename(bike: Bike) -> str:
    return f"receipt-{bike.reg_no}.pdf"


def _render_receipt_pdf(bike: Bike) -> BytesIO:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"Receipt {bike.reg_no}",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReceiptTitle",
        parent=styles["Heading1"],
        fontSize=22,
        textColor=colors.HexColor("#2C3E50"),
        alignment=TA_CENTER,
        spaceAfter=12,
    )
    header_style = ParagraphStyle(
        "ReceiptHeader",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.HexColor("#7F8C8D"),
        alignment=TA_CENTER,
        spaceAfter=6,
    )

    elements = [
        Paragraph("SALE RECEIPT", title_style),
        Paragraph(f"<b>{escape(bike.company.name)}</b>", header_style),
        Spacer(1, 0.3 * inch),
    ]

    customer = bike.customer
    details = [
        ["Receipt No:", bike.id],
        ["Date:", bike.sold_at.strftime("%d/%m/%Y")],
        ["Customer:", customer.name],
        ["Phone:", customer.phone],
        ["Identity No:", mask_identity_number(customer.aadhaar_number)],
        ["Address:", Paragraph(escape(customer.address), styles["Normal"])],
        ["Processed by:", bike.added_by.email],
    ]
    details_table = Table(details, colWidths=[1.6 * inch, 4.4 * inch])
    details_table.setStyle(TableStyle([
        ("ALIGN", (0, 0), (0, -1), "RIGHT"),
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TEXTCOLOR", (0, 0), (-1, -1), colors.HexColor("#34495E")),
    ]))
    elements.append(details_table)
    elements.append(Spacer(1, 0.3 * inch))

    items = [
        ["Bike", "Registration No", "Price"],
        [bike.name, bike.reg_no, f"{bike.sold_price:.2f}"],
        ["", "Total", f"{bike.sold_price:.2f}"],
    ]
    items_table = Table(items, colWidths=[3 * inch, 1.8 * inch, 1.2 * inch])
    items_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#3498DB")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (1, -1), (-1, -1), "Helvetica-Bold"),
        ("ALIGN", (2, 0), (2, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -2), 0.5, colors.HexColor("#BDC3C7")),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 10),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.5 * inch))
    elements.append(Paragraph("Thank you for your purchase.", header_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


class ReceiptService:

    @staticmethod
    async def build_receipt(
        db: AsyncSession, company_id: str, bike_id: str
    ) -> tuple[str, BytesIO]:
        """(filename, PDF buffer) for a sold bike in the caller's company."""
        bike = await BikeService.get_bike(db, company_id, bike_id)
        if not bike.is_sold:
            raise Conflict("Receipt is only available for sold bikes", code="BIKE_NOT_SOLD")

        pdf = _render_receipt_pdf(bike)
        logger.info("Receipt generated", bike_id=bike.id, company_id=company_id)
        return receipt_filename(bike), pdf
