"""PDF rendering of protection certificates."""

import logging
from datetime import datetime
from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from chainproof_api.certificates.schema import CertificateRequest
from chainproof_api.errors import RenderError

logger = logging.getLogger(__name__)

PRIMARY_COLOR = colors.HexColor("#1e40af")
GOLD_COLOR = colors.HexColor("#d97706")
GRAY_COLOR = colors.HexColor("#6b7280")
QR_SIZE = 1.8 * inch

DETAIL_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#f8f9fa")),
        ("TEXTCOLOR", (0, 0), (0, -1), colors.HexColor("#495057")),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#dee2e6")),
    ]
)


def truncate(value: str, length: int) -> str:
    return value if len(value) <= length else value[:length] + "..."


def score_color(score: int) -> colors.Color:
    if score >= 75:
        return colors.HexColor("#2e7d32")  # Green
    if score >= 50:
        return colors.HexColor("#ed6c02")  # Amber
    return colors.HexColor("#c62828")  # Red


def qr_drawing(content: str, size: float = QR_SIZE) -> Drawing:
    widget = QrCodeWidget(content)
    x1, y1, x2, y2 = widget.getBounds()
    width, height = x2 - x1, y2 - y1
    drawing = Drawing(size, size, transform=[size / width, 0, 0, size / height, 0, 0])
    drawing.add(widget)
    return drawing


class CertificateRenderer:
    """Render a one-page certificate PDF.

    Output is byte-identical for identical input; `generated_at` is the only
    time value printed.
    """

    def render(
        self,
        certificate_id: str,
        request: CertificateRequest,
        verification_url: str,
        qr_content: str,
        generated_at: Optional[datetime] = None,
    ) -> bytes:
        """Build the PDF and return its bytes.

        Raises:
            RenderError: If any part of the document could not be built
        """
        generated_at = generated_at or datetime.utcnow()
        try:
            buffer = BytesIO()
            doc = SimpleDocTemplate(
                buffer,
                pagesize=A4,
                rightMargin=0.75 * inch,
                leftMargin=0.75 * inch,
                topMargin=0.75 * inch,
                bottomMargin=0.75 * inch,
                title=f"ChainProof Certificate {certificate_id}",
                invariant=1,
            )
            doc.build(self._story(certificate_id, request, verification_url, qr_content, generated_at))
        except Exception as e:
            logger.error(f"Certificate rendering failed: {e}", extra={"certificate_id": certificate_id})
            raise RenderError(f"Certificate could not be rendered: {e}") from e
        return buffer.getvalue()

    def _story(
        self,
        certificate_id: str,
        request: CertificateRequest,
        verification_url: str,
        qr_content: str,
        generated_at: datetime,
    ) -> list:
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "CertificateTitle",
            parent=styles["Title"],
            fontSize=26,
            textColor=PRIMARY_COLOR,
            spaceAfter=4,
            alignment=1,
        )
        tagline_style = ParagraphStyle(
            "Tagline",
            parent=styles["Italic"],
            fontSize=10,
            textColor=GRAY_COLOR,
            alignment=1,
        )
        statement_style = ParagraphStyle(
            "Statement",
            parent=styles["Normal"],
            fontSize=14,
            leading=18,
            textColor=PRIMARY_COLOR,
            alignment=1,
        )
        highlight_style = ParagraphStyle(
            "Highlight",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=20,
            leading=24,
            textColor=GOLD_COLOR,
            alignment=1,
        )
        heading_style = ParagraphStyle(
            "CertificateHeading",
            parent=styles["Heading2"],
            fontSize=13,
            textColor=colors.HexColor("#2c3e50"),
            spaceAfter=8,
            spaceBefore=14,
        )
        cell_style = ParagraphStyle(
            "TableCell",
            parent=styles["Normal"],
            fontSize=9,
            leading=11,
        )
        footer_style = ParagraphStyle(
            "Footer",
            parent=styles["Normal"],
            fontSize=8,
            leading=10,
            textColor=GRAY_COLOR,
            alignment=1,
        )

        def row(label: str, value: str) -> list:
            return [Paragraph(label, cell_style), Paragraph(escape(value), cell_style)]

        story = [
            Paragraph("ChainProof", title_style),
            Paragraph("Certificate of Digital Asset Protection", statement_style),
            Paragraph("Protecting Digital Assets with Blockchain Technology", tagline_style),
            Spacer(1, 0.35 * inch),
            Paragraph("This certifies that", statement_style),
            Spacer(1, 0.1 * inch),
            Paragraph(escape(request.owner_name), highlight_style),
            Spacer(1, 0.1 * inch),
            Paragraph("has successfully protected the digital asset:", statement_style),
            Spacer(1, 0.1 * inch),
            Paragraph(escape(request.asset_title), highlight_style),
            Spacer(1, 0.25 * inch),
        ]

        details = [
            row("Content Hash", truncate(request.content_hash, 40)),
            row("Protection Date", request.protection_date.strftime("%Y-%m-%d %H:%M:%S UTC")),
        ]
        if request.asset_type:
            details.append(row("Asset Type", request.asset_type))
        if request.file_size is not None:
            details.append(row("File Size", f"{request.file_size} bytes"))
        if request.protection_score is not None:
            score_style = ParagraphStyle(
                "Score",
                parent=cell_style,
                fontName="Helvetica-Bold",
                textColor=score_color(request.protection_score),
            )
            details.append(
                [
                    Paragraph("Protection Score", cell_style),
                    Paragraph(f"{request.protection_score}/100", score_style),
                ]
            )
        story.append(Paragraph("<b>Protection Details</b>", heading_style))
        story.append(self._table(details))

        if request.ledger_record:
            ledger = request.ledger_record
            ledger_rows = [
                row("Transaction", truncate(ledger.transaction_ref, 30)),
                row("Block", str(ledger.block_ref)),
                row("Anchored At", ledger.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")),
            ]
            if ledger.network:
                ledger_rows.append(row("Network", ledger.network))
            story.append(Paragraph("<b>Blockchain Verification</b>", heading_style))
            story.append(self._table(ledger_rows))

        if request.distributed_ref:
            distributed = request.distributed_ref
            story.append(Paragraph("<b>Decentralized Storage</b>", heading_style))
            story.append(
                self._table(
                    [
                        row("IPFS Hash", truncate(distributed.network_hash, 30)),
                        row("Gateway URL", truncate(distributed.gateway_url, 40)),
                    ]
                )
            )

        story.append(Spacer(1, 0.3 * inch))
        qr = Table([[qr_drawing(qr_content)], [Paragraph("Scan to verify", footer_style)]])
        qr.setStyle(TableStyle([("ALIGN", (0, 0), (-1, -1), "CENTER")]))
        story.append(qr)
        story.append(Spacer(1, 0.2 * inch))
        story.append(Paragraph(f"Certificate ID: {escape(certificate_id)}", footer_style))
        story.append(Paragraph(f"Verify at: {escape(verification_url)}", footer_style))
        story.append(
            Paragraph(f"Generated at {generated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}", footer_style)
        )
        return story

    def _table(self, data: list) -> Table:
        table = Table(data, colWidths=[2 * inch, 4.5 * inch])
        table.setStyle(DETAIL_TABLE_STYLE)
        return table
