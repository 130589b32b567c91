"""PDF report for the cleaning inventory, laid out with reportlab platypus.

Sections:
  1. Header (title, organization, generation date)
  2. One table per device (current reading only)
  3. Consolidated LAC table with a note naming the summed devices
"""

import io
from datetime import datetime
from typing import Mapping, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import (
    HRFlowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from cleaning_inventory import settings
from cleaning_inventory.renderers.base import (
    NO_PRODUCTS_TEXT,
    ReportRenderer,
    format_timestamp,
    product_lines,
)
from cleaning_inventory.schemas import ConsolidatedRecord, InventoryRecord

MPDL_BLUE = colors.Color(0.117, 0.482, 0.721)
SLATE_700 = colors.HexColor("#334155")
SLATE_400 = colors.HexColor("#94a3b8")
AMBER = colors.HexColor("#f59e0b")
LIGHT_BG = colors.HexColor("#f8fafc")


def _build_styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle", parent=base["Title"], fontSize=16, textColor=MPDL_BLUE, spaceAfter=2
        ),
        "subtitle": ParagraphStyle(
            "ReportSubtitle", parent=base["Normal"], fontSize=9, textColor=SLATE_400, spaceAfter=8
        ),
        "device": ParagraphStyle(
            "DeviceName", parent=base["Heading2"], fontSize=12, textColor=colors.black, spaceBefore=10, spaceAfter=2
        ),
        "meta": ParagraphStyle(
            "DeviceMeta", parent=base["Normal"], fontSize=9, textColor=SLATE_700, spaceAfter=4
        ),
        "note": ParagraphStyle(
            "ConsolidatedNote", parent=base["Normal"], fontSize=8, textColor=colors.HexColor("#92400e"), spaceAfter=4
        ),
        "empty": ParagraphStyle(
            "NoProducts", parent=base["Normal"], fontSize=9, textColor=SLATE_400, leftIndent=10
        ),
    }


def _products_table(lines: list[tuple[str, str]], header_color) -> Table:
    data = [["Producto", "Cantidad"]] + [[name, value] for name, value in lines]
    t = Table(data, colWidths=[11 * cm, 4 * cm], repeatRows=1, hAlign="LEFT")
    style_cmds: list[tuple] = [
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BACKGROUND", (0, 0), (-1, 0), header_color),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]
    # Zebra striping
    for i in range(2, len(data), 2):
        style_cmds.append(("BACKGROUND", (0, i), (-1, i), LIGHT_BG))
    t.setStyle(TableStyle(style_cmds))
    return t


class PdfReportRenderer(ReportRenderer):
    content_type = "application/pdf"
    extension = "pdf"

    def _section(self, heading: str, meta: list[str], lines, styles, header_color) -> KeepTogether:
        flowables = [Paragraph(escape(heading), styles["device"])]
        flowables += [Paragraph(escape(m), styles["meta"]) for m in meta]
        if lines:
            flowables.append(_products_table(lines, header_color))
        else:
            flowables.append(Paragraph(escape(NO_PRODUCTS_TEXT), styles["empty"]))
        return KeepTogether(flowables)

    def build(
        self,
        records: Sequence[InventoryRecord],
        consolidated: Optional[ConsolidatedRecord],
        catalog: Mapping[str, str],
    ) -> bytes:
        buf = io.BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=A4,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
            leftMargin=1.8 * cm,
            rightMargin=1.8 * cm,
            title=self.title,
            author=settings.ORGANIZATION_NAME,
        )
        styles = _build_styles()

        story: list = [
            Paragraph(escape(self.title), styles["title"]),
            Paragraph(
                escape(f"{settings.ORGANIZATION_NAME} · Generado: {format_timestamp(datetime.now())}"),
                styles["subtitle"],
            ),
            HRFlowable(width="100%", thickness=1, color=MPDL_BLUE),
            Spacer(1, 8),
        ]

        if not records and consolidated is None:
            story.append(Paragraph("No hay datos de inventario disponibles.", styles["meta"]))

        for record in records:
            meta = [
                f"Reportado por: {record.reported_by or '-'} el {record.date or '-'}",
                f"Última actualización: {format_timestamp(record.created_at)}",
            ]
            lines = product_lines(record.products, catalog)
            story.append(self._section(f"Dispositivo: {record.device}", meta, lines, styles, MPDL_BLUE))

        if consolidated is not None:
            lines = product_lines(consolidated.to_product_quantities(), catalog)
            section = self._section(
                consolidated.device,
                [f"Consolidado generado: {format_timestamp(consolidated.computed_at)}"],
                lines,
                styles,
                AMBER,
            )
            story.append(Spacer(1, 6))
            story.append(Paragraph(escape(self.consolidated_note(consolidated)), styles["note"]))
            story.append(section)

        doc.build(story)
        return buf.getvalue()
