from datetime import datetime
from html import escape
from typing import Mapping, Optional, Sequence

from cleaning_inventory import settings
from cleaning_inventory.renderers.base import (
    NO_PRODUCTS_TEXT,
    ReportRenderer,
    format_timestamp,
    product_lines,
)
from cleaning_inventory.schemas import ConsolidatedRecord, InventoryRecord

# MPDL palette
BLUE_DARK = "#004b87"
BLUE = "#00a3e0"
AMBER = "#f59e0b"

STYLE = f"""
body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; color: #1e293b; background: #f8fafc; }}
.header {{ text-align: center; padding: 24px; background: {BLUE_DARK}; color: white; border-radius: 12px; }}
.header h1 {{ margin: 0; font-size: 26px; }}
.date {{ text-align: center; margin: 20px 0; font-size: 14px; color: #64748b; }}
.device-section {{ margin-bottom: 30px; background: white; border-radius: 12px; border: 1px solid #e2e8f0; }}
.device-header {{ padding: 16px 20px; border-bottom: 2px solid {BLUE}; }}
.device-name {{ margin: 0; font-size: 20px; color: {BLUE_DARK}; }}
.device-date {{ margin: 4px 0 0 0; font-size: 12px; color: #64748b; }}
.products {{ width: 100%; border-collapse: collapse; }}
.products td {{ padding: 10px 20px; border-bottom: 1px solid #f1f5f9; }}
.products td.quantity {{ text-align: right; font-weight: bold; color: {BLUE_DARK}; }}
.no-products {{ padding: 24px; text-align: center; color: #64748b; font-style: italic; }}
.consolidated-section {{ border: 2px solid {AMBER}; background: #fef3c7; }}
.consolidated-note {{ margin: 16px 20px; font-size: 14px; color: #92400e; }}
.footer {{ text-align: center; margin-top: 30px; font-size: 12px; color: #64748b; }}
"""


class HtmlReportRenderer(ReportRenderer):
    content_type = "text/html; charset=utf-8"
    extension = "html"

    @staticmethod
    def _products_block(lines: list[tuple[str, str]]) -> str:
        if not lines:
            return f'<div class="no-products">{escape(NO_PRODUCTS_TEXT)}</div>'
        rows = "".join(
            f'<tr><td class="product">{escape(name)}</td>'
            f'<td class="quantity">{escape(value)}</td></tr>'
            for name, value in lines
        )
        return f'<table class="products">{rows}</table>'

    def _device_section(self, record: InventoryRecord, catalog: Mapping[str, str]) -> str:
        reporter = escape(record.reported_by or "-")
        return (
            '<div class="device-section">'
            '<div class="device-header">'
            f'<h2 class="device-name">{escape(record.device)}</h2>'
            f'<p class="device-date">Reportado por {reporter} el {escape(record.date or "-")}'
            f" · Última actualización: {format_timestamp(record.created_at)}</p>"
            "</div>"
            f"{self._products_block(product_lines(record.products, catalog))}"
            "</div>"
        )

    def _consolidated_section(
        self, consolidated: ConsolidatedRecord, catalog: Mapping[str, str]
    ) -> str:
        lines = product_lines(consolidated.to_product_quantities(), catalog)
        return (
            '<div class="device-section consolidated-section">'
            '<div class="device-header">'
            f'<h2 class="device-name">{escape(consolidated.device)}</h2>'
            f'<p class="device-date">Consolidado generado: '
            f"{format_timestamp(consolidated.computed_at)}</p>"
            "</div>"
            f'<div class="consolidated-note">{escape(self.consolidated_note(consolidated))}</div>'
            f"{self._products_block(lines)}"
            "</div>"
        )

    def build(
        self,
        records: Sequence[InventoryRecord],
        consolidated: Optional[ConsolidatedRecord],
        catalog: Mapping[str, str],
    ) -> bytes:
        sections = [self._device_section(r, catalog) for r in records]
        if consolidated is not None:
            sections.append(self._consolidated_section(consolidated, catalog))
        if not sections:
            sections.append('<div class="no-products">No hay datos de inventario disponibles.</div>')

        html = (
            "<!DOCTYPE html>\n"
            '<html lang="es">\n<head>\n<meta charset="UTF-8">\n'
            f"<title>{escape(self.title)} - MPDL</title>\n"
            f"<style>{STYLE}</style>\n</head>\n<body>\n"
            '<div class="header">'
            f"<h1>{escape(self.title)}</h1>"
            f"<p>{escape(settings.ORGANIZATION_NAME)}</p>"
            "</div>\n"
            f'<div class="date"><strong>Fecha de generación:</strong> '
            f"{format_timestamp(datetime.now())}</div>\n"
            + "\n".join(sections)
            + '\n<div class="footer"><p><strong>Sistema de Inventarios MPDL</strong></p>'
            "<p>Generado automáticamente</p></div>\n"
            "</body>\n</html>\n"
        )
        return html.encode("utf-8")
