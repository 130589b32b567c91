from datetime import datetime
from typing import Mapping, Optional, Sequence

import pandas as pd

from cleaning_inventory import settings
from cleaning_inventory.renderers.base import (
    NO_PRODUCTS_TEXT,
    ReportRenderer,
    format_timestamp,
    product_lines,
)
from cleaning_inventory.schemas import ConsolidatedRecord, InventoryRecord


class TextReportRenderer(ReportRenderer):
    content_type = "text/plain; charset=utf-8"
    extension = "txt"

    @staticmethod
    def _table(lines: list[tuple[str, str]]) -> str:
        if not lines:
            return f"  {NO_PRODUCTS_TEXT}"
        df = pd.DataFrame(lines, columns=["Producto", "Cantidad"])
        return df.to_string(index=False)

    def build(
        self,
        records: Sequence[InventoryRecord],
        consolidated: Optional[ConsolidatedRecord],
        catalog: Mapping[str, str],
    ) -> bytes:
        out = [
            self.title.upper(),
            settings.ORGANIZATION_NAME,
            f"Fecha de generación: {format_timestamp(datetime.now())}",
            "=" * 60,
        ]

        if not records and consolidated is None:
            out.append("No hay datos de inventario disponibles.")

        for record in records:
            out.append(f"\nDispositivo: {record.device}")
            out.append(f"Reportado por: {record.reported_by or '-'} el {record.date or '-'}")
            out.append(f"Última actualización: {format_timestamp(record.created_at)}")
            out.append("-" * 60)
            out.append(self._table(product_lines(record.products, catalog)))

        if consolidated is not None:
            out.append(f"\n{consolidated.device}")
            out.append(f"Consolidado generado: {format_timestamp(consolidated.computed_at)}")
            out.append(self.consolidated_note(consolidated))
            out.append("-" * 60)
            out.append(
                self._table(product_lines(consolidated.to_product_quantities(), catalog))
            )

        out.append("\n" + "=" * 60)
        out.append("Sistema de Inventarios MPDL - generado automáticamente")
        return ("\n".join(out) + "\n").encode("utf-8")
