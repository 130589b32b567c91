import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Mapping, Optional, Sequence

from cleaning_inventory import settings, utils
from cleaning_inventory.schemas import (
    ConsolidatedRecord,
    InventoryRecord,
    ProductQuantity,
    ReportArtifact,
)

logger = logging.getLogger(__name__)

NO_PRODUCTS_TEXT = "No hay productos registrados con cantidad mayor a 0"


def product_lines(
    products: Sequence[ProductQuantity],
    catalog: Mapping[str, str],
    free_text_id: str = settings.PRODUCT_ID_OTROS,
) -> list[tuple[str, str]]:
    """
    (display name, value) pairs worth printing: positive quantities, plus the
    free-text field when it holds something. Unknown ids print as themselves.
    """
    lines = []
    for p in products:
        name = catalog.get(p.product_id, p.product_id)
        if p.product_id == free_text_id:
            text = "" if p.quantity is None else str(p.quantity).strip()
            if text:
                lines.append((name, text))
            continue
        qty = utils.parse_quantity(p.quantity)
        if qty is not None and qty > 0:
            lines.append((name, str(qty)))
    return lines


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "Fecha no disponible"
    return value.strftime("%d/%m/%Y %H:%M")


class ReportRenderer(ABC):
    """
    Base class for report formats (text, HTML, PDF).
    `render` fixes the device order and wraps the bytes; subclasses only lay out content.
    """

    content_type: str = "application/octet-stream"
    extension: str = "bin"

    def __init__(self, title: str = settings.REPORT_TITLE):
        self.title = title

    def render(
        self,
        records: Sequence[InventoryRecord],
        consolidated: Optional[ConsolidatedRecord],
        catalog: Mapping[str, str] = settings.CLEANING_PRODUCTS,
    ) -> ReportArtifact:
        ordered = sorted(records, key=lambda r: r.device)
        content = self.build(ordered, consolidated, catalog)
        logger.info(
            f"Rendered {self.extension.upper()} report: {len(ordered)} device(s), "
            f"consolidated={'yes' if consolidated is not None else 'no'}, {len(content)} bytes"
        )
        return ReportArtifact(
            content=content, content_type=self.content_type, extension=self.extension
        )

    @abstractmethod
    def build(
        self,
        records: Sequence[InventoryRecord],
        consolidated: Optional[ConsolidatedRecord],
        catalog: Mapping[str, str],
    ) -> bytes:
        """Lays out the already ordered records and returns the encoded document."""
        pass

    @staticmethod
    def consolidated_note(consolidated: ConsolidatedRecord) -> str:
        members = ", ".join(consolidated.members) or "ninguno"
        return (
            f"Este consolidado representa la suma de las cantidades registradas "
            f"en los dispositivos {consolidated.group}: {members}."
        )
