from cleaning_inventory.renderers.base import ReportRenderer
from cleaning_inventory.renderers.html import HtmlReportRenderer
from cleaning_inventory.renderers.pdf import PdfReportRenderer
from cleaning_inventory.renderers.text import TextReportRenderer

# --- Renderer Registry ---
RENDERER_REGISTRY: dict[str, type[ReportRenderer]] = {
    "pdf": PdfReportRenderer,
    "html": HtmlReportRenderer,
    "text": TextReportRenderer,
}


def get_renderer(fmt: str) -> ReportRenderer:
    try:
        return RENDERER_REGISTRY[fmt.lower()]()
    except KeyError:
        raise ValueError(
            f"unknown report format '{fmt}', expected one of {sorted(RENDERER_REGISTRY)}"
        ) from None
