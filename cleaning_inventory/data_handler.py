import base64
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

import requests

from . import settings
from . import utils
from .aggregation import summary_frame
from .schemas import ArchiveReceipt, InventorySummary, ReportArtifact

logger = logging.getLogger(__name__)


def archive_artifact(
    artifact: ReportArtifact,
    prefix: str = settings.ARCHIVE_PREFIX,
    archive_dir: Path = settings.ARCHIVE_DIR,
    when: Optional[date] = None,
) -> ArchiveReceipt:
    """
    Stores the report as `<prefix>_<DD>-<MM>-<YYYY>-<random>.<ext>` in the archive folder.
    The random part keeps same-day archives from overwriting each other.
    """
    archive_dir.mkdir(parents=True, exist_ok=True)
    base_name = utils.generate_archive_filename(prefix, artifact.extension, when)
    filename = utils.add_random_suffix(base_name)
    path = archive_dir / filename
    # "x" mode refuses to overwrite if the suffix ever repeats
    with open(path, "xb") as f:
        f.write(artifact.content)

    logger.info(f"✅ Report archived to: {path} ({artifact.size} bytes)")
    return ArchiveReceipt(
        filename=filename, path=path, url=path.resolve().as_uri(), size=artifact.size
    )


def save_summary_csv(
    summary: InventorySummary, output_dir: Path = settings.OUTPUT_DIR
) -> Path:
    """Saves the current summary in long format to a dated CSV file."""
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()
    csv_path = output_dir / f"{settings.SUMMARY_FILENAME_BASE}_{date_suffix}.csv"

    df = summary_frame(summary).rename(
        columns={
            "device": "Dispositivo",
            "product_id": "Producto ID",
            "product": "Producto",
            "quantity": "Cantidad",
            "date": "Fecha",
            "reported_by": "Reportado por",
        }
    )
    df.to_csv(csv_path, index=False)
    logger.info(f"✅ Summary table saved to: {csv_path}")
    return csv_path


def post_to_webhook(
    artifact: ReportArtifact,
    summary: InventorySummary,
    metadata: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Posts the rendered report (base64) and the summary data to the distribution webhook.
    Returns False when no webhook is configured; raises on delivery errors.
    """
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return False

    logger.info(f"🚀 Posting report to webhook: {settings.WEBHOOK_URL}")

    filename = utils.generate_archive_filename(settings.ARCHIVE_PREFIX, artifact.extension)
    payload = {
        "filename": filename,
        "contentType": artifact.content_type,
        "content": base64.b64encode(artifact.content).decode("ascii"),
        "summary": summary.model_dump(mode="json", by_alias=True),
        "metadata": metadata or {},
    }

    response = requests.post(settings.WEBHOOK_URL, json=payload, timeout=15)
    response.raise_for_status()
    logger.info("✅ Report successfully posted to webhook.")
    return True
