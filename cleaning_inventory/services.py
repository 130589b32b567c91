"""
Public operations behind the summary screen and the command line.

Every function returns an `OperationResult` instead of raising, so the caller
can show the message and decide whether to retry. Only programming errors
(an unknown report format, a consolidated target passed to a writer) raise.
"""

import logging
from typing import Any, Mapping, Optional

import requests

from . import data_handler, settings
from .aggregation import build_summary
from .readings import submit_reading
from .renderers import get_renderer
from .reset import reset_inventories
from .schemas import (
    InventorySummary,
    OperationResult,
    RegularDevice,
    ReportArtifact,
)
from .store import InventoryStore, StoreError

logger = logging.getLogger(__name__)


def load_summary(store: InventoryStore) -> OperationResult:
    """Latest reading per device plus the consolidated LAC entry."""
    try:
        rows = store.select_all(order_by="created_at", descending=True)
    except StoreError as e:
        logger.error(f"❌ Error fetching inventories: {e}")
        return OperationResult.fail(f"Error al obtener inventarios: {e}")

    summary = build_summary(rows)
    logger.info(
        f"Summary loaded: {len(summary.records)} device(s) from {len(rows)} row(s)"
    )
    return OperationResult.ok(summary)


def generate_report(
    store: InventoryStore, fmt: str = settings.REPORT_FORMAT
) -> OperationResult:
    """Renders the current summary; data is the `ReportArtifact`."""
    renderer = get_renderer(fmt)
    result = load_summary(store)
    if not result.success:
        return result

    summary: InventorySummary = result.data
    if not summary.records:
        return OperationResult.fail("No hay inventarios para generar el informe.")

    artifact = renderer.render(summary.records, summary.consolidated)
    return OperationResult.ok(artifact)


def archive_report(
    store: InventoryStore, fmt: str = settings.REPORT_FORMAT
) -> OperationResult:
    """Renders the report and stores it in the archive; data is the `ArchiveReceipt`."""
    report = generate_report(store, fmt)
    if not report.success:
        return report
    try:
        receipt = data_handler.archive_artifact(
            report.data, prefix=settings.ARCHIVE_PREFIX, archive_dir=settings.ARCHIVE_DIR
        )
    except OSError as e:
        logger.error(f"❌ Error archiving report: {e}")
        return OperationResult.fail(f"Error al archivar el informe: {e}")
    return OperationResult.ok(receipt)


def send_report(
    store: InventoryStore,
    fmt: str = settings.REPORT_FORMAT,
    metadata: Optional[Mapping[str, Any]] = None,
    artifact: Optional[ReportArtifact] = None,
) -> OperationResult:
    """
    Posts the report to the distribution webhook. An `artifact` that was already
    rendered (and saved) is sent as is; otherwise the current summary is rendered.
    """
    summary_result = load_summary(store)
    if not summary_result.success:
        return summary_result
    summary: InventorySummary = summary_result.data
    if not summary.records:
        return OperationResult.fail("No hay inventarios para enviar.")

    if artifact is None:
        artifact = get_renderer(fmt).render(summary.records, summary.consolidated)
    try:
        sent = data_handler.post_to_webhook(artifact, summary, dict(metadata or {}))
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
        return OperationResult.fail(f"Error al enviar el informe: {e}")
    if not sent:
        return OperationResult.fail("No hay destino configurado para el envío (WEBHOOK_URL).")
    return OperationResult.ok(artifact)


def reset_all(store: InventoryStore) -> OperationResult:
    """Zeroes every device. A partial failure is a failed result carrying the outcome."""
    try:
        outcome = reset_inventories(store)
    except StoreError as e:
        logger.error(f"❌ Error resetting inventories: {e}")
        return OperationResult.fail(f"Error al reiniciar inventarios: {e}")

    if outcome.failed:
        failed = ", ".join(sorted(outcome.failed))
        return OperationResult.fail(
            f"Inventarios reiniciados parcialmente. Fallaron: {failed}", data=outcome
        )
    return OperationResult.ok(outcome)


def archive_and_reset(
    store: InventoryStore, fmt: str = settings.REPORT_FORMAT
) -> OperationResult:
    """
    Closes a period: archive the report, then zero every device.
    The reset only runs after a successful archive; the message says which step failed.
    """
    archived = archive_report(store, fmt)
    if not archived.success:
        return archived

    reset = reset_all(store)
    if not reset.success:
        return OperationResult.fail(
            f"Informe archivado, pero error al reiniciar inventarios: {reset.error}",
            data={"archive": archived.data, "reset": reset.data},
        )
    return OperationResult.ok({"archive": archived.data, "reset": reset.data})


def submit(
    store: InventoryStore,
    device: RegularDevice,
    quantities: Mapping[str, Any],
    reported_by: str = settings.DEFAULT_REPORTER,
) -> OperationResult:
    return submit_reading(store, device, quantities, reported_by)
