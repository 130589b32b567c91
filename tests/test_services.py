import base64
from unittest.mock import MagicMock

import pytest
import requests

from cleaning_inventory import services, settings
from cleaning_inventory.schemas import ArchiveReceipt, RegularDevice
from cleaning_inventory.store import StoreError


@pytest.fixture
def archive_dir(tmp_path, monkeypatch):
    path = tmp_path / "archived-inventories"
    monkeypatch.setattr(settings, "ARCHIVE_DIR", path)
    return path


def _break(monkeypatch, store, method, message="database is locked"):
    def broken(*args, **kwargs):
        raise StoreError(message)

    monkeypatch.setattr(store, method, broken)


# =============================================================================
# load_summary / generate_report
# =============================================================================

def test_load_summary(lac_store):
    result = services.load_summary(lac_store)

    assert result.success
    assert result.data.devices == ["LAC1", "LAC2", "MM"]
    assert result.data.consolidated.products == {"lejia": 5, "bayetas": 5}


def test_load_summary_reports_store_errors(store, monkeypatch):
    _break(monkeypatch, store, "select_all")

    result = services.load_summary(store)

    assert not result.success
    assert result.error == "Error al obtener inventarios: database is locked"


def test_generate_report_on_empty_store_fails(store):
    result = services.generate_report(store, "text")

    assert not result.success
    assert "No hay inventarios" in result.error


def test_generate_report_unknown_format_raises(lac_store):
    with pytest.raises(ValueError):
        services.generate_report(lac_store, "docx")


# =============================================================================
# archive_report
# =============================================================================

def test_archive_report_writes_file(lac_store, archive_dir):
    result = services.archive_report(lac_store, "html")

    assert result.success
    receipt: ArchiveReceipt = result.data
    assert receipt.path.parent == archive_dir
    assert receipt.filename.startswith(f"{settings.ARCHIVE_PREFIX}_")
    assert receipt.filename.endswith(".html")
    assert receipt.path.read_bytes().startswith(b"<!DOCTYPE html>")
    assert receipt.url.startswith("file://")


def test_same_day_archives_do_not_overwrite(lac_store, archive_dir):
    first = services.archive_report(lac_store, "text").data
    second = services.archive_report(lac_store, "text").data

    assert first.filename != second.filename
    assert len(list(archive_dir.iterdir())) == 2


def test_archive_report_reports_os_errors(lac_store, tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    monkeypatch.setattr(settings, "ARCHIVE_DIR", blocker / "archive")

    result = services.archive_report(lac_store, "text")

    assert not result.success
    assert result.error.startswith("Error al archivar el informe")


# =============================================================================
# send_report
# =============================================================================

def test_send_report_without_webhook_is_a_failure(lac_store, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_URL", None)

    result = services.send_report(lac_store, "text")

    assert not result.success
    assert "WEBHOOK_URL" in result.error


def test_send_report_posts_payload(lac_store, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_URL", "https://hooks.example.org/inventory")
    post = MagicMock()
    monkeypatch.setattr("cleaning_inventory.data_handler.requests.post", post)

    result = services.send_report(lac_store, "text", metadata={"requestedBy": "Ana"})

    assert result.success
    url = post.call_args.args[0]
    payload = post.call_args.kwargs["json"]
    assert url == "https://hooks.example.org/inventory"
    assert payload["contentType"].startswith("text/plain")
    assert payload["filename"].endswith(".txt")
    assert payload["metadata"] == {"requestedBy": "Ana"}
    assert [r["device"] for r in payload["summary"]["records"]] == ["LAC1", "LAC2", "MM"]
    post.return_value.raise_for_status.assert_called_once()


def test_send_report_reports_delivery_errors(lac_store, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_URL", "https://hooks.example.org/inventory")
    post = MagicMock(side_effect=requests.exceptions.ConnectionError("refused"))
    monkeypatch.setattr("cleaning_inventory.data_handler.requests.post", post)

    result = services.send_report(lac_store, "text")

    assert not result.success
    assert "refused" in result.error


# =============================================================================
# reset_all / archive_and_reset
# =============================================================================

def test_reset_all(lac_store):
    result = services.reset_all(lac_store)

    assert result.success
    assert result.data.succeeded == ["LAC1", "LAC2", "MM"]


def test_reset_all_partial_failure_carries_outcome(lac_store, monkeypatch):
    real_insert = lac_store.insert

    def flaky_insert(records):
        if records.device == "MM":
            raise StoreError("timeout")
        return real_insert(records)

    monkeypatch.setattr(lac_store, "insert", flaky_insert)

    result = services.reset_all(lac_store)

    assert not result.success
    assert "MM" in result.error
    assert result.data.succeeded == ["LAC1", "LAC2"]
    assert result.data.failed == {"MM": "timeout"}


def test_reset_all_unreadable_store(store, monkeypatch):
    _break(monkeypatch, store, "select_all")

    result = services.reset_all(store)

    assert not result.success
    assert result.data is None


def test_archive_and_reset(lac_store, archive_dir):
    result = services.archive_and_reset(lac_store, "text")

    assert result.success
    assert result.data["archive"].path.exists()
    assert result.data["reset"].complete
    summary = services.load_summary(lac_store).data
    assert summary.consolidated.products == {}


def test_failed_archive_skips_reset(lac_store, tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    monkeypatch.setattr(settings, "ARCHIVE_DIR", blocker / "archive")

    result = services.archive_and_reset(lac_store, "text")

    assert not result.success
    assert lac_store.count() == 4


def test_archive_and_reset_names_the_failed_step(lac_store, archive_dir, monkeypatch):
    real_insert = lac_store.insert

    def flaky_insert(records):
        if records.device == "LAC1":
            raise StoreError("timeout")
        return real_insert(records)

    monkeypatch.setattr(lac_store, "insert", flaky_insert)

    result = services.archive_and_reset(lac_store, "text")

    assert not result.success
    assert result.error.startswith("Informe archivado")
    assert result.data["archive"].path.exists()
    assert result.data["reset"].failed == {"LAC1": "timeout"}


def test_submit(store):
    result = services.submit(store, RegularDevice(name="Oficina"), {"guantes": "10"})

    assert result.success
    assert services.load_summary(store).data.devices == ["Oficina"]


def test_send_report_posts_given_artifact_unchanged(lac_store, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_URL", "https://hooks.example.org/inventory")
    post = MagicMock()
    monkeypatch.setattr("cleaning_inventory.data_handler.requests.post", post)
    artifact = services.generate_report(lac_store, "text").data

    result = services.send_report(lac_store, "pdf", artifact=artifact)

    assert result.data is artifact
    payload = post.call_args.kwargs["json"]
    assert base64.b64decode(payload["content"]) == artifact.content
    assert payload["filename"].endswith(".txt")
