import pytest

from cleaning_inventory import settings
from cleaning_inventory.aggregation import latest_per_device
from cleaning_inventory.reset import reset_inventories, zeroed_copy
from cleaning_inventory.schemas import ConsolidatedDevice, RegularDevice
from cleaning_inventory.store import StoreError

from conftest import make_record


def test_reset_appends_zeroed_record_and_keeps_history(store):
    store.insert(make_record("A", {"soap": "4"}, minutes=0))

    outcome = reset_inventories(store)

    assert outcome.succeeded == ["A"]
    assert outcome.complete
    rows = store.select_by_devices(["A"])
    assert len(rows) == 2
    newest, original = rows
    assert newest["products"] == [{"productId": "soap", "quantity": "0"}]
    assert newest["reported_by"] == settings.SYSTEM_ACTOR
    assert original["products"] == [{"productId": "soap", "quantity": "4"}]


def test_reset_zeroes_every_product_of_latest_reading(lac_store):
    reset_inventories(lac_store)

    latest = latest_per_device(lac_store.select_all())
    assert latest["LAC1"].quantities() == {"lejia": "0", "bayetas": "0"}
    assert latest["MM"].quantities() == {"lejia": "0", "otros": "0"}
    assert lac_store.count() == 4 + 3


def test_reset_inserts_one_record_per_device(lac_store):
    outcome = reset_inventories(lac_store)

    assert outcome.succeeded == ["LAC1", "LAC2", "MM"]
    assert lac_store.count("LAC1") == 3
    assert lac_store.count("LAC2") == 2
    assert lac_store.count("MM") == 2


def test_reset_on_empty_store_does_nothing(store):
    outcome = reset_inventories(store)

    assert outcome.succeeded == []
    assert outcome.failed == {}
    assert store.count() == 0


def test_reset_continues_after_a_failed_device(lac_store, monkeypatch):
    real_insert = lac_store.insert

    def flaky_insert(records):
        if records.device == "LAC2":
            raise StoreError("connection reset")
        return real_insert(records)

    monkeypatch.setattr(lac_store, "insert", flaky_insert)

    outcome = reset_inventories(lac_store)

    assert outcome.succeeded == ["LAC1", "MM"]
    assert outcome.failed == {"LAC2": "connection reset"}
    assert outcome.partial
    assert not outcome.complete
    assert lac_store.count("LAC2") == 1


def test_reset_limited_to_given_devices(lac_store):
    outcome = reset_inventories(lac_store, devices=[RegularDevice(name="MM"), RegularDevice(name="X")])

    assert outcome.succeeded == ["MM"]
    assert lac_store.count("LAC1") == 2


def test_reset_rejects_consolidated_target(lac_store):
    with pytest.raises(TypeError):
        reset_inventories(lac_store, devices=[ConsolidatedDevice()])

    assert lac_store.count() == 4


def test_reset_propagates_unreadable_store(store, monkeypatch):
    def broken(*args, **kwargs):
        raise StoreError("no such table")

    monkeypatch.setattr(store, "select_all", broken)

    with pytest.raises(StoreError):
        reset_inventories(store)


def test_zeroed_copy_is_a_new_unsaved_reading():
    original = make_record("A", {"lejia": "3"}, record_id=5)

    zeroed = zeroed_copy(original, actor="cron")

    assert zeroed.id is None
    assert zeroed.created_at is None
    assert zeroed.reported_by == "cron"
    assert zeroed.quantities() == {"lejia": "0"}
    assert original.quantities() == {"lejia": "3"}


def test_reset_skips_rows_stored_under_consolidated_label(store):
    store.insert(
        [
            make_record(settings.LAC_CONSOLIDATED_INVENTORY_DEVICE, {"lejia": "8"}, minutes=0),
            make_record("LAC1", {"lejia": "2"}, minutes=1),
        ]
    )

    outcome = reset_inventories(store)

    assert outcome.succeeded == ["LAC1"]
    assert store.count(settings.LAC_CONSOLIDATED_INVENTORY_DEVICE) == 1
