import sqlite3

import pytest

from cleaning_inventory.aggregation import latest_per_device
from cleaning_inventory.schemas import InventoryRecord, ProductQuantity
from cleaning_inventory.store import InventoryStore, StoreError

from conftest import make_record


def test_insert_fills_id_and_created_at(store):
    record = InventoryRecord(
        device="MM",
        products=[ProductQuantity(product_id="lejia", quantity="2")],
        reported_by="Ana",
        date="2026-10-19",
    )

    stored = store.insert(record)

    assert len(stored) == 1
    assert stored[0].id is not None
    assert stored[0].created_at is not None
    assert record.id is None  # the input record is left untouched


def test_products_round_trip_with_aliases(store):
    store.insert(make_record("MM", {"lejia": "2", "otros": "cubos"}))

    row = store.select_all()[0]

    assert row["products"] == [
        {"productId": "lejia", "quantity": "2"},
        {"productId": "otros", "quantity": "cubos"},
    ]


def test_select_all_orders_newest_first(store):
    store.insert(
        [
            make_record("A", {}, minutes=5),
            make_record("B", {}, minutes=20),
            make_record("C", {}, minutes=1),
        ]
    )

    newest_first = [r["device"] for r in store.select_all()]
    oldest_first = [r["device"] for r in store.select_all(descending=False)]
    by_device = [r["device"] for r in store.select_all(order_by="device", descending=False)]

    assert newest_first == ["B", "A", "C"]
    assert oldest_first == ["C", "A", "B"]
    assert by_device == ["A", "B", "C"]


def test_unknown_order_column_is_rejected(store):
    with pytest.raises(ValueError):
        store.select_all(order_by="products; DROP TABLE x")


def test_select_by_devices_filters(lac_store):
    rows = lac_store.select_by_devices(["LAC1", "LAC2"])

    assert {r["device"] for r in rows} == {"LAC1", "LAC2"}
    assert len(rows) == 3
    assert lac_store.select_by_devices([]) == []


def test_latest_for_device(lac_store):
    row = lac_store.latest_for_device("LAC1")

    assert row["products"][0] == {"productId": "lejia", "quantity": "3"}
    assert lac_store.latest_for_device("nope") is None


def test_insert_many_is_atomic(store, monkeypatch):
    good = make_record("A", {"lejia": "1"})
    bad = make_record("B", {"lejia": "1"})
    # NOT NULL on device makes the second insert fail inside the transaction
    monkeypatch.setattr(bad, "device", None, raising=False)

    with pytest.raises(StoreError):
        store.insert([good, bad])

    assert store.count() == 0


def test_delete_all_purges_and_notifies(lac_store):
    events = []
    lac_store.subscribe(lac_store.table, events.append)

    deleted = lac_store.delete_all()

    assert deleted == 4
    assert lac_store.count() == 0
    assert [e.event for e in events] == ["DELETE"] * 4
    assert {e.device for e in events} == {"LAC1", "LAC2", "MM"}


def test_subscribers_receive_inserts_until_unsubscribed(store):
    events = []
    unsubscribe = store.subscribe(store.table, events.append)

    store.insert(make_record("A", {"lejia": "1"}))
    unsubscribe()
    store.insert(make_record("B", {"lejia": "1"}))

    assert len(events) == 1
    assert events[0].event == "INSERT"
    assert events[0].device == "A"
    assert events[0].new["products"] == [{"productId": "lejia", "quantity": "1"}]


def test_other_tables_are_not_notified(store):
    events = []
    store.subscribe("another_table", events.append)

    store.insert(make_record("A", {}))

    assert events == []


def test_failing_observer_does_not_break_insert(store):
    def boom(event):
        raise RuntimeError("observer down")

    store.subscribe(store.table, boom)

    stored = store.insert(make_record("A", {}))

    assert stored[0].id is not None
    assert store.count("A") == 1


def test_corrupted_products_row_is_skipped_by_aggregation(store):
    store.insert(make_record("A", {"lejia": "1"}, minutes=0))
    store.insert(make_record("B", {"lejia": "1"}, minutes=0))
    store.conn.execute(
        f"UPDATE {store.table} SET products = '{{not json' WHERE device = 'B';"
    )
    store.conn.commit()

    latest = latest_per_device(store.select_all())

    assert list(latest) == ["A"]


def test_closed_connection_raises_store_error(tmp_path):
    s = InventoryStore(tmp_path / "inv.db")
    s.close()

    with pytest.raises(StoreError):
        s.select_all()


def test_file_database_persists_between_connections(tmp_path):
    path = tmp_path / "inv.db"
    with InventoryStore(path) as s:
        s.insert(make_record("MM", {"lejia": "2"}))

    with InventoryStore(path) as s:
        assert s.count("MM") == 1


def test_store_error_wraps_sqlite_errors(store, monkeypatch):
    class BrokenConnection:
        def execute(self, *args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "conn", BrokenConnection())

    with pytest.raises(StoreError, match="locked"):
        store.select_all()
