from datetime import datetime, timedelta, timezone

import pytest

from cleaning_inventory.schemas import InventoryRecord, ProductQuantity
from cleaning_inventory.store import InventoryStore

# Well in the past so readings written "now" by the code under test are always newer
T0 = datetime(2020, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_record(device, products, minutes=0, record_id=None, reported_by="tester"):
    """Builds a record `minutes` after T0 with products given as {id: quantity}."""
    return InventoryRecord(
        id=record_id,
        device=device,
        products=[
            ProductQuantity(product_id=pid, quantity=qty) for pid, qty in products.items()
        ],
        reported_by=reported_by,
        date=(T0 + timedelta(minutes=minutes)).date().isoformat(),
        created_at=T0 + timedelta(minutes=minutes),
    )


@pytest.fixture
def store():
    """In-memory SQLite store, fresh for each test."""
    s = InventoryStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def lac_store(store):
    """Two LAC sub-units plus an unrelated device, each with some history."""
    store.insert(
        [
            make_record("LAC1", {"lejia": "9"}, minutes=0),
            make_record("LAC1", {"lejia": "3", "bayetas": "0"}, minutes=10),
            make_record("LAC2", {"lejia": "2", "bayetas": "5"}, minutes=5),
            make_record("MM", {"lejia": "7", "otros": "escobas nuevas"}, minutes=7),
        ]
    )
    return store
