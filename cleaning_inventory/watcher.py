"""Observers that keep derived views fresh as readings are written."""

import logging
from typing import Any, Callable, Optional

from . import settings
from .aggregation import build_summary
from .readings import load_device_quantities
from .schemas import ChangeEvent, ConsolidatedDevice, InventorySummary, RegularDevice
from .store import InventoryStore, StoreError

logger = logging.getLogger(__name__)


class SummaryWatcher:
    """
    Recomputes the summary on every change to the readings table and hands it
    to `on_update`. Recomputation reads the whole table again, so repeated
    notifications for the same change produce the same summary.
    """

    def __init__(
        self,
        store: InventoryStore,
        on_update: Callable[[InventorySummary], None],
    ):
        self.store = store
        self.on_update = on_update
        self.summary: Optional[InventorySummary] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> InventorySummary:
        self._unsubscribe = self.store.subscribe(self.store.table, self._handle)
        return self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def refresh(self) -> InventorySummary:
        self.summary = build_summary(self.store.select_all())
        self.on_update(self.summary)
        return self.summary

    def _handle(self, event: ChangeEvent) -> None:
        logger.debug(f"{event.event} on {event.table} ({event.device}); recomputing summary")
        try:
            self.refresh()
        except StoreError as e:
            logger.error(f"❌ Could not refresh summary after {event.event}: {e}")


class DeviceWatcher:
    """
    Keeps the entry form of the selected target in sync.
    A regular device refreshes when one of its own readings changes; the
    consolidated target refreshes when any member of its group changes.
    """

    def __init__(
        self,
        store: InventoryStore,
        target: RegularDevice | ConsolidatedDevice,
        on_update: Callable[[dict[str, Any]], None],
        members: list[str] = settings.LAC_SUB_UNITS_FOR_SUM,
    ):
        self.store = store
        self.target = target
        self.on_update = on_update
        self.members = members
        self.quantities: dict[str, Any] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> dict[str, Any]:
        self._unsubscribe = self.store.subscribe(self.store.table, self._handle)
        return self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def refresh(self) -> dict[str, Any]:
        self.quantities = load_device_quantities(self.store, self.target)
        self.on_update(self.quantities)
        return self.quantities

    def concerns(self, event: ChangeEvent) -> bool:
        if isinstance(self.target, ConsolidatedDevice):
            return event.device in self.members
        return event.device == self.target.name

    def _handle(self, event: ChangeEvent) -> None:
        if not self.concerns(event):
            return
        logger.debug(f"Change for {event.device}; refreshing {self.target}")
        try:
            self.refresh()
        except StoreError as e:
            logger.error(f"❌ Could not refresh {self.target}: {e}")
