import logging
from typing import Iterable, Optional

from . import settings, utils
from .aggregation import latest_per_device
from .readings import require_regular
from .schemas import InventoryRecord, ProductQuantity, RegularDevice, ResetOutcome
from .store import InventoryStore, StoreError

logger = logging.getLogger(__name__)


def zeroed_copy(record: InventoryRecord, actor: str = settings.SYSTEM_ACTOR) -> InventoryRecord:
    """A new reading for the same device with every product of `record` set to "0"."""
    return InventoryRecord(
        device=record.device,
        products=[
            ProductQuantity(product_id=p.product_id, quantity="0")
            for p in record.products
        ],
        reported_by=actor,
        date=utils.today_iso(),
    )


def reset_inventories(
    store: InventoryStore,
    devices: Optional[Iterable[RegularDevice]] = None,
    actor: str = settings.SYSTEM_ACTOR,
) -> ResetOutcome:
    """
    Starts a new period by appending a zeroed reading for every device that has one.
    History is never touched. Each device is written on its own, so one failing
    insert is recorded in the outcome and the remaining devices are still reset.

    Raises StoreError if the current readings cannot be read at all.
    """
    wanted = None
    if devices is not None:
        wanted = {require_regular(d).name for d in devices}

    latest = latest_per_device(store.select_all())
    outcome = ResetOutcome()

    for device, record in latest.items():
        if wanted is not None and device not in wanted:
            continue
        if device == settings.LAC_CONSOLIDATED_INVENTORY_DEVICE:
            logger.warning(f"Skipping stored rows labelled {device}: not a writable device.")
            continue
        try:
            store.insert(zeroed_copy(record, actor))
        except StoreError as e:
            logger.error(f"❌ Reset failed for {device}: {e}")
            outcome.failed[device] = str(e)
            continue
        outcome.succeeded.append(device)

    if wanted is not None:
        for device in sorted(wanted - set(latest)):
            logger.info(f"No readings for {device}; nothing to reset.")

    logger.info(
        f"Reset finished: {len(outcome.succeeded)} device(s) zeroed, "
        f"{len(outcome.failed)} failed."
    )
    return outcome
