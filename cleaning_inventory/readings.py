import logging
from typing import Any, Mapping

from . import settings, utils
from .aggregation import consolidate, latest_per_device
from .schemas import (
    ConsolidatedDevice,
    InventoryRecord,
    OperationResult,
    ProductQuantity,
    RegularDevice,
)
from .store import InventoryStore, StoreError

logger = logging.getLogger(__name__)


def parse_device(name: str) -> RegularDevice | ConsolidatedDevice:
    """Maps a selector option to a device target; the consolidated label is not a real device."""
    if name.strip() == settings.LAC_CONSOLIDATED_INVENTORY_DEVICE:
        return ConsolidatedDevice(group=settings.LAC_GROUP_LABEL)
    return RegularDevice(name=name)


def require_regular(device: Any) -> RegularDevice:
    # model_construct() skips the name validator, so the label is checked again
    if (
        not isinstance(device, RegularDevice)
        or device.name.strip() == settings.LAC_CONSOLIDATED_INVENTORY_DEVICE
    ):
        raise TypeError(
            f"readings can only be written for a regular device, got {device!r}"
        )
    return device


def quantity_options(product_id: str, device: str) -> list[str]:
    """Selectable quantities for a product on the entry form of `device`."""
    if device in ("MM", "MF"):
        return settings.MM_MF_PRODUCT_QUANTITIES.get(product_id, ["0", "1"])

    if device in settings.LAC_SUB_UNITS_FOR_SUM:
        if product_id == settings.PRODUCT_ID_PAPEL_COCINA:
            return settings.LAC_PAPEL_COCINA_QUANTITIES
        return settings.LAC_GROUP_DEFAULT_QUANTITIES

    return settings.PRODUCT_SPECIFIC_QUANTITIES.get(
        product_id, settings.DEFAULT_QUANTITIES
    )


def build_products(
    quantities: Mapping[str, Any],
    catalog: Mapping[str, str] = settings.CLEANING_PRODUCTS,
) -> list[ProductQuantity]:
    """
    Turns form values into product lines, in catalog order.
    Blank and "0" quantities are left out; the free-text field is kept when it has text.
    """
    unknown = [pid for pid in quantities if pid not in catalog]
    if unknown:
        raise ValueError(f"unknown product id(s): {', '.join(sorted(unknown))}")

    products = []
    for pid in catalog:
        if pid not in quantities:
            continue
        value = "" if quantities[pid] is None else str(quantities[pid]).strip()
        if pid == settings.PRODUCT_ID_OTROS:
            if value:
                products.append(ProductQuantity(product_id=pid, quantity=value))
        elif value and value != "0":
            products.append(ProductQuantity(product_id=pid, quantity=value))
    return products


def submit_reading(
    store: InventoryStore,
    device: RegularDevice,
    quantities: Mapping[str, Any],
    reported_by: str = settings.DEFAULT_REPORTER,
) -> OperationResult:
    """Stores one new reading for `device`; the stored record is returned as data."""
    require_regular(device)
    try:
        products = build_products(quantities)
    except ValueError as e:
        return OperationResult.fail(f"Datos de inventario no válidos: {e}")

    record = InventoryRecord(
        device=device.name,
        products=products,
        reported_by=reported_by,
        date=utils.today_iso(),
    )
    logger.info(f"Saving inventory for {device.name} ({len(products)} product line(s))")
    try:
        stored = store.insert(record)[0]
    except StoreError as e:
        logger.error(f"❌ Error saving inventory for {device.name}: {e}")
        return OperationResult.fail(f"Error al guardar: {e}")

    logger.info(f"✅ Inventory saved for {device.name} (id={stored.id})")
    return OperationResult.ok(stored)


def load_device_quantities(
    store: InventoryStore, target: RegularDevice | ConsolidatedDevice
) -> dict[str, Any]:
    """
    Values to prefill the entry form with.
    Regular device: its latest reading as {product id: quantity}, empty when it has none.
    Consolidated: the group sums for every catalog product except the free-text one.
    Raises StoreError when the store cannot be read.
    """
    if isinstance(target, ConsolidatedDevice):
        rows = store.select_by_devices(settings.LAC_SUB_UNITS_FOR_SUM)
        consolidated = consolidate(latest_per_device(rows), group=target.group)
        sums = consolidated.products if consolidated is not None else {}
        return {
            pid: sums.get(pid, 0)
            for pid in settings.CLEANING_PRODUCTS
            if pid != settings.PRODUCT_ID_OTROS
        }

    row = store.latest_for_device(target.name)
    if row is None:
        return {}
    latest = latest_per_device([row])
    record = latest.get(target.name)
    return record.quantities() if record is not None else {}


def import_readings_csv(
    store: InventoryStore,
    file_path,
    reported_by: str = settings.DEFAULT_REPORTER,
) -> OperationResult:
    """
    Bulk entry from a long-format CSV with `device`, `productId` and `quantity`
    columns. Each device in the file becomes one new reading.
    Data is {device: result} for the devices found in the file.
    """
    df = utils.load_csv(file_path)
    if df is None:
        return OperationResult.fail(f"No se pudo leer el archivo {file_path}.")

    required_cols = ["device", "productId", "quantity"]
    missing = [c for c in required_cols if c not in df.columns]
    if missing:
        return OperationResult.fail(f"Faltan columnas en el archivo: {', '.join(missing)}")

    df = df.dropna(subset=["device", "productId"]).copy()
    df["quantity"] = df["quantity"].fillna("")

    results: dict[str, OperationResult] = {}
    for device_name, group in df.groupby("device", sort=True):
        target = parse_device(str(device_name).strip())
        if isinstance(target, ConsolidatedDevice):
            logger.warning(f"Skipping rows for {device_name}: not a writable device.")
            results[str(device_name)] = OperationResult.fail(
                "El consolidado no admite registros."
            )
            continue
        quantities = dict(zip(group["productId"].str.strip(), group["quantity"]))
        results[target.name] = submit_reading(store, target, quantities, reported_by)

    failed = [name for name, r in results.items() if not r.success]
    if failed:
        return OperationResult.fail(
            f"Error al importar: {', '.join(failed)}", data=results
        )
    return OperationResult.ok(results)
