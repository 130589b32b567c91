"""
Aggregation of stored readings into the current inventory picture.

- `latest_per_device`: the current reading of each device, i.e. its most
  recently created record. Ties on `created_at` are broken by the higher `id`,
  then by the earlier position in the input.
- `consolidate`: sums the current readings of an allow-listed device group
  (LAC1..LAC6) into one synthetic record.
- `build_summary`: both of the above in one call.

Everything here is a pure function of its input rows, so recomputing on an
unchanged table gives the same result.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

import pandas as pd
from pydantic import ValidationError

from . import settings, utils
from .schemas import ConsolidatedRecord, InventoryRecord, InventorySummary

logger = logging.getLogger(__name__)


def _validate_rows(rows: Iterable[Any]) -> list[InventoryRecord]:
    """Turns raw rows into records, dropping (and logging) the ones that don't fit."""
    records = []
    for position, row in enumerate(rows):
        if isinstance(row, InventoryRecord):
            records.append(row)
            continue
        try:
            records.append(InventoryRecord.model_validate(row))
        except ValidationError as e:
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning(
                f"Skipping malformed inventory row #{position} (id={row_id}): "
                f"{e.error_count()} validation error(s)"
            )
    return records


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken as UTC, the zone the store writes in.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def latest_per_device(rows: Iterable[Any]) -> dict[str, InventoryRecord]:
    """
    Returns {device: latest record}, keys in alphabetical order.
    Accepts records or raw store rows in any order; malformed rows are skipped.
    """
    records = _validate_rows(rows)
    if not records:
        return {}

    frame = pd.DataFrame(
        {
            "position": range(len(records)),
            "device": [r.device for r in records],
            "created_at": pd.to_datetime(
                [_as_utc(r.created_at) for r in records], utc=True
            ),
            "id": [r.id if r.id is not None else -1 for r in records],
        }
    )

    # Newest first; rows without a timestamp sink to the bottom.
    frame = frame.sort_values(
        ["created_at", "id", "position"],
        ascending=[False, False, True],
        na_position="last",
        kind="mergesort",
    )
    latest = frame.drop_duplicates(subset="device", keep="first").sort_values("device")

    return {row.device: records[row.position] for row in latest.itertuples()}


def consolidate(
    latest: Mapping[str, InventoryRecord],
    members: Iterable[str] = settings.LAC_SUB_UNITS_FOR_SUM,
    group: str = settings.LAC_GROUP_LABEL,
    free_text_id: str = settings.PRODUCT_ID_OTROS,
) -> Optional[ConsolidatedRecord]:
    """
    Sums the latest quantities of the member devices per product id.

    Returns None when no member has any reading yet, which is different from a
    consolidated record whose `products` is empty because every quantity was zero.
    The free-text product is never parsed or summed; non-numeric, fractional,
    zero and negative quantities contribute nothing.
    """
    member_set = set(members)
    present = [record for device, record in latest.items() if device in member_set]
    if not present:
        logger.debug(f"No readings for any {group} member; nothing to consolidate.")
        return None

    lines = pd.DataFrame(
        [
            {"product_id": p.product_id, "raw": p.quantity}
            for record in present
            for p in record.products
            if p.product_id != free_text_id
        ],
        columns=["product_id", "raw"],
        dtype=object,
    )
    # Object dtype keeps Python ints; int64 would overflow on large counts
    lines["quantity"] = pd.Series(
        [utils.parse_quantity(v) for v in lines["raw"]], index=lines.index, dtype=object
    )
    counted = lines.loc[[q is not None and q > 0 for q in lines["quantity"]]]

    totals = counted.groupby("product_id", sort=False)["quantity"].agg(
        lambda s: sum(s.tolist())
    )
    products = {pid: int(qty) for pid, qty in totals.items()}

    logger.debug(
        f"{group} consolidated from {len(present)} device(s): {len(products)} product(s)"
    )
    return ConsolidatedRecord(
        group=group,
        device=f"{group} (Consolidado)",
        products=products,
        members=sorted(record.device for record in present),
    )


def build_summary(
    rows: Iterable[Any],
    members: Iterable[str] = settings.LAC_SUB_UNITS_FOR_SUM,
    group: str = settings.LAC_GROUP_LABEL,
    free_text_id: str = settings.PRODUCT_ID_OTROS,
) -> InventorySummary:
    latest = latest_per_device(rows)
    return InventorySummary(
        records=list(latest.values()),
        consolidated=consolidate(latest, members, group, free_text_id),
    )


def summary_frame(
    summary: InventorySummary, catalog: Mapping[str, str] = settings.CLEANING_PRODUCTS
) -> pd.DataFrame:
    """
    Long-format table of the summary: one row per device and product line,
    consolidated rows last. Quantities are kept as stored.
    """
    rows = []
    for record in summary.records:
        for p in record.products:
            rows.append(
                {
                    "device": record.device,
                    "product_id": p.product_id,
                    "product": catalog.get(p.product_id, p.product_id),
                    "quantity": p.quantity,
                    "date": record.date,
                    "reported_by": record.reported_by,
                }
            )
    if summary.consolidated is not None:
        for pid, qty in summary.consolidated.products.items():
            rows.append(
                {
                    "device": summary.consolidated.device,
                    "product_id": pid,
                    "product": catalog.get(pid, pid),
                    "quantity": qty,
                    "date": summary.consolidated.computed_at.date().isoformat(),
                    "reported_by": settings.SYSTEM_ACTOR,
                }
            )
    return pd.DataFrame(
        rows,
        columns=["device", "product_id", "product", "quantity", "date", "reported_by"],
    )
