from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from . import settings


class ProductQuantity(BaseModel):
    """
    One product line of a reading. Quantities arrive as text from the entry form,
    so the value is kept as stored and only parsed when aggregating.
    """

    product_id: str = Field(..., alias="productId")
    quantity: Optional[Union[int, float, str]] = None

    class Config:
        populate_by_name = True


class InventoryRecord(BaseModel):
    """
    Defines the data contract for a single stored reading of one device.
    Records are append-only: a newer reading is a new row, never an update.
    """

    id: Optional[int] = None
    device: str = Field(..., min_length=1)
    products: list[ProductQuantity] = Field(default_factory=list)
    reported_by: str = ""
    date: str = ""
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True

    def quantities(self) -> dict[str, Any]:
        return {p.product_id: p.quantity for p in self.products}


class ConsolidatedRecord(BaseModel):
    """Synthetic, never-persisted sum over the latest readings of a device group."""

    group: str
    device: str
    products: dict[str, int] = Field(default_factory=dict)
    members: list[str] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_product_quantities(self) -> list[ProductQuantity]:
        return [
            ProductQuantity(product_id=pid, quantity=qty)
            for pid, qty in self.products.items()
        ]


# --- Device targets ---
# The consolidated entry is a distinct variant so writers can refuse it by type.


class RegularDevice(BaseModel):
    kind: Literal["regular"] = "regular"
    name: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def not_consolidated(cls, v: str) -> str:
        if v.strip() == settings.LAC_CONSOLIDATED_INVENTORY_DEVICE:
            raise ValueError(f"'{v}' is calculated and cannot be used as a device")
        return v

    def __str__(self) -> str:
        return self.name


class ConsolidatedDevice(BaseModel):
    kind: Literal["consolidated"] = "consolidated"
    group: str = settings.LAC_GROUP_LABEL

    @property
    def label(self) -> str:
        return f"{self.group} (Consolidado)"

    def __str__(self) -> str:
        return self.label


DeviceTarget = Annotated[
    Union[RegularDevice, ConsolidatedDevice], Field(discriminator="kind")
]


class InventorySummary(BaseModel):
    records: list[InventoryRecord] = Field(default_factory=list)
    consolidated: Optional[ConsolidatedRecord] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def devices(self) -> list[str]:
        return [r.device for r in self.records]


class OperationResult(BaseModel):
    """Outcome of a public operation: either data or a human readable error."""

    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(success=False, error=message, data=data)


class ResetOutcome(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    @property
    def complete(self) -> bool:
        return not self.failed


class ReportArtifact(BaseModel):
    content: bytes
    content_type: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.content)


class ArchiveReceipt(BaseModel):
    filename: str
    path: Path
    url: str
    size: int


class ChangeEvent(BaseModel):
    table: str
    event: Literal["INSERT", "DELETE"]
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None

    @property
    def device(self) -> Optional[str]:
        row = self.new or self.old or {}
        return row.get("device")
