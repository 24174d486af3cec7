"""
Inventory item value objects (``clinic_kernel.domain.inventory``).

``stock`` is an integer count that only InventoryReconciler.confirm
decreases for clinical usage.  The forecasting parameters are optional;
items without a reorder point are classified by fixed fallback
thresholds instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from clinic_kernel.exceptions import ValidationError

logger = logging.getLogger("clinic_kernel.domain.inventory")


class StockStatus(str, Enum):
    REORDER_NOW = "Reorder Now"
    MONITOR = "Monitor"
    SAFE = "Safe"


@dataclass(frozen=True)
class InventoryItemInfo:
    id: UUID
    name: str
    category: str
    stock: int
    price: Decimal
    expiry_date: date | None = None
    reorder_point: int | None = None
    target_level: int | None = None
    lead_time: int | None = None
    safety_stock: int | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Item name is required", "name")
        if self.price < 0:
            raise ValidationError("Item price cannot be negative", "price")
        if self.stock < 0:
            logger.warning(
                "inventory_item_negative_stock",
                extra={"item_id": str(self.id), "stock": self.stock},
            )
        for name in ("reorder_point", "target_level", "lead_time", "safety_stock"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} cannot be negative", name)
