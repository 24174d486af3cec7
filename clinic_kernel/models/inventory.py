"""
Module: clinic_kernel.models.inventory
Responsibility: ORM persistence for inventory items.

Architecture position: Kernel > Models.

Invariants enforced:
    - ``stock`` is decremented for clinical usage only by
      InventoryReconciler.confirm, in the same flush that marks the line
      confirmed.  Restock and manual adjustment live outside the kernel.
    - ``version`` serializes concurrent stock writes: a confirm that read
      a stale stock level fails instead of overwriting it.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import Base
from clinic_kernel.domain.inventory import InventoryItemInfo


class InventoryItemModel(Base):
    __tablename__ = "inventory_items"

    __table_args__ = (
        Index("ix_inventory_items_name", "name"),
        Index("ix_inventory_items_category", "category"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Forecasting parameters, all optional
    reorder_point: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lead_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    safety_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> InventoryItemInfo:
        return InventoryItemInfo(
            id=self.id,
            name=self.name,
            category=self.category,
            stock=self.stock,
            price=self.price,
            expiry_date=self.expiry_date,
            reorder_point=self.reorder_point,
            target_level=self.target_level,
            lead_time=self.lead_time,
            safety_stock=self.safety_stock,
        )

    @classmethod
    def from_dto(cls, dto: InventoryItemInfo) -> "InventoryItemModel":
        return cls(
            id=dto.id,
            name=dto.name,
            category=dto.category,
            stock=dto.stock,
            price=dto.price,
            expiry_date=dto.expiry_date,
            reorder_point=dto.reorder_point,
            target_level=dto.target_level,
            lead_time=dto.lead_time,
            safety_stock=dto.safety_stock,
        )

    def __repr__(self) -> str:
        return f"<InventoryItem {self.name} stock={self.stock}>"
