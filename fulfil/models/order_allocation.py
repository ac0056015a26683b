# fulfil/models/order_allocation.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfil.db.base import Base

if TYPE_CHECKING:
    from fulfil.models.order import Order
    from fulfil.models.warehouse import Warehouse


class OrderAllocation(Base):
    """
    订单分仓明细：订单独占（级联删除），仓库被多笔订单共享引用。
    """

    __tablename__ = "order_allocations"
    __table_args__ = (
        sa.CheckConstraint("quantity > 0", name="ck_order_allocations_qty_positive"),
        sa.Index("ix_order_allocations_order_wh", "order_id", "warehouse_id"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    order_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    distance_km: Mapped[float] = mapped_column(sa.Float, nullable=False, default=0.0)
    shipping_cost: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )

    order: Mapped["Order"] = relationship("Order", back_populates="allocations")
    warehouse: Mapped["Warehouse"] = relationship("Warehouse", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<OrderAllocation order={self.order_id} wh={self.warehouse_id} "
            f"qty={self.quantity} cost={self.shipping_cost}>"
        )
