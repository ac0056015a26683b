# fulfil/models/order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, Float, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfil.db.base import Base

if TYPE_CHECKING:
    from fulfil.models.order_allocation import OrderAllocation

ORDER_STATUS_COMPLETED = "completed"


class Order(Base):
    """
    订单主档：
    - 只在提交事务内创建一次（与扣库存同一事务），之后不再修改
    - order_number 唯一；撞号由服务层在 SAVEPOINT 内重试
    - 金额存 Numeric(14,2)；discount 为比例（0..1）
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 业务单号
    order_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    shipping_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    shipping_longitude: Mapped[float] = mapped_column(Float, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=0)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default=ORDER_STATUS_COMPLETED)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    allocations: Mapped[List["OrderAllocation"]] = relationship(
        "OrderAllocation",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderAllocation.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} no={self.order_number!r} qty={self.quantity} status={self.status}>"
